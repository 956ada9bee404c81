"""Provider access-token schemas."""

from datetime import datetime

from .common import CamelModel


class ProviderTokenResponse(CamelModel):
    token: str
    identity: str
    service_scope: str
    expires_at: datetime
