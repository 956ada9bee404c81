"""Provider access-token endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from teenlancer_sync.schemas.token import ProviderTokenResponse
from teenlancer_sync.services.provider import ProviderError
from teenlancer_sync.services.tokens import ProviderTokenIssuer

from ..dependencies import CurrentUserIdDep, provider_http_error

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.post("/provider", response_model=ProviderTokenResponse)
async def issue_provider_token(current_user_id: CurrentUserIdDep) -> ProviderTokenResponse:
    """Issue a short-lived token scoped to the caller's identity."""
    try:
        issued = ProviderTokenIssuer().issue_token(current_user_id)
    except ProviderError as exc:
        raise provider_http_error(exc) from exc
    return ProviderTokenResponse(
        token=issued.token,
        identity=issued.identity,
        service_scope=issued.service_scope,
        expires_at=issued.expires_at,
    )
