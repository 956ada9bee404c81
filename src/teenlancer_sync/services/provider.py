"""Client for the external conversation provider.

This module provides the ProviderClient class that handles all communication
between the sync service and the hosted conversation provider. It includes:

- HTTP client with basic authentication and bounded timeouts
- Conversation lookup, creation and participant registration
- Paginated message listing for pull reconciliation
- Metrics collection and health checks for monitoring
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from teenlancer_sync.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_INTERNAL_SERVER_ERROR = 500


class ProviderError(RuntimeError):
    """Base exception raised for provider-related failures."""


class ProviderUnavailable(ProviderError):
    """Raised when the provider is unreachable, timed out or not configured."""


class ProviderAPIError(ProviderError):
    """Raised when the provider answers with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConflictError(ProviderAPIError):
    """Raised when a create call collides with an existing provider resource."""


@dataclass
class ProviderMetrics:
    """Metrics collection for provider operations."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    min_response_time: float = float('inf')
    max_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    endpoint_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, endpoint: str, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        """Record a request metric."""
        self.request_count += 1
        self.total_response_time += response_time
        self.min_response_time = min(self.min_response_time, response_time)
        self.max_response_time = max(self.max_response_time, response_time)
        self.endpoint_counts[endpoint] += 1

        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        """Get average response time."""
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def get_success_rate(self) -> float:
        """Get success rate as a percentage."""
        return (self.success_count / self.request_count * 100) if self.request_count > 0 else 0.0


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable configuration for provider operations."""

    base_url: str
    account_sid: str | None
    auth_token: str | None
    service_sid: str | None
    timeout_seconds: float
    page_size: int

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.account_sid and self.auth_token and self.service_sid)


@dataclass(frozen=True)
class ProviderConversation:
    """Conversation resource as returned by the provider."""

    handle: str
    unique_name: str | None
    friendly_name: str | None


@dataclass(frozen=True)
class ProviderMessage:
    """Message record as listed by the provider."""

    external_message_id: str
    author_id: str
    body: str
    sequence_index: int | None
    provider_timestamp: datetime


@dataclass(frozen=True)
class MalformedProviderMessage:
    """Listed record that lacks the fields needed to ingest it."""

    external_message_id: str | None
    reason: str


ListedMessage = ProviderMessage | MalformedProviderMessage


def load_provider_config() -> ProviderConfig:
    """Build configuration object from global settings."""

    return ProviderConfig(
        base_url=settings.provider_base_url,
        account_sid=settings.provider_account_sid,
        auth_token=settings.provider_auth_token,
        service_sid=settings.provider_service_sid,
        timeout_seconds=float(settings.provider_http_timeout_seconds),
        page_size=max(1, settings.provider_page_size),
    )


def parse_provider_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 provider timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _optional_str(value: Any) -> str | None:
    return str(value) if value else None


def _parse_message(item: Mapping[str, Any]) -> ProviderMessage | MalformedProviderMessage:
    sid = item.get("sid")
    author = item.get("author")
    date_created = item.get("date_created")
    if not sid or not author or not date_created:
        logger.debug("Malformed provider message record: %s", sid)
        return MalformedProviderMessage(
            external_message_id=_optional_str(sid), reason="missing_fields"
        )

    index = item.get("index")
    try:
        timestamp = parse_provider_timestamp(str(date_created))
        sequence_index = int(index) if index is not None else None
    except (TypeError, ValueError):
        logger.debug("Provider message %s has unparsable metadata", sid)
        return MalformedProviderMessage(
            external_message_id=str(sid), reason="unparsable_metadata"
        )

    return ProviderMessage(
        external_message_id=str(sid),
        author_id=str(author),
        body=str(item.get("body") or ""),
        sequence_index=sequence_index,
        provider_timestamp=timestamp,
    )


class ProviderClient:
    """HTTP client wrapper for conversation provider interactions."""

    def __init__(
        self,
        config: ProviderConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_provider_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._metrics = ProviderMetrics()
        self._last_response_time: float | None = None

    @property
    def enabled(self) -> bool:
        return self.config.configured

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise ProviderUnavailable("Conversation provider is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    auth=(self.config.account_sid or "", self.config.auth_token or ""),
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )

        return self._client

    def _service_path(self, suffix: str) -> str:
        return f"/Services/{self.config.service_sid}{suffix}"

    @dataclass
    class RequestParams:
        """Parameters for HTTP requests."""
        method: str
        path: str
        data: Mapping[str, Any] | None = None
        params: Mapping[str, Any] | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        client = await self._ensure_client()

        start_time = time.time()
        endpoint = f"{params.method} {params.path}"
        success = False
        error_type = None

        try:
            response = await client.request(
                params.method,
                params.path,
                data=params.data,
                params=params.params,
            )
        except httpx.TimeoutException as exc:
            error_type = "timeout"
            raise ProviderUnavailable(f"Provider request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            error_type = "network_error"
            raise ProviderUnavailable(f"Provider request failed: {exc}") from exc
        else:
            if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
                error_type = f"http_{response.status_code}"
                raise ProviderUnavailable(f"Provider responded with {response.status_code}")
            if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
                error_type = f"http_{response.status_code}"
                raise ProviderUnavailable(
                    f"Provider rejected credentials ({response.status_code})"
                )
            success = True
        finally:
            self._last_response_time = time.time() - start_time
            self._metrics.record_request(
                endpoint, self._last_response_time, success, error_type
            )

        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, Mapping):
            return str(body.get("message") or body)
        return str(body)

    async def fetch_conversation(self, unique_name: str) -> ProviderConversation | None:
        """Fetch a conversation by its unique name, or None if it does not exist."""

        response = await self._request(
            self.RequestParams(
                method="GET",
                path=self._service_path(f"/Conversations/{quote(unique_name, safe='')}"),
            )
        )

        if response.status_code == HTTP_NOT_FOUND:
            return None
        if response.status_code != HTTP_OK:
            raise ProviderAPIError(
                f"Unexpected provider response ({response.status_code}) for conversation lookup: "
                f"{self._error_message(response)}",
                response.status_code,
            )

        payload = response.json()
        return ProviderConversation(
            handle=payload["sid"],
            unique_name=payload.get("unique_name"),
            friendly_name=payload.get("friendly_name"),
        )

    async def create_conversation(self, unique_name: str) -> ProviderConversation:
        """Create a conversation whose friendly and unique names are ``unique_name``."""

        response = await self._request(
            self.RequestParams(
                method="POST",
                path=self._service_path("/Conversations"),
                data={"FriendlyName": unique_name, "UniqueName": unique_name},
            )
        )

        if response.status_code == HTTP_CONFLICT:
            raise ConflictError(
                f"Conversation {unique_name!r} already exists", response.status_code
            )
        if response.status_code not in (HTTP_OK, HTTP_CREATED):
            raise ProviderAPIError(
                f"Unexpected provider response ({response.status_code}) when creating "
                f"conversation: {self._error_message(response)}",
                response.status_code,
            )

        payload = response.json()
        return ProviderConversation(
            handle=payload["sid"],
            unique_name=payload.get("unique_name", unique_name),
            friendly_name=payload.get("friendly_name", unique_name),
        )

    async def add_participant(self, conversation_handle: str, identity: str) -> bool:
        """Register ``identity`` on a conversation.

        Returns:
            True if the participant was added, False if it was already present.
        """

        response = await self._request(
            self.RequestParams(
                method="POST",
                path=self._service_path(f"/Conversations/{conversation_handle}/Participants"),
                data={"Identity": identity},
            )
        )

        if response.status_code == HTTP_CONFLICT:
            return False
        if response.status_code not in (HTTP_OK, HTTP_CREATED):
            raise ProviderAPIError(
                f"Unexpected provider response ({response.status_code}) when adding "
                f"participant: {self._error_message(response)}",
                response.status_code,
            )
        return True

    async def list_messages(self, conversation_handle: str) -> list[ListedMessage]:
        """List every message of a conversation, following pagination.

        Records that cannot be parsed are returned as ``MalformedProviderMessage``
        so callers can count them.
        """

        path: str | None = self._service_path(f"/Conversations/{conversation_handle}/Messages")
        query: dict[str, Any] | None = {"PageSize": self.config.page_size, "Order": "asc"}
        messages: list[ListedMessage] = []

        while path:
            response = await self._request(
                self.RequestParams(method="GET", path=path, params=query)
            )
            if response.status_code == HTTP_NOT_FOUND:
                raise ProviderAPIError(
                    f"Conversation {conversation_handle} not found on provider",
                    response.status_code,
                )
            if response.status_code != HTTP_OK:
                raise ProviderAPIError(
                    f"Unexpected provider response ({response.status_code}) when listing "
                    f"messages: {self._error_message(response)}",
                    response.status_code,
                )

            payload = response.json()
            for item in payload.get("messages", []) or []:
                messages.append(_parse_message(item))

            meta = payload.get("meta") or {}
            # next_page_url already carries its own query string.
            path = meta.get("next_page_url")
            query = None

        return messages

    async def health_check(self) -> dict[str, Any]:
        """Perform a health check on the provider connection."""
        if not self.enabled:
            return {
                "status": "disabled",
                "enabled": False,
                "error": "Conversation provider is not configured",
            }

        try:
            response = await self._request(
                self.RequestParams(method="GET", path=f"/Services/{self.config.service_sid}")
            )
        except ProviderError as e:
            return {
                "status": "error",
                "enabled": True,
                "error": str(e),
                "response_time_ms": None,
            }

        if response.status_code == HTTP_OK:
            return {
                "status": "healthy",
                "enabled": True,
                "response_time_ms": self._last_response_time_ms(),
            }
        return {
            "status": "unhealthy",
            "enabled": True,
            "error": f"Provider returned status {response.status_code}",
            "response_time_ms": self._last_response_time_ms(),
        }

    def _last_response_time_ms(self) -> float | None:
        if self._last_response_time is None:
            return None
        return self._last_response_time * 1000

    def get_metrics(self) -> dict[str, Any]:
        """Get provider operation metrics."""
        return {
            "request_count": self._metrics.request_count,
            "success_count": self._metrics.success_count,
            "error_count": self._metrics.error_count,
            "success_rate": self._metrics.get_success_rate(),
            "average_response_time": self._metrics.get_average_response_time(),
            "min_response_time": (
                self._metrics.min_response_time
                if self._metrics.min_response_time != float('inf')
                else 0.0
            ),
            "max_response_time": self._metrics.max_response_time,
            "error_counts_by_type": dict(self._metrics.error_counts_by_type),
            "endpoint_counts": dict(self._metrics.endpoint_counts),
        }

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _ProviderClientSingleton:
    """Singleton wrapper for ProviderClient."""

    _instance: ProviderClient | None = None

    @classmethod
    def get_instance(cls) -> ProviderClient:
        """Get or create the singleton ProviderClient instance."""
        if cls._instance is None:
            cls._instance = ProviderClient()
        return cls._instance


def get_provider_client() -> ProviderClient:
    """Return a singleton provider client instance."""
    return _ProviderClientSingleton.get_instance()
