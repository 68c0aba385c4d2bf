"""Vapi voice provider client.

Thin async proxy over the Vapi REST API. Every method returns the
provider's JSON unchanged; HTTP failures are raised as
UpstreamProviderError carrying the provider's status code.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from voice_gateway.errors import ConfigurationError, UpstreamProviderError

logger = logging.getLogger("voice-gateway-vapi")

VAPI_BASE_URL = "https://api.vapi.ai"
VAPI_TIMEOUT_SECONDS = 30.0


@dataclass
class VapiConfig:
    """Configuration for the Vapi API."""

    private_key: str = ""
    base_url: str = VAPI_BASE_URL
    timeout_seconds: float = VAPI_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "VapiConfig":
        """Load Vapi config from environment variables."""
        private_key = os.getenv("VAPI_PRIVATE_KEY", "")
        if not private_key:
            logger.warning("VAPI_PRIVATE_KEY not set - calls will fail")
        return cls(
            private_key=private_key,
            base_url=os.getenv("VAPI_BASE_URL", VAPI_BASE_URL),
        )

    def is_configured(self) -> bool:
        return bool(self.private_key)


async def _log_request(request: httpx.Request) -> None:
    logger.info(f"[Vapi] {request.method} {request.url.path}")


async def _log_response(response: httpx.Response) -> None:
    logger.info(f"[Vapi] Response {response.status_code} from {response.request.url.path}")


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful message out of a Vapi error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        message = data.get("message")
        if isinstance(message, list):
            return "; ".join(str(m) for m in message)
        if message:
            return str(message)
        if isinstance(error, str):
            return error
    return response.reason_phrase


class VapiClient:
    """Async client for calls, assistants and phone numbers on Vapi."""

    def __init__(
        self,
        config: VapiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Vapi configuration. Loads from env if not provided.
            transport: Optional httpx transport (used by tests).
        """
        self.config = config or VapiConfig.from_env()
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={
                "Authorization": f"Bearer {self.config.private_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.timeout_seconds,
            transport=transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        **kwargs: Any,
    ) -> Any:
        if not self.config.is_configured():
            raise ConfigurationError(
                "VAPI_PRIVATE_KEY environment variable is required"
            )

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[Vapi] {context}: No response received ({e!s})")
            raise UpstreamProviderError(
                f"{context}: {e!s}", provider="vapi"
            ) from e

        if response.is_error:
            message = _error_message(response)
            logger.error(
                f"[Vapi] {context}: status={response.status_code} message={message}"
            )
            raise UpstreamProviderError(
                message,
                provider="vapi",
                status_code=response.status_code,
                payload=response.text,
            )

        if not response.content:
            return None
        return response.json()

    async def initiate_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """Start an outbound call."""
        return await self._request(
            "POST", "/call", "Failed to initiate call", json=params
        )

    async def get_call(self, call_id: str) -> dict[str, Any]:
        return await self._request(
            "GET", f"/call/{call_id}", f"Failed to get call {call_id}"
        )

    async def list_calls(self, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        """List calls with pagination."""
        calls = await self._request(
            "GET",
            "/call",
            "Failed to list calls",
            params={"limit": limit, "offset": offset},
        )
        return calls or []

    async def create_assistant(self, config: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", "/assistant", "Failed to create assistant", json=config
        )

    async def get_assistant(self, assistant_id: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/assistant/{assistant_id}",
            f"Failed to get assistant {assistant_id}",
        )

    async def update_assistant(
        self, assistant_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/assistant/{assistant_id}",
            f"Failed to update assistant {assistant_id}",
            json=updates,
        )

    async def delete_assistant(self, assistant_id: str) -> None:
        await self._request(
            "DELETE",
            f"/assistant/{assistant_id}",
            f"Failed to delete assistant {assistant_id}",
        )
