"""HTTP client for invoking agent webhooks."""

import asyncio
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

import aiohttp

from src.utils.settings.webhook import webhook_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookError(Exception):
    """Base class for webhook invocation failures."""


class WebhookTimeoutError(WebhookError):
    pass


class WebhookTransportError(WebhookError):
    """Connection failure or non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: dict[str, Any]
    duration_ms: int


class WebhookInvoker(Protocol):
    async def invoke(
        self, url: str, input_data: dict[str, Any], correlation_id: str
    ) -> WebhookResponse: ...


def build_webhook_payload(input_data: dict[str, Any]) -> dict[str, Any]:
    return {
        "data": input_data,
        "source": webhook_settings.WEBHOOK_SOURCE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def parse_webhook_body(text: str) -> dict[str, Any]:
    """Parse a webhook response body, wrapping anything that is not a JSON object."""
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {"raw": text}
    if isinstance(parsed, dict):
        return parsed
    return {"result": parsed}


def decode_webhook_body(raw: bytes, charset: str | None) -> str:
    """Decode a response body, replacing bytes that are not valid text."""
    try:
        text = raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        text = raw.decode("utf-8", errors="replace")
    # PostgreSQL JSON columns reject NUL characters
    return text.replace("\x00", "")


class AiohttpWebhookClient:
    """Posts execution payloads to agent webhooks over a shared session."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        user_agent: str | None = None,
    ):
        self.timeout = aiohttp.ClientTimeout(
            total=timeout_seconds or webhook_settings.WEBHOOK_TIMEOUT_SECONDS
        )
        self.user_agent = user_agent or webhook_settings.WEBHOOK_USER_AGENT
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self.user_agent,
                },
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def invoke(
        self, url: str, input_data: dict[str, Any], correlation_id: str
    ) -> WebhookResponse:
        payload = build_webhook_payload(input_data)
        session = self._get_session()
        started = time.monotonic()

        try:
            async with session.post(
                url,
                data=json.dumps(payload),
                headers={"X-Correlation-ID": correlation_id},
            ) as response:
                text = decode_webhook_body(await response.read(), response.charset)
                duration_ms = int((time.monotonic() - started) * 1000)
                if response.status >= 300:
                    logger.warning(
                        "Webhook returned error status",
                        correlation_id=correlation_id,
                        status_code=response.status,
                        duration_ms=duration_ms,
                    )
                    raise WebhookTransportError(
                        f"Webhook responded with HTTP {response.status}",
                        status_code=response.status,
                    )
                return WebhookResponse(
                    status_code=response.status,
                    body=parse_webhook_body(text),
                    duration_ms=duration_ms,
                )
        except asyncio.TimeoutError:
            logger.warning(
                "Webhook timed out",
                correlation_id=correlation_id,
                timeout_seconds=self.timeout.total,
            )
            raise WebhookTimeoutError(
                f"Webhook did not respond within {self.timeout.total}s"
            )
        except aiohttp.ClientError as e:
            logger.warning(
                "Webhook request failed",
                correlation_id=correlation_id,
                error=str(e),
            )
            raise WebhookTransportError(f"Webhook unreachable: {e}")
