"""Outbound failure webhook (e.g. an n8n workflow that pages a mentor)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class WebhookClient:
    """POSTs JSON payloads to a single webhook URL.

    ``send`` never raises: timeouts, connection errors and non-2xx responses
    are logged and reported as ``False``.
    """

    def __init__(
        self,
        url: str,
        secret: str = "",
        timeout: float = 5.0,
        user_agent: str = "focuslock",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.secret:
            headers["x-backend-secret"] = self.secret
        return headers

    async def send(self, payload: dict[str, Any]) -> bool:
        """Send a payload. Returns True on a 2xx response."""
        if not self.enabled:
            return False

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.url, headers=self._headers(), json=payload)
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("webhook_timeout", url=self.url, timeout=self.timeout)
            return False
        except httpx.HTTPStatusError as exc:
            logger.warning("webhook_failed", url=self.url, status_code=exc.response.status_code)
            return False
        except httpx.HTTPError as exc:
            logger.warning("webhook_unreachable", url=self.url, error=str(exc))
            return False

        logger.info("webhook_sent", url=self.url, status_code=response.status_code)
        return True
