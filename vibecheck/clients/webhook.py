import logging

import httpx

from vibecheck.config import settings
from vibecheck.errors import NotificationFailure

logger = logging.getLogger("vibecheck.webhook")


class WebhookClient:
    """POSTs feedback JSON to the notification webhook.

    The response body is never read; only transport failures are raised.
    A shared ``httpx.AsyncClient`` may be passed in (tests use a
    ``MockTransport``), otherwise one is created and owned here.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url or settings.webhook_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.webhook_timeout_seconds
        )

    async def post(self, body: str) -> int:
        """Send *body* (already-serialized JSON).  Returns the HTTP status."""
        try:
            resp = await self._client.post(
                self.url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise NotificationFailure(f"webhook POST to {self.url} failed: {exc}") from exc
        logger.debug("event=webhook_sent status=%d", resp.status_code)
        return resp.status_code

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
