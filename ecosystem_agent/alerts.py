"""Best-effort alert sinks. A failed alert is logged, never raised."""

import logging

import httpx

logger = logging.getLogger(__name__)


class LogAlertSink:
    """Fallback sink when no webhook is configured."""

    async def notify(self, message: str) -> None:
        logger.warning("ALERT: %s", message)


class SlackAlertSink:
    """Posts alerts to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout_sec: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout_sec = timeout_sec
        self._transport = transport

    async def notify(self, message: str) -> None:
        logger.warning("ALERT: %s", message)
        try:
            async with httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport) as client:
                response = await client.post(self._webhook_url, json={"text": message})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send Slack alert: %s", exc)
