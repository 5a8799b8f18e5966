"""Slack incoming-webhook sender."""

import httpx
import logging
from typing import Optional

from .errors import DeliveryError
from .models import StructuredPayload

logger = logging.getLogger(__name__)


class SlackNotifier:
    """Posts payloads to one Slack webhook. A single attempt per send."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.webhook_url = webhook_url
        self._timeout = timeout
        self._client = client

    async def send(self, payload: StructuredPayload) -> None:
        """
        Deliver a payload.

        Raises:
            DeliveryError: on a transport error or a non-2xx response
        """
        body = payload.model_dump()

        try:
            if self._client is not None:
                response = await self._client.post(self.webhook_url, json=body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.webhook_url, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Slack webhook request failed: {e}")
            raise DeliveryError(f"Slack webhook request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Slack webhook error {response.status_code}: {response.text}")
            raise DeliveryError(
                f"Slack webhook failed: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        logger.info(f"Slack notification sent: {payload.text}")
