"""Outbound relay: deliver typed messages to the chatbot webhook.

The bot expects the WhatsApp Business Cloud API webhook envelope, so the
relay wraps each message as if it had arrived from the recipient's phone.
"""

import logging
import time

import httpx

from .core import RelayResult
from .errors import RelayError

logger = logging.getLogger(__name__)

DISPLAY_PHONE_NUMBER = "255712345678"
PHONE_NUMBER_ID = "9876543210"
BUSINESS_ACCOUNT_ID = 1234567890
PROFILE_NAME = "John Doe"


def build_payload(body: str, recipient_id: str, now: float | None = None) -> dict:
    """Build a ``whatsapp_business_account`` webhook payload for one text."""
    now = time.time() if now is None else now
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": BUSINESS_ACCOUNT_ID,
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {
                                "display_phone_number": DISPLAY_PHONE_NUMBER,
                                "phone_number_id": PHONE_NUMBER_ID,
                            },
                            "contacts": [
                                {"profile": {"name": PROFILE_NAME}, "wa_id": recipient_id},
                            ],
                            "messages": [
                                {
                                    "from": recipient_id,
                                    "id": f"wamid.{int(now * 1000)}",
                                    "timestamp": int(now),
                                    "text": {"body": body},
                                    "type": "text",
                                }
                            ],
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }


class WhatsAppRelay:
    """POSTs messages to the webhook and reports success or failure."""

    def __init__(
        self,
        callback_url: str,
        recipient_id: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.callback_url = callback_url
        self.recipient_id = recipient_id
        self.timeout = timeout
        self._transport = transport

    async def _post(self, payload: dict):
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.post(self.callback_url, json=payload)
            except httpx.HTTPError as e:
                raise RelayError(f"Webhook unreachable: {e}") from e

        if resp.is_error:
            raise RelayError(f"WhatsApp API error {resp.status_code}: {resp.text[:200]}")
        logger.info("WhatsApp API response: %s", resp.status_code)
        try:
            return resp.json()
        except ValueError:
            return resp.text or None

    async def send(self, body: str) -> RelayResult:
        """Relay one message. Never raises."""
        payload = build_payload(body, self.recipient_id)
        try:
            data = await self._post(payload)
        except RelayError as e:
            logger.error("Error sending WhatsApp message: %s", e)
            return RelayResult(success=False, error=str(e))
        return RelayResult(success=True, data=data)
