"""
Twilio Programmable Messaging adapter.

Posts form-encoded requests to the Messages resource with HTTP basic auth.
Credentials come from TelephonyConfig, transport settings from MessagingConfig.
"""

import json
import logging
from typing import Any

import httpx

from receptionist.messaging.config import MessagingConfig, get_messaging_config
from receptionist.messaging.interface import (
    MessageReceipt,
    MessageSendError,
    MessagingProvider,
    OutboundMessage,
)
from receptionist.shared.phone import mask_e164, strip_channel_prefix
from receptionist.telephony.config import TelephonyConfig, get_telephony_config

logger = logging.getLogger(__name__)


class TwilioMessagingAdapter(MessagingProvider):
    """Twilio messaging provider over httpx.AsyncClient."""

    def __init__(
        self,
        telephony_config: TelephonyConfig | None = None,
        messaging_config: MessagingConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._telephony = telephony_config or get_telephony_config()
        self._messaging = messaging_config or get_messaging_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._messaging.request_timeout_seconds)
            )
        return self._http_client

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_auth(self) -> tuple[str, str]:
        return (self._telephony.twilio_account_sid, self._telephony.twilio_auth_token)

    def _get_api_url(self, endpoint: str) -> str:
        base = self._messaging.api_base_url.rstrip("/")
        account_sid = self._telephony.twilio_account_sid
        return f"{base}/2010-04-01/Accounts/{account_sid}{endpoint}"

    @staticmethod
    def build_payload(message: OutboundMessage) -> dict[str, str]:
        """Form fields for a Messages.json POST."""
        payload: dict[str, str] = {"To": message.to}
        if message.from_address:
            payload["From"] = message.from_address
        if message.messaging_service_sid:
            payload["MessagingServiceSid"] = message.messaging_service_sid
        if message.content_sid:
            payload["ContentSid"] = message.content_sid
            if message.content_variables:
                payload["ContentVariables"] = json.dumps(message.content_variables)
        elif message.body:
            payload["Body"] = message.body
        return payload

    async def send_message(self, message: OutboundMessage) -> MessageReceipt:
        """Send one message through the Twilio Messages API.

        Args:
            message: Message to send.

        Returns:
            MessageReceipt with the provider message SID.

        Raises:
            MessageSendError: If Twilio rejects the request or the transport fails.
        """
        if not message.body and not message.content_sid:
            raise MessageSendError("Message has neither body nor content_sid", error_code="INVALID_MESSAGE")
        if not self._telephony.twilio_account_sid or not self._telephony.twilio_auth_token:
            raise MessageSendError("Twilio credentials are not configured", error_code="NOT_CONFIGURED")

        masked_to = mask_e164(strip_channel_prefix(message.to))
        logger.info(
            "Sending Twilio message",
            extra={"channel": message.channel.value, "to": masked_to},
        )

        try:
            response = await self._get_client().post(
                self._get_api_url("/Messages.json"),
                data=self.build_payload(message),
                auth=self._get_auth(),
            )
        except httpx.HTTPError as e:
            logger.exception(
                "HTTP error during Twilio message send",
                extra={"channel": message.channel.value, "to": masked_to},
            )
            raise MessageSendError(f"HTTP error: {e!s}", error_code="HTTP_ERROR") from e

        data = _json_body(response)
        if response.status_code >= 400:
            logger.error(
                "Twilio message send failed",
                extra={
                    "status_code": response.status_code,
                    "error_code": data.get("code"),
                    "channel": message.channel.value,
                    "to": masked_to,
                },
            )
            raise MessageSendError(
                data.get("message", "Message send failed"),
                error_code=str(data.get("code", response.status_code)),
                provider_response=data,
            )

        sid = data.get("sid")
        if not sid:
            raise MessageSendError(
                "Twilio response missing message sid",
                error_code="INVALID_RESPONSE",
                provider_response=data,
            )

        return MessageReceipt(sid=sid, status=data.get("status"), raw_response=data)


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
