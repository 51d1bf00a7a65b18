"""Tests for the Twilio and mock messaging providers."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from receptionist.messaging.config import MessagingConfig, ProviderType
from receptionist.messaging.interface import MessageSendError, OutboundMessage
from receptionist.messaging.mock_adapter import MockMessagingProvider
from receptionist.messaging.twilio_adapter import TwilioMessagingAdapter
from receptionist.telephony.config import TelephonyConfig
from receptionist.telephony.events import Channel


@pytest.fixture
def twilio_config() -> TelephonyConfig:
    return TelephonyConfig(
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token="test_auth_token_12345",
    )


@pytest.fixture
def messaging_config() -> MessagingConfig:
    return MessagingConfig(
        provider_type=ProviderType.TWILIO,
        api_base_url="https://api.twilio.test",
        request_timeout_seconds=5,
    )


def _adapter(
    handler,
    twilio_config: TelephonyConfig,
    messaging_config: MessagingConfig,
) -> TwilioMessagingAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TwilioMessagingAdapter(twilio_config, messaging_config, http_client=client)


class TestTwilioMessagingAdapter:
    @pytest.mark.asyncio
    async def test_send_sms_success(
        self,
        twilio_config: TelephonyConfig,
        messaging_config: MessagingConfig,
    ) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={"sid": "SM_TEST_123", "status": "queued"})

        adapter = _adapter(handler, twilio_config, messaging_config)
        receipt = await adapter.send_message(
            OutboundMessage(
                channel=Channel.SMS,
                to="+15877428885",
                from_address="+15875550100",
                body="hello",
                messaging_service_sid="MG123",
            )
        )

        assert receipt.sid == "SM_TEST_123"
        assert receipt.status == "queued"

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == (
            "https://api.twilio.test/2010-04-01/Accounts/AC_TEST_ACCOUNT_SID/Messages.json"
        )
        assert request.headers["authorization"].startswith("Basic ")
        form = parse_qs(request.content.decode())
        assert form["To"] == ["+15877428885"]
        assert form["From"] == ["+15875550100"]
        assert form["Body"] == ["hello"]
        assert form["MessagingServiceSid"] == ["MG123"]

    @pytest.mark.asyncio
    async def test_send_content_template(
        self,
        twilio_config: TelephonyConfig,
        messaging_config: MessagingConfig,
    ) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(201, json={"sid": "SM_WA", "status": "queued"})

        adapter = _adapter(handler, twilio_config, messaging_config)
        await adapter.send_message(
            OutboundMessage(
                channel=Channel.WHATSAPP,
                to="whatsapp:+15877428885",
                from_address="whatsapp:+15875550100",
                content_sid="HX123",
                content_variables={"1": "Book now", "booking_url": "https://book.example.com"},
            )
        )

        form = parse_qs(captured[0].content.decode())
        assert form["ContentSid"] == ["HX123"]
        assert json.loads(form["ContentVariables"][0]) == {
            "1": "Book now",
            "booking_url": "https://book.example.com",
        }
        assert "Body" not in form

    @pytest.mark.asyncio
    async def test_provider_error_raises(
        self,
        twilio_config: TelephonyConfig,
        messaging_config: MessagingConfig,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={"code": 63003, "message": "Channel could not find To address"},
            )

        adapter = _adapter(handler, twilio_config, messaging_config)

        with pytest.raises(MessageSendError) as exc_info:
            await adapter.send_message(
                OutboundMessage(channel=Channel.WHATSAPP, to="whatsapp:+15877428885", body="x")
            )

        assert exc_info.value.error_code == "63003"
        assert "could not find" in str(exc_info.value)
        assert exc_info.value.provider_response["code"] == 63003

    @pytest.mark.asyncio
    async def test_transport_error_raises(
        self,
        twilio_config: TelephonyConfig,
        messaging_config: MessagingConfig,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = _adapter(handler, twilio_config, messaging_config)

        with pytest.raises(MessageSendError) as exc_info:
            await adapter.send_message(OutboundMessage(channel=Channel.SMS, to="+15877428885", body="x"))

        assert exc_info.value.error_code == "HTTP_ERROR"

    @pytest.mark.asyncio
    async def test_missing_credentials_raise(self, messaging_config: MessagingConfig) -> None:
        adapter = TwilioMessagingAdapter(
            TelephonyConfig(twilio_account_sid="", twilio_auth_token=""),
            messaging_config,
        )

        with pytest.raises(MessageSendError) as exc_info:
            await adapter.send_message(OutboundMessage(channel=Channel.SMS, to="+15877428885", body="x"))

        assert exc_info.value.error_code == "NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(
        self,
        twilio_config: TelephonyConfig,
        messaging_config: MessagingConfig,
    ) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        adapter = TwilioMessagingAdapter(twilio_config, messaging_config, http_client=client)

        await adapter.close()

        assert client.is_closed is False
        await client.aclose()


class TestMockMessagingProvider:
    @pytest.mark.asyncio
    async def test_records_sends(self) -> None:
        provider = MockMessagingProvider()
        message = OutboundMessage(channel=Channel.SMS, to="+15877428885", body="hi")

        receipt = await provider.send_message(message)

        assert receipt.sid == "MOCK_MSG_000001"
        assert provider.sends == [message]

    @pytest.mark.asyncio
    async def test_channel_specific_failure(self) -> None:
        provider = MockMessagingProvider()
        provider.configure_failure(channel=Channel.WHATSAPP, error_code="63003")

        with pytest.raises(MessageSendError) as exc_info:
            await provider.send_message(
                OutboundMessage(channel=Channel.WHATSAPP, to="whatsapp:+15877428885", body="hi")
            )
        assert exc_info.value.error_code == "63003"

        await provider.send_message(OutboundMessage(channel=Channel.SMS, to="+15877428885", body="hi"))
        assert len(provider.sends_for(Channel.SMS)) == 1

    @pytest.mark.asyncio
    async def test_reset(self) -> None:
        provider = MockMessagingProvider()
        provider.configure_failure()
        provider.reset()

        receipt = await provider.send_message(
            OutboundMessage(channel=Channel.SMS, to="+15877428885", body="hi")
        )
        assert receipt.sid == "MOCK_MSG_000001"
        assert len(provider.attempts) == 1

    @pytest.mark.asyncio
    async def test_attempts_include_failures(self) -> None:
        provider = MockMessagingProvider()
        provider.configure_failure(channel=Channel.WHATSAPP)
        whatsapp = OutboundMessage(channel=Channel.WHATSAPP, to="whatsapp:+15877428885", body="hi")
        sms = OutboundMessage(channel=Channel.SMS, to="+15877428885", body="hi")

        with pytest.raises(MessageSendError):
            await provider.send_message(whatsapp)
        await provider.send_message(sms)

        assert provider.attempts == [whatsapp, sms]
        assert provider.sends == [sms]
