"""
Tests for configuration classes.
"""

import pytest
from pydantic import ValidationError

from receptionist.config import Settings
from receptionist.messaging.config import MessagingConfig, ProviderType
from receptionist.outreach.config import DEFAULT_BOOKING_URL, OutreachConfig
from receptionist.telephony.config import TelephonyConfig


class TestSettings:
    def test_production_flag(self) -> None:
        assert Settings(app_env="prod").is_production is True
        assert Settings(app_env="dev").is_production is False

    def test_rejects_unknown_env(self) -> None:
        with pytest.raises(ValidationError):
            Settings(app_env="staging")


class TestTelephonyConfig:
    def test_declared_defaults(self) -> None:
        # Environment variables may override runtime values; check the model fields.
        fields = TelephonyConfig.model_fields
        assert fields["allow_insecure_webhooks"].default is False
        assert fields["webhook_base_url"].default == ""

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TELEPHONY_TWILIO_AUTH_TOKEN", "from-env")
        assert TelephonyConfig().twilio_auth_token == "from-env"

    def test_get_webhook_url(self) -> None:
        config = TelephonyConfig(webhook_base_url="https://api.example.com/")

        assert config.get_webhook_url("/voice/status") == "https://api.example.com/voice/status"
        assert config.get_webhook_url("/a", "x=1") == "https://api.example.com/a?x=1"

    def test_get_webhook_url_without_base(self) -> None:
        assert TelephonyConfig(webhook_base_url="").get_webhook_url("/a") is None


class TestOutreachConfig:
    def test_declared_defaults(self) -> None:
        fields = OutreachConfig.model_fields
        assert fields["booking_url"].default == DEFAULT_BOOKING_URL
        assert fields["send_max_attempts"].default == 1
        assert fields["respect_consent"].default is True

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OUTREACH_RESPECT_CONSENT", "false")
        assert OutreachConfig().respect_consent is False

    def test_attempts_bounded(self) -> None:
        with pytest.raises(ValidationError):
            OutreachConfig(send_max_attempts=0)


class TestMessagingConfig:
    def test_provider_type_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESSAGING_PROVIDER_TYPE", "mock")
        assert MessagingConfig().provider_type == ProviderType.MOCK
