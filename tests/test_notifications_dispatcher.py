"""Unit tests for the email dispatcher.

Tests EmailDispatcher for:
- Multipart message construction
- Retry with exponential backoff, clamped delays
- Failure reporting without raising
"""

from unittest.mock import Mock

import pytest

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.models import EmailConfig
from jobalerts.notifications.dispatcher import EmailDispatcher
from jobalerts.notifications.models import SMTPDeliveryError


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_sender_name="NextStep Job Tracker",
        from_email="noreply@nextstep.com",
    )


def build_dispatcher(env_config, smtp_client, sleeps, **email_overrides):
    email_config = EmailConfig(**{"max_retries": 3, "retry_initial_delay": 5, **email_overrides})
    return EmailDispatcher(env_config, email_config, smtp_client=smtp_client, sleep=sleeps.append)


class TestBuildMessage:
    """Tests for message construction."""

    def test_message_has_text_and_html_parts(self, env_config):
        dispatcher = build_dispatcher(env_config, Mock(), [])

        message = dispatcher.build_message("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert message["Subject"] == "Hello"
        assert message["To"] == "ada@example.com"
        assert message["From"] == "NextStep Job Tracker <noreply@nextstep.com>"
        assert message.is_multipart()
        content_types = [part.get_content_type() for part in message.iter_parts()]
        assert content_types == ["text/plain", "text/html"]

    def test_invalid_recipient_raises_value_error(self, env_config):
        dispatcher = build_dispatcher(env_config, Mock(), [])

        with pytest.raises(ValueError):
            dispatcher.build_message("nobody", "Hello", "<p>Hi</p>", "Hi")


class TestSend:
    """Tests for delivery with retry."""

    def test_success_on_first_attempt(self, env_config):
        smtp_client = Mock()
        sleeps = []
        dispatcher = build_dispatcher(env_config, smtp_client, sleeps)

        result = dispatcher.send("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert result.success
        assert result.attempts == 1
        assert sleeps == []
        smtp_client.send.assert_called_once()

    def test_retries_with_exponential_backoff(self, env_config):
        smtp_client = Mock()
        smtp_client.send.side_effect = [
            SMTPDeliveryError("busy"),
            SMTPDeliveryError("busy"),
            None,
        ]
        sleeps = []
        dispatcher = build_dispatcher(
            env_config, smtp_client, sleeps, retry_backoff_multiplier=2.0
        )

        result = dispatcher.send("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert result.success
        assert result.attempts == 3
        assert sleeps == [5, 10]

    def test_gives_up_after_max_retries(self, env_config):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("mailbox full")
        sleeps = []
        dispatcher = build_dispatcher(env_config, smtp_client, sleeps, max_retries=2)

        result = dispatcher.send("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert not result.success
        assert result.attempts == 3
        assert "mailbox full" in result.error
        assert smtp_client.send.call_count == 3

    def test_backoff_delay_is_clamped(self, env_config):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("down")
        sleeps = []
        dispatcher = build_dispatcher(
            env_config,
            smtp_client,
            sleeps,
            max_retries=4,
            retry_initial_delay=30,
            retry_backoff_multiplier=3.0,
        )

        dispatcher.send("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert sleeps == [30, 60, 60, 60]

    def test_no_retries_when_disabled(self, env_config):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("down")
        dispatcher = build_dispatcher(env_config, smtp_client, [], max_retries=0)

        result = dispatcher.send("ada@example.com", "Hello", "<p>Hi</p>", "Hi")

        assert result.attempts == 1
        assert not result.success

    def test_invalid_recipient_is_reported_not_raised(self, env_config):
        smtp_client = Mock()
        dispatcher = build_dispatcher(env_config, smtp_client, [])

        result = dispatcher.send("broken", "Hello", "<p>Hi</p>", "Hi")

        assert not result.success
        assert result.attempts == 0
        smtp_client.send.assert_not_called()

    def test_default_smtp_client_uses_configured_timeout(self, env_config):
        dispatcher = EmailDispatcher(env_config, EmailConfig(timeout_seconds=12))

        assert dispatcher.smtp_client.timeout == 12
