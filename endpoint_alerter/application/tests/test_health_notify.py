"""
Tests for health notify module.
"""

import smtplib
from unittest.mock import MagicMock, patch

import requests

from endpoint_alerter.health import notify
from endpoint_alerter.health.config import Settings

TWILIO_SETTINGS = dict(
    twilio_sid="AC123",
    twilio_token="token",
    twilio_number="+15550001111",
    oncall_number="+15552223333",
)


class TestNotifier:
    """Tests for Notifier.notify."""

    @patch("endpoint_alerter.health.notify.requests.post")
    def test_sms_sent(self, mock_post):
        """Test Twilio SMS is sent with the prefixed body and basic auth."""
        mock_post.return_value = MagicMock(status_code=201)
        notifier = notify.Notifier(Settings(**TWILIO_SETTINGS))

        assert notifier.notify("GET https://x/health is now passing") is True

        args, kwargs = mock_post.call_args
        assert args[0] == (
            "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        )
        assert kwargs["data"] == {
            "From": "+15550001111",
            "To": "+15552223333",
            "Body": "ALERTER: GET https://x/health is now passing",
        }
        assert kwargs["auth"] == ("AC123", "token")
        assert kwargs["timeout"] == 10

    @patch("endpoint_alerter.health.notify.requests.post")
    def test_sms_incomplete_credentials_skipped(self, mock_post, capsys):
        """Test SMS is not attempted without an on-call number."""
        settings = dict(TWILIO_SETTINGS, oncall_number=None)
        notifier = notify.Notifier(Settings(**settings))

        assert notifier.notify("down") is False
        mock_post.assert_not_called()
        assert "ALERTER: down" in capsys.readouterr().out

    @patch("endpoint_alerter.health.notify.requests.post")
    def test_sms_failure_falls_back_to_slack(self, mock_post):
        """Test a failed SMS falls through to the Slack webhook."""
        sms_response = MagicMock()
        sms_response.raise_for_status.side_effect = requests.exceptions.HTTPError("401")
        slack_response = MagicMock()
        mock_post.side_effect = [sms_response, slack_response]
        settings = Settings(slack_webhook_url="https://hooks.slack/x", **TWILIO_SETTINGS)

        assert notify.Notifier(settings).notify("down") is True

        assert mock_post.call_count == 2
        args, kwargs = mock_post.call_args
        assert args[0] == "https://hooks.slack/x"
        assert kwargs["json"]["attachments"][0]["text"] == "down"

    @patch("endpoint_alerter.health.notify.requests.post")
    def test_slack_transport_error_falls_back_to_stdout(self, mock_post, capsys):
        """Test Slack connection errors end in the stdout fallback."""
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        settings = Settings(slack_webhook_url="https://hooks.slack/x")

        assert notify.Notifier(settings).notify("down") is False
        assert "ALERTER: down" in capsys.readouterr().out

    @patch("endpoint_alerter.health.notify.smtplib.SMTP")
    def test_email_sent(self, mock_smtp):
        """Test email is sent over SMTP with STARTTLS when credentials exist."""
        server = mock_smtp.return_value
        settings = Settings(
            email_to="oncall@example.com",
            smtp_host="mail.example.com",
            smtp_port=587,
            smtp_user="user",
            smtp_password="pw",
        )

        assert notify.Notifier(settings).notify("down") is True

        mock_smtp.assert_called_once_with("mail.example.com", 587, timeout=10)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pw")
        from_addr, to_addr, _ = server.sendmail.call_args.args
        assert from_addr == settings.smtp_from
        assert to_addr == "oncall@example.com"
        server.quit.assert_called_once()

    @patch("endpoint_alerter.health.notify.smtplib.SMTP")
    def test_email_failure_falls_back_to_stdout(self, mock_smtp, capsys):
        """Test SMTP errors are logged and the message still printed."""
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, "busy")
        settings = Settings(email_to="oncall@example.com")

        assert notify.Notifier(settings).notify("down") is False
        assert "ALERTER: down" in capsys.readouterr().out

    def test_stdout_fallback(self, capsys):
        """Test no configured channel prints the message."""
        assert notify.Notifier(Settings()).notify("GET https://x returned 500, expected 200") is False

        out = capsys.readouterr().out
        assert "ALERTER: GET https://x returned 500, expected 200" in out
