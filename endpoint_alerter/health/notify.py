"""
Health notifications - Twilio SMS, Slack webhook, email and stdout fallback.

This module delivers one human-readable message per state transition.
Delivery is best effort: each configured channel is tried once, in order,
and the first one that succeeds wins.
"""

import logging
import smtplib
import time
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests  # type: ignore

from endpoint_alerter.health.config import Settings

logger = logging.getLogger(__name__)

TWILIO_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
MESSAGE_PREFIX = "ALERTER"
SEND_TIMEOUT = 10


class Notifier:
    """
    Sends alert messages through the channels configured in Settings.

    Channel order: SMS, Slack, email, then stdout (which always succeeds).
    """

    def __init__(self, settings: Settings):
        """
        Initialize the notifier.

        Args:
            settings: Settings holding the channel credentials
        """
        self.settings = settings

    def notify(self, message: str) -> bool:
        """
        Send a notification.

        Args:
            message: Free-text alert, e.g. "GET https://x/health is now passing"

        Returns:
            True if a remote channel accepted the message, False if it was
            only printed to stdout
        """
        settings = self.settings

        if self.sms_enabled:
            if _send_sms(settings, message):
                logger.info("Sent SMS notification to %s", settings.oncall_number)
                return True

        if settings.slack_webhook_url:
            if _send_slack_webhook(settings.slack_webhook_url, message):
                logger.info("Sent Slack notification")
                return True

        if settings.email_to:
            if _send_email(settings, message):
                logger.info("Sent email notification to %s", settings.email_to)
                return True

        _print_stdout(message)
        return False

    @property
    def sms_enabled(self) -> bool:
        s = self.settings
        return bool(s.twilio_sid and s.twilio_token and s.twilio_number and s.oncall_number)


def _send_sms(settings: Settings, message: str) -> bool:
    """
    Send an SMS to the on-call number through the Twilio REST API.

    Args:
        settings: Settings with Twilio credentials and phone numbers
        message: Alert text

    Returns:
        True if sent successfully, False otherwise
    """
    url = TWILIO_URL.format(sid=settings.twilio_sid)
    form = {
        "From": settings.twilio_number,
        "To": settings.oncall_number,
        "Body": f"{MESSAGE_PREFIX}: {message}",
    }

    try:
        response = requests.post(
            url,
            data=form,
            auth=(settings.twilio_sid, settings.twilio_token),
            timeout=SEND_TIMEOUT,
        )
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as e:
        logger.error("Failed to send SMS: %s", e, exc_info=True)
        return False


def _send_slack_webhook(webhook_url: str, message: str) -> bool:
    """
    Send notification to Slack via Incoming Webhook.

    Args:
        webhook_url: Slack webhook URL
        message: Alert text

    Returns:
        True if sent successfully, False otherwise
    """
    # Recovery messages get green, everything else red
    color = "#36a64f" if message.endswith("is now passing") else "#ff0000"

    payload = {
        "username": "Endpoint Alerter",
        "text": f"*{MESSAGE_PREFIX}*",
        "attachments": [
            {
                "color": color,
                "text": message,
                "footer": "Endpoint Alerter",
                "ts": int(time.time()),
            }
        ],
    }

    try:
        response = requests.post(
            webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=SEND_TIMEOUT,
        )
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as e:
        logger.error("Failed to send Slack webhook: %s", e, exc_info=True)
        return False


def _send_email(settings: Settings, message: str) -> bool:
    """
    Send notification email using SMTP.

    Args:
        settings: Settings with SMTP configuration and recipient
        message: Alert text

    Returns:
        True if sent successfully, False otherwise
    """
    msg = MIMEMultipart()
    msg["From"] = settings.smtp_from
    msg["To"] = settings.email_to
    msg["Subject"] = f"{MESSAGE_PREFIX}: {message}"

    body = f"""
{message}

---
This is an automated message from the Endpoint Alerter.
"""
    msg.attach(MIMEText(body, "plain"))

    try:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SEND_TIMEOUT)
        try:
            # Enable TLS if credentials provided
            if settings.smtp_user and settings.smtp_password:
                server.starttls()
                server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(msg["From"], settings.email_to, msg.as_string())
        finally:
            server.quit()
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email: %s", e, exc_info=True)
        return False


def _print_stdout(message: str) -> None:
    print()
    print("=" * 80)
    print(f"{MESSAGE_PREFIX}: {message}")
    print("=" * 80)
    print()
