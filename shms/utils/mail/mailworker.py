import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shms.core.utils.config import Settings

shms_error_logger = logging.getLogger("shms.error")


def build_message(
    recipients: list[str],
    subject: str,
    content: str,
    settings: "Settings",
) -> EmailMessage:
    message = EmailMessage()
    message.set_content(content, subtype="html", charset="utf-8")
    message["From"] = formataddr(("Seminar Hall Management", settings.SMTP_EMAIL))
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    return message


def send_email(
    recipient: str | list[str],
    subject: str,
    content: str,
    settings: "Settings",
) -> None:
    """
    Send an html email through the configured SMTP server, upgrading the connection with **starttls**.

    Connection and authentication errors are raised, the caller decides how to report them.
    Refused recipients are only logged.
    """
    recipients = [recipient] if isinstance(recipient, str) else recipient
    recipients = [address for address in recipients if address]
    if not recipients:
        return

    message = build_message(
        recipients=recipients,
        subject=subject,
        content=content,
        settings=settings,
    )

    with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as server:
        server.starttls(context=ssl.create_default_context())
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        try:
            server.send_message(message, settings.SMTP_EMAIL, recipients)
        except smtplib.SMTPRecipientsRefused:
            shms_error_logger.warning(
                f"Email: {', '.join(recipients)} refused the email with subject {subject}",
            )
