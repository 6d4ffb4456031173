import logging
from typing import Any

from fastapi import BackgroundTasks

from shms.core.utils.config import Settings
from shms.utils.mail.mailworker import send_email
from shms.utils.tools import templates

shms_error_logger = logging.getLogger("shms.error")
shms_security_logger = logging.getLogger("shms.security")


class EmailTool:
    """
    Utility class to render and send emails.

    Emails are a best-effort side effect: a failure is logged and never changes the response of the endpoint.
    This class should be instantiated for each request with its `BackgroundTasks` manager,
    the `get_email_tool` dependency does so.
    """

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        settings: Settings,
    ):
        self.background_tasks = background_tasks
        self.settings = settings

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        return templates.get_template(template_name).render(
            {"client_url": self.settings.CLIENT_URL, **context},
        )

    def deliver(
        self,
        recipient: str | list[str],
        subject: str,
        content: str,
    ) -> bool:
        """
        Send the email now. Return True if it was handed to the SMTP server.
        """
        if not self.settings.SMTP_ACTIVE:
            shms_security_logger.info(
                f"Email: SMTP is disabled, email to {recipient} with subject {subject} was not sent",
            )
            return False
        try:
            send_email(
                recipient=recipient,
                subject=subject,
                content=content,
                settings=self.settings,
            )
        except Exception:
            shms_error_logger.exception(
                f"Email: failed to send email to {recipient} with subject {subject}",
            )
            return False
        return True

    def send_template(
        self,
        recipient: str | list[str],
        subject: str,
        template_name: str,
        context: dict[str, Any],
    ) -> bool:
        try:
            content = self.render(template_name, context)
        except Exception:
            shms_error_logger.exception(
                f"Email: failed to render template {template_name}",
            )
            return False
        return self.deliver(recipient=recipient, subject=subject, content=content)

    def send_template_in_background(
        self,
        recipient: str | list[str],
        subject: str,
        template_name: str,
        context: dict[str, Any],
    ) -> None:
        """
        Send the email after the response was returned to the client
        """
        self.background_tasks.add_task(
            self.send_template,
            recipient=recipient,
            subject=subject,
            template_name=template_name,
            context=context,
        )
