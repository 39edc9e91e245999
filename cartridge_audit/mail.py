"""
Email notifications rendered from Jinja2 templates.

``Mailer`` renders a template and hands the message to a transport. The SMTP
transport is the production one; tests inject their own object with the same
``send(message)`` method.
"""

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .results import ErrorKind, Result

logger = logging.getLogger(__name__)


class SMTPTransport:
    """Send messages through an SMTP server."""

    def __init__(self, host: str, port: int = 25, username: Optional[str] = None,
                 password: Optional[str] = None, use_tls: bool = False, timeout: float = 30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    @classmethod
    def from_config(cls, config) -> "SMTPTransport":
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
        )


class Mailer:
    """
    Render HTML email templates and send them.

    Args:
        templates_dir: Directory holding the templates (e.g. ``mail/*.html``)
        transport: Object with a ``send(EmailMessage)`` method
    """

    def __init__(self, templates_dir: Path, transport):
        self.transport = transport
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "htm", "xml"]),
        )

    def render(self, template_path: str, context: Optional[Dict[str, Any]] = None) -> str:
        template = self.env.get_template(template_path)
        if not context:
            logger.warning(f"No context data provided for email template: {template_path}")
            return template.render()
        return template.render(**context)

    def send_mail(self, sender: str, to: List[str], cc: List[str], subject: str,
                  template_path: str, context: Optional[Dict[str, Any]] = None) -> Result[None]:
        """
        Render ``template_path`` with ``context`` and send it as HTML mail.

        Returns:
            Success, or a NOTIFY failure (rendering or transport error)
        """
        try:
            html = self.render(template_path, context)

            message = EmailMessage()
            message["From"] = sender
            message["To"] = ", ".join(to)
            if cc:
                message["Cc"] = ", ".join(cc)
            message["Subject"] = subject
            message.set_content(html, subtype="html", charset="utf-8")

            self.transport.send(message)
        except Exception as e:
            error_message = f"Failed to send template email '{template_path}': {e}"
            logger.error(error_message)
            return Result.failure(ErrorKind.NOTIFY, error_message)

        logger.info(f"Email successfully sent to: {', '.join(to)}")
        return Result.success(None)
