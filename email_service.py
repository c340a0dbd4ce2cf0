import logging
import re
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from errors import EmailServiceError
from settings import Settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates" / "email"


@dataclass
class EmailConfig:
    """Email service configuration"""
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    from_email: str
    from_name: str = "Intelixir"
    admin_email: Optional[str] = None
    frontend_url: str = "http://localhost:5173"
    use_tls: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_email=settings.from_email or settings.smtp_user,
            from_name=settings.from_name,
            admin_email=settings.admin_email,
            frontend_url=settings.frontend_url,
            use_tls=settings.smtp_use_tls,
        )


class EmailService:
    """
    Transactional email over SMTP.

    HTML bodies come from the jinja2 templates in templates/email; a plain text
    part is derived from the HTML. When SMTP credentials are missing, sends are
    logged and skipped.
    """

    def __init__(self, config: EmailConfig):
        self.config = config
        self.template_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)

    @property
    def enabled(self) -> bool:
        return bool(self.config.smtp_host and self.config.smtp_user and self.config.smtp_password)

    def render(self, template_name: str, **context: Any) -> str:
        template = self.template_env.get_template(template_name)
        return template.render(year=datetime.now(timezone.utc).year, **context)

    def send_email(self, to: str, subject: str, html_content: str, text_content: Optional[str] = None) -> bool:
        if not self.enabled:
            logger.warning(f"SMTP not configured; skipping email '{subject}' to {to}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.config.from_name} <{self.config.from_email}>"
        message["To"] = to
        message.attach(MIMEText(text_content or self.create_plain_text_version(html_content), "plain"))
        message.attach(MIMEText(html_content, "html"))
        self._send_via_smtp(message)
        logger.info(f"Email '{subject}' sent to {to}")
        return True

    def send_verification_email(self, email: str, name: str, token: str) -> bool:
        url = f"{self.config.frontend_url}/verify-email?token={token}"
        html = self.render("verification.html.j2", name=name, url=url)
        return self.send_email(email, "Verify Your Intelixir Account", html)

    def send_password_reset_email(self, email: str, name: str, token: str) -> bool:
        url = f"{self.config.frontend_url}/reset-password?token={token}"
        html = self.render("password_reset.html.j2", name=name, url=url)
        return self.send_email(email, "Reset Your Intelixir Password", html)

    def send_welcome_email(self, email: str, name: str) -> bool:
        html = self.render("welcome.html.j2", name=name, url=self.config.frontend_url)
        return self.send_email(email, "Welcome to Intelixir!", html)

    def send_digest_email(self, user: Dict[str, Any], posts: List[Dict[str, Any]], digest_type: str = "daily") -> bool:
        date_str = datetime.now(timezone.utc).strftime("%a %b %d %Y")
        html = self.render(
            "digest.html.j2",
            name=user.get("name"),
            posts=posts,
            digest_type=digest_type,
            base_url=self.config.frontend_url,
        )
        return self.send_email(user["email"], f"Your {digest_type} Intelixir Digest - {date_str}", html)

    def send_contact_notification(self, contact: Dict[str, Any]) -> bool:
        if not self.config.admin_email:
            return False
        html = self.render("contact_notification.html.j2", contact=contact)
        return self.send_email(
            self.config.admin_email, f"New Contact Form Submission from {contact.get('name')}", html
        )

    def create_plain_text_version(self, html_content: str) -> str:
        """Create plain text version from HTML."""
        text = re.sub(r"<(script|style)[^>]*>[\s\S]*?</\1>", "", html_content, flags=re.IGNORECASE)
        text = re.sub(r"<\s*br\s*/?>", "\n", text, flags=re.IGNORECASE)
        text = re.sub(r"</(p|div|h\d|li)\s*>", "\n", text, flags=re.IGNORECASE)
        text = re.sub(r"<[^>]+>", "", text)
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n\s*\n+", "\n\n", text)
        return text.strip()

    def _send_via_smtp(self, message: MIMEMultipart) -> None:
        try:
            server = smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30)
            try:
                if self.config.use_tls:
                    server.starttls()
                server.login(self.config.smtp_user, self.config.smtp_password)
                server.send_message(message)
            finally:
                try:
                    server.quit()
                except smtplib.SMTPException:
                    pass
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"SMTP send failed: {exc}")
            raise EmailServiceError(f"SMTP send failed: {exc}") from exc
