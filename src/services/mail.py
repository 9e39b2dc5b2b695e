"""
Join code email

Sends a family's join code to a parent so they can set up another device.
Goes out over SMTP (a Gmail app password in production). smtplib is
synchronous, so sends run in a small thread pool.
"""

from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage
from typing import Any, Dict, Optional
import asyncio
import html
import smtplib
import time

from src.services.errors import MailDeliveryError


def render_join_code_email(join_code: str, app_url: Optional[str] = None) -> str:
    """HTML body for the join code email."""
    code = html.escape(join_code)
    link = ""
    if app_url:
        link = (
            '<div class="app-link">'
            f'<a href="{html.escape(app_url, quote=True)}">Open Spelling Word Collector</a>'
            '</div>'
        )
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
      body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; color: #333; background-color: #f5f5f5; }}
      .container {{ max-width: 600px; margin: 0 auto; background-color: #fff; padding: 40px 20px; border-radius: 8px; }}
      h1 {{ color: #7c3aed; font-size: 28px; }}
      .code-box {{ text-align: center; font-size: 36px; letter-spacing: 8px; font-weight: bold; color: #7c3aed; }}
      .footer {{ color: #999; font-size: 12px; text-align: center; }}
    </style>
  </head>
  <body>
    <div class="container">
      <h1>🌟 Spelling Word Collector</h1>
      <p>Welcome to Spelling Word Collector! To sync your spelling practice across devices, use this code:</p>
      <div class="code-box"><p>{code}</p><p style="font-size: 12px; letter-spacing: 0;">6-character join code</p></div>
      <h2>How to use this code:</h2>
      <ol>
        <li>Open Spelling Word Collector on another device</li>
        <li>Select "Join Existing Family"</li>
        <li>Enter the code above: <strong>{code}</strong></li>
        <li>Your devices will now sync automatically!</li>
      </ol>
      <p><strong>Keep this code safe!</strong> Share it only with family members who want to join your practice group.</p>
      {link}
      <div class="footer"><p>Spelling Word Collector - Making spelling practice anxiety-free</p></div>
    </div>
  </body>
</html>
"""


class MailService:
    """Sends join code emails over SMTP."""

    def __init__(
        self,
        sender: Optional[str],
        password: Optional[str],
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 465,
        app_url: Optional[str] = None,
        logger=None
    ):
        """
        Initialize mail service.

        Args:
            sender: Sending account (also the From address)
            password: App password for the sending account
            smtp_host: SMTP server (implicit TLS)
            smtp_port: SMTP port
            app_url: Link rendered at the bottom of the email
            logger: Optional SpellingLogger
        """
        self.sender = sender
        self.password = password
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.app_url = app_url
        self.logger = logger
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")

    def shutdown(self):
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    def build_message(self, email: str, join_code: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email
        message["Subject"] = f"Your Spelling Word Collector Join Code: {join_code}"
        message.set_content(
            f"Your family join code is {join_code}. "
            "Open Spelling Word Collector on another device, choose \"Join Existing Family\" and enter it."
        )
        message.add_alternative(render_join_code_email(join_code, self.app_url), subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=30) as smtp:
            smtp.login(self.sender, self.password)
            smtp.send_message(message)

    async def send_join_code(self, email: str, join_code: str, family_id: str) -> Dict[str, Any]:
        """
        Email a join code.

        Raises:
            MailDeliveryError: no credentials configured, or the send failed
        """
        if not email:
            raise MailDeliveryError("Email address is required")
        if not self.sender or not self.password:
            raise MailDeliveryError(
                "Mail credentials not configured. Set GMAIL_EMAIL and GMAIL_APP_PASSWORD environment variables."
            )

        message = self.build_message(email, join_code)
        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            if self.logger:
                self.logger.api_call("smtp", email, status="failed", latency=time.time() - start_time, detail=str(e))
            raise MailDeliveryError(f"Email delivery failed: {e}") from e

        if self.logger:
            self.logger.api_call("smtp", email, latency=time.time() - start_time, detail=f"family {family_id}")
        return {"success": True, "email": email, "familyId": family_id}
