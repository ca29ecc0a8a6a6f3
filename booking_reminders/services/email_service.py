"""
Transactional email delivery.

Postmark is used when an API token is configured, SMTP when a full set of
SMTP credentials is present, otherwise delivery is disabled and messages
are only logged.
"""

import asyncio
import html
import re
import smtplib
import ssl
from email.message import EmailMessage

import httpx

from booking_reminders.config import Settings, settings
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"
REQUEST_TIMEOUT = 15  # seconds
SMTP_TIMEOUT = 30  # seconds


class EmailDeliveryError(Exception):
    """Raised when a message could not be handed to the provider."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class EmailService:
    """
    Sends branded HTML email through the configured provider.

    Failed attempts are retried EMAIL_MAX_RETRIES times with
    EMAIL_RETRY_DELAY_MS between attempts; the last error is raised.
    """

    def __init__(self, config: Settings = settings, http_client: httpx.AsyncClient | None = None):
        self._config = config
        self.provider = config.email_provider()
        self.enabled = self.provider != "disabled" and config.environment != "test"
        self.max_retries = max(0, config.EMAIL_MAX_RETRIES)
        self.retry_delay_seconds = max(0, config.EMAIL_RETRY_DELAY_MS) / 1000
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT))
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send_cleaner_schedule_reminder(
        self,
        *,
        to: str,
        cleaner_name: str,
        service_type: str,
        scheduled_for: str,
        cleaning_frequency: str,
        company_name: str | None = None,
        business_address: str | None = None,
    ) -> None:
        subject = f"{self._config.APP_NAME}: upcoming {service_type.lower()} on {scheduled_for}"

        details = [
            ("Service", service_type),
            ("Scheduled for", scheduled_for),
            ("Frequency", cleaning_frequency),
        ]
        if company_name:
            details.append(("Company", company_name))
        if business_address:
            details.append(("Address", business_address))

        rows = "".join(
            f"<li><strong>{self._safe_text(label)}:</strong> {self._safe_text(value)}</li>"
            for label, value in details
        )
        body = self._wrap_template(
            f"""
            <p>Hi {self._safe_text(cleaner_name)},</p>
            <p>This is a reminder that you are scheduled for an upcoming job in about 24 hours.</p>
            <ul>{rows}</ul>
            <p>Please make sure you arrive on time.</p>
            """
        )

        await self.send(to=to, subject=subject, html_body=body, text_body=self._strip_html(body))

    async def send(self, *, to: str, subject: str, html_body: str, text_body: str | None = None) -> None:
        if not self.enabled:
            logger.warning("Email delivery skipped (not configured)", to=to, subject=subject)
            return

        if self.provider == "postmark":
            operation = self._send_postmark
        else:
            operation = self._send_smtp

        await self._send_with_retry(operation, to, subject, html_body, text_body)

    async def _send_with_retry(self, operation, to, subject, html_body, text_body) -> None:
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                await operation(to, subject, html_body, text_body)
                return
            except Exception as e:
                if attempt >= attempts:
                    raise

                logger.warning(
                    "Email send attempt failed",
                    to=to,
                    subject=subject,
                    attempt=attempt,
                    provider=self.provider,
                    error=str(e),
                )
                if self.retry_delay_seconds > 0:
                    await asyncio.sleep(self.retry_delay_seconds)

    async def _send_postmark(
        self, to: str, subject: str, html_body: str, text_body: str | None
    ) -> None:
        message = {
            "From": self._format_from_address(),
            "To": to,
            "Subject": subject,
            "HtmlBody": html_body,
            "TextBody": text_body,
            "MessageStream": self._config.POSTMARK_MESSAGE_STREAM,
        }
        if self._config.EMAIL_REPLY_TO:
            message["ReplyTo"] = self._config.EMAIL_REPLY_TO
        if self._config.POSTMARK_SANDBOX_MODE:
            message["Tag"] = "sandbox"

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self._config.POSTMARK_API_TOKEN or "",
        }

        try:
            response = await self._get_client().post(POSTMARK_API_URL, json=message, headers=headers)
        except httpx.RequestError as e:
            raise EmailDeliveryError(f"Postmark request failed: {e}", provider="postmark") from e

        if response.status_code != 200:
            try:
                detail = response.json().get("Message", response.text)
            except ValueError:
                detail = response.text
            raise EmailDeliveryError(
                f"Postmark rejected message: {detail}",
                provider="postmark",
                status_code=response.status_code,
            )

    async def _send_smtp(self, to: str, subject: str, html_body: str, text_body: str | None) -> None:
        message = EmailMessage()
        message["From"] = self._format_from_address()
        message["To"] = to
        message["Subject"] = subject
        if self._config.EMAIL_REPLY_TO:
            message["Reply-To"] = self._config.EMAIL_REPLY_TO
        message.set_content(text_body or self._strip_html(html_body))
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery failed: {e}", provider="smtp") from e

    def _deliver_smtp(self, message: EmailMessage) -> None:
        host = self._config.SMTP_HOST
        port = self._config.SMTP_PORT
        context = ssl.create_default_context()

        if self._config.SMTP_SECURE:
            server = smtplib.SMTP_SSL(host, port, context=context, timeout=SMTP_TIMEOUT)
        else:
            server = smtplib.SMTP(host, port, timeout=SMTP_TIMEOUT)

        with server:
            if not self._config.SMTP_SECURE:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
            server.login(self._config.SMTP_USER, self._config.SMTP_PASS)
            server.send_message(message)

    def _format_from_address(self) -> str:
        address = self._config.email_from_address().strip()
        if not address:
            raise EmailDeliveryError("Email from address is not configured", provider=self.provider)

        name = (self._config.EMAIL_FROM_NAME or "").strip()
        if not name:
            return address
        return f"{name} <{address}>"

    def _wrap_template(self, content: str) -> str:
        app_name = self._safe_text(self._config.APP_NAME)
        if self._config.EMAIL_LOGO_URL:
            logo_markup = (
                f'<img src="{self._safe_text(self._config.EMAIL_LOGO_URL)}" alt="{app_name}" '
                'style="max-width: 160px; height: auto; margin-bottom: 16px;" />'
            )
        else:
            logo_markup = f'<h2 style="margin: 0 0 16px;">{app_name}</h2>'

        brand_color = self._config.EMAIL_BRAND_COLOR or "#111111"

        return f"""
      <div style="font-family: Arial, sans-serif; color: #111; background-color: #f6f7f9; padding: 24px;">
        <div style="max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 24px; border-top: 4px solid {brand_color};">
        {logo_markup}
        {content}
        <p>Thanks,</p>
        <p>The {app_name} team</p>
        </div>
      </div>
    """

    @staticmethod
    def _safe_text(value: str) -> str:
        return html.escape(value or "", quote=True)

    @staticmethod
    def _strip_html(value: str) -> str:
        return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", value)).strip()


email_service = EmailService()
