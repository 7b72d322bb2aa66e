from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

import httpx

from ..config import Settings
from ..domain.errors import DeliveryError

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class EmailDeliveryError(DeliveryError):
    pass


@dataclass(frozen=True)
class OtpEmail:
    to: str
    subject: str
    text: str
    html: str


def build_otp_email(*, to: str, code: str, brand: str, ttl_seconds: int) -> OtpEmail:
    minutes = ttl_seconds // 60
    return OtpEmail(
        to=to,
        subject=f"Your {brand} verification code",
        text=f"Your verification code is {code}. It expires in {minutes} minutes.",
        html=f"<p>Your verification code is <b>{code}</b>.</p><p>It expires in {minutes} minutes.</p>",
    )


class EmailOtpSender:
    """Delivers OTP codes by email through SMTP, SendGrid or the log (dev)."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._s = settings
        self._http = http_client
        missing = self.missing_settings()
        if missing:
            logger.warning(
                "Email provider %s not configured; missing settings: %s. Email sending will fail.",
                settings.EMAIL_PROVIDER,
                ", ".join(missing),
            )

    def missing_settings(self) -> list[str]:
        s = self._s
        if s.EMAIL_PROVIDER == "sendgrid":
            required = [("SENDGRID_API_KEY", s.SENDGRID_API_KEY)]
        elif s.EMAIL_PROVIDER == "smtp":
            required = [("SMTP_HOST", s.SMTP_HOST), ("SMTP_USER", s.SMTP_USER), ("SMTP_PASS", s.SMTP_PASS)]
        else:
            required = []
        return [key for key, value in required if not value]

    @property
    def enabled(self) -> bool:
        return not self.missing_settings()

    async def send_code(self, email: str, code: str) -> None:
        msg = build_otp_email(to=email, code=code, brand=self._s.EMAIL_BRAND, ttl_seconds=self._s.OTP_TTL_SECONDS)
        provider = self._s.EMAIL_PROVIDER
        if provider == "console":
            logger.warning("[DEV] OTP for %s: %s", email, code)
            return
        missing = self.missing_settings()
        if missing:
            raise EmailDeliveryError(f"Email transporter not configured ({', '.join(missing)})")
        if provider == "sendgrid":
            await self._send_sendgrid(msg)
        else:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._send_smtp, msg)

    def _send_smtp(self, msg: OtpEmail) -> None:
        s = self._s
        em = EmailMessage()
        em["From"] = s.EMAIL_FROM
        em["To"] = msg.to
        em["Subject"] = msg.subject
        em.set_content(msg.text)
        em.add_alternative(msg.html, subtype="html")

        try:
            if s.SMTP_SECURE:
                smtp = smtplib.SMTP_SSL(host=s.SMTP_HOST, port=s.SMTP_PORT, timeout=15)
            else:
                smtp = smtplib.SMTP(host=s.SMTP_HOST, port=s.SMTP_PORT, timeout=15)
            with smtp as client:
                client.ehlo()
                if not s.SMTP_SECURE:
                    client.starttls()
                    client.ehlo()
                client.login(s.SMTP_USER, s.SMTP_PASS)
                client.send_message(em)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"SMTP send failed: {exc}") from exc

    async def _send_sendgrid(self, msg: OtpEmail) -> None:
        body = {
            "personalizations": [{"to": [{"email": msg.to}]}],
            "from": {"email": self._s.EMAIL_FROM},
            "subject": msg.subject,
            "content": [
                {"type": "text/plain", "value": msg.text},
                {"type": "text/html", "value": msg.html},
            ],
        }
        headers = {"Authorization": f"Bearer {self._s.SENDGRID_API_KEY}"}
        try:
            if self._http is not None:
                resp = await self._http.post(SENDGRID_URL, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=15.0) as client:
                    resp = await client.post(SENDGRID_URL, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"SendGrid request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise EmailDeliveryError(f"SendGrid error {resp.status_code}: {resp.text}")
