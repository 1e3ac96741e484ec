"""ZeptoMail implementation of EmailProvider.

- async httpx via HttpClient
- injected EmailSettings + app_url
- Jinja2 templates under templates/emails
"""

import os
from typing import Optional
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_url: str = "http://localhost:8000",
        app_name: str = "gatekeep",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url.rstrip("/")
        self._app_name = app_name
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _link(self, path: str, email: str, slug: str) -> str:
        return f"{self._app_url}{path}?{urlencode({'email': email, 'slug': slug})}"

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        response = await self._http.post(_ZEPTO_API_URL, json=payload, headers=headers)
        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_sent_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_verification_email(self, email: str, slug: str) -> bool:
        subject = f"Verify your account - {self._app_name}"
        link = self._link("/auth/verify", email, slug)
        template = self._jinja.get_template("verification.html")
        html_body = template.render(
            link=link, app_name=self._app_name, app_url=self._app_url
        )
        text_body = (
            f"Verify Your Account - {self._app_name}\n\n"
            f"Open this link to verify your new account:\n{link}\n\n"
            f"The link only works from the network you registered on and "
            f"expires shortly."
        )
        return await self._send(email, subject, html_body, text_body)

    async def send_password_reset_email(self, email: str, slug: str) -> bool:
        subject = f"Reset your password - {self._app_name}"
        link = self._link("/auth/password-reset/authenticate", email, slug)
        template = self._jinja.get_template("password_reset.html")
        html_body = template.render(
            link=link, app_name=self._app_name, app_url=self._app_url
        )
        text_body = (
            f"Reset Your Password - {self._app_name}\n\n"
            f"Open this link to confirm your password change request:\n{link}\n\n"
            f"If you did not ask for this, you can ignore this email."
        )
        return await self._send(email, subject, html_body, text_body)
