from __future__ import annotations

import asyncio
import os
import textwrap
from dataclasses import dataclass

import httpx
from loguru import logger

from endless_novel.config.schema import ContactConfig
from endless_novel.users.service import looks_like_email


class ContactValidationError(ValueError):
    pass


class ContactSendError(RuntimeError):
    pass


@dataclass
class ContactForm:
    name: str
    email: str
    subject: str
    message: str

    def validate(self) -> None:
        if not (self.name.strip() and self.email.strip() and self.subject.strip() and self.message.strip()):
            raise ContactValidationError("Please fill in all fields")
        if not looks_like_email(self.email):
            raise ContactValidationError("Please enter a valid email address")

    def template_params(self) -> dict[str, str]:
        return {
            "from_name": self.name,
            "from_email": self.email,
            "subject": self.subject,
            "message": self.message,
            "reply_to": self.email,
        }


def render_email(form: ContactForm) -> str:
    body = textwrap.dedent(
        """\
        New Contact Form Submission

        Name: {name}
        Email: {email}
        Subject: {subject}

        Message:
        """
    ).format(name=form.name, email=form.email, subject=form.subject)
    return body + form.message + "\n"


def _emailjs_payload(form: ContactForm, config: ContactConfig) -> dict[str, object]:
    payload: dict[str, object] = {
        "service_id": config.service_id,
        "template_id": config.template_id,
        "template_params": form.template_params(),
    }
    if config.public_key_env:
        public_key = os.getenv(config.public_key_env)
        if not public_key:
            raise ContactSendError(f"Missing EmailJS public key in ${config.public_key_env}")
        payload["user_id"] = public_key
    return payload


async def send_contact_message(
    form: ContactForm,
    config: ContactConfig,
    client: httpx.AsyncClient | None = None,
) -> None:
    """Validate the form and deliver it, or log it when delivery is disabled."""
    form.validate()
    log = logger.bind(node="contact")

    if not config.enabled:
        log.info("Contact delivery disabled; message for {}:\n{}", config.recipient, render_email(form))
        await asyncio.sleep(config.simulated_delay_s)
        return

    payload = _emailjs_payload(form, config)
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=config.timeout_s)
    try:
        response = await http.post(config.endpoint, json=payload)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        log.warning("Contact email failed: {}", exc)
        raise ContactSendError("An error occurred while sending your message. Please try again.") from exc
    finally:
        if owns_client:
            await http.aclose()

    log.info("Contact email sent to {}", config.recipient)
