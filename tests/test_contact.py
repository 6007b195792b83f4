from __future__ import annotations

import asyncio

import httpx
import orjson
import pytest

from endless_novel.config.schema import ContactConfig
from endless_novel.contact.service import (
    ContactForm,
    ContactSendError,
    ContactValidationError,
    render_email,
    send_contact_message,
)


def _form(**overrides: str) -> ContactForm:
    values = {
        "name": "Ada",
        "email": "ada@example.com",
        "subject": "Hello",
        "message": "Loved the latest chapter.",
    }
    values.update(overrides)
    return ContactForm(**values)


def _enabled_config() -> ContactConfig:
    return ContactConfig(enabled=True, service_id="svc", template_id="tpl", endpoint="https://mail.test/send")


def test_blank_fields_are_rejected() -> None:
    with pytest.raises(ContactValidationError, match="Please fill in all fields"):
        _form(subject="  ").validate()


def test_invalid_email_is_rejected() -> None:
    with pytest.raises(ContactValidationError, match="valid email"):
        _form(email="ada-at-example").validate()


def test_render_email_lists_fields() -> None:
    body = render_email(_form())

    assert "Name: Ada" in body
    assert "Email: ada@example.com" in body
    assert "Subject: Hello" in body
    assert body.rstrip().endswith("Loved the latest chapter.")


def test_disabled_delivery_only_logs() -> None:
    asyncio.run(send_contact_message(_form(), ContactConfig(simulated_delay_s=0)))


def test_enabled_delivery_posts_emailjs_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EMAILJS_PUBLIC_KEY", "pk-123")
    captured: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, text="OK")

    async def _run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
            await send_contact_message(_form(), _enabled_config(), client=client)

    asyncio.run(_run())

    assert len(captured) == 1
    assert str(captured[0].url) == "https://mail.test/send"
    payload = orjson.loads(captured[0].content)
    assert payload["service_id"] == "svc"
    assert payload["template_id"] == "tpl"
    assert payload["user_id"] == "pk-123"
    assert payload["template_params"]["reply_to"] == "ada@example.com"


def test_server_error_becomes_send_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EMAILJS_PUBLIC_KEY", "pk-123")

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async def _run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
            await send_contact_message(_form(), _enabled_config(), client=client)

    with pytest.raises(ContactSendError):
        asyncio.run(_run())


def test_missing_public_key_is_a_send_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EMAILJS_PUBLIC_KEY", raising=False)

    with pytest.raises(ContactSendError, match="EMAILJS_PUBLIC_KEY"):
        asyncio.run(send_contact_message(_form(), _enabled_config()))
