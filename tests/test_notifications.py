import asyncio
import json

import httpx
import pytest

from app.domain.accounts import service as account_service
from app.domain.accounts.service import AccountService
from app.email_service import EmailNotConfiguredError
from app.email_templates import credentials_template
from app.models import Profile, UserRole
from app.services import whatsapp_service
from app.services.whatsapp_service import (
    WhatsAppNotConfiguredError,
    credentials_message,
    send_whatsapp_text,
)


def run(coro):
    return asyncio.run(coro)


class TestWhatsApp:
    def test_posts_normalized_phone_to_doubletick(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"messageId": "m-1"})

        async def send():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
                return await send_whatsapp_text("98765 43210", "hello", api_key="dt-key", http_client=http_client)

        assert run(send()) == (True, None)
        assert captured["url"].endswith("/message/text")
        assert captured["auth"] == "Bearer dt-key"
        assert captured["body"] == {"to": "+919876543210", "content": {"text": "hello"}}

    def test_api_error_is_reported_not_raised(self):
        def handler(request):
            return httpx.Response(400, json={"message": "Invalid phone number"})

        async def send():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
                return await send_whatsapp_text("123", "hello", api_key="dt-key", http_client=http_client)

        assert run(send()) == (False, "Invalid phone number")

    def test_transport_error_is_reported_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        async def send():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
                return await send_whatsapp_text("+911234567890", "hello", api_key="dt-key", http_client=http_client)

        sent, error = run(send())
        assert sent is False
        assert "connection refused" in error

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(whatsapp_service, "DOUBLETICK_API_KEY", None)
        with pytest.raises(WhatsAppNotConfiguredError):
            run(send_whatsapp_text("+911234567890", "hello"))

    def test_reset_message_mentions_new_credentials(self):
        message = credentials_message("Asha", "asha@example.com", "Tmp#Pass123", "Admin Clinical", is_reset=True)
        assert "password has been reset" in message
        assert "Password: Tmp#Pass123" in message
        assert "/login" in message


def test_credentials_email_escapes_user_input():
    mjml = credentials_template(
        full_name="<script>x</script>",
        email="a@example.com",
        password="Ab1!<&>",
        login_url="https://aisurgeonpilot.com/login",
        role_label="Doctor",
    )
    assert "<script>" not in mjml
    assert "Ab1!&lt;&amp;&gt;" in mjml
    assert "https://aisurgeonpilot.com/login" in mjml


class TestCredentialDelivery:
    @pytest.fixture
    def profile(self):
        return Profile(
            id="profile-1",
            user_id="user-1",
            role=UserRole.DOCTOR,
            email="doc@example.com",
            full_name="Dr. Doc",
            phone="98765 43210",
        )

    @pytest.fixture
    def service(self, identity_provider, profile_repository):
        return AccountService(identity_provider, profile_repository)

    def test_reports_each_channel(self, monkeypatch, service, profile):
        sent_to = {}

        async def fake_email(to, **kwargs):
            sent_to["email"] = to
            return {"id": "e-1"}

        async def fake_whatsapp(phone, message):
            sent_to["whatsapp"] = phone
            return False, "template not approved"

        monkeypatch.setattr(account_service, "send_credentials_email", fake_email)
        monkeypatch.setattr(account_service, "send_whatsapp_text", fake_whatsapp)

        results = run(service.notify_credentials(profile, "Tmp#Pass123", send_email=True, send_whatsapp=True))

        assert results.email == "sent"
        assert results.whatsapp == "failed"
        assert sent_to == {"email": "doc@example.com", "whatsapp": "98765 43210"}

    def test_unconfigured_channels_are_skipped(self, monkeypatch, service, profile):
        async def no_email(to, **kwargs):
            raise EmailNotConfiguredError("RESEND_API_KEY is not configured")

        async def no_whatsapp(phone, message):
            raise WhatsAppNotConfiguredError("DOUBLETICK_API_KEY is not configured")

        monkeypatch.setattr(account_service, "send_credentials_email", no_email)
        monkeypatch.setattr(account_service, "send_whatsapp_text", no_whatsapp)

        results = run(service.notify_credentials(profile, "Tmp#Pass123", send_email=True, send_whatsapp=True))

        assert (results.email, results.whatsapp) == ("skipped", "skipped")

    def test_send_failure_never_raises(self, monkeypatch, service, profile):
        async def broken_email(to, **kwargs):
            raise RuntimeError("resend is down")

        monkeypatch.setattr(account_service, "send_credentials_email", broken_email)

        results = run(service.notify_credentials(profile, "Tmp#Pass123", send_email=True, send_whatsapp=False))

        assert results.email == "failed"
        assert results.whatsapp == "skipped"

    def test_create_succeeds_when_delivery_fails(self, monkeypatch, client, login_as, profile_repository):
        async def broken_email(to, **kwargs):
            raise RuntimeError("resend is down")

        monkeypatch.setattr(account_service, "send_credentials_email", broken_email)
        _, cookies = login_as(UserRole.SUPERADMIN)

        response = client.post(
            "/api/superadmin/doctors",
            json={"fullName": "Dr. New", "email": "new@example.com", "password": "Welcome123", "sendEmail": True},
            headers=cookies,
        )

        assert response.status_code == 200
        assert response.json()["notifications"]["email"] == "failed"
        assert profile_repository.get_by_email("new@example.com") is not None
