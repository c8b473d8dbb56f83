import json

import httpx
import pytest

from pricemyfloor.external.email.client import EmailClient
from pricemyfloor.utils.template_manager import get_template_manager


def test_templates_escape_user_values():
    templates = get_template_manager()
    message = templates.render(
        "new_lead",
        retailer_name="Floors & Co",
        customer_name="<script>alert(1)</script>",
        customer_email="jane@example.com",
        customer_phone="+14165550100",
        postal_code="M5V3A8",
        brand="BrandX",
        project_size="750 sq ft",
        installation="Supply & Installation",
        timeline="As soon as possible",
        notes="None",
        payment_text="Paid via lead credits",
    )
    assert "<script>" not in message["html"]
    assert "&lt;script&gt;" in message["html"]
    assert message["subject"] == "New Flooring Lead: <script>alert(1)</script> - 750 sq ft"


def test_missing_template_variable():
    with pytest.raises(KeyError):
        get_template_manager().render("verification_code", code="123456")


def test_known_categories():
    assert {"verification_code", "new_lead"} <= set(get_template_manager().list_categories())


async def test_email_client_posts_to_resend():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    client = EmailClient(
        api_key="re_key",
        base_url="https://api.resend.test",
        from_address="Price My Floor <noreply@pricemyfloor.test>",
        transport=httpx.MockTransport(handler),
    )
    result = await client.send_email("jane@example.com", "Hello", "<p>Hi</p>")

    assert result == {"id": "email_123"}
    assert captured["url"] == "https://api.resend.test/emails"
    assert captured["auth"] == "Bearer re_key"
    assert captured["body"]["to"] == ["jane@example.com"]
    assert captured["body"]["from"] == "Price My Floor <noreply@pricemyfloor.test>"


async def test_email_client_raises_on_provider_error():
    client = EmailClient(
        api_key="re_key",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"})),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await client.send_email("jane@example.com", "Hello", "<p>Hi</p>")


async def test_email_client_requires_api_key():
    client = EmailClient(api_key="")
    with pytest.raises(RuntimeError):
        await client.send_email("jane@example.com", "Hello", "<p>Hi</p>")
