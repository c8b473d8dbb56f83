import json

import pytest

from pricemyfloor import main
from pricemyfloor.core.config import settings
from pricemyfloor.database.models import Lead, LeadDistribution

API = "/api/v1"


def _submission(**overrides):
    body = {
        "customer_name": "Jane Doe",
        "customer_email": "Jane@Example.com",
        "customer_phone": "416-555-0100",
        "postal_code": "m5v 3a8",
        "brand_requested": "BrandX",
        "project_size": "750 sq ft",
        "installation_required": True,
        "timeline": "As soon as possible",
        "notes": "Second floor hallway",
    }
    body.update(overrides)
    return body


@pytest.fixture
def submitted(client, brand, db):
    response = client.post(f"{API}/leads/submit", json=_submission())
    assert response.status_code == 200
    lead_id = response.json()["lead_id"]
    return db.query(Lead).filter_by(lead_id=lead_id).one()


def test_submit_normalizes_and_sends_code(client, brand, db, email_client):
    response = client.post(f"{API}/leads/submit", json=_submission())

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["verification_required"] is True
    assert body["expires_at"] is not None

    lead = db.query(Lead).filter_by(lead_id=body["lead_id"]).one()
    assert lead.customer_email == "jane@example.com"
    assert lead.postal_code == "M5V3A8"
    assert lead.customer_phone == "+14165550100"
    assert lead.square_footage == 750
    assert lead.verification_status == "pending_verification"
    assert lead.client_ip == "testclient"
    assert email_client.sent[0]["to"] == "jane@example.com"


def test_submit_then_verify_distributes(client, submitted, make_retailer, db):
    make_retailer(credits=3)

    response = client.post(
        f"{API}/leads/verify",
        json={"lead_id": submitted.lead_id, "token": submitted.verification_token},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["verified"] is True
    assert body["distribution"]["distributions_created"] == 1
    assert db.query(LeadDistribution).count() == 1

    status = client.get(f"{API}/leads/{submitted.lead_id}").json()
    assert status["verification_status"] == "verified"
    assert status["status"] == "assigned"


def test_submit_succeeds_when_code_cannot_be_sent(client, brand, email_client):
    email_client.fail = True
    response = client.post(f"{API}/leads/submit", json=_submission())
    assert response.status_code == 200
    assert response.json()["expires_at"] is None


def test_wrong_code(client, submitted):
    response = client.post(f"{API}/leads/verify", json={"lead_id": submitted.lead_id, "token": "000000"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid verification code"}


def test_resend_verification(client, submitted, email_client):
    response = client.post(f"{API}/leads/send-verification", json={"lead_id": submitted.lead_id})
    assert response.status_code == 200
    assert response.json()["method"] == "email"
    assert len(email_client.sent) == 2


def test_sms_verification(client, brand, db, sms_client):
    response = client.post(f"{API}/leads/submit", json=_submission(verification_method="sms"))
    lead_id = response.json()["lead_id"]
    assert sms_client.sent == ["+14165550100"]

    response = client.post(f"{API}/leads/verify", json={"lead_id": lead_id, "token": sms_client.approved_code})
    assert response.status_code == 200
    assert response.json()["verified"] is True


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"postal_code": "12345"}, "postal code"),
        ({"customer_phone": "call me"}, "phone"),
        ({"brand_requested": "NoSuchBrand"}, "Unknown flooring brand"),
        ({"project_size": "big", "square_footage": None}, "square footage"),
    ],
)
def test_submit_validation_errors(client, brand, overrides, message):
    response = client.post(f"{API}/leads/submit", json=_submission(**overrides))
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert message in body["error"]


def test_malformed_body_is_400(client, brand):
    body = _submission()
    del body["customer_email"]
    response = client.post(f"{API}/leads/submit", json=body)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "customer_email" in response.json()["error"]


def test_no_preference_brand_skips_catalogue_check(client, brand):
    response = client.post(
        f"{API}/leads/submit",
        json=_submission(brand_requested="No preference - show me options"),
    )
    assert response.status_code == 200


def test_rate_limit_per_email(client, brand):
    for _ in range(2):
        assert client.post(f"{API}/leads/submit", json=_submission()).status_code == 200
    response = client.post(f"{API}/leads/submit", json=_submission())
    assert response.status_code == 429
    assert response.json()["success"] is False


def test_rate_limit_per_ip(client, brand):
    for i in range(3):
        response = client.post(f"{API}/leads/submit", json=_submission(customer_email=f"c{i}@example.com"))
        assert response.status_code == 200
    response = client.post(f"{API}/leads/submit", json=_submission(customer_email="c9@example.com"))
    assert response.status_code == 429


def test_forwarded_for_from_trusted_proxy_is_the_client_ip(client, brand, db, monkeypatch):
    monkeypatch.setattr(settings.submission, "trusted_proxies", ["testclient"])
    response = client.post(
        f"{API}/leads/submit",
        json=_submission(),
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )
    lead = db.query(Lead).filter_by(lead_id=response.json()["lead_id"]).one()
    assert lead.client_ip == "203.0.113.7"


def test_forwarded_for_from_untrusted_peer_is_ignored(client, brand, db):
    for i in range(3):
        response = client.post(
            f"{API}/leads/submit",
            json=_submission(customer_email=f"c{i}@example.com"),
            headers={"X-Forwarded-For": f"198.51.100.{i}"},
        )
        lead = db.query(Lead).filter_by(lead_id=response.json()["lead_id"]).one()
        assert lead.client_ip == "testclient"

    response = client.post(
        f"{API}/leads/submit",
        json=_submission(customer_email="c9@example.com"),
        headers={"X-Forwarded-For": "198.51.100.99"},
    )
    assert response.status_code == 429


def test_unknown_lead(client):
    response = client.get(f"{API}/leads/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_cancel_then_verify_conflicts(client, submitted):
    assert client.post(f"{API}/leads/{submitted.lead_id}/cancel").status_code == 200
    response = client.post(
        f"{API}/leads/verify",
        json={"lead_id": submitted.lead_id, "token": "123456"},
    )
    assert response.status_code == 409


def test_distribute_requires_verified_lead(client, submitted):
    response = client.post(f"{API}/leads/{submitted.lead_id}/distribute")
    assert response.status_code == 409


def test_manual_redistribution(client, make_lead, make_retailer):
    make_retailer(credits=2)
    lead = make_lead()

    first = client.post(f"{API}/leads/{lead.lead_id}/distribute").json()
    second = client.post(f"{API}/leads/{lead.lead_id}/distribute").json()

    assert first["distributions_created"] == 1
    assert second["distributions_created"] == 0
    assert second["already_distributed"] == 1


def test_retailer_credits_and_distributions(client, make_lead, make_retailer):
    retailer = make_retailer(credits=2)
    lead = make_lead()
    client.post(f"{API}/leads/{lead.lead_id}/distribute")

    credits = client.get(f"{API}/retailers/{retailer.id}/credits").json()
    assert credits["credits_remaining"] == 1
    assert credits["credits_used"] == 1

    history = client.get(f"{API}/retailers/{retailer.id}/distributions").json()
    assert history["total"] == 1
    assert history["distributions"][0]["lead_id"] == lead.lead_id
    assert history["distributions"][0]["payment_method"] == "credit"


def test_purchase_credits_endpoint(client, make_retailer):
    retailer = make_retailer()
    response = client.post(
        f"{API}/billing/purchase-credits",
        json={"retailer_id": retailer.id, "package_type": "500"},
    )
    assert response.status_code == 200
    assert response.json()["amount"] == 800


def test_save_payment_method_endpoint(client, make_retailer):
    retailer = make_retailer()
    response = client.post(
        f"{API}/billing/payment-methods",
        json={"retailer_id": retailer.id, "payment_method_id": "pm_new"},
    )
    assert response.status_code == 200
    assert response.json()["is_default"] is True
    assert response.json()["card_brand"] == "visa"


def test_webhook_endpoint(client, make_retailer):
    retailer = make_retailer()
    event = {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_api_1",
                "payment_status": "paid",
                "amount_total": 20000,
                "currency": "cad",
                "metadata": {"retailer_id": str(retailer.id), "package_type": "100", "credits": "100"},
            }
        },
    }
    response = client.post(
        f"{API}/billing/webhook",
        content=json.dumps(event),
        headers={"Stripe-Signature": "valid-signature"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "credited"

    unsigned = client.post(f"{API}/billing/webhook", content=json.dumps(event))
    assert unsigned.status_code == 400


def test_webhook_delivers_lead_once_card_charge_settles(client, make_lead, make_retailer, gateway, email_client):
    retailer = make_retailer(card=True)
    lead = make_lead()
    gateway.charge_status = "processing"
    first = client.post(f"{API}/leads/{lead.lead_id}/distribute").json()
    assert first["payment_processing"] == 1
    assert email_client.sent == []

    event = {"id": "evt_pi", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}}
    response = client.post(
        f"{API}/billing/webhook",
        content=json.dumps(event),
        headers={"Stripe-Signature": "valid-signature"},
    )

    assert response.json()["status"] == "delivered"
    assert [m["to"] for m in email_client.sent] == [retailer.email]
    assert client.get(f"{API}/leads/{lead.lead_id}").json()["status"] == "assigned"
    assert client.post(f"{API}/leads/{lead.lead_id}/distribute").json()["already_distributed"] == 1
    assert len(gateway.charges) == 1


def test_cors_preflight(client):
    response = client.options(
        f"{API}/leads/submit",
        headers={
            "Origin": "https://pricemyfloor.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_sms_test_mode_warns_at_startup(monkeypatch):
    logged = []
    monkeypatch.setattr(main.app_logger, "warning", logged.append)

    assert main.warn_on_unsafe_settings() == []
    assert logged == []

    monkeypatch.setattr(settings.sms, "test_mode", True)
    warnings = main.warn_on_unsafe_settings()

    assert len(warnings) == 1
    assert "SMS test mode" in warnings[0]
    assert len(logged) == 1
