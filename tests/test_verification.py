import re
from datetime import timedelta

import pytest

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import (
    LeadDistribution,
    VerificationChannel,
    VerificationState,
)
from pricemyfloor.services.lead_service import LeadService
from pricemyfloor.services.verification_service import VerificationService, generate_code
from pricemyfloor.utils.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    ValidationError,
    VerificationExpiredError,
)
from pricemyfloor.utils.helpers import utcnow


@pytest.fixture
def verification(db, notifier, sms_client):
    return VerificationService(db, notifier, sms_client)


@pytest.fixture
def lead_service(db, notifier, sms_client, gateway):
    return LeadService(db, notifier=notifier, sms_client=sms_client, gateway=gateway)


def test_generated_codes_are_six_digits():
    for _ in range(50):
        assert re.fullmatch(r"[1-9]\d{5}", generate_code())


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (VerificationState.PENDING_VERIFICATION, VerificationState.VERIFIED, True),
        (VerificationState.PENDING_VERIFICATION, VerificationState.EXPIRED, True),
        (VerificationState.PENDING_VERIFICATION, VerificationState.CANCELLED, True),
        (VerificationState.VERIFIED, VerificationState.CANCELLED, True),
        (VerificationState.VERIFIED, VerificationState.PENDING_VERIFICATION, False),
        (VerificationState.VERIFIED, VerificationState.EXPIRED, False),
        (VerificationState.EXPIRED, VerificationState.VERIFIED, False),
        (VerificationState.EXPIRED, VerificationState.PENDING_VERIFICATION, False),
        (VerificationState.CANCELLED, VerificationState.VERIFIED, False),
    ],
)
def test_state_machine(current, target, allowed):
    assert current.can_transition_to(target) is allowed


async def test_send_code_emails_and_stores_code(verification, make_lead, email_client):
    lead = make_lead(verification_status="pending_verification", verification_token=None)
    now = utcnow()

    expires_at = await verification.send_code(lead, VerificationChannel.EMAIL, now=now)

    assert expires_at == now + timedelta(minutes=settings.verification.code_ttl_minutes)
    assert lead.verification_expires_at == expires_at
    assert len(email_client.sent) == 1
    assert email_client.sent[0]["to"] == "jane@example.com"
    assert lead.verification_token in email_client.sent[0]["html"]


async def test_send_code_by_sms_clears_stored_code(verification, make_lead, sms_client):
    lead = make_lead(verification_status="pending_verification")

    await verification.send_code(lead, VerificationChannel.SMS)

    assert sms_client.sent == ["+14165550100"]
    assert lead.verification_token is None
    assert lead.verification_method == "sms"


async def test_send_code_failure_leaves_lead_untouched(verification, make_lead, email_client):
    lead = make_lead(verification_status="pending_verification", verification_token="111111")
    email_client.fail = True

    with pytest.raises(ExternalServiceError):
        await verification.send_code(lead, VerificationChannel.EMAIL)
    assert lead.verification_token == "111111"


async def test_cannot_send_code_to_verified_lead(verification, make_lead):
    lead = make_lead(verification_status="verified")
    with pytest.raises(InvalidStateError):
        await verification.send_code(lead, VerificationChannel.EMAIL)


def test_code_accepted_one_second_before_expiry(verification, make_lead):
    lead = make_lead(verification_status="pending_verification")
    just_before = lead.verification_expires_at - timedelta(seconds=1)

    assert verification.check_code(lead, "123456", now=just_before) is True
    assert lead.verification_state == VerificationState.VERIFIED
    assert lead.verification_token is None
    assert lead.verified_at == just_before


def test_code_rejected_at_exact_expiry(verification, make_lead):
    lead = make_lead(verification_status="pending_verification")

    with pytest.raises(VerificationExpiredError) as exc:
        verification.check_code(lead, "123456", now=lead.verification_expires_at)
    assert exc.value.detail == "Verification code has expired"
    assert lead.verification_state == VerificationState.EXPIRED

    # Expired is terminal
    with pytest.raises(InvalidStateError):
        verification.check_code(lead, "123456", now=lead.verification_expires_at)


def test_wrong_code_is_rejected(verification, make_lead):
    lead = make_lead(verification_status="pending_verification")
    with pytest.raises(ValidationError):
        verification.check_code(lead, "654321")
    assert lead.verification_state == VerificationState.PENDING_VERIFICATION


def test_cancelled_lead_cannot_be_verified(verification, make_lead):
    lead = make_lead(verification_status="cancelled")
    with pytest.raises(InvalidStateError):
        verification.check_code(lead, "123456")


def test_sms_code_checked_with_provider(verification, make_lead, sms_client):
    lead = make_lead(verification_status="pending_verification", verification_method="sms", verification_token=None)
    with pytest.raises(ValidationError):
        verification.check_code(lead, "123456")
    assert verification.check_code(lead, sms_client.approved_code) is True


def test_sms_test_mode_accepts_any_six_digits(verification, make_lead, monkeypatch):
    monkeypatch.setattr(settings.sms, "test_mode", True)
    lead = make_lead(verification_status="pending_verification", verification_method="sms", verification_token=None)
    with pytest.raises(ValidationError):
        verification.check_code(lead, "12345")
    assert verification.check_code(lead, "987654") is True


async def test_resend_invalidates_previous_code(lead_service, make_lead, email_client):
    lead = make_lead(verification_status="pending_verification", verification_token=None)
    await lead_service.resend_verification(lead.lead_id)
    first_code = lead.verification_token

    await lead_service.resend_verification(lead.lead_id)
    second_code = lead.verification_token
    if second_code == first_code:
        # One-in-a-million collision; force a distinct code
        await lead_service.resend_verification(lead.lead_id)
        second_code = lead.verification_token

    with pytest.raises(ValidationError):
        await lead_service.verify_lead(lead.lead_id, first_code)

    result = await lead_service.verify_lead(lead.lead_id, second_code)
    assert result["verified"] is True
    assert len(email_client.sent) >= 2


async def test_verify_runs_distribution(lead_service, make_lead, make_retailer, db):
    make_retailer(credits=2)
    lead = make_lead(verification_status="pending_verification")

    result = await lead_service.verify_lead(lead.lead_id, "123456")

    assert result["already_verified"] is False
    assert result["distribution"]["distributions_created"] == 1
    assert db.query(LeadDistribution).count() == 1


async def test_verifying_twice_is_idempotent(lead_service, make_lead, make_retailer, db):
    make_retailer(credits=5)
    lead = make_lead(verification_status="pending_verification")
    await lead_service.verify_lead(lead.lead_id, "123456")
    verified_at = lead.verified_at

    again = await lead_service.verify_lead(lead.lead_id, "000000")

    assert again["verified"] is True
    assert again["already_verified"] is True
    assert again["distribution"] is None
    assert lead.verified_at == verified_at
    assert db.query(LeadDistribution).count() == 1


async def test_distribution_failure_does_not_undo_verification(lead_service, make_lead, monkeypatch):
    lead = make_lead(verification_status="pending_verification")

    async def broken(_lead):
        raise RuntimeError("database went away")

    monkeypatch.setattr(lead_service.distribution, "distribute", broken)
    result = await lead_service.verify_lead(lead.lead_id, "123456")

    assert result["verified"] is True
    assert result["distribution"] is None
    assert "database went away" in result["distribution_error"]
    assert lead.verification_state == VerificationState.VERIFIED


def test_cancel_pending_and_verified_leads(lead_service, make_lead):
    pending = make_lead(verification_status="pending_verification")
    verified = make_lead(verification_status="verified", customer_email="other@example.com")

    assert lead_service.cancel_lead(pending.lead_id).verification_status == "cancelled"
    cancelled = lead_service.cancel_lead(verified.lead_id)
    assert cancelled.verification_status == "cancelled"
    assert cancelled.status == "cancelled"


def test_cancel_expired_lead_is_rejected(lead_service, make_lead):
    lead = make_lead(verification_status="expired")
    with pytest.raises(InvalidStateError):
        lead_service.cancel_lead(lead.lead_id)
