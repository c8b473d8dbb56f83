"""
Distribution, credit balance, payment method and transaction ledger data access
"""
from typing import List, Optional, Set

from sqlalchemy import update

from pricemyfloor.database.models import (
    LeadDistribution,
    PaymentMethod,
    PaymentTransaction,
    RetailerLeadCredit,
)
from pricemyfloor.repositories.base_repository import BaseRepository
from pricemyfloor.utils.helpers import utcnow


class DistributionRepository(BaseRepository[LeadDistribution]):
    model = LeadDistribution

    def retailer_ids_for_lead(self, lead_pk: int) -> Set[int]:
        rows = (
            self.db.query(LeadDistribution.retailer_id)
            .filter(LeadDistribution.lead_id == lead_pk)
            .all()
        )
        return {row[0] for row in rows}

    def find_by_payment_intent(self, payment_intent_id: str) -> Optional[LeadDistribution]:
        return self.find_one_by(stripe_payment_intent_id=payment_intent_id)

    def find_for_retailer(self, retailer_id: int, skip: int = 0, limit: int = 100) -> List[LeadDistribution]:
        return (
            self.db.query(LeadDistribution)
            .filter(LeadDistribution.retailer_id == retailer_id)
            .order_by(LeadDistribution.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


class CreditRepository(BaseRepository[RetailerLeadCredit]):
    model = RetailerLeadCredit

    def find_for_retailer(self, retailer_id: int) -> Optional[RetailerLeadCredit]:
        return self.find_one_by(retailer_id=retailer_id)

    def try_deduct(self, retailer_id: int) -> bool:
        """
        Atomically spend one credit.

        Single conditional UPDATE; the database decides whether a credit was
        available. Not committed here. Returns True when a row was updated.
        """
        stmt = (
            update(RetailerLeadCredit)
            .where(
                RetailerLeadCredit.retailer_id == retailer_id,
                RetailerLeadCredit.credits_remaining > 0,
            )
            .values(
                credits_remaining=RetailerLeadCredit.credits_remaining - 1,
                credits_used=RetailerLeadCredit.credits_used + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def add_credits(self, retailer_id: int, credits: int) -> None:
        """Atomically add purchased credits, creating the balance row on first purchase. Not committed here."""
        now = utcnow()
        stmt = (
            update(RetailerLeadCredit)
            .where(RetailerLeadCredit.retailer_id == retailer_id)
            .values(
                credits_remaining=RetailerLeadCredit.credits_remaining + credits,
                last_purchase_date=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount == 0:
            self.create(
                commit=False,
                retailer_id=retailer_id,
                credits_remaining=credits,
                credits_used=0,
                last_purchase_date=now,
            )


class PaymentMethodRepository(BaseRepository[PaymentMethod]):
    model = PaymentMethod

    def find_default(self, retailer_id: int) -> Optional[PaymentMethod]:
        return (
            self.db.query(PaymentMethod)
            .filter(PaymentMethod.retailer_id == retailer_id, PaymentMethod.is_default.is_(True))
            .first()
        )

    def count_for_retailer(self, retailer_id: int) -> int:
        return self.db.query(PaymentMethod).filter(PaymentMethod.retailer_id == retailer_id).count()


class TransactionRepository(BaseRepository[PaymentTransaction]):
    model = PaymentTransaction

    def find_by_checkout_session(self, session_id: str) -> Optional[PaymentTransaction]:
        return self.find_one_by(stripe_checkout_session_id=session_id)

    def mark_by_payment_intent(self, payment_intent_id: str, status: str) -> int:
        """Set the status of every transaction for a payment intent; returns rows touched"""
        rows = (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.stripe_payment_intent_id == payment_intent_id)
            .all()
        )
        for row in rows:
            row.status = status
        self.db.commit()
        return len(rows)
