"""
Lead distribution pipeline: select matching retailers, settle payment, notify
"""
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from pricemyfloor.core.config import settings
from pricemyfloor.database.models import Lead, LeadStatus, Retailer, VerificationState
from pricemyfloor.external.payments.client import PaymentGateway
from pricemyfloor.repositories.billing_repository import DistributionRepository
from pricemyfloor.repositories.retailer_repository import (
    BrandSubscriptionRepository,
    RetailerRepository,
)
from pricemyfloor.services.matching import (
    any_subscription_matches,
    installation_matches,
    postal_code_matches,
    urgency_matches,
)
from pricemyfloor.services.notification_service import NotificationService
from pricemyfloor.services.pricing import calculate_lead_price, resolve_square_footage
from pricemyfloor.services.settlement_service import (
    SettlementOutcome,
    SettlementResult,
    SettlementService,
)
from pricemyfloor.utils.exceptions import InvalidStateError
from pricemyfloor.utils.logging import get_logger, app_logger

logger = get_logger(__name__)


class DistributionService:
    """Runs the matching and settlement pipeline for one verified lead"""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.db = db
        self.retailers = RetailerRepository(db)
        self.subscriptions = BrandSubscriptionRepository(db)
        self.distributions = DistributionRepository(db)
        self.settlement = SettlementService(db, gateway)
        self.notifier = notifier or NotificationService()

    def select_retailers(self, lead: Lead, square_footage: int) -> Tuple[List[Retailer], int]:
        """
        Retailers eligible for a lead, in retrieval order, capped.

        A retailer qualifies when at least one of its active subscriptions
        matches the brand and size, its coverage includes the postal code,
        and both its installation and urgency preferences accept the lead.

        Returns:
            (selected retailers, number matching before the cap)
        """
        config = settings.distribution
        retailers = self.retailers.find_active()
        logger.info(f"[cyan]Fetched {len(retailers)} active retailers[/cyan]")

        subscriptions_by_retailer = defaultdict(list)
        for subscription in self.subscriptions.find_active():
            subscriptions_by_retailer[subscription.retailer_id].append(subscription)

        matching = []
        for retailer in retailers:
            if not any_subscription_matches(
                subscriptions_by_retailer[retailer.id],
                lead.brand_requested,
                square_footage,
                config.no_preference_brand,
            ):
                continue
            if not postal_code_matches(lead.postal_code, retailer.postal_code_prefixes):
                continue
            if not installation_matches(retailer.installation_preference, lead.installation_required):
                continue
            if not urgency_matches(retailer.urgency_preference, lead.timeline, config.asap_timeline):
                continue
            matching.append(retailer)

        logger.info(f"[cyan]Found {len(matching)} matching retailers[/cyan] for lead {lead.lead_id}")
        return matching[: config.max_retailers], len(matching)

    async def distribute(self, lead: Lead) -> Dict[str, Any]:
        """
        Match, settle and notify for a verified lead.

        Each retailer is settled independently: a failure for one is logged
        and recorded in the report without stopping the others. Retailers
        that already hold a distribution for this lead, including one whose
        card charge is still processing, are skipped, so re-running never
        charges twice.

        Raises:
            InvalidStateError: If the lead is not verified
            ValidationError: If the lead's square footage cannot be resolved
        """
        if lead.verification_state != VerificationState.VERIFIED:
            raise InvalidStateError(
                f"Lead '{lead.lead_id}' is {lead.verification_status}; only verified leads are distributed"
            )

        square_footage = resolve_square_footage(lead.square_footage, lead.project_size)
        lead_price = calculate_lead_price(square_footage)
        logger.info(f"[cyan]Lead {lead.lead_id}:[/cyan] {square_footage} sq ft priced at {lead_price}")

        selected, total_matching = self.select_retailers(lead, square_footage)
        already_served = self.distributions.retailer_ids_for_lead(lead.id)

        results: List[SettlementResult] = []
        skipped = 0
        for retailer in selected:
            if retailer.id in already_served:
                skipped += 1
                continue
            results.append(await self._settle_and_notify(lead, retailer, lead_price))

        delivered = [r for r in results if r.delivered]
        if delivered and lead.status == LeadStatus.NEW.value:
            lead.status = LeadStatus.ASSIGNED.value
            self.db.commit()

        report = {
            "lead_id": lead.lead_id,
            "square_footage": square_footage,
            "lead_price": float(lead_price),
            "total_matching_retailers": total_matching,
            "retailers_attempted": len(results),
            "already_distributed": skipped,
            "distributions_created": len(delivered),
            "payment_pending": sum(1 for r in results if r.outcome == SettlementOutcome.PAYMENT_PENDING),
            "payment_processing": sum(1 for r in results if r.outcome == SettlementOutcome.PAYMENT_PROCESSING),
            "failed": sum(1 for r in results if r.outcome == SettlementOutcome.CHARGE_FAILED),
            "results": [r.to_dict() for r in results],
        }
        app_logger.info(
            f"[green]Lead {lead.lead_id} distributed:[/green] "
            f"[cyan]{report['distributions_created']}[/cyan] delivered, "
            f"[yellow]{report['payment_pending']}[/yellow] pending, "
            f"[yellow]{report['payment_processing']}[/yellow] processing, "
            f"[red]{report['failed']}[/red] failed out of {len(results)} attempted"
        )
        return report

    async def _settle_and_notify(self, lead: Lead, retailer: Retailer, lead_price) -> SettlementResult:
        logger.info(f"[cyan]Processing retailer[/cyan] {retailer.id} - {retailer.business_name}")
        try:
            result = self.settlement.settle(lead, retailer, lead_price)
        except Exception as e:
            self.db.rollback()
            logger.error(f"[red]❌ Settlement error for retailer {retailer.id}:[/red] {e}")
            return SettlementResult(
                retailer_id=retailer.id,
                business_name=retailer.business_name,
                outcome=SettlementOutcome.CHARGE_FAILED,
                error=str(e),
            )

        if result.delivered:
            await self.notifier.notify_retailer(retailer, lead, result.distribution)
        return result
