"""
Lead data access
"""
from datetime import datetime
from typing import Optional

from pricemyfloor.database.models import Lead
from pricemyfloor.repositories.base_repository import BaseRepository


class LeadRepository(BaseRepository[Lead]):
    model = Lead

    def find_by_lead_id(self, lead_id: str) -> Optional[Lead]:
        """Find a lead by its public identifier"""
        return self.db.query(Lead).filter(Lead.lead_id == lead_id).first()

    def count_since_by_ip(self, client_ip: str, since: datetime) -> int:
        return (
            self.db.query(Lead)
            .filter(Lead.client_ip == client_ip, Lead.created_at >= since)
            .count()
        )

    def count_since_by_email(self, email: str, since: datetime) -> int:
        return (
            self.db.query(Lead)
            .filter(Lead.customer_email == email, Lead.created_at >= since)
            .count()
        )
