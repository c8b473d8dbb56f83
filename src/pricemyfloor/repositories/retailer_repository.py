"""
Retailer, brand subscription and brand catalogue data access
"""
from typing import List, Optional

from pricemyfloor.database.models import (
    BrandSubscription,
    FlooringBrand,
    Retailer,
    RetailerStatus,
)
from pricemyfloor.repositories.base_repository import BaseRepository


class RetailerRepository(BaseRepository[Retailer]):
    model = Retailer

    def find_active(self) -> List[Retailer]:
        """Active retailers in retrieval (id) order"""
        return (
            self.db.query(Retailer)
            .filter(Retailer.status == RetailerStatus.ACTIVE.value)
            .order_by(Retailer.id)
            .all()
        )


class BrandSubscriptionRepository(BaseRepository[BrandSubscription]):
    model = BrandSubscription

    def find_active(self) -> List[BrandSubscription]:
        return (
            self.db.query(BrandSubscription)
            .filter(BrandSubscription.is_active.is_(True))
            .order_by(BrandSubscription.id)
            .all()
        )


class FlooringBrandRepository(BaseRepository[FlooringBrand]):
    model = FlooringBrand

    def find_active_by_name(self, name: str) -> Optional[FlooringBrand]:
        return (
            self.db.query(FlooringBrand)
            .filter(FlooringBrand.name == name, FlooringBrand.is_active.is_(True))
            .first()
        )
