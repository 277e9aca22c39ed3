# backend/app/repositories/service_catalog_repository.py
"""
Service Catalog Repository.

Read access to the prices the pricing calculator trusts: services, their
pricing tiers and their add-ons.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.service_catalog import ProfessionalService, ServiceAddon, ServicePricingTier
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ServiceCatalogRepository(BaseRepository[ProfessionalService]):
    """Repository for professional services and their price components."""

    def __init__(self, db: Session):
        super().__init__(db, ProfessionalService)

    def get_active_service(self, service_id: str) -> Optional[ProfessionalService]:
        try:
            return (
                self.db.query(ProfessionalService)
                .filter(
                    ProfessionalService.id == service_id,
                    ProfessionalService.is_active.is_(True),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to get service: {str(e)}")

    def get_tier_for_service(self, tier_id: str, service_id: str) -> Optional[ServicePricingTier]:
        """Tier lookup scoped to its service; a tier of another service is not found."""
        try:
            return (
                self.db.query(ServicePricingTier)
                .filter(
                    ServicePricingTier.id == tier_id,
                    ServicePricingTier.service_id == service_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting pricing tier {tier_id}: {str(e)}")
            raise RepositoryException(f"Failed to get pricing tier: {str(e)}")

    def get_active_addons(self, service_id: str, addon_ids: Sequence[str]) -> List[ServiceAddon]:
        """Active add-ons of the service among ``addon_ids``, ordered by id."""
        if not addon_ids:
            return []
        try:
            return (
                self.db.query(ServiceAddon)
                .filter(
                    ServiceAddon.service_id == service_id,
                    ServiceAddon.id.in_(list(addon_ids)),
                    ServiceAddon.is_active.is_(True),
                )
                .order_by(ServiceAddon.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting add-ons for service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to get service add-ons: {str(e)}")
