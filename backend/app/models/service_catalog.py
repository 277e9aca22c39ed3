# backend/app/models/service_catalog.py
"""
Service catalog models used for server-side pricing.

This module defines three models:
1. ProfessionalService - A service a professional offers, with its base price
2. ServicePricingTier - Optional tier (size, urgency) priced on top of the base
3. ServiceAddon - Optional extras that can be added to a booking

All prices are integer minor units of the service currency.
"""

import logging

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
import ulid

from ..core.config import settings
from ..database import Base

logger = logging.getLogger(__name__)


class ProfessionalService(Base):
    """
    A service offered by a professional.

    Attributes:
        id: Primary key
        professional_id: Owner of the service
        name: Display name (e.g., "Deep cleaning")
        base_price: Price before tiers and add-ons
        currency: Lower-case ISO code
        is_active: Inactive services cannot be booked
    """

    __tablename__ = "professional_services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    professional_id = Column(String(64), nullable=False, index=True)
    contact_email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default=lambda: settings.platform_currency)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    pricing_tiers = relationship(
        "ServicePricingTier", back_populates="service", cascade="all, delete-orphan"
    )
    addons = relationship("ServiceAddon", back_populates="service", cascade="all, delete-orphan")

    __table_args__ = (CheckConstraint("base_price >= 0", name="check_base_price_non_negative"),)

    def __repr__(self) -> str:
        return f"<ProfessionalService {self.name} ({self.base_price} {self.currency})>"


class ServicePricingTier(Base):
    """Pricing tier belonging to one service."""

    __tablename__ = "service_pricing_tiers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    service_id = Column(
        String(26),
        ForeignKey("professional_services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False, default=0)

    service = relationship("ProfessionalService", back_populates="pricing_tiers")

    __table_args__ = (CheckConstraint("price >= 0", name="check_tier_price_non_negative"),)


class ServiceAddon(Base):
    """Optional extra that can be attached to a booking of one service."""

    __tablename__ = "service_addons"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    service_id = Column(
        String(26),
        ForeignKey("professional_services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    service = relationship("ProfessionalService", back_populates="addons")

    __table_args__ = (CheckConstraint("price >= 0", name="check_addon_price_non_negative"),)
