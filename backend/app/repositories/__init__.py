# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the booking core.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Conditional status writes, history and add-on snapshots
- ServiceCatalogRepository: Services, pricing tiers and add-ons for pricing

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_booking_repository(db)
    applied = repository.transition_status(booking_id, expected_status=..., new_status=...)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .service_catalog_repository import ServiceCatalogRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "RepositoryFactory",
    "ServiceCatalogRepository",
]
