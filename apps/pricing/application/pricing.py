"""
Wires the domain price resolution service to the database and the system clock.
"""

from apps.pricing.domain.services import PriceResolutionService
from apps.pricing.infrastructure.clock import SystemClock
from apps.pricing.infrastructure.persistence.repositories import DjangoPricingCatalog


def get_pricing_service() -> PriceResolutionService:
    return PriceResolutionService(DjangoPricingCatalog(), SystemClock())
