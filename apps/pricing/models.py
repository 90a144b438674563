# Django discovers models here; the definitions live in the persistence layer.
from apps.pricing.infrastructure.persistence.models import (  # noqa: F401
    BundleItem,
    Category,
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)
