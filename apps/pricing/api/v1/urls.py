from django.urls import path, include
from rest_framework.routers import DefaultRouter

from apps.pricing.api.v1.views import (
    ExchangeRateViewSet,
    ProductBundleViewSet,
    ProductViewSet,
    PromotionViewSet,
    ScheduledPriceViewSet,
)

router = DefaultRouter()
router.register(r'products', ProductViewSet, basename='product')
router.register(r'exchange-rates', ExchangeRateViewSet, basename='exchange-rate')
router.register(r'scheduled-prices', ScheduledPriceViewSet, basename='scheduled-price')
router.register(r'promotions', PromotionViewSet, basename='promotion')
router.register(r'bundles', ProductBundleViewSet, basename='bundle')

urlpatterns = [
    path('', include(router.urls)),
]
