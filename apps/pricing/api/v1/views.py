"""
ViewSets for the pricing API v1.
Catalog data is read-only here; it is maintained through the admin.
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.pricing.api.v1.serializers import (
    BundlePriceSerializer,
    ConversionSerializer,
    ConvertQuerySerializer,
    ExchangeRateSerializer,
    PriceQuerySerializer,
    ProductBundleSerializer,
    ProductPriceSerializer,
    ProductSerializer,
    PromotionalPriceSerializer,
    PromotionQuerySerializer,
    PromotionSerializer,
    ScheduledPriceSerializer,
)
from apps.pricing.application.dto import (
    BundlePriceDTO,
    MoneyDTO,
    ProductPriceDTO,
    PromotionalPriceDTO,
)
from apps.pricing.application.pricing import get_pricing_service
from apps.pricing.domain.models import BundleUnavailable, Currency, Money, RateNotFound
from apps.pricing.infrastructure.persistence.models import (
    ExchangeRate,
    Product,
    ProductBundle,
    Promotion,
    ScheduledPrice,
)
from apps.pricing.infrastructure.persistence.repositories import PromotionRepository, ScheduledPriceRepository

PRICE_PARAMETERS = [
    OpenApiParameter("currency", OpenApiTypes.STR, description="XOF, EUR or USD (default XOF)"),
    OpenApiParameter("at", OpenApiTypes.DATETIME, description="Pricing instant, ISO 8601 (default now)"),
]


def parse_query(serializer_class, request):
    """Validate query params. Returns (data, None) or (None, 400 response)."""
    serializer = serializer_class(data=request.query_params)
    if not serializer.is_valid():
        return None, Response({"error": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    data["currency"] = Currency(data["currency"])
    at = data.get("at")
    # wall-clock rules are evaluated in the shop's time zone
    data["at"] = timezone.localtime(at) if at is not None else timezone.localtime()
    return data, None


def rate_not_found_response(result: RateNotFound) -> Response:
    return Response({"error": result.message}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)


def bundle_unavailable_response(result: BundleUnavailable) -> Response:
    return Response(
        {"error": f"Bundle is not available: {result.reason.value}", "reason": result.reason.value},
        status=status.HTTP_409_CONFLICT,
    )


@extend_schema(tags=['Products'])
class ProductViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = Product.objects.select_related("category").all()
    serializer_class = ProductSerializer

    @extend_schema(
        parameters=PRICE_PARAMETERS,
        responses=ProductPriceSerializer,
        description="Effective price of a product after scheduled rules, in the requested currency",
    )
    @action(detail=True, methods=['get'])
    def price(self, request, pk=None):
        product = self.get_object()
        query, error = parse_query(PriceQuerySerializer, request)
        if error:
            return error

        quote = get_pricing_service().quote_product_price(product.id, query["currency"], query["at"])
        if isinstance(quote, RateNotFound):
            return rate_not_found_response(quote)

        dto = ProductPriceDTO.from_quote(quote, priced_at=query["at"])
        return Response(ProductPriceSerializer(dto).data)

    @extend_schema(
        responses=ScheduledPriceSerializer(many=True),
        description="All scheduled price rules of a product, highest priority first",
    )
    @action(detail=True, methods=['get'], url_path='scheduled-prices')
    def scheduled_prices(self, request, pk=None):
        product = self.get_object()
        rules = ScheduledPriceRepository.get_for_product(product.id)
        return Response(ScheduledPriceSerializer(rules, many=True).data)


@extend_schema(tags=['Rates'])
class ExchangeRateViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = ExchangeRate.objects.order_by("currency", "-effective_date")
    serializer_class = ExchangeRateSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter("amount", OpenApiTypes.DECIMAL, required=True, description="Amount to convert"),
            OpenApiParameter("source_currency", OpenApiTypes.STR, required=True, description="Currency of the amount"),
            OpenApiParameter("currency", OpenApiTypes.STR, description="Target currency (default XOF)"),
            OpenApiParameter("at", OpenApiTypes.DATETIME, description="Valuation instant, ISO 8601 (default now)"),
        ],
        responses=ConversionSerializer,
        description="Convert an amount between XOF, EUR and USD through XOF",
    )
    @action(detail=False, methods=['get'])
    def convert(self, request):
        query, error = parse_query(ConvertQuerySerializer, request)
        if error:
            return error

        source = Money(query["amount"], Currency(query["source_currency"]))
        valuation_date = query["at"].date()
        converted = get_pricing_service().rates.convert(source, query["currency"], valuation_date)
        if isinstance(converted, RateNotFound):
            return rate_not_found_response(converted)

        return Response(ConversionSerializer({
            "source": MoneyDTO.from_money(source),
            "converted": MoneyDTO.from_money(converted),
            "valuation_date": valuation_date,
        }).data)


@extend_schema(tags=['Scheduled prices'])
class ScheduledPriceViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = ScheduledPrice.objects.select_related("product").order_by("-priority", "name")
    serializer_class = ScheduledPriceSerializer


@extend_schema(tags=['Promotions'])
class PromotionViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = Promotion.objects.prefetch_related("applicable_products", "applicable_categories").all()
    serializer_class = PromotionSerializer

    @extend_schema(
        parameters=PRICE_PARAMETERS + [
            OpenApiParameter("amount", OpenApiTypes.DECIMAL, required=True, description="Amount before promotions"),
            OpenApiParameter("product_id", OpenApiTypes.UUID, description="Restrict to promotions for this product"),
            OpenApiParameter("category_id", OpenApiTypes.UUID, description="Restrict to promotions for this category"),
        ],
        responses=PromotionalPriceSerializer,
        description="Apply the running promotions to an amount",
    )
    @action(detail=False, methods=['get'])
    def apply(self, request):
        query, error = parse_query(PromotionQuerySerializer, request)
        if error:
            return error

        result = get_pricing_service().resolve_promotional_price(
            Money(query["amount"], query["currency"]),
            query["at"],
            product_id=query.get("product_id"),
            category_id=query.get("category_id"),
        )
        dto = PromotionalPriceDTO.from_result(result, priced_at=query["at"])
        return Response(PromotionalPriceSerializer(dto).data)

    @extend_schema(
        parameters=[PRICE_PARAMETERS[1]],
        responses=PromotionSerializer(many=True),
        description="Promotions running at the given instant, in stacking order",
    )
    @action(detail=False, methods=['get'])
    def running(self, request):
        query, error = parse_query(PriceQuerySerializer, request)
        if error:
            return error

        promotions = PromotionRepository.get_running(query["at"])
        serializer = self.get_serializer(promotions, many=True)
        return Response(serializer.data)


@extend_schema(tags=['Bundles'])
class ProductBundleViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = ProductBundle.objects.prefetch_related("items__product").all()
    serializer_class = ProductBundleSerializer

    @extend_schema(
        parameters=PRICE_PARAMETERS,
        responses=BundlePriceSerializer,
        description="Bundle price with savings against buying the items separately",
    )
    @action(detail=True, methods=['get'])
    def price(self, request, pk=None):
        bundle = self.get_object()
        query, error = parse_query(PriceQuerySerializer, request)
        if error:
            return error

        composer = get_pricing_service().bundles
        price = composer.resolve(bundle.id, query["currency"], query["at"])
        if isinstance(price, BundleUnavailable):
            return bundle_unavailable_response(price)
        if isinstance(price, RateNotFound):
            return rate_not_found_response(price)

        # availability already checked, so only a missing rate can fail here
        separate = composer.calculate_separate_price(bundle.id, query["currency"], query["at"])
        if isinstance(separate, RateNotFound):
            return rate_not_found_response(separate)

        dto = BundlePriceDTO(
            bundle_id=str(bundle.id),
            price=MoneyDTO.from_money(price),
            separate_price=MoneyDTO.from_money(separate),
            savings=MoneyDTO.from_money(separate - price),
            priced_at=query["at"],
        )
        return Response(BundlePriceSerializer(dto).data)

    @extend_schema(
        parameters=[PRICE_PARAMETERS[1]],
        responses=ProductBundleSerializer(many=True),
        description="Bundles on sale at the given instant",
    )
    @action(detail=False, methods=['get'])
    def available(self, request):
        query, error = parse_query(PriceQuerySerializer, request)
        if error:
            return error

        available_ids = [bundle.id for bundle in get_pricing_service().bundles.available_bundles(query["at"])]
        bundles = self.get_queryset().filter(pk__in=available_ids).order_by("bundle_code")
        serializer = self.get_serializer(bundles, many=True)
        return Response(serializer.data)
