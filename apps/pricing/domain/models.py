"""
Pure domain entities (POPOs).
No dependency on Django or the ORM.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum, IntEnum
from typing import FrozenSet, List, Mapping, Optional, Tuple
from uuid import UUID, uuid4


CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.000001")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class Currency(str, Enum):
    """Closed set of settlement currencies. XOF is the reference currency."""

    XOF = "XOF"
    EUR = "EUR"
    USD = "USD"

    @property
    def label(self) -> str:
        return _CURRENCY_LABELS[self][0]

    @property
    def symbol(self) -> str:
        return _CURRENCY_LABELS[self][1]

    @classmethod
    def parse(cls, code: str) -> "Currency":
        try:
            return cls(code.strip().upper())
        except ValueError:
            raise ValueError(f"Unsupported currency '{code}', expected one of XOF, EUR, USD")


_CURRENCY_LABELS = {
    Currency.XOF: ("Franc CFA", "FCFA"),
    Currency.EUR: ("Euro", "€"),
    Currency.USD: ("US Dollar", "$"),
}

REFERENCE_CURRENCY = Currency.XOF


@dataclass(frozen=True)
class Money:

    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

    @classmethod
    def zero(cls, currency: Currency) -> "Money":
        return cls(Decimal("0"), currency)

    def _check(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot combine {self.currency.value} and {other.currency.value} amounts")

    def __add__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def times(self, factor) -> "Money":
        return Money(self.amount * Decimal(factor), self.currency)

    def quantize(self) -> "Money":
        return Money(round_money(self.amount), self.currency)

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self):
        if self.currency == Currency.XOF:
            # FCFA amounts are displayed without decimals
            whole = self.amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            return f"{whole:,} FCFA".replace(",", " ")
        return f"{round_money(self.amount):,.2f} {self.currency.symbol}"


class PriceType(str, Enum):
    FIXED = "FIXED"
    DISCOUNT = "DISCOUNT"
    MARKUP = "MARKUP"


class PeriodType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    SEASONAL = "SEASONAL"
    PROMOTIONAL = "PROMOTIONAL"
    SPECIAL_EVENT = "SPECIAL_EVENT"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class Weekday(IntEnum):
    """Matches datetime.weekday() numbering."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


def parse_weekdays(raw: Optional[str]) -> FrozenSet[Weekday]:
    """Parse a comma separated list of day names ("MONDAY,FRIDAY")."""
    if not raw:
        return frozenset()
    days = set()
    for token in raw.split(","):
        token = token.strip().upper()
        if not token:
            continue
        try:
            days.add(Weekday[token])
        except KeyError:
            raise ValueError(f"Unknown day of week '{token}'")
    return frozenset(days)


def format_weekdays(days) -> str:
    return ",".join(day.name for day in sorted(days))


@dataclass(frozen=True)
class ExchangeRate:

    currency: Currency
    rate_to_xof: Decimal
    effective_date: date
    expiry_date: Optional[date] = None
    active: bool = True
    source: str = ""
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.rate_to_xof <= 0:
            raise ValueError(f"rate_to_xof must be positive, got {self.rate_to_xof}")

    def covers(self, as_of: date) -> bool:
        if not self.active or self.effective_date > as_of:
            return False
        return self.expiry_date is None or self.expiry_date >= as_of


@dataclass(frozen=True)
class ValidityWindow:
    """Temporal constraints shared by scheduled price rules."""

    active: bool = True
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    time_from: Optional[time] = None
    time_until: Optional[time] = None
    days_of_week: FrozenSet[Weekday] = frozenset()


@dataclass(frozen=True)
class ScheduledPriceRule:

    product_id: UUID
    price_type: PriceType
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    currency: Currency = Currency.XOF
    window: ValidityWindow = field(default_factory=ValidityWindow)
    priority: int = 0
    name: str = ""
    period_type: PeriodType = PeriodType.PROMOTIONAL
    id: UUID = field(default_factory=uuid4)

    @property
    def active(self) -> bool:
        return self.window.active


@dataclass(frozen=True)
class Promotion:

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    start_date: datetime
    end_date: datetime
    name: str = ""
    minimum_purchase_amount: Optional[Decimal] = None
    maximum_discount_amount: Optional[Decimal] = None
    active: bool = True
    stackable: bool = False
    apply_to_all_products: bool = False
    product_ids: FrozenSet[UUID] = frozenset()
    category_ids: FrozenSet[UUID] = frozenset()
    usage_limit: Optional[int] = None
    usage_count: int = 0
    stacking_order: int = 0
    id: UUID = field(default_factory=uuid4)

    @property
    def usage_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def applies_to(self, product_id: Optional[UUID] = None, category_id: Optional[UUID] = None) -> bool:
        if self.apply_to_all_products:
            return True
        if product_id is not None and product_id in self.product_ids:
            return True
        return category_id is not None and category_id in self.category_ids


@dataclass(frozen=True)
class BundleItem:

    product_id: UUID
    quantity: int = 1
    optional: bool = False
    substitutable: bool = False
    substitution_group: str = ""
    display_order: int = 0

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {self.quantity}")


@dataclass(frozen=True)
class ProductBundle:

    code: str
    items: Tuple[BundleItem, ...] = ()
    name: str = ""
    prices: Mapping[Currency, Decimal] = field(default_factory=dict)
    discount_percentage: Decimal = Decimal("0")
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    active: bool = True
    time_restricted: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    daily_limit: Optional[int] = None
    today_sold_count: int = 0
    id: UUID = field(default_factory=uuid4)

    def explicit_price(self, currency: Currency) -> Optional[Money]:
        amount = self.prices.get(currency)
        if amount is None:
            return None
        return Money(amount, currency)


# Typed outcomes. Pricing failures are expected business results, not exceptions.


class UnavailableReason(str, Enum):
    NOT_FOUND = "not-found"
    INACTIVE = "inactive"
    OUT_OF_DATE_RANGE = "out-of-date-range"
    OUTSIDE_TIME_WINDOW = "outside-time-window"
    DAILY_LIMIT_REACHED = "daily-limit-reached"


@dataclass(frozen=True)
class RateNotFound:

    currency: Currency
    as_of: date

    @property
    def message(self) -> str:
        return f"No active exchange rate for {self.currency.value} on {self.as_of.isoformat()}"


@dataclass(frozen=True)
class BundleUnavailable:

    bundle_id: UUID
    reason: UnavailableReason


@dataclass(frozen=True)
class InvalidRuleConfiguration:

    rule_id: Optional[UUID]
    price_type: str
    message: str


@dataclass(frozen=True)
class ScheduledResolution:
    """Outcome of applying the winning scheduled rule to a base price."""

    price: Money
    base_price: Money
    rule: Optional[ScheduledPriceRule] = None
    warnings: Tuple[InvalidRuleConfiguration, ...] = ()


@dataclass(frozen=True)
class ProductPriceQuote:

    product_id: UUID
    price: Money
    native_price: Money
    rule: Optional[ScheduledPriceRule] = None
    warnings: Tuple[InvalidRuleConfiguration, ...] = ()


@dataclass(frozen=True)
class AppliedPromotion:

    promotion_id: UUID
    code: str
    discount: Money


@dataclass(frozen=True)
class PromotionalPrice:

    original: Money
    amount: Money
    applied: List[AppliedPromotion] = field(default_factory=list)

    @property
    def total_discount(self) -> Money:
        return self.original - self.amount
