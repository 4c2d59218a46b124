"""Pricing engine.

Pure functions: no store access, no clock. The same inputs always produce
the same ``PriceBreakdown``, so quoting a cart and placing the order share
this one code path.

    subtotal = sum(unit_price * quantity)
    tax      = round(tax_rate * taxable)      taxable = subtotal - discount (post-discount base)
    total    = subtotal - discount + shipping + tax

Every stored amount is rounded to cents, half-up.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from shared.config import Settings, TaxBase
from shared.money import ZERO, to_money


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    category_id: str | None = None
    size: str | None = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    total: Decimal

    def as_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "shipping_cost": str(self.shipping_cost),
            "tax_amount": str(self.tax_amount),
            "total": str(self.total),
        }


# (destination_country, unit_count, subtotal) -> shipping cost
ShippingRule = Callable[[str, int, Decimal], Decimal]


# ---------------------------------------------------------------------------
# Shipping rules
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StandardShippingRule:
    """Base rate by destination zone plus a per-unit surcharge.

    Destinations are domestic, regional or international. When
    ``free_threshold`` is set, a subtotal at or above it ships free.
    """

    domestic_country: str = "US"
    domestic_rate: Decimal = Decimal("4.99")
    regional_countries: tuple[str, ...] = ("CA", "MX")
    regional_rate: Decimal = Decimal("9.99")
    international_rate: Decimal = Decimal("14.99")
    per_unit: Decimal = Decimal("0.00")
    free_threshold: Decimal | None = None

    def base_rate(self, destination_country: str) -> Decimal:
        country = (destination_country or "").strip().upper()
        if country == self.domestic_country:
            return self.domestic_rate
        if country in self.regional_countries:
            return self.regional_rate
        return self.international_rate

    def __call__(self, destination_country: str, unit_count: int, subtotal: Decimal) -> Decimal:
        if self.free_threshold is not None and subtotal >= self.free_threshold:
            return ZERO
        return to_money(self.base_rate(destination_country) + self.per_unit * unit_count)


@dataclass(frozen=True)
class FlatShippingRule:
    rate: Decimal

    def __call__(self, destination_country: str, unit_count: int, subtotal: Decimal) -> Decimal:  # noqa: ARG002
        return to_money(self.rate)


def shipping_rule_from_settings(settings: Settings) -> StandardShippingRule:
    return StandardShippingRule(
        domestic_country=settings.shipping_domestic_country,
        domestic_rate=settings.shipping_domestic_rate,
        regional_countries=settings.shipping_regional_countries,
        regional_rate=settings.shipping_regional_rate,
        international_rate=settings.shipping_international_rate,
        per_unit=settings.shipping_per_unit,
        free_threshold=settings.free_shipping_threshold,
    )


# ---------------------------------------------------------------------------
# Breakdown
# ---------------------------------------------------------------------------
def compute_subtotal(lines: Sequence[PricedLine]) -> Decimal:
    return to_money(sum((line.line_total for line in lines), ZERO))


def compute_breakdown(
    lines: Sequence[PricedLine],
    destination_country: str,
    shipping_rule: ShippingRule,
    tax_rate: Decimal,
    discount_amount: Decimal = ZERO,
    tax_base: TaxBase = TaxBase.POST_DISCOUNT,
) -> PriceBreakdown:
    """Price a set of lines.

    ``discount_amount`` arrives already resolved against the subtotal; it is
    capped here as well so a total can never go negative.
    """
    subtotal = compute_subtotal(lines)
    discount = min(to_money(discount_amount), subtotal)

    taxable = subtotal - discount if tax_base == TaxBase.POST_DISCOUNT else subtotal
    tax = to_money(Decimal(tax_rate) * taxable)

    units = sum(line.quantity for line in lines)
    shipping = to_money(shipping_rule(destination_country, units, subtotal))

    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount,
        shipping_cost=shipping,
        tax_amount=tax,
        total=to_money(subtotal - discount + shipping + tax),
    )
