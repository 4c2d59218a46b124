"""Discount validation.

Checks run in a fixed order and the first failing check decides the
rejection: lookup, activation, validity window, usage cap, minimum purchase,
applicability. Validation is read-only; usage is only counted once payment
has been confirmed.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal

import structlog

from discounts.discount import Discount, DiscountKind, ResolvedDiscount
from discounts.registry import get_discount_registry
from discounts.registry.port import DiscountRegistry
from shared.errors import (
    DiscountExhausted,
    DiscountExpired,
    DiscountInactive,
    DiscountMinimumNotMet,
    DiscountNotApplicable,
    DiscountNotFound,
)
from shared.money import ZERO, to_money

logger = structlog.get_logger(__name__)


def resolve_amount(discount: Discount, subtotal: Decimal) -> Decimal:
    """Discount amount for a subtotal; never more than the subtotal itself."""
    if DiscountKind(discount.kind) == DiscountKind.PERCENTAGE:
        amount = to_money(subtotal * discount.value / Decimal(100))
    else:
        amount = to_money(discount.value)
    return max(ZERO, min(amount, subtotal))


def _matches(discount: Discount, lines: Iterable) -> bool:
    products = set(discount.applicable_product_ids)
    categories = set(discount.applicable_category_ids)
    for line in lines:
        if line.product_id in products:
            return True
        if line.category_id is not None and line.category_id in categories:
            return True
    return False


class DiscountValidator:
    """Resolve a discount code against a subtotal and the lines it was built from.

    ``lines`` only needs ``product_id`` and ``category_id`` attributes.
    """

    def __init__(self, registry: DiscountRegistry | None = None) -> None:
        self._registry = registry

    @property
    def registry(self) -> DiscountRegistry:
        return self._registry or get_discount_registry()

    def validate(
        self,
        code: str,
        subtotal: Decimal,
        lines: Iterable,
        now: datetime | None = None,
    ) -> ResolvedDiscount:
        now = now or datetime.now(UTC)
        discount = self.registry.find_by_code(code)

        if discount is None:
            raise DiscountNotFound(discount_code=code)
        if not discount.is_active:
            raise DiscountInactive(discount_code=discount.code)
        if (discount.valid_from is not None and now < discount.valid_from) or (
            discount.valid_until is not None and now > discount.valid_until
        ):
            raise DiscountExpired(discount_code=discount.code)
        if discount.is_exhausted:
            raise DiscountExhausted(discount_code=discount.code)
        if subtotal < discount.min_purchase:
            raise DiscountMinimumNotMet(
                discount_code=discount.code,
                min_purchase=str(discount.min_purchase),
            )
        if discount.is_restricted and not _matches(discount, list(lines)):
            raise DiscountNotApplicable(discount_code=discount.code)

        resolved = ResolvedDiscount(
            discount_id=discount.id,
            code=discount.code,
            kind=DiscountKind(discount.kind),
            value=discount.value,
            amount=resolve_amount(discount, subtotal),
        )
        logger.debug("Discount resolved", discount_code=discount.code, amount=str(resolved.amount))
        return resolved
