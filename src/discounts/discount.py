"""Discount aggregate.

``usage_limit == 0`` means unlimited. ``used_count`` only moves through the
registry's conditional increment, once per paid order.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, List, String
from protean.fields import Decimal as DecimalField

from discounts.domain import discounts


class DiscountKind(Enum):
    PERCENTAGE = "Percentage"
    FIXED = "Fixed"


@discounts.aggregate
class Discount:
    code = String(required=True, max_length=64)
    kind = String(required=True, choices=DiscountKind)
    value = DecimalField(required=True, min_value=0)
    min_purchase = DecimalField(default=Decimal("0.00"), min_value=0)
    usage_limit = Integer(default=0, min_value=0)
    used_count = Integer(default=0, min_value=0)
    valid_from = DateTime()
    valid_until = DateTime()
    is_active = Boolean(default=True)
    applicable_product_ids = List(content_type=String(max_length=64))
    applicable_category_ids = List(content_type=String(max_length=64))

    @invariant.post
    def validity_window_is_ordered(self):
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValidationError({"valid_until": ["Validity window ends before it starts"]})

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit > 0 and self.used_count >= self.usage_limit

    @property
    def is_restricted(self) -> bool:
        return bool(self.applicable_product_ids or self.applicable_category_ids)


@dataclass(frozen=True)
class ResolvedDiscount:
    """A validated discount with its amount resolved against one subtotal."""

    discount_id: str
    code: str
    kind: DiscountKind
    value: Decimal
    amount: Decimal
