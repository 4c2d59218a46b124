"""Cart lines.

A cart is just the ordered list of a customer's lines. A line is identified
by product and size; the price snapshot is what the customer saw when adding
it and is for display only.
"""

from decimal import Decimal

from protean.fields import Identifier, Integer, String
from protean.fields import Decimal as DecimalField

from ordering.domain import ordering
from shared.money import to_money


@ordering.value_object
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_snapshot = DecimalField(required=True, min_value=0)
    size = String(max_length=32)

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.product_id, self.size)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price_snapshot * self.quantity)
