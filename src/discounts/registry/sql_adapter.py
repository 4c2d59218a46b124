"""SQLAlchemy discount registry.

The usage increment is one guarded ``UPDATE``; the database decides which of
two concurrent increments consumes the last use.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Engine, func, insert, or_, select, update

from discounts.discount import Discount
from discounts.registry.port import DiscountRegistry
from shared.db import connection, discounts, transaction
from shared.money import from_cents, to_cents


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_discount(row) -> Discount:
    return Discount(
        id=row.id,
        code=row.code,
        kind=row.kind,
        value=Decimal(row.value),
        min_purchase=from_cents(row.min_purchase_cents),
        usage_limit=row.usage_limit,
        used_count=row.used_count,
        valid_from=_aware(row.valid_from),
        valid_until=_aware(row.valid_until),
        is_active=row.is_active,
        applicable_product_ids=list(row.applicable_product_ids or ()),
        applicable_category_ids=list(row.applicable_category_ids or ()),
    )


class SqlDiscountRegistry(DiscountRegistry):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def add_discount(self, discount: Discount) -> Discount:
        with transaction(self.engine) as conn:
            conn.execute(
                insert(discounts).values(
                    id=discount.id,
                    code=discount.code,
                    kind=discount.kind,
                    value=str(discount.value),
                    min_purchase_cents=to_cents(discount.min_purchase),
                    usage_limit=discount.usage_limit,
                    used_count=discount.used_count,
                    valid_from=discount.valid_from,
                    valid_until=discount.valid_until,
                    is_active=discount.is_active,
                    applicable_product_ids=list(discount.applicable_product_ids),
                    applicable_category_ids=list(discount.applicable_category_ids),
                )
            )
        return discount

    def find_by_code(self, code: str) -> Discount | None:
        statement = select(discounts).where(func.lower(discounts.c.code) == code.strip().lower())
        with connection(self.engine) as conn:
            row = conn.execute(statement).first()
        return _to_discount(row) if row is not None else None

    def find_by_id(self, discount_id: str) -> Discount | None:
        with connection(self.engine) as conn:
            row = conn.execute(select(discounts).where(discounts.c.id == discount_id)).first()
        return _to_discount(row) if row is not None else None

    def conditional_increment_usage(self, discount_id: str) -> bool:
        statement = (
            update(discounts)
            .where(
                discounts.c.id == discount_id,
                or_(discounts.c.usage_limit == 0, discounts.c.used_count < discounts.c.usage_limit),
            )
            .values(used_count=discounts.c.used_count + 1)
        )
        with transaction(self.engine) as conn:
            result = conn.execute(statement)
        return result.rowcount == 1
