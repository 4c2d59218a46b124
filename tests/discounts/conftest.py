from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from discounts.discount import Discount, DiscountKind


def _make_discount(**overrides) -> Discount:
    defaults = {
        "id": "disc-save10",
        "code": "SAVE10",
        "kind": DiscountKind.PERCENTAGE.value,
        "value": Decimal("10"),
        "min_purchase": Decimal("20.00"),
        "usage_limit": 0,
        "used_count": 0,
        "valid_from": datetime.now(UTC) - timedelta(days=1),
        "valid_until": datetime.now(UTC) + timedelta(days=30),
        "is_active": True,
    }
    defaults.update(overrides)
    return Discount(**defaults)


@pytest.fixture()
def make_discount():
    return _make_discount


@pytest.fixture()
def save10(discounts):
    return discounts.add_discount(_make_discount())
