"""Storefront settings.

Values are read once from the environment (and an optional ``.env`` file at the
project root) into an immutable ``Settings`` object. ``get_settings()`` caches
the result; tests that tweak environment variables call ``reset_settings()``.
"""

import os
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class TaxBase(Enum):
    POST_DISCOUNT = "post_discount"
    PRE_DISCOUNT = "pre_discount"


def _clean_env(value: str | None) -> str:
    return (value or "").strip().strip("'").strip('"')


def _env(name: str, default: str = "") -> str:
    return _clean_env(os.getenv(name)) or default


def _env_list(name: str, default: str) -> tuple[str, ...]:
    return tuple(item.strip().upper() for item in _env(name, default).split(",") if item.strip())


def _env_decimal(name: str, default: str) -> Decimal:
    return Decimal(_env(name, default))


@dataclass(frozen=True)
class Settings:
    env: str
    database_url: str
    currency: str
    tax_rate: Decimal
    tax_base: TaxBase
    shipping_domestic_country: str
    shipping_domestic_rate: Decimal
    shipping_regional_countries: tuple[str, ...]
    shipping_regional_rate: Decimal
    shipping_international_rate: Decimal
    shipping_per_unit: Decimal
    free_shipping_threshold: Decimal | None
    checkout_success_url: str
    checkout_cancel_url: str
    stripe_secret_key: str
    stripe_webhook_secret: str
    webhook_tolerance_seconds: int

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def load_settings() -> Settings:
    """Build a ``Settings`` object from the current environment."""
    load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)

    threshold = _env("FREE_SHIPPING_THRESHOLD")
    return Settings(
        env=_env("STOREFRONT_ENV", "development").lower(),
        database_url=_env("DATABASE_URL"),
        currency=_env("CURRENCY", "usd").lower(),
        tax_rate=_env_decimal("TAX_RATE", "0.085"),
        tax_base=TaxBase(_env("TAX_BASE", TaxBase.POST_DISCOUNT.value).lower()),
        shipping_domestic_country=_env("SHIPPING_DOMESTIC_COUNTRY", "US").upper(),
        shipping_domestic_rate=_env_decimal("SHIPPING_DOMESTIC_RATE", "4.99"),
        shipping_regional_countries=_env_list("SHIPPING_REGIONAL_COUNTRIES", "CA,MX"),
        shipping_regional_rate=_env_decimal("SHIPPING_REGIONAL_RATE", "9.99"),
        shipping_international_rate=_env_decimal("SHIPPING_INTERNATIONAL_RATE", "14.99"),
        shipping_per_unit=_env_decimal("SHIPPING_PER_UNIT", "0.00"),
        free_shipping_threshold=Decimal(threshold) if threshold else None,
        checkout_success_url=_env("CHECKOUT_SUCCESS_URL", "http://localhost:3000/checkout/success"),
        checkout_cancel_url=_env("CHECKOUT_CANCEL_URL", "http://localhost:3000/checkout/cancel"),
        stripe_secret_key=_env("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
        webhook_tolerance_seconds=int(_env("WEBHOOK_TOLERANCE_SECONDS", "300")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings()`` re-reads the environment."""
    get_settings.cache_clear()
