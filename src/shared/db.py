"""SQL schema shared by the SQLAlchemy store adapters.

Money columns hold integer minor units. Line items, addresses, the applied
discount and the stock reservation record of an order are JSON documents:
they are written once at creation and never queried by content.

Adapters open connections through ``transaction`` and ``connection``. While a
transaction is open on an engine, every adapter bound to that engine joins it
instead of opening its own, so a status change and its side effects in other
stores commit or roll back together.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Connection,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
)

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False, default=""),
    Column("email", String(255), nullable=False, default=""),
)

cart_lines = Table(
    "cart_lines",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", String(64), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("product_id", String(64), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price_cents", Integer, nullable=False),
    Column("size", String(32)),
    Column("position", Integer, nullable=False, default=0),
)

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("price_cents", Integer, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("category_id", String(64)),
)

discounts = Table(
    "discounts",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("code", String(64), nullable=False),
    Column("kind", String(16), nullable=False),
    Column("value", String(32), nullable=False),
    Column("min_purchase_cents", Integer, nullable=False, default=0),
    Column("usage_limit", Integer, nullable=False, default=0),
    Column("used_count", Integer, nullable=False, default=0),
    Column("valid_from", DateTime(timezone=True)),
    Column("valid_until", DateTime(timezone=True)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("applicable_product_ids", JSON, nullable=False, default=list),
    Column("applicable_category_ids", JSON, nullable=False, default=list),
)

# Codes are matched case-insensitively, so they must be unique that way too
Index("uq_discounts_code_lower", func.lower(discounts.c.code), unique=True)

orders = Table(
    "orders",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("order_number", String(32), nullable=False),
    Column("customer_id", String(64), nullable=False, index=True),
    Column("status", String(32), nullable=False, index=True),
    Column("line_items", JSON, nullable=False),
    Column("shipping_address", JSON, nullable=False),
    Column("subtotal_cents", Integer, nullable=False),
    Column("discount_applied", JSON),
    Column("shipping_cost_cents", Integer, nullable=False),
    Column("tax_amount_cents", Integer, nullable=False),
    Column("total_cents", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("stock_reservations", JSON, nullable=False),
    Column("payment_session_id", String(255)),
    Column("payment_reference", String(255)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("resolved_at", DateTime(timezone=True)),
)


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across request threads."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def setup_db(engine: Engine) -> None:
    """Create all storefront tables."""
    metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    """Drop all storefront tables."""
    metadata.drop_all(engine)


_bound: ContextVar[Connection | None] = ContextVar("storefront_connection", default=None)


def _joinable(engine: Engine) -> Connection | None:
    conn = _bound.get()
    if conn is not None and conn.engine is engine:
        return conn
    return None


@contextmanager
def transaction(engine: Engine) -> Iterator[Connection]:
    """Begin a transaction on ``engine``, or join the one already open."""
    joined = _joinable(engine)
    if joined is not None:
        yield joined
        return
    with engine.begin() as conn:
        token = _bound.set(conn)
        try:
            yield conn
        finally:
            _bound.reset(token)


@contextmanager
def connection(engine: Engine) -> Iterator[Connection]:
    """A connection for reads; inside an open transaction, that transaction's."""
    joined = _joinable(engine)
    if joined is not None:
        yield joined
        return
    with engine.connect() as conn:
        yield conn
