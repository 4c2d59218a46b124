"""Storefront checkout FastAPI application.

Carts, checkout, orders and the payment webhook behind one HTTP server.
Adapters are chosen from settings at import time:
    - DATABASE_URL set      → SQLAlchemy stores, otherwise in-memory stores
    - STRIPE_SECRET_KEY set → StripeGateway, otherwise FakeGateway

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from discounts.domain import discounts
from discounts.registry import set_discount_registry
from discounts.registry.sql_adapter import SqlDiscountRegistry
from identity.store import set_customer_store
from identity.store.sql_adapter import SqlCustomerStore
from inventory.catalog import set_catalog_store
from inventory.catalog.sql_adapter import SqlCatalogStore
from inventory.domain import inventory
from ordering.api.routes import cart_router, checkout_router, order_router
from ordering.cart.store import set_cart_store
from ordering.cart.store.sql_adapter import SqlCartStore
from ordering.domain import ordering
from ordering.order.store import set_order_store
from ordering.order.store.sql_adapter import SqlOrderStore
from payments.api.routes import payment_router
from payments.gateway import set_gateway
from payments.gateway.stripe_adapter import StripeGateway
from shared.api import register_exception_handlers
from shared.config import Settings, get_settings
from shared.db import make_engine, setup_db
from shared.logging import add_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Adapter wiring
# ---------------------------------------------------------------------------
def configure_adapters(settings: Settings) -> None:
    if settings.database_url:
        engine = make_engine(settings.database_url)
        setup_db(engine)
        set_customer_store(SqlCustomerStore(engine))
        set_catalog_store(SqlCatalogStore(engine))
        set_discount_registry(SqlDiscountRegistry(engine))
        set_cart_store(SqlCartStore(engine))
        set_order_store(SqlOrderStore(engine))

    if settings.stripe_secret_key:
        set_gateway(
            StripeGateway(
                api_key=settings.stripe_secret_key,
                webhook_secret=settings.stripe_webhook_secret,
                tolerance=settings.webhook_tolerance_seconds,
            )
        )

    logger.info(
        "Adapters configured",
        env=settings.env,
        storage="sql" if settings.database_url else "memory",
        gateway="stripe" if settings.stripe_secret_key else "fake",
    )


configure_logging()

# Domain elements are imported above, so there is nothing left to traverse.
for domain in (inventory, discounts, ordering):
    domain.init(traverse=False)

configure_adapters(get_settings())


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Carts, checkout, orders and payment reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_context_middleware(request: Request, call_next):
    """Tag every log line emitted while serving a request and run it in the ordering domain context."""
    clear_context()
    add_context(request_id=request.headers.get("x-request-id") or uuid4().hex[:12], path=request.url.path)
    try:
        with ordering.domain_context():
            return await call_next(request)
    finally:
        clear_context()


register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(payment_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "env": settings.env,
            "currency": settings.currency,
        }
    )
