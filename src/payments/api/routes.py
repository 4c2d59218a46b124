"""FastAPI routes for the Payments context."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from payments.api.schemas import ConfigureGatewayRequest, GatewayConfigResponse, WebhookAckResponse
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.payment.webhook import handle_webhook
from shared.config import get_settings

payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=WebhookAckResponse)
async def payment_webhook(request: Request) -> WebhookAckResponse:
    """Receive a signed gateway event.

    The signature covers the exact bytes sent, so the body is read raw and
    never parsed by FastAPI. A bad signature yields 400 via the
    ``CheckoutError`` handler; every authenticated event is acknowledged.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    outcome = await run_in_threadpool(handle_webhook, payload, signature)
    return WebhookAckResponse(outcome=outcome.value)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    It allows toggling session creation success/failure for manual API testing.
    """
    if get_settings().is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
