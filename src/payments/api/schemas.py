"""Pydantic request/response schemas for the Payments API."""

from pydantic import BaseModel


class WebhookAckResponse(BaseModel):
    received: bool = True
    outcome: str


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment provider unavailable"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "should_succeed": False,
                    "failure_reason": "Payment provider unavailable",
                }
            ]
        }
    }


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
