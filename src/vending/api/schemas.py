"""Pydantic request/response schemas for the vending API.

These are external contracts, kept separate from the internal Protean
commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    buyer_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "buyer_id": "buyer-001",
                    "product_id": "prod-001",
                }
            ]
        }
    }


class PlaceOrderResponse(BaseModel):
    order_id: str
    payment_url: str


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    product_id: str
    amount: float
    status: str
    card_id: str | None = None
    payment_url: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    expired_at: datetime | None = None


class DeliveryResponse(BaseModel):
    status: str
    message_id: str | None = None
    error: str | None = None


class OutcomeResponse(BaseModel):
    outcome: str


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class StockResponse(BaseModel):
    product_id: str
    total: int
    used: int
    available: int


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
class ExpireStaleRequest(BaseModel):
    older_than_minutes: int | None = Field(default=None, ge=1)


class ExpireStaleResponse(BaseModel):
    expired: int


class ReconciliationResponse(BaseModel):
    expired_cards_released: int
    expired_orders_unbound: int
    orphans_reset: int
    duplicates_released: int
    orders_repointed: int
    paid_orders_completed: int
