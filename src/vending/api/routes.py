"""FastAPI routes for the vending domain — purchase, payments, stock and maintenance."""

import json
from contextlib import contextmanager

import structlog
from fastapi import APIRouter, HTTPException, Request
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from vending.api.schemas import (
    DeliveryResponse,
    ExpireStaleRequest,
    ExpireStaleResponse,
    OrderResponse,
    OutcomeResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ReconciliationResponse,
    StockResponse,
)
from vending.card.allocation import stock_levels
from vending.errors import NotFound, OutOfStock, SuspendedAccount
from vending.maintenance.reclamation import expire_stale_pending_orders
from vending.maintenance.reconciliation import reconcile_inventory
from vending.order.fulfilment import CompletePaidOrder, ResendCard
from vending.order.order import Order
from vending.order.purchase import purchase
from vending.payment.gateway import get_gateway
from vending.payment.gateway.port import GatewayError
from vending.payment.notification import ProcessPaymentNotification

logger = structlog.get_logger(__name__)

PURCHASE_FAILED = "Purchase failed, try again"
OUT_OF_STOCK = "Out of stock"
ACCOUNT_RESTRICTED = "Account temporarily restricted"


@contextmanager
def _purchase_refusals():
    """Translate purchase refusals into user-facing HTTP errors."""
    try:
        yield
    except SuspendedAccount as exc:
        raise HTTPException(status_code=403, detail=ACCOUNT_RESTRICTED) from exc
    except OutOfStock as exc:
        raise HTTPException(status_code=409, detail=OUT_OF_STOCK) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Product not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=PURCHASE_FAILED) from exc
    except GatewayError as exc:
        logger.error("Checkout session unavailable", error=str(exc))
        raise HTTPException(status_code=502, detail=PURCHASE_FAILED) from exc


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        buyer_id=str(order.buyer_id),
        product_id=str(order.product_id),
        amount=order.amount,
        status=order.status,
        card_id=str(order.card_id) if order.card_id else None,
        payment_url=order.payment_url,
        created_at=order.created_at,
        paid_at=order.paid_at,
        expired_at=order.expired_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=PlaceOrderResponse)
async def place_order(body: PlaceOrderRequest) -> PlaceOrderResponse:
    """Open a checkout session for one card of a product."""
    with _purchase_refusals():
        result = purchase(buyer_id=body.buyer_id, product_id=body.product_id)
    return PlaceOrderResponse(**result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).find(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _order_response(order)


@order_router.post("/{order_id}/resend", response_model=DeliveryResponse)
async def resend_card(order_id: str) -> DeliveryResponse:
    """Send a delivered order's card to the buyer again."""
    try:
        result = current_domain.process(ResendCard(order_id=order_id), asynchronous=False)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Order not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=409, detail="Order has not been delivered") from exc
    return DeliveryResponse(**result)


@order_router.post("/{order_id}/complete", response_model=OutcomeResponse)
async def complete_paid_order(order_id: str) -> OutcomeResponse:
    """Retry allocation for a paid order left without a card."""
    try:
        outcome = current_domain.process(CompletePaidOrder(order_id=order_id), asynchronous=False)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Order not found") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=409, detail="Order is not awaiting a card") from exc
    return OutcomeResponse(outcome=outcome.value)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=OutcomeResponse)
async def payment_webhook(request: Request) -> OutcomeResponse:
    """Process a payment gateway notification.

    The signature is read from the header the active gateway signs with
    (``X-Gateway-Signature`` for the fake, ``Stripe-Signature`` for Stripe).
    Once it checks out the endpoint always answers 200, so the gateway only
    retries on transport failures.
    """
    gateway = get_gateway()
    signature = request.headers.get(gateway.signature_header, "")
    payload = (await request.body()).decode("utf-8")
    if not gateway.verify_webhook_signature(payload, signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Malformed webhook payload") from exc

    session = (event.get("data") or {}).get("object") or {}
    metadata = session.get("metadata") or {}

    command = ProcessPaymentNotification(
        event_type=event.get("type") or "unknown",
        payment_session_id=session.get("id"),
        buyer_id=metadata.get("buyer_id"),
        order_id=metadata.get("order_id"),
    )
    outcome = current_domain.process(command, asynchronous=False)
    logger.info("Webhook handled", event_id=event.get("id"), outcome=outcome.value)
    return OutcomeResponse(outcome=outcome.value)


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("/{product_id}/stock", response_model=StockResponse)
async def get_stock(product_id: str) -> StockResponse:
    levels = stock_levels(product_id)
    return StockResponse(
        product_id=product_id,
        total=levels.total,
        used=levels.used,
        available=levels.available,
    )


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/expire-stale", response_model=ExpireStaleResponse)
async def expire_stale(body: ExpireStaleRequest | None = None) -> ExpireStaleResponse:
    older_than = body.older_than_minutes if body else None
    return ExpireStaleResponse(expired=expire_stale_pending_orders(older_than_minutes=older_than))


@maintenance_router.post("/reconcile", response_model=ReconciliationResponse)
async def reconcile() -> ReconciliationResponse:
    return ReconciliationResponse(**reconcile_inventory())
