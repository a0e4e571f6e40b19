"""Card fulfilment for paid orders — allocation, delivery, resend and redrive.

``allocate_and_deliver`` is the tail of payment processing: claim a card,
mark the order delivered with it, then hand the code to the delivery
channel. Delivery failures are logged and never undo the allocation.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from vending.card.allocation import claim
from vending.card.card import Card
from vending.delivery import get_channel
from vending.domain import vending
from vending.errors import ConflictingState, NotFound, OutOfStock
from vending.order.lifecycle import transition
from vending.order.order import Order, OrderStatus
from vending.payment.outcome import NotificationOutcome

logger = structlog.get_logger(__name__)


def send_card(order: Order, card: Card) -> dict:
    """Hand a card code to the delivery channel; returns the channel result."""
    result = get_channel().deliver_card(order.buyer_id, order.id, card.code)
    if result.get("status") == "sent":
        logger.info(
            "Card delivered to buyer",
            order_id=str(order.id),
            buyer_id=str(order.buyer_id),
            message_id=result.get("message_id"),
        )
    else:
        logger.error(
            "Card delivery failed",
            order_id=str(order.id),
            buyer_id=str(order.buyer_id),
            card_id=str(card.id),
            error=result.get("error"),
        )
    return result


def allocate_and_deliver(order: Order) -> NotificationOutcome:
    """Claim a card for a ``paid`` order, mark it delivered and send the code."""
    try:
        card = claim(order.product_id, order.id)
    except OutOfStock:
        logger.error(
            "Paid order left unfulfilled: out of stock",
            order_id=str(order.id),
            product_id=str(order.product_id),
            buyer_id=str(order.buyer_id),
        )
        return NotificationOutcome.OUT_OF_STOCK

    try:
        transition(order.id, OrderStatus.PAID, OrderStatus.DELIVERED, card_id=str(card.id))
    except ConflictingState:
        return NotificationOutcome.DUPLICATE

    send_card(order, card)
    return NotificationOutcome.DELIVERED


@vending.command(part_of="Order")
class ResendCard:
    order_id = Identifier(required=True)


@vending.command(part_of="Order")
class CompletePaidOrder:
    """Operator redrive for a paid order that could not be fulfilled (e.g. after restock)."""

    order_id = Identifier(required=True)


@vending.command_handler(part_of=Order)
class FulfilmentHandler:
    @handle(ResendCard)
    def resend_card(self, command):
        order = current_domain.repository_for(Order).find(command.order_id)
        if order is None:
            raise NotFound(f"Order {command.order_id} does not exist")
        if order.status != OrderStatus.DELIVERED.value:
            raise ValidationError({"status": [f"Order is {order.status}, not delivered"]})

        card = current_domain.repository_for(Card).find(order.card_id) if order.card_id else None
        if card is None:
            raise NotFound(f"Card for order {order.id} does not exist")

        return send_card(order, card)

    @handle(CompletePaidOrder)
    def complete_paid_order(self, command):
        order = current_domain.repository_for(Order).find(command.order_id)
        if order is None:
            raise NotFound(f"Order {command.order_id} does not exist")
        if order.status != OrderStatus.PAID.value or order.card_id:
            raise ValidationError({"status": [f"Order is {order.status}, nothing to complete"]})

        outcome = allocate_and_deliver(order)
        logger.info("Paid order redriven", order_id=str(order.id), outcome=outcome.value)
        return outcome
