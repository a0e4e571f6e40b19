"""Payment notification processing — command and handler.

Gateways deliver notifications at least once and in no particular order, so
the same checkout may be reported several times. Every decision below is
re-checked against the store with a conditional write; the handler reports
what happened as a NotificationOutcome instead of raising, so whatever was
already written (a paid order, a claimed card) stays committed.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from vending.card.card import Card
from vending.domain import vending
from vending.errors import ConflictingState
from vending.order.fulfilment import allocate_and_deliver
from vending.order.lifecycle import bind_recovered_card, transition
from vending.order.order import Order, OrderStatus
from vending.payment.outcome import NotificationOutcome
from vending.utils.clock import utcnow
from vending.utils.logging import log_context

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@vending.command(part_of="Order")
class ProcessPaymentNotification:
    """A verified gateway event about a checkout session."""

    event_type = String(required=True, max_length=100)
    payment_session_id = String(max_length=255)
    buyer_id = Identifier()
    order_id = Identifier()


def _resolve_order(command) -> Order | None:
    repo = current_domain.repository_for(Order)
    order = None
    if command.payment_session_id:
        order = repo.find_by_payment_session(command.payment_session_id)
    if order is None and command.order_id:
        order = repo.find(command.order_id)
        if order is not None:
            logger.info(
                "Order resolved from notification metadata",
                order_id=str(order.id),
                payment_session_id=command.payment_session_id,
            )
    return order


def _already_handled(order: Order) -> NotificationOutcome | None:
    """Outcome for an order that needs no allocation, or None."""
    if order.is_settled:
        logger.info("Duplicate payment notification", order_id=str(order.id), status=order.status)
        return NotificationOutcome.DUPLICATE

    # An expired order is never repaired; reconciliation releases its card.
    if order.status != OrderStatus.PENDING.value:
        return None

    bound = current_domain.repository_for(Card).bound_to(order.id)
    if bound:
        try:
            bind_recovered_card(order, bound[0].id)
        except ConflictingState:
            return NotificationOutcome.DUPLICATE
        return NotificationOutcome.REPAIRED

    return None


def _settle(order: Order) -> NotificationOutcome:
    outcome = _already_handled(order)
    if outcome is not None:
        return outcome

    try:
        transition(order.id, OrderStatus.PENDING, OrderStatus.PAID, paid_at=utcnow())
    except ConflictingState:
        order = current_domain.repository_for(Order).find(order.id)
        outcome = _already_handled(order)
        if outcome is not None:
            return outcome
        logger.warning("Late payment for closed order rejected", status=order.status)
        return NotificationOutcome.REJECTED

    outcome = allocate_and_deliver(order)
    logger.info("Payment notification processed", outcome=outcome.value)
    return outcome


@vending.command_handler(part_of=Order)
class PaymentNotificationHandler:
    @handle(ProcessPaymentNotification)
    def process_notification(self, command):
        if command.event_type != CHECKOUT_COMPLETED:
            logger.debug("Payment notification ignored", event_type=command.event_type)
            return NotificationOutcome.IGNORED

        order = _resolve_order(command)
        if order is None:
            logger.warning(
                "Payment notification for unknown order",
                payment_session_id=command.payment_session_id,
                order_id=command.order_id,
            )
            return NotificationOutcome.NOT_FOUND

        with log_context(order_id=order.id, buyer_id=order.buyer_id):
            return _settle(order)
