"""Order status writes.

Every transition is a conditional write keyed on the status the caller
observed. The store decides: a write whose expected status no longer holds
matches no row and surfaces as ConflictingState, leaving the order untouched.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from vending.errors import ConflictingState
from vending.order.order import Order, OrderStatus, is_valid_transition
from vending.utils.clock import utcnow

logger = structlog.get_logger(__name__)

_STAMPS = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.EXPIRED: "expired_at",
}

_REPAIRABLE = (OrderStatus.PENDING.value, OrderStatus.PAID.value)


def transition(order_id: str, from_status: OrderStatus, to_status: OrderStatus, **fields) -> None:
    """Move an order from ``from_status`` to ``to_status``, applying ``fields``.

    Raises ValidationError for a transition outside the state machine and
    ConflictingState when the order is no longer in ``from_status``.
    """
    if not is_valid_transition(from_status, to_status):
        raise ValidationError(
            {"status": [f"Cannot transition from {from_status.value} to {to_status.value}"]}
        )

    now = utcnow()
    changes = {"status": to_status.value, "updated_at": now, **fields}
    stamp = _STAMPS.get(to_status)
    if stamp and stamp not in changes:
        changes[stamp] = now

    repo = current_domain.repository_for(Order)
    if not repo.compare_and_set(order_id, {"status": from_status.value}, **changes):
        logger.info(
            "Order transition lost",
            order_id=str(order_id),
            from_status=from_status.value,
            to_status=to_status.value,
        )
        raise ConflictingState(f"Order {order_id} is no longer {from_status.value}")

    logger.info(
        "Order transitioned",
        order_id=str(order_id),
        from_status=from_status.value,
        to_status=to_status.value,
    )


def bind_recovered_card(order: Order, card_id: str) -> None:
    """Repair write: mark an order delivered with the card that was sent for it.

    Used when a card turns out to be bound to an order whose own status was
    never advanced. Conditional on the status observed on ``order``, so it
    cannot overwrite a concurrent change. Raises ConflictingState otherwise.

    Only a live order (pending or paid) can be repaired; an expired order's
    card belongs back in the pool and a ValidationError is raised instead.
    """
    if order.status not in _REPAIRABLE:
        raise ValidationError({"status": [f"Cannot repair an order that is {order.status}"]})

    now = utcnow()
    changes = {
        "status": OrderStatus.DELIVERED.value,
        "card_id": str(card_id),
        "updated_at": now,
    }
    if not order.paid_at:
        changes["paid_at"] = now

    repo = current_domain.repository_for(Order)
    if not repo.compare_and_set(order.id, {"status": order.status}, **changes):
        raise ConflictingState(f"Order {order.id} changed while binding card {card_id}")

    logger.warning(
        "Order repaired with recovered card",
        order_id=str(order.id),
        card_id=str(card_id),
        previous_status=order.status,
    )
