"""Reclamation — expire pending orders whose checkout was never paid.

Only the order is closed; a pending order never holds a card, so nothing is
returned to the pool here. Each expiry is conditional on the order still
being pending, so a payment that lands first wins.
"""

from datetime import timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from vending.domain import vending
from vending.errors import ConflictingState
from vending.order.lifecycle import transition
from vending.order.order import Order, OrderStatus
from vending.policy import get_policy
from vending.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)


@vending.command(part_of="Order")
class ExpireStalePendingOrders:
    older_than_minutes = Integer(min_value=1)  # Defaults to the policy timeout
    as_of = DateTime()


@vending.command_handler(part_of=Order)
class ReclamationHandler:
    @handle(ExpireStalePendingOrders)
    def expire_stale_pending_orders(self, command):
        timeout = command.older_than_minutes or get_policy().pending_timeout_minutes
        as_of = as_utc(command.as_of or utcnow())
        cutoff = as_of - timedelta(minutes=timeout)

        stale = current_domain.repository_for(Order).pending_created_before(cutoff)

        expired = 0
        for order in stale:
            try:
                transition(order.id, OrderStatus.PENDING, OrderStatus.EXPIRED, expired_at=as_of)
                expired += 1
            except ConflictingState:
                logger.debug("Stale order moved on before expiry", order_id=str(order.id))

        if expired:
            logger.info("Stale pending orders expired", count=expired, timeout_minutes=timeout)
        return expired


def expire_stale_pending_orders(older_than_minutes: int | None = None, as_of=None) -> int:
    return current_domain.process(
        ExpireStalePendingOrders(older_than_minutes=older_than_minutes, as_of=as_of),
        asynchronous=False,
    )
