"""Abuse monitor — purchase velocity checks and account suspensions.

A buyer who opens too many unpaid checkouts inside the velocity window is
suspended for a fixed period and the pending orders that tripped the check
are expired. Window, threshold and suspension length come from the active
FulfillmentPolicy.
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from protean.utils.globals import current_domain

from vending.abuse.suspension import Suspension
from vending.delivery import get_channel
from vending.errors import ConflictingState
from vending.order.lifecycle import transition
from vending.order.order import Order, OrderStatus
from vending.policy import get_policy
from vending.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VelocityCheck:
    suspended: bool
    pending_count: int = 0
    suspension: Suspension | None = None


def is_suspended(account_id: str, as_of=None) -> Suspension | bool:
    """Return the account's active suspension, or False.

    An elapsed suspension is deleted on observation.
    """
    as_of = as_utc(as_of or utcnow())
    repo = current_domain.repository_for(Suspension)
    suspension = repo.find(account_id)
    if suspension is None:
        return False

    if suspension.is_active(as_of):
        return suspension

    repo.discard(suspension)
    logger.info("Elapsed suspension removed", account_id=str(account_id))
    return False


def suspend(account_id: str, reason: str, hours: int, now=None) -> Suspension:
    """Create or refresh an account's suspension."""
    now = as_utc(now or utcnow())
    repo = current_domain.repository_for(Suspension)
    suspension = repo.find(account_id)
    if suspension is None:
        suspension = Suspension.impose(account_id, reason, hours, now=now)
    else:
        suspension.extend(reason, hours, now=now)
    repo.add(suspension)

    logger.warning(
        "Account suspended",
        account_id=str(account_id),
        hours=hours,
        suspension_count=suspension.suspension_count,
        reason=reason,
    )
    return suspension


def check_velocity(account_id: str, as_of=None) -> VelocityCheck:
    """Suspend the account if it holds too many recent pending orders.

    An already-suspended account is left as it is. Otherwise pending orders
    created inside the window are counted; reaching the threshold suspends
    the account, expires those orders and notifies the buyer.
    """
    policy = get_policy()
    as_of = as_utc(as_of or utcnow())

    existing = is_suspended(account_id, as_of)
    if existing:
        return VelocityCheck(suspended=True, suspension=existing)

    window_start = as_of - timedelta(minutes=policy.velocity_window_minutes)
    pending = current_domain.repository_for(Order).pending_for_buyer_since(account_id, window_start)
    if len(pending) < policy.velocity_threshold:
        return VelocityCheck(suspended=False, pending_count=len(pending))

    reason = (
        f"Automatic suspension: {len(pending)} unpaid orders "
        f"within {policy.velocity_window_minutes} minutes"
    )
    suspension = suspend(account_id, reason, policy.suspension_hours, now=as_of)

    expired = 0
    for order in pending:
        try:
            transition(order.id, OrderStatus.PENDING, OrderStatus.EXPIRED, expired_at=as_of)
            expired += 1
        except ConflictingState:
            logger.info("Pending order moved on before suspension expiry", order_id=str(order.id))

    logger.warning(
        "Velocity threshold reached",
        account_id=str(account_id),
        pending_count=len(pending),
        orders_expired=expired,
    )

    result = get_channel().notify_suspension(account_id, reason, policy.suspension_hours)
    if result.get("status") != "sent":
        logger.error("Suspension notice not delivered", account_id=str(account_id), error=result.get("error"))

    return VelocityCheck(suspended=True, pending_count=len(pending), suspension=suspension)
