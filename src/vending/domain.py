"""Vending bounded context — card allocation and order fulfillment.

Sells single-use codes ("cards") against paid orders: a payment-confirmed
notification turns a pending order into a delivered one bound to exactly one
previously unused card. Stale and abusive orders are expired, and an offline
reconciliation pass repairs allocation anomalies.
"""

from protean.domain import Domain

from vending.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

vending = Domain(name="vending")
