"""Inventory reconciliation — offline repair of card/order anomalies.

Four passes, in order:

1. Cards bound to expired orders go back to the pool, and expired orders
   stop pointing at a card.
2. Cards marked used with no order, or bound to an order that no longer
   exists, are reset.
3. An order holding several cards keeps the earliest-created one (id breaks
   ties) and the rest are released; a delivered order is re-pointed at the
   card it keeps.
4. Paid orders that already hold a card (a crash between allocation and the
   delivered write) are marked delivered and the code is sent.

Every write is conditional on what was read, so the procedure can run
alongside live traffic and a second run reports nothing to do.
"""

from collections import defaultdict

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from vending.card.allocation import release
from vending.card.card import Card, claim_order
from vending.domain import vending
from vending.errors import ConflictingState
from vending.order.fulfilment import send_card
from vending.order.lifecycle import bind_recovered_card
from vending.order.order import Order, OrderStatus
from vending.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@vending.command(part_of="Order")
class ReconcileInventory:
    requested_by = String(max_length=100, default="operator")


def _release_cards_of_expired_orders(report: dict) -> None:
    order_repo = current_domain.repository_for(Order)
    card_repo = current_domain.repository_for(Card)

    for card in card_repo.used_cards():
        if not card.order_id:
            continue
        order = order_repo.find(card.order_id)
        if order is not None and order.status == OrderStatus.EXPIRED.value and release(card.id):
            report["expired_cards_released"] += 1

    for order in order_repo.with_status(OrderStatus.EXPIRED):
        if not order.card_id:
            continue
        unbound = order_repo.compare_and_set(
            order.id,
            {"status": OrderStatus.EXPIRED.value, "card_id": order.card_id},
            card_id=None,
            updated_at=utcnow(),
        )
        if unbound:
            report["expired_orders_unbound"] += 1


def _reset_orphaned_cards(report: dict) -> None:
    order_repo = current_domain.repository_for(Order)

    for card in current_domain.repository_for(Card).used_cards():
        orphaned = not card.order_id or order_repo.find(card.order_id) is None
        if orphaned and release(card.id):
            logger.info("Orphaned card reset", card_id=str(card.id), order_id=card.order_id)
            report["orphans_reset"] += 1


def _resolve_duplicate_claims(report: dict) -> None:
    order_repo = current_domain.repository_for(Order)

    by_order = defaultdict(list)
    for card in current_domain.repository_for(Card).used_cards():
        if card.order_id:
            by_order[str(card.order_id)].append(card)

    for order_id, cards in by_order.items():
        if len(cards) < 2:
            continue

        kept, *extra = sorted(cards, key=claim_order)
        for card in extra:
            if release(card.id):
                report["duplicates_released"] += 1

        order = order_repo.find(order_id)
        if order is None or order.status != OrderStatus.DELIVERED.value or order.card_id == kept.id:
            continue
        repointed = order_repo.compare_and_set(
            order.id,
            {"status": OrderStatus.DELIVERED.value, "card_id": order.card_id},
            card_id=str(kept.id),
            updated_at=utcnow(),
        )
        if repointed:
            logger.warning("Order re-pointed to kept card", order_id=order_id, card_id=str(kept.id))
            report["orders_repointed"] += 1


def _complete_paid_orders_holding_cards(report: dict) -> None:
    card_repo = current_domain.repository_for(Card)

    for order in current_domain.repository_for(Order).with_status(OrderStatus.PAID):
        bound = card_repo.bound_to(order.id)
        if not bound:
            continue
        try:
            bind_recovered_card(order, bound[0].id)
        except ConflictingState:
            continue
        send_card(order, bound[0])
        report["paid_orders_completed"] += 1


@vending.command_handler(part_of=Order)
class ReconciliationHandler:
    @handle(ReconcileInventory)
    def reconcile_inventory(self, command):
        report = {
            "expired_cards_released": 0,
            "expired_orders_unbound": 0,
            "orphans_reset": 0,
            "duplicates_released": 0,
            "orders_repointed": 0,
            "paid_orders_completed": 0,
        }

        _release_cards_of_expired_orders(report)
        _reset_orphaned_cards(report)
        _resolve_duplicate_claims(report)
        _complete_paid_orders_holding_cards(report)

        logger.info("Inventory reconciled", requested_by=command.requested_by, **report)
        return report


def reconcile_inventory(requested_by: str = "operator") -> dict:
    return current_domain.process(ReconcileInventory(requested_by=requested_by), asynchronous=False)
