"""Card allocation — claim and release cards from a product's pool.

A claim is decided by one conditional write per candidate card
(``used=False`` → ``used=True`` bound to the order). Reading candidates only
narrows the search; two claimers that read the same candidate both issue the
write and exactly one of them matches a row. The loser moves on to the next
candidate, re-reading the pool when a batch is exhausted.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from vending.card.card import Card
from vending.errors import OutOfStock
from vending.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLevels:
    total: int
    used: int
    available: int


def claim(product_id: str, order_id: str) -> Card:
    """Atomically bind one unused card of ``product_id`` to ``order_id``.

    Raises OutOfStock when the product has no unused card left.
    """
    repo = current_domain.repository_for(Card)

    while True:
        candidates = repo.unused_for_product(product_id)
        if not candidates:
            logger.warning("No unused card available", product_id=str(product_id), order_id=str(order_id))
            raise OutOfStock(f"No unused card for product {product_id}")

        for candidate in candidates:
            claimed = repo.compare_and_set(
                candidate.id,
                {"used": False},
                used=True,
                order_id=str(order_id),
                used_at=utcnow(),
            )
            if claimed:
                card = repo.find(candidate.id)
                logger.info(
                    "Card claimed",
                    card_id=str(card.id),
                    product_id=str(product_id),
                    order_id=str(order_id),
                )
                return card

            logger.debug("Lost claim race for card", card_id=str(candidate.id), order_id=str(order_id))


def release(card_id: str) -> bool:
    """Return a claimed card to the unused pool.

    Conditional on the card still being bound to the order it was read with,
    so a release never clobbers a newer claim. Releasing an unused or unknown
    card is a no-op and returns False.
    """
    repo = current_domain.repository_for(Card)
    card = repo.find(card_id)
    if card is None or not card.used:
        return False

    # An exact match on None never hits a row; orphans need the null lookup.
    if card.order_id:
        expected = {"used": True, "order_id": str(card.order_id)}
    else:
        expected = {"used": True, "order_id__isnull": True}

    released = repo.compare_and_set(
        card.id,
        expected,
        used=False,
        order_id=None,
        used_at=None,
    )
    if released:
        logger.info("Card released", card_id=str(card.id), order_id=str(card.order_id))
    return released


def stock_levels(product_id: str) -> StockLevels:
    """Card counts for a product (read-then-report; not used for decisions)."""
    repo = current_domain.repository_for(Card)
    total = repo.count_for_product(product_id)
    used = repo.count_for_product(product_id, used=True)
    return StockLevels(total=total, used=used, available=total - used)


def available(product_id: str) -> int:
    return current_domain.repository_for(Card).count_for_product(product_id, used=False)
