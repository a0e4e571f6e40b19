"""Card aggregate — one sellable single-use code.

A card is claimed by binding it to an order (``used=True``, ``order_id`` set)
and released by clearing both. Every state change goes through the
repository's conditional writes; the aggregate itself is never re-saved
after creation, so a stale in-memory copy can never overwrite a claim.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.query import Q

from vending.domain import vending
from vending.utils.clock import as_utc, utcnow
from vending.utils.store import fetch_all

CLAIM_BATCH_SIZE = 5


@vending.aggregate
class Card:
    product_id = Identifier(required=True)
    code = String(required=True, max_length=255, unique=True)
    used = Boolean(default=False)
    order_id = Identifier()
    used_at = DateTime()
    created_at = DateTime(default=utcnow)

    @classmethod
    def stock(cls, product_id: str, code: str):
        """Create an unused card for a product."""
        code = (code or "").strip()
        if not code:
            raise ValidationError({"code": ["Card code cannot be blank"]})
        return cls(product_id=str(product_id), code=code, used=False)

    @property
    def is_claimed(self) -> bool:
        return bool(self.used) and self.order_id is not None


def claim_order(card: Card):
    """Sort key: earliest-created first, id as tie-break."""
    return (as_utc(card.created_at), str(card.id))


@vending.repository(part_of=Card)
class CardRepository:
    def compare_and_set(self, card_id: str, expected: dict, **changes) -> bool:
        """Apply ``changes`` only if the stored card still matches ``expected``.

        One filtered UPDATE against the store; True when exactly this card matched.
        """
        updated = self._dao._update_all(Q(id=str(card_id), **expected), **changes)
        return updated > 0

    def find(self, card_id: str) -> Card | None:
        return self._dao.query.filter(id=str(card_id)).all().first

    def unused_for_product(self, product_id: str, limit: int = CLAIM_BATCH_SIZE) -> list[Card]:
        return self._dao.query.filter(product_id=str(product_id), used=False).limit(limit).all().items

    def bound_to(self, order_id: str) -> list[Card]:
        cards = fetch_all(self._dao.query.filter(order_id=str(order_id)))
        return sorted(cards, key=claim_order)

    def used_cards(self) -> list[Card]:
        return fetch_all(self._dao.query.filter(used=True))

    def count_for_product(self, product_id: str, **filters) -> int:
        return self._dao.query.filter(product_id=str(product_id), **filters).all().total
