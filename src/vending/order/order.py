"""Order aggregate — one purchase attempt for a single card.

State Machine:
    PENDING → PAID → DELIVERED
    PENDING → EXPIRED
DELIVERED and EXPIRED are terminal.

Orders are created through ``Order.create_pending`` and saved once. After
that, status changes are conditional writes issued through
``OrderRepository.compare_and_set`` (see ``vending.order.lifecycle``), each
keyed on the status the caller expects the order to be in.
"""

from enum import Enum

from protean.fields import DateTime, Float, Identifier, String
from protean.utils.query import Q

from vending.domain import vending
from vending.errors import InvalidOrder
from vending.utils.clock import as_utc, utcnow
from vending.utils.store import fetch_all


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    DELIVERED = "delivered"
    EXPIRED = "expired"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.EXPIRED},
    OrderStatus.PAID: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.EXPIRED: set(),  # Terminal
}


def is_valid_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in _VALID_TRANSITIONS.get(from_status, set())


@vending.aggregate
class Order:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    amount = Float(required=True)
    payment_session_id = String(required=True, max_length=255)
    payment_url = String(max_length=2000)
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    card_id = Identifier()
    created_at = DateTime(default=utcnow)
    paid_at = DateTime()
    expired_at = DateTime()
    updated_at = DateTime(default=utcnow)

    @classmethod
    def create_pending(
        cls,
        buyer_id: str,
        product_id: str,
        amount: float,
        payment_session_id: str,
        payment_url: str | None = None,
        order_id: str | None = None,
    ):
        """Create a new pending order bound to a gateway checkout session.

        Raises InvalidOrder listing every unmet constraint.
        """
        errors = {}
        if not buyer_id:
            errors["buyer_id"] = ["Buyer is required"]
        if not product_id:
            errors["product_id"] = ["Product is required"]
        if amount is None or amount <= 0:
            errors["amount"] = ["Amount must be positive"]
        if not payment_session_id:
            errors["payment_session_id"] = ["A payment session reference is required"]
        if errors:
            raise InvalidOrder(errors)

        now = utcnow()
        attributes = {
            "buyer_id": str(buyer_id),
            "product_id": str(product_id),
            "amount": amount,
            "payment_session_id": payment_session_id,
            "payment_url": payment_url,
            "status": OrderStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        if order_id:
            attributes["id"] = str(order_id)
        return cls(**attributes)

    @property
    def is_settled(self) -> bool:
        """Payment already accepted (paid or delivered)."""
        return self.status in (OrderStatus.PAID.value, OrderStatus.DELIVERED.value)


@vending.repository(part_of=Order)
class OrderRepository:
    def compare_and_set(self, order_id: str, expected: dict, **changes) -> bool:
        """Apply ``changes`` only if the stored order still matches ``expected``."""
        updated = self._dao._update_all(Q(id=str(order_id), **expected), **changes)
        return updated > 0

    def find(self, order_id: str) -> Order | None:
        return self._dao.query.filter(id=str(order_id)).all().first

    def find_by_payment_session(self, payment_session_id: str) -> Order | None:
        return self._dao.query.filter(payment_session_id=payment_session_id).all().first

    def with_status(self, status: OrderStatus) -> list[Order]:
        return fetch_all(self._dao.query.filter(status=status.value))

    def pending_created_before(self, cutoff) -> list[Order]:
        cutoff = as_utc(cutoff)
        orders = fetch_all(self._dao.query.filter(status=OrderStatus.PENDING.value, created_at__lt=cutoff))
        # Naive timestamps read back from an RDBMS are re-checked in UTC.
        return [order for order in orders if as_utc(order.created_at) < cutoff]

    def pending_for_buyer_since(self, buyer_id: str, since) -> list[Order]:
        since = as_utc(since)
        orders = fetch_all(self._dao.query.filter(buyer_id=str(buyer_id), status=OrderStatus.PENDING.value))
        recent = [order for order in orders if as_utc(order.created_at) > since]
        return sorted(recent, key=lambda order: as_utc(order.created_at), reverse=True)
