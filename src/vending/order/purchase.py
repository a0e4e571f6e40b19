"""Purchase — open a checkout for one card of a product.

Refusals happen before anything is written: a suspended account, an
unknown or inactive product, an empty card pool, or a gateway failure. The
velocity check runs on both sides of the order write; the second run sees
the new order and may suspend the buyer on it.
"""

from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from vending.abuse.monitor import check_velocity, is_suspended
from vending.card.allocation import available
from vending.domain import vending
from vending.errors import InvalidOrder, NotFound, OutOfStock, SuspendedAccount
from vending.order.order import Order
from vending.payment.gateway import get_gateway
from vending.product.product import Product

logger = structlog.get_logger(__name__)


@vending.command(part_of="Order")
class PlaceOrder:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@vending.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        buyer_id = str(command.buyer_id)

        if is_suspended(buyer_id):
            raise SuspendedAccount(f"Account {buyer_id} is temporarily restricted")

        try:
            product = current_domain.repository_for(Product).get(command.product_id)
        except ObjectNotFoundError as exc:
            raise NotFound(f"Product {command.product_id} does not exist") from exc
        if not product.active:
            raise InvalidOrder({"product_id": ["Product is not for sale"]})

        if available(product.id) <= 0:
            raise OutOfStock(f"No unused card for product {product.id}")

        # Suspension writes must commit, so a tripped check is returned, not raised.
        if check_velocity(buyer_id).suspended:
            return {"order_id": None, "payment_url": None, "suspended": True}

        order_id = str(uuid4())
        session = get_gateway().create_checkout_session(
            product_name=product.name,
            price=product.price,
            buyer_id=buyer_id,
            order_id=order_id,
        )

        order = Order.create_pending(
            buyer_id=buyer_id,
            product_id=product.id,
            amount=product.price,
            payment_session_id=session.session_id,
            payment_url=session.payment_url,
            order_id=order_id,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Pending order created",
            order_id=order_id,
            buyer_id=buyer_id,
            product_id=str(product.id),
            payment_session_id=session.session_id,
        )
        return {"order_id": order_id, "payment_url": session.payment_url, "suspended": False}


def purchase(buyer_id: str, product_id: str) -> dict:
    """Place an order and re-run the velocity check against it.

    Returns ``{"order_id", "payment_url"}``. Raises SuspendedAccount when
    either velocity check restricts the buyer, plus whatever PlaceOrder
    refuses with.
    """
    result = current_domain.process(
        PlaceOrder(buyer_id=buyer_id, product_id=product_id),
        asynchronous=False,
    )
    if result["suspended"] or check_velocity(buyer_id).suspended:
        logger.warning("Purchase refused: velocity limit", buyer_id=str(buyer_id), order_id=result["order_id"])
        raise SuspendedAccount(f"Account {buyer_id} is temporarily restricted")

    return {"order_id": result["order_id"], "payment_url": result["payment_url"]}
