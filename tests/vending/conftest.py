from datetime import timedelta
from uuid import uuid4

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from vending.card.card import Card
from vending.delivery import reset_channel, set_channel
from vending.delivery.fake_adapter import FakeDeliveryChannel
from vending.order.order import Order
from vending.payment.gateway import reset_gateway, set_gateway
from vending.payment.gateway.fake_adapter import FakeGateway
from vending.policy import reset_policy
from vending.product.product import Product
from vending.utils.clock import utcnow


@pytest.fixture(scope="session")
def vending_bed():
    from vending.domain import vending

    bed = DomainFixture(vending)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(vending_bed):
    with vending_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def channel():
    fake = FakeDeliveryChannel()
    set_channel(fake)
    yield fake
    reset_channel()


@pytest.fixture(autouse=True)
def _policy():
    reset_policy()
    yield
    reset_policy()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    def _make(name="Gift Card 50", price=50.0, active=True):
        product = Product.list_for_sale(name=name, price=price)
        product.active = active
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def stock_cards():
    def _stock(product, count=1, prefix="CODE"):
        repo = current_domain.repository_for(Card)
        cards = []
        for index in range(count):
            card = Card.stock(product.id, f"{prefix}-{product.id[:8]}-{index:03d}")
            card.created_at = utcnow() + timedelta(microseconds=index)
            repo.add(card)
            cards.append(card)
        return cards

    return _stock


@pytest.fixture()
def make_order():
    def _make(product, buyer_id="buyer-001", minutes_ago=0, status=None, **fields):
        order = Order.create_pending(
            buyer_id=buyer_id,
            product_id=product.id,
            amount=product.price,
            payment_session_id=fields.pop("payment_session_id", f"cs_test_{uuid4().hex[:12]}"),
            payment_url="http://localhost:8000/checkout/test",
        )
        order.created_at = utcnow() - timedelta(minutes=minutes_ago)
        if status:
            order.status = status
        for name, value in fields.items():
            setattr(order, name, value)
        current_domain.repository_for(Order).add(order)
        return order

    return _make


@pytest.fixture()
def bind_card():
    """Write a claim directly, bypassing the allocator (for anomaly set-up)."""

    def _bind(card, order):
        current_domain.repository_for(Card).compare_and_set(
            card.id, {}, used=True, order_id=str(order.id), used_at=utcnow()
        )

    return _bind
