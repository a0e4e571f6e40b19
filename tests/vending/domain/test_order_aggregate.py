"""Tests for Order creation rules and the status transition map."""

import pytest

from vending.errors import InvalidOrder
from vending.order.order import Order, OrderStatus, is_valid_transition


def _create(**overrides):
    attributes = {
        "buyer_id": "buyer-001",
        "product_id": "prod-001",
        "amount": 50.0,
        "payment_session_id": "cs_test_001",
        "payment_url": "http://localhost:8000/checkout/cs_test_001",
    }
    attributes.update(overrides)
    return Order.create_pending(**attributes)


class TestCreatePending:
    def test_new_order_is_pending(self):
        order = _create()
        assert order.status == OrderStatus.PENDING.value
        assert order.card_id is None
        assert order.paid_at is None

    def test_created_and_updated_are_stamped(self):
        order = _create()
        assert order.created_at is not None
        assert order.updated_at == order.created_at

    def test_explicit_id_is_kept(self):
        order = _create(order_id="ord-fixed-001")
        assert order.id == "ord-fixed-001"

    def test_missing_buyer_rejected(self):
        with pytest.raises(InvalidOrder) as exc:
            _create(buyer_id="")
        assert "buyer_id" in exc.value.messages

    def test_non_positive_amount_rejected(self):
        with pytest.raises(InvalidOrder) as exc:
            _create(amount=0)
        assert "amount" in exc.value.messages

    def test_missing_session_rejected(self):
        with pytest.raises(InvalidOrder) as exc:
            _create(payment_session_id=None)
        assert "payment_session_id" in exc.value.messages

    def test_all_violations_reported_together(self):
        with pytest.raises(InvalidOrder) as exc:
            _create(buyer_id=None, product_id=None, amount=-1)
        assert {"buyer_id", "product_id", "amount"} <= set(exc.value.messages)


class TestTransitionMap:
    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (OrderStatus.PENDING, OrderStatus.PAID),
            (OrderStatus.PENDING, OrderStatus.EXPIRED),
            (OrderStatus.PAID, OrderStatus.DELIVERED),
        ],
    )
    def test_allowed(self, from_status, to_status):
        assert is_valid_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (OrderStatus.PENDING, OrderStatus.DELIVERED),
            (OrderStatus.PAID, OrderStatus.EXPIRED),
            (OrderStatus.PAID, OrderStatus.PENDING),
            (OrderStatus.EXPIRED, OrderStatus.PAID),
            (OrderStatus.DELIVERED, OrderStatus.PENDING),
        ],
    )
    def test_rejected(self, from_status, to_status):
        assert not is_valid_transition(from_status, to_status)

    def test_terminal_states_have_no_exits(self):
        for target in OrderStatus:
            assert not is_valid_transition(OrderStatus.DELIVERED, target)
            assert not is_valid_transition(OrderStatus.EXPIRED, target)


class TestSettled:
    def test_pending_is_not_settled(self):
        assert not _create().is_settled

    def test_paid_and_delivered_are_settled(self):
        order = _create()
        order.status = OrderStatus.PAID.value
        assert order.is_settled
        order.status = OrderStatus.DELIVERED.value
        assert order.is_settled
