"""Application tests for inventory reconciliation."""

from datetime import timedelta

from protean import current_domain

from vending.card.card import Card
from vending.maintenance.reconciliation import reconcile_inventory
from vending.order.order import Order, OrderStatus
from vending.payment.notification import CHECKOUT_COMPLETED, ProcessPaymentNotification
from vending.payment.outcome import NotificationOutcome
from vending.utils.clock import utcnow


def _card(card):
    return current_domain.repository_for(Card).get(card.id)


def _order(order):
    return current_domain.repository_for(Order).get(order.id)


def _all_zero(report):
    return all(count == 0 for count in report.values())


class TestExpiredOrders:
    def test_card_of_expired_order_is_released(self, product, stock_cards, make_order, bind_card):
        (card,) = stock_cards(product, count=1)
        order = make_order(product, status=OrderStatus.EXPIRED.value)
        bind_card(card, order)

        report = reconcile_inventory()

        assert report["expired_cards_released"] == 1
        assert _card(card).used is False
        assert _card(card).order_id is None

    def test_late_notification_does_not_revive_expired_order(self, product, stock_cards, make_order, bind_card):
        (card,) = stock_cards(product, count=1)
        order = make_order(product, status=OrderStatus.EXPIRED.value)
        bind_card(card, order)

        command = ProcessPaymentNotification(
            event_type=CHECKOUT_COMPLETED,
            payment_session_id=order.payment_session_id,
        )
        assert current_domain.process(command, asynchronous=False) == NotificationOutcome.REJECTED
        report = reconcile_inventory()

        assert report["expired_cards_released"] == 1
        assert _order(order).status == OrderStatus.EXPIRED.value
        assert _card(card).used is False

    def test_expired_order_stops_pointing_at_card(self, product, stock_cards, make_order):
        (card,) = stock_cards(product, count=1)
        order = make_order(product, status=OrderStatus.EXPIRED.value, card_id=card.id)

        report = reconcile_inventory()

        assert report["expired_orders_unbound"] == 1
        assert _order(order).card_id is None


class TestOrphans:
    def test_used_card_without_order_is_reset(self, product, stock_cards):
        (card,) = stock_cards(product, count=1)
        current_domain.repository_for(Card).compare_and_set(card.id, {}, used=True, used_at=utcnow())

        report = reconcile_inventory()

        assert report["orphans_reset"] == 1
        assert _card(card).used is False

    def test_card_bound_to_missing_order_is_reset(self, product, stock_cards):
        (card,) = stock_cards(product, count=1)
        current_domain.repository_for(Card).compare_and_set(card.id, {}, used=True, order_id="ghost-order")

        report = reconcile_inventory()

        assert report["orphans_reset"] == 1
        assert _card(card).order_id is None


class TestDuplicates:
    def test_earliest_card_is_kept(self, product, stock_cards, make_order, bind_card):
        first, second, third = stock_cards(product, count=3)
        order = make_order(product, status=OrderStatus.DELIVERED.value, card_id=third.id)
        for card in (third, first, second):
            bind_card(card, order)

        report = reconcile_inventory()

        assert report["duplicates_released"] == 2
        assert report["orders_repointed"] == 1
        assert _card(first).order_id == order.id
        assert _card(second).used is False
        assert _card(third).used is False
        assert _order(order).card_id == first.id

    def test_ties_broken_by_id(self, product, make_order, bind_card):
        stamp = utcnow() - timedelta(days=1)
        repo = current_domain.repository_for(Card)
        low = Card(id="card-a", product_id=product.id, code="TIE-A", created_at=stamp)
        high = Card(id="card-b", product_id=product.id, code="TIE-B", created_at=stamp)
        repo.add(high)
        repo.add(low)
        order = make_order(product, status=OrderStatus.DELIVERED.value, card_id="card-b")
        bind_card(high, order)
        bind_card(low, order)

        reconcile_inventory()

        assert _card(low).order_id == order.id
        assert _card(high).used is False
        assert _order(order).card_id == "card-a"


class TestPaidOrders:
    def test_paid_order_holding_card_is_delivered(self, product, stock_cards, make_order, bind_card, channel):
        (card,) = stock_cards(product, count=1)
        order = make_order(product, status=OrderStatus.PAID.value, paid_at=utcnow())
        bind_card(card, order)

        report = reconcile_inventory()

        assert report["paid_orders_completed"] == 1
        stored = _order(order)
        assert stored.status == OrderStatus.DELIVERED.value
        assert stored.card_id == card.id
        assert channel.cards_sent_to(order.buyer_id)[0]["code"] == card.code


class TestIdempotence:
    def test_clean_inventory_reports_nothing(self, product, stock_cards, make_order):
        stock_cards(product, count=2)
        make_order(product)
        assert _all_zero(reconcile_inventory())

    def test_second_run_is_all_zeros(self, product, stock_cards, make_order, bind_card):
        cards = stock_cards(product, count=4)
        expired = make_order(product, status=OrderStatus.EXPIRED.value)
        bind_card(cards[0], expired)
        delivered = make_order(product, status=OrderStatus.DELIVERED.value, card_id=cards[2].id)
        bind_card(cards[1], delivered)
        bind_card(cards[2], delivered)
        current_domain.repository_for(Card).compare_and_set(cards[3].id, {}, used=True)

        first = reconcile_inventory()
        second = reconcile_inventory()

        assert not _all_zero(first)
        assert _all_zero(second)
