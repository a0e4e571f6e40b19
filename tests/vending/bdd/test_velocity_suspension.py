"""BDD tests for velocity suspension."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from vending.abuse.monitor import is_suspended
from vending.errors import SuspendedAccount
from vending.order.order import Order
from vending.order.purchase import purchase

scenarios("features/velocity_suspension.feature")


def _orders_of(buyer_id):
    return current_domain.repository_for(Order)._dao.query.filter(buyer_id=buyer_id).all().items


def _attempt(buyer_id, product_id):
    try:
        return purchase(buyer_id, product_id), None
    except SuspendedAccount as exc:
        return None, exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('buyer "{buyer_id}" has placed {count:d} unpaid orders'))
def _(product, buyer_id, count):
    for _ in range(count):
        purchase(buyer_id, product.id)


@given(parsers.cfparse('buyer "{buyer_id}" has placed another order'))
def _(product, buyer_id):
    _attempt(buyer_id, product.id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('buyer "{buyer_id}" places another order'), target_fixture="outcome")
def _(product, buyer_id):
    value, exc = _attempt(buyer_id, product.id)
    return {"value": value, "exc": exc}


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the purchase is refused as suspended")
def _(outcome):
    assert isinstance(outcome["exc"], SuspendedAccount)


@then(parsers.cfparse('buyer "{buyer_id}" is suspended'))
def _(buyer_id):
    assert is_suspended(buyer_id)


@then(parsers.cfparse('all orders of buyer "{buyer_id}" are "{status}"'))
def _(buyer_id, status):
    orders = _orders_of(buyer_id)
    assert orders
    assert {order.status for order in orders} == {status}


@then(parsers.cfparse('buyer "{buyer_id}" has {count:d} orders'))
def _(buyer_id, count):
    assert len(_orders_of(buyer_id)) == count
