"""Shared BDD fixtures and step definitions for the vending domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from vending.card.allocation import available
from vending.order.order import Order


@pytest.fixture()
def outcome():
    """Container for whatever the last When step produced."""
    return {"value": None, "exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a product with {count:d} unused card"), target_fixture="cards")
@given(parsers.cfparse("a product with {count:d} unused cards"), target_fixture="cards")
def _stocked_product(product, stock_cards, count):
    return stock_cards(product, count=count)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the product has {count:d} available cards"))
def _available_cards(product, count):
    assert available(product.id) == count


@then(parsers.cfparse('the order is "{status}"'))
def _order_status(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status
