"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from marketplace.exceptions import MarketplaceError
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.stock.product import Product
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for the error a When step ran into, if any."""
    return {"exc": None}


@pytest.fixture()
def attempt(error):
    """Run an action, capturing a domain refusal in ``error`` instead of raising."""

    def _attempt(action):
        try:
            return action()
        except (MarketplaceError, ValidationError) as exc:
            error["exc"] = exc
            return None

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a product "{name}" from "{vendor}" priced {price:g} with {stock:d} in stock'),
    target_fixture="product_id",
)
def _(register_product, name, vendor, price, stock):
    return register_product(name=name, vendor=vendor, price=price, stock=stock)


@given(parsers.cfparse("the customer ordered {quantity:d} of the product"), target_fixture="order_id")
def _(place_order, product_id, quantity):
    return place_order([(product_id, quantity)])


@given(parsers.cfparse('the order is "{status}"'))
def _(drive_order, order_id, status):
    drive_order(order_id, status)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("the customer orders {quantity:d} of the product"), target_fixture="order_id")
def _(place_order, product_id, quantity, attempt):
    return attempt(lambda: place_order([(product_id, quantity)]))


@when("the customer cancels the order")
def _(customer, order_id, attempt):
    attempt(
        lambda: current_domain.process(
            CancelOrder(**customer.command_fields(), order_id=order_id, reason="Changed my mind"),
            asynchronous=False,
        ),
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse("the product has {stock:d} in stock"))
def _(product_id, stock):
    assert current_domain.repository_for(Product).get(product_id).stock == stock


@then(parsers.cfparse("the action fails with {error_type}"))
def _(error, error_type):
    assert error["exc"] is not None, f"Expected {error_type} but the action succeeded"
    assert type(error["exc"]).__name__ == error_type, f"Got {type(error['exc']).__name__}: {error['exc']}"


@then("the action succeeds")
def _(error):
    assert error["exc"] is None, f"Unexpected failure: {error['exc']}"
