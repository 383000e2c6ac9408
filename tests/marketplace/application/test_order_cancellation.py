"""Application tests for cancellation and stock release."""

import pytest
from marketplace.exceptions import InsufficientStock, InvalidState, TransactionAbort, Unauthorized
from marketplace.order.admin import ForceOrderStatus
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.stock import ledger
from marketplace.stock.product import Product
from marketplace.stock.reservation import StockReservation
from protean import current_domain


def _cancel(actor, order_id, **kwargs):
    return current_domain.process(
        CancelOrder(**actor.command_fields(), order_id=order_id, **kwargs),
        asynchronous=False,
    )


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestCancelOrder:
    def test_cancel_returns_stock(self, register_product, place_order, customer):
        scarf = register_product(stock=10)
        order_id = place_order([(scarf, 4)])

        _cancel(customer, order_id, reason="Ordered twice")

        order = _order(order_id)
        assert order.status == "cancelled"
        assert _product(scarf).stock == 10
        reservation = current_domain.repository_for(StockReservation).get(order.reservation_id)
        assert not reservation.is_active

    def test_cancel_returns_variant_stock(self, register_product, place_order, customer):
        shirt = register_product(
            name="Batik Shirt",
            vendor="Kwame Textiles",
            stock=2,
            variants=[{"options": {"size": "M"}, "stock": 5}],
        )
        order_id = place_order([(shirt, 3, {"size": "M"})])
        _cancel(customer, order_id)

        product = _product(shirt)
        assert product.available({"size": "M"}) == 5
        assert product.stock == 2

    def test_cancel_from_ready_for_pickup(self, register_product, place_order, drive_order, customer):
        scarf = register_product(stock=3)
        order_id = place_order([(scarf, 1)])
        drive_order(order_id, "ready-for-pickup")

        _cancel(customer, order_id)
        assert _order(order_id).status == "cancelled"
        assert _product(scarf).stock == 3

    def test_cancel_appends_both_logs(self, register_product, place_order, customer):
        scarf = register_product(stock=3)
        order_id = place_order([(scarf, 1)])
        _cancel(customer, order_id)

        order = _order(order_id)
        assert [e.status for e in order.status_change_log][-1] == "cancelled"
        assert [e.status for e in order.tracking_history][-1] == "cancelled"
        assert order.status_change_log[-1].changed_by == "Customer: Kofi"

    def test_second_cancel_fails_and_releases_nothing(self, register_product, place_order, customer):
        scarf = register_product(stock=10)
        order_id = place_order([(scarf, 4)])
        _cancel(customer, order_id)

        with pytest.raises(InvalidState):
            _cancel(customer, order_id)

        assert _product(scarf).stock == 10
        assert len(_order(order_id).status_change_log) == 2

    def test_cannot_cancel_after_pickup(self, register_product, place_order, drive_order, customer):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        drive_order(order_id, "picked-up")

        with pytest.raises(InvalidState):
            _cancel(customer, order_id)
        assert _product(scarf).stock == 3

    def test_other_customer_cannot_cancel(self, register_product, place_order, other_customer):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        with pytest.raises(Unauthorized):
            _cancel(other_customer, order_id)
        assert _order(order_id).status == "confirmed"

    def test_stale_revision_aborts(self, register_product, place_order, drive_order, customer):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        drive_order(order_id, "ready-for-pickup")

        with pytest.raises(TransactionAbort):
            _cancel(customer, order_id, expected_revision=0)
        assert _order(order_id).status == "ready-for-pickup"
        assert _product(scarf).stock == 3

    def test_current_revision_accepted(self, register_product, place_order, customer):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        revision = _cancel(customer, order_id, expected_revision=0)
        assert revision == 1


class TestReleaseIdempotence:
    def test_release_twice_only_restores_once(self, register_product, place_order):
        scarf = register_product(stock=10)
        order_id = place_order([(scarf, 4)])
        reservation_id = str(_order(order_id).reservation_id)

        assert ledger.release(reservation_id) is True
        assert ledger.release(reservation_id) is False

        assert _product(scarf).stock == 10


class TestAdminForcedCancellation:
    def test_forced_cancel_returns_stock(self, register_product, place_order, drive_order, admin):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        drive_order(order_id, "out-for-delivery")

        current_domain.process(
            ForceOrderStatus(**admin.command_fields(), order_id=order_id, status="cancelled"),
            asynchronous=False,
        )
        assert _order(order_id).status == "cancelled"
        assert _product(scarf).stock == 5

    def test_reopening_cancelled_order_reserves_again(self, register_product, place_order, customer, admin):
        scarf = register_product(stock=5)
        order_id = place_order([(scarf, 2)])
        _cancel(customer, order_id)

        current_domain.process(
            ForceOrderStatus(**admin.command_fields(), order_id=order_id, status="confirmed"),
            asynchronous=False,
        )
        order = _order(order_id)
        assert order.status == "confirmed"
        assert _product(scarf).stock == 3
        assert current_domain.repository_for(StockReservation).get(order.reservation_id).is_active

    def test_reopening_fails_without_stock(self, register_product, place_order, customer, other_customer, admin):
        scarf = register_product(stock=2)
        order_id = place_order([(scarf, 2)])
        _cancel(customer, order_id)
        place_order([(scarf, 2)], by=other_customer)

        with pytest.raises(InsufficientStock):
            current_domain.process(
                ForceOrderStatus(**admin.command_fields(), order_id=order_id, status="confirmed"),
                asynchronous=False,
            )
        assert _order(order_id).status == "cancelled"
