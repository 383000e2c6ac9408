"""Tests for the Product aggregate — scalar and per-variant stock."""

import pytest
from marketplace.stock.events import ProductRegistered, StockLevelUpdated
from marketplace.stock.product import Product, variant_key
from protean.exceptions import ValidationError


def _make_product(stock=10, variants=None):
    product = Product.register(
        name="Batik Shirt",
        vendor="Kwame Textiles",
        price=40.0,
        stock=stock,
        variants=variants,
    )
    product._events.clear()
    return product


def _variants():
    return [
        {"options": {"size": "M", "color": "blue"}, "stock": 3},
        {"options": {"size": "L", "color": "blue"}, "stock": 0, "price": 45.0},
    ]


class TestVariantKey:
    def test_key_order_does_not_matter(self):
        assert variant_key({"size": "M", "color": "blue"}) == variant_key({"color": "blue", "size": "M"})

    def test_extra_option_does_not_match(self):
        assert variant_key({"size": "M"}) != variant_key({"size": "M", "color": "blue"})

    def test_empty_selector(self):
        assert variant_key(None) == ""
        assert variant_key({}) == ""


class TestRegistration:
    def test_raises_product_registered(self):
        product = Product.register(name="Kente Scarf", vendor="Ama Crafts", price=25.0, stock=5)
        event = product._events[0]
        assert isinstance(event, ProductRegistered)
        assert event.stock == 5
        assert event.variant_count == 0

    def test_duplicate_variant_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(variants=[{"options": {"size": "M"}}, {"options": {"size": "M"}}])

    def test_variant_needs_options(self):
        with pytest.raises(ValidationError):
            _make_product(variants=[{"options": {}, "stock": 1}])


class TestAvailability:
    def test_scalar_stock(self):
        product = _make_product(stock=7)
        assert product.available() == 7

    def test_variant_stock(self):
        product = _make_product(variants=_variants())
        assert product.available({"color": "blue", "size": "M"}) == 3
        assert product.available({"size": "L", "color": "blue"}) == 0

    def test_unknown_variant_has_nothing(self):
        product = _make_product(variants=_variants())
        assert product.available({"size": "XL", "color": "blue"}) == 0

    def test_selector_on_product_without_variants_has_nothing(self):
        product = _make_product(stock=4)
        assert product.available({"size": "M"}) == 0
        assert product.available() == 4


class TestWithdrawAndRestore:
    def test_withdraw_and_restore_scalar(self):
        product = _make_product(stock=10)
        product.withdraw(4)
        assert product.stock == 6
        assert product.restore(4) is True
        assert product.stock == 10

    def test_withdraw_and_restore_variant(self):
        product = _make_product(stock=10, variants=_variants())
        selector = {"size": "M", "color": "blue"}
        product.withdraw(2, selector)
        assert product.variant_for(selector).stock == 1
        assert product.stock == 10
        product.restore(2, selector)
        assert product.variant_for(selector).stock == 3

    def test_restore_to_removed_variant_goes_to_scalar(self):
        product = _make_product(stock=0, variants=_variants())
        assert product.restore(2, {"size": "S", "color": "red"}) is False
        assert product.stock == 2


class TestStockInvariant:
    def test_negative_scalar_stock_rejected(self):
        product = _make_product(stock=1)
        with pytest.raises(ValidationError):
            product.stock = -1

    def test_set_stock(self):
        product = _make_product(stock=1)
        product.set_stock(12)
        assert product.stock == 12
        event = product._events[-1]
        assert isinstance(event, StockLevelUpdated)
        assert event.previous_quantity == 1
        assert event.new_quantity == 12

    def test_set_variant_stock(self):
        product = _make_product(variants=_variants())
        product.set_stock(9, {"size": "L", "color": "blue"})
        assert product.available({"size": "L", "color": "blue"}) == 9

    def test_set_negative_stock_rejected(self):
        product = _make_product(stock=1)
        with pytest.raises(ValidationError):
            product.set_stock(-3)
        assert product.stock == 1

    def test_set_stock_for_unknown_variant_rejected(self):
        product = _make_product(variants=_variants())
        with pytest.raises(ValidationError):
            product.set_stock(5, {"size": "XXL"})
