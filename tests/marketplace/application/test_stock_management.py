"""Application tests for listing products and setting stock."""

import json

import pytest
from marketplace.exceptions import Unauthorized
from marketplace.stock.management import RegisterProduct, UpdateProductStock
from marketplace.stock.product import Product
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


def _update(actor, updates):
    return current_domain.process(
        UpdateProductStock(**actor.command_fields(), actor_shop=actor.shop_name, updates=json.dumps(updates)),
        asynchronous=False,
    )


class TestRegisterProduct:
    def test_seller_lists_under_own_shop(self, seller):
        product_id = current_domain.process(
            RegisterProduct(
                **seller.command_fields(),
                actor_shop=seller.shop_name,
                vendor="Someone Else",
                name="Beaded Necklace",
                price=12.0,
                stock=3,
            ),
            asynchronous=False,
        )
        product = _product(product_id)
        assert product.vendor == "Ama Crafts"
        assert product.stock == 3

    def test_customer_cannot_list(self, customer):
        with pytest.raises(Unauthorized):
            current_domain.process(
                RegisterProduct(**customer.command_fields(), name="Basket", price=5.0),
                asynchronous=False,
            )

    def test_admin_must_name_a_shop(self, admin):
        with pytest.raises(ValidationError):
            current_domain.process(
                RegisterProduct(**admin.command_fields(), name="Basket", price=5.0),
                asynchronous=False,
            )

    def test_variants(self, register_product):
        product_id = register_product(
            variants=[
                {"options": {"size": "M", "color": "gold"}, "stock": 4},
                {"options": {"size": "L", "color": "gold"}, "stock": 2, "price": 30.0},
            ]
        )
        product = _product(product_id)
        assert product.available({"color": "gold", "size": "M"}) == 4
        assert product.variant_for({"size": "L", "color": "gold"}).price == 30.0


class TestUpdateStock:
    def test_bulk_update(self, register_product, seller):
        scarf = register_product(stock=1)
        bag = register_product(name="Woven Bag", stock=1)

        updated = _update(seller, [{"product_id": scarf, "stock": 7}, {"product_id": bag, "stock": 0}])

        assert updated == 2
        assert _product(scarf).stock == 7
        assert _product(bag).stock == 0

    def test_variant_stock(self, register_product, seller):
        scarf = register_product(variants=[{"options": {"size": "M"}, "stock": 1}])
        _update(seller, [{"product_id": scarf, "stock": 9, "selected_variant": {"size": "M"}}])
        assert _product(scarf).available({"size": "M"}) == 9

    def test_other_shops_products_refused_and_nothing_changes(self, register_product, seller):
        own = register_product(stock=1)
        foreign = register_product(name="Batik Cloth", vendor="Kwame Textiles", stock=5)

        with pytest.raises(Unauthorized):
            _update(seller, [{"product_id": own, "stock": 8}, {"product_id": foreign, "stock": 0}])

        assert _product(own).stock == 1
        assert _product(foreign).stock == 5

    def test_negative_stock_rejected(self, register_product, seller):
        scarf = register_product(stock=4)
        with pytest.raises(ValidationError):
            _update(seller, [{"product_id": scarf, "stock": -1}])
        assert _product(scarf).stock == 4

    def test_unknown_variant_rejected(self, register_product, seller):
        scarf = register_product(variants=[{"options": {"size": "M"}, "stock": 1}])
        with pytest.raises(ValidationError):
            _update(seller, [{"product_id": scarf, "stock": 3, "selected_variant": {"size": "XL"}}])

    def test_unknown_product(self, seller):
        with pytest.raises(ObjectNotFoundError):
            _update(seller, [{"product_id": "missing", "stock": 3}])

    def test_admin_may_update_any_shop(self, register_product, admin):
        cloth = register_product(name="Batik Cloth", vendor="Kwame Textiles", stock=5)
        _update(admin, [{"product_id": cloth, "stock": 6}])
        assert _product(cloth).stock == 6
