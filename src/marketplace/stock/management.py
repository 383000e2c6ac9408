"""Catalogue stock management — sellers list products and set their stock."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.exceptions import Unauthorized
from marketplace.stock.product import Product

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Product")
class RegisterProduct:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_shop = String()
    vendor = String(max_length=255)  # admins list on behalf of a shop
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    description = Text()
    stock = Integer(default=0, min_value=0)
    variant_details = Text()  # JSON list of {options, stock, price?, sku?}


@marketplace.command(part_of="Product")
class UpdateProductStock:
    """Set stock for several products (or variants) in one step."""

    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_shop = String()
    updates = Text(required=True)  # JSON list of {product_id, stock, selected_variant?}


@marketplace.command_handler(part_of=Product)
class ProductManagementHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.SELLER, Role.ADMIN)

        vendor = actor.shop_name if actor.role == Role.SELLER else command.vendor
        if not vendor:
            raise ValidationError({"vendor": ["A product must belong to a shop"]})

        product = Product.register(
            name=command.name,
            vendor=vendor,
            price=command.price,
            stock=command.stock or 0,
            description=command.description,
            variants=json.loads(command.variant_details) if command.variant_details else None,
        )
        current_domain.repository_for(Product).add(product)

        logger.info("Product registered", product_id=str(product.id), vendor=vendor)
        return str(product.id)

    @handle(UpdateProductStock)
    def update_product_stock(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.SELLER, Role.ADMIN)

        updates = json.loads(command.updates)
        if not updates:
            raise ValidationError({"updates": ["No stock updates given"]})

        repo = current_domain.repository_for(Product)
        products: dict[str, Product] = {}
        for update in updates:
            product_id = str(update["product_id"])
            if product_id not in products:
                products[product_id] = repo.get(product_id)
            product = products[product_id]
            if actor.role == Role.SELLER and product.vendor != actor.shop_name:
                raise Unauthorized(f"Not authorized to update product {product.name}")
            product.set_stock(update.get("stock"), update.get("selected_variant"))

        for product in products.values():
            repo.add(product)

        logger.info("Product stock updated", product_count=len(products), actor_id=actor.id)
        return len(products)
