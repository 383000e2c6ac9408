"""Order placement — reserve stock and create the order as one step."""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.exceptions import NotFound
from marketplace.order.order import Order
from marketplace.stock import ledger
from marketplace.stock.product import Product

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    items = Text(required=True)  # JSON list of {product_id, quantity, selected_variant?}
    shipping_address = Text()  # JSON object
    delivery_method = String(required=True)
    delivery_time_slot = String()
    pickup_point_id = String()
    subtotal = Float(required=True)
    delivery_fee = Float(default=0.0)
    total = Float(required=True)
    applied_promo_code = Text()  # JSON object


def _snapshot(item: dict) -> dict:
    """Copy name, vendor and price from the catalogue as they stand right now."""
    try:
        product = current_domain.repository_for(Product).get(item["product_id"])
    except ObjectNotFoundError as exc:
        raise NotFound("Product", str(item["product_id"])) from exc

    price = product.price
    variant = product.variant_for(item.get("selected_variant"))
    if variant is not None and variant.price is not None:
        price = variant.price

    return {
        "product_id": str(product.id),
        "name": product.name,
        "price": price,
        "quantity": item["quantity"],
        "vendor": product.vendor,
        "selected_variant": item.get("selected_variant") or None,
        "image_urls": item.get("image_urls"),
        "weight": item.get("weight"),
        "additional_shipping_fee": item.get("additional_shipping_fee"),
    }


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.CUSTOMER)

        items = json.loads(command.items) if command.items else []
        if not items:
            raise ValidationError({"items": ["No order items"]})
        snapshots = [_snapshot(item) for item in items]

        order_id = str(uuid4())
        reservation_id = ledger.reserve(snapshots, order_reference=order_id)

        order = Order.place(
            customer=actor,
            items_data=snapshots,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            delivery_method=command.delivery_method,
            subtotal=command.subtotal,
            total=command.total,
            delivery_fee=command.delivery_fee or 0.0,
            pickup_point_id=command.pickup_point_id,
            delivery_time_slot=command.delivery_time_slot,
            applied_promo_code=json.loads(command.applied_promo_code) if command.applied_promo_code else None,
            reservation_id=reservation_id,
            order_id=order_id,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=order_id,
            tracking_number=order.tracking_number,
            customer_id=actor.id,
            reservation_id=reservation_id,
        )
        return order_id
