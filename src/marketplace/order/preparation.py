"""Seller preparation — a seller marks a confirmed order ready for carrier pickup."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.queries import get_order
from marketplace.order.transitions import OrderStatus, assert_legal, parse_status

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateSellerOrderStatus:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_shop = String()
    order_id = Identifier(required=True)
    status = String(required=True)
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class SellerOrderHandler:
    @handle(UpdateSellerOrderStatus)
    def update_status(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        target = parse_status(command.status)
        actor.require(Role.SELLER)
        order.assert_seller_involved(actor)
        if target != OrderStatus.READY_FOR_PICKUP:
            assert_legal(actor.role, order.current_status, target)
        order.mark_ready_for_pickup(actor)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order ready for pickup",
            order_id=str(order.id),
            vendor=actor.shop_name,
            revision=order.revision,
        )
        return order.revision
