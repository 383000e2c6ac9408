"""Administrative overrides: forced status changes and agent assignment."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.order.cancellation import release_order_stock
from marketplace.order.order import Order
from marketplace.order.queries import get_order
from marketplace.order.transitions import OrderStatus, parse_status
from marketplace.stock import ledger

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class ForceOrderStatus:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    status = String(required=True)
    details = String(max_length=500)
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class AssignDeliveryAgent:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class AdminOrderHandler:
    @handle(ForceOrderStatus)
    def force_status(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.ADMIN)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        target = parse_status(command.status)
        previous = order.status
        order.force_status(actor, target, details=command.details)

        # Stock follows the order in and out of cancelled.
        released = False
        if target == OrderStatus.CANCELLED:
            released = release_order_stock(order, reason="order-cancelled-by-admin")
        elif previous == OrderStatus.CANCELLED.value:
            order.reservation_id = ledger.reserve(order.stock_lines(), order_reference=str(order.id))
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order status forced",
            order_id=str(order.id),
            previous_status=previous,
            status=order.status,
            admin=actor.name,
            stock_released=released,
        )
        return order.revision

    @handle(AssignDeliveryAgent)
    def assign_agent(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.assign_agent(actor, command.agent_id)
        current_domain.repository_for(Order).add(order)

        logger.info("Delivery agent assigned", order_id=str(order.id), agent_id=command.agent_id)
        return str(order.agent_id)
