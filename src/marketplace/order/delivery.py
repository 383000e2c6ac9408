"""Delivery agent operations on the orders assigned to them."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.queries import get_order
from marketplace.order.transitions import parse_status

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateDeliveryStatus:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    status = String(required=True)
    details = String(max_length=500)
    reason = String(max_length=50)  # required for delivery-failed
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class ConfirmDelivery:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    proof_of_delivery_url = String(max_length=1000)
    signature_url = String(max_length=1000)
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class DeliveryHandler:
    @handle(UpdateDeliveryStatus)
    def update_status(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        order.advance_delivery(
            actor,
            parse_status(command.status),
            details=command.details,
            failure_reason=command.reason,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Delivery status updated",
            order_id=str(order.id),
            agent_id=actor.id,
            status=order.status,
            revision=order.revision,
        )
        return order.revision

    @handle(ConfirmDelivery)
    def confirm_delivery(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        order.confirm_delivery(actor, command.proof_of_delivery_url, command.signature_url)
        current_domain.repository_for(Order).add(order)

        logger.info("Delivery confirmed", order_id=str(order.id), agent_id=actor.id)
        return order.revision
