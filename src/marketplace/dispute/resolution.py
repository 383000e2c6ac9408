"""Disputes — refund requests, the message thread, and the admin's ruling."""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.actors import Actor
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.queries import get_order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class RequestRefund:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    evidence_urls = Text()  # JSON list
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class AddDisputeMessage:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_shop = String()
    order_id = Identifier(required=True)
    message = Text(required=True)


@marketplace.command(part_of="Order")
class ResolveRefund:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    resolution = String(required=True)
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class DisputeHandler:
    @handle(RequestRefund)
    def request_refund(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        evidence = json.loads(command.evidence_urls) if command.evidence_urls else []
        order.request_refund(actor, command.reason, evidence)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Refund requested",
            order_id=str(order.id),
            previous_status=order.previous_status,
            evidence_count=len(evidence),
        )
        return order.revision

    @handle(AddDisputeMessage)
    def add_message(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)

        order.post_dispute_message(actor, command.message)
        current_domain.repository_for(Order).add(order)

        logger.info("Dispute message posted", order_id=str(order.id), author_role=actor.role.value)
        return len(order.dispute_log)

    @handle(ResolveRefund)
    def resolve_refund(self, command):
        actor = Actor.from_command(command)
        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)

        order.resolve_refund(actor, command.resolution)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Refund resolved",
            order_id=str(order.id),
            resolution=order.refund_resolution,
            status=order.status,
        )
        return order.revision
