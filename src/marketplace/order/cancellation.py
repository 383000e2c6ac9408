"""Order cancellation — the status change and the stock release commit together."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.queries import get_order
from marketplace.stock import ledger

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class CancelOrder:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_revision = Integer()


def release_order_stock(order: Order, reason: str) -> bool:
    """Give back the order's reserved stock; a no-op if it was already returned."""
    if not order.reservation_id:
        logger.warning("Order has no stock reservation", order_id=str(order.id))
        return False
    return ledger.release(str(order.reservation_id), reason=reason)


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.CUSTOMER)

        order = get_order(command.order_id)
        order.check_revision(command.expected_revision)
        order.cancel(actor, reason=command.reason)
        released = release_order_stock(order, reason="order-cancelled")
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            tracking_number=order.tracking_number,
            stock_released=released,
            revision=order.revision,
        )
        return order.revision
