"""Order domain events — immutable facts about an order's life.

Every accepted status change raises exactly one ``OrderStatusChanged``; the
payload mirrors the status-change log entry written in the same Unit of Work.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order and its stock was reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    customer_id = Identifier(required=True)
    vendor_summary = Text(required=True)  # JSON: vendor -> {item_count, subtotal}
    delivery_method = String(required=True)
    pickup_point_id = String()
    reservation_id = Identifier()
    item_count = Integer(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    changed_by = String(required=True)
    actor_role = String(required=True)
    revision = Integer(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class DeliveryAgentAssigned:
    """An admin assigned a delivery agent to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    assigned_by = String(required=True)
    assigned_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class DisputeMessagePosted:
    """A customer, seller or admin added to the order's dispute thread."""

    __version__ = 1

    order_id = Identifier(required=True)
    author = String(required=True)
    message = Text(required=True)
    posted_at = DateTime(required=True)
