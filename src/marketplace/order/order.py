"""Order aggregate (CQRS) — the record every actor in the marketplace mutates.

The Order is persisted as a document: line items, the customer-facing tracking
history, the administrative status-change log and the dispute thread are all
embedded, so an order's timeline is one read.

Status only ever changes through ``transition()``, which consults the legality
table in ``marketplace.order.transitions`` and, in one step, writes the new
status, appends one tracking entry, appends one status-change entry, bumps
``revision`` and raises ``OrderStatusChanged``. The two logs therefore always
have one entry per status the order has held.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.exceptions import InvalidState, TransactionAbort, Unauthorized
from marketplace.order.events import (
    DeliveryAgentAssigned,
    DisputeMessagePosted,
    OrderPlaced,
    OrderStatusChanged,
)
from marketplace.order.transitions import (
    DEPOT_ADJACENT_STATUSES,
    TERMINAL_STATUSES,
    OrderStatus,
    assert_legal,
)
from marketplace.stock.product import variant_key


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class DeliveryMethod(Enum):
    PICKUP = "pickup"
    HOME_DELIVERY = "home-delivery"


class DeliveryFailureReason(Enum):
    CLIENT_ABSENT = "client-absent"
    WRONG_ADDRESS = "wrong-address"
    PACKAGE_REFUSED = "package-refused"


class DisputeAuthor(Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    ADMIN = "admin"


class RefundResolution(Enum):
    REFUNDED = "refunded"
    REJECTED = "rejected"


_DISPUTE_AUTHORS = {
    Role.CUSTOMER: DisputeAuthor.CUSTOMER,
    Role.SELLER: DisputeAuthor.SELLER,
    Role.ADMIN: DisputeAuthor.ADMIN,
}


def new_tracking_number() -> str:
    """``KZ`` + UTC timestamp + random suffix; never reused."""
    return f"KZ{datetime.now(UTC).strftime('%y%m%d%H%M%S')}{uuid4().hex[:8].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, frozen at placement."""

    full_name = String(required=True, max_length=200)
    phone = String(required=True, max_length=50)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    latitude = Float()
    longitude = Float()


@marketplace.value_object(part_of="Order")
class AppliedPromoCode:
    code = String(required=True, max_length=50)
    discount_type = String(max_length=20)
    discount_value = Float()


@marketplace.value_object(part_of="Order")
class Discrepancy:
    """An anomaly noted at the depot; advisory at check-in, blocking when reported."""

    reason = String(required=True, max_length=500)
    reported_at = DateTime(required=True)
    reported_by = Identifier(required=True)


@marketplace.value_object(part_of="Order")
class DeliveryFailure:
    reason = String(required=True, choices=DeliveryFailureReason)
    details = String(max_length=500)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A line item copied from the catalogue when the order was placed.

    Later catalogue edits never reach a placed order: revenue, refunds and
    stock release all work from this snapshot.
    """

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    vendor = String(required=True, max_length=255)
    selected_variant = Text()  # JSON object: option name -> value
    image_urls = Text()  # JSON list
    weight = Float()
    additional_shipping_fee = Float(default=0.0)

    @property
    def variant(self) -> dict | None:
        return json.loads(self.selected_variant) if self.selected_variant else None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@marketplace.entity(part_of="Order")
class TrackingEvent:
    """Customer-facing timeline entry."""

    status = String(required=True, max_length=50)
    occurred_at = DateTime(required=True)
    location = String(max_length=200)
    details = String(max_length=500)


@marketplace.entity(part_of="Order")
class StatusChange:
    """Administrative audit entry: who moved the order where."""

    status = String(required=True, max_length=50)
    occurred_at = DateTime(required=True)
    changed_by = String(required=True, max_length=255)


@marketplace.entity(part_of="Order")
class DisputeMessage:
    author = String(required=True, choices=DisputeAuthor)
    message = Text(required=True)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    tracking_number = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    customer_name = String(max_length=200)

    items = HasMany(OrderItem)
    status = String(choices=OrderStatus, default=OrderStatus.CONFIRMED.value)
    tracking_history = HasMany(TrackingEvent)
    status_change_log = HasMany(StatusChange)
    dispute_log = HasMany(DisputeMessage)
    revision = Integer(default=0)

    # Logistics
    shipping_address = ValueObject(ShippingAddress)
    delivery_method = String(required=True, choices=DeliveryMethod)
    delivery_time_slot = String(max_length=100)
    pickup_point_id = String(max_length=100)
    agent_id = Identifier()
    depot_id = String(max_length=100)
    storage_location_id = String(max_length=100)
    checked_in_at = DateTime()
    checked_in_by = Identifier()
    discrepancy = ValueObject(Discrepancy)
    delivery_failure = ValueObject(DeliveryFailure)
    departure_processed_by = Identifier()
    departure_processed_at = DateTime()
    pickup_recipient_name = String(max_length=200)
    pickup_recipient_id = String(max_length=100)
    proof_of_delivery_url = String(max_length=1000)
    signature_url = String(max_length=1000)

    # Financial snapshot
    subtotal = Float(required=True, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    applied_promo_code = ValueObject(AppliedPromoCode)

    # Stock
    reservation_id = Identifier()

    # Cancellation and disputes
    cancellation_reason = String(max_length=500)
    refund_reason = String(max_length=1000)
    refund_evidence_urls = Text()  # JSON list
    previous_status = String(choices=OrderStatus)
    refund_resolution = String(choices=RefundResolution)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer: Actor,
        items_data: list[dict],
        shipping_address: dict,
        delivery_method: str,
        subtotal: float,
        total: float,
        delivery_fee: float = 0.0,
        pickup_point_id: str | None = None,
        delivery_time_slot: str | None = None,
        applied_promo_code: dict | None = None,
        reservation_id: str | None = None,
        order_id: str | None = None,
    ):
        """Create a confirmed order from checkout data.

        ``items_data`` entries carry product_id, name, price, quantity, vendor
        and optionally selected_variant (dict), image_urls, weight and
        additional_shipping_fee. The stock reservation has already been taken
        by the caller; its id is recorded so cancellation can return it.
        """
        if not items_data:
            raise ValidationError({"items": ["No order items"]})
        if delivery_method == DeliveryMethod.PICKUP.value and not pickup_point_id:
            raise ValidationError({"pickup_point_id": ["Pickup orders need a pickup point"]})

        now = datetime.now(UTC)
        fields = {
            "tracking_number": new_tracking_number(),
            "customer_id": customer.id,
            "customer_name": customer.name,
            "status": OrderStatus.CONFIRMED.value,
            "shipping_address": ShippingAddress(**shipping_address) if shipping_address else None,
            "delivery_method": delivery_method,
            "delivery_time_slot": delivery_time_slot,
            "pickup_point_id": pickup_point_id,
            "subtotal": subtotal,
            "delivery_fee": delivery_fee or 0.0,
            "total": total,
            "applied_promo_code": AppliedPromoCode(**applied_promo_code) if applied_promo_code else None,
            "reservation_id": reservation_id,
            "created_at": now,
            "updated_at": now,
        }
        if order_id:
            fields["id"] = order_id
        order = cls(**fields)

        for item in items_data:
            order.add_items(
                OrderItem(
                    product_id=item["product_id"],
                    name=item["name"],
                    price=item["price"],
                    quantity=item["quantity"],
                    vendor=item["vendor"],
                    selected_variant=variant_key(item.get("selected_variant")) or None,
                    image_urls=json.dumps(item["image_urls"]) if item.get("image_urls") else None,
                    weight=item.get("weight"),
                    additional_shipping_fee=item.get("additional_shipping_fee") or 0.0,
                )
            )

        # Placement is the first status the order holds; both logs start here.
        order.add_tracking_history(
            TrackingEvent(
                status=OrderStatus.CONFIRMED.value,
                occurred_at=now,
                location="System",
                details="Order confirmed and awaiting seller preparation.",
            )
        )
        order.add_status_change_log(
            StatusChange(
                status=OrderStatus.CONFIRMED.value,
                occurred_at=now,
                changed_by=customer.label,
            )
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                tracking_number=order.tracking_number,
                customer_id=customer.id,
                vendor_summary=json.dumps(order.vendor_summary()),
                delivery_method=delivery_method,
                pickup_point_id=pickup_point_id,
                reservation_id=reservation_id,
                item_count=len(items_data),
                total=total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries over the snapshot
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def vendors(self) -> list[str]:
        return sorted({item.vendor for item in (self.items or [])})

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def involves_vendor(self, vendor: str | None) -> bool:
        return bool(vendor) and any(item.vendor == vendor for item in (self.items or []))

    def vendor_summary(self) -> dict[str, dict]:
        summary: dict[str, dict] = {}
        for item in self.items or []:
            entry = summary.setdefault(item.vendor, {"item_count": 0, "subtotal": 0.0})
            entry["item_count"] += item.quantity
            entry["subtotal"] += item.line_total
        return summary

    def stock_lines(self) -> list[dict]:
        return [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "selected_variant": item.variant,
                "quantity": item.quantity,
            }
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # Authority checks
    # -------------------------------------------------------------------
    def assert_owned_by(self, actor: Actor) -> None:
        if str(self.customer_id) != actor.id:
            raise Unauthorized("Not authorized for this order")

    def assert_seller_involved(self, actor: Actor) -> None:
        if not self.involves_vendor(actor.shop_name):
            raise Unauthorized("Not authorized to update this order")

    def assert_assigned_to(self, actor: Actor) -> None:
        if not self.agent_id or str(self.agent_id) != actor.id:
            raise Unauthorized("Not authorized to update this order")

    def can_view(self, actor: Actor) -> bool:
        if actor.is_admin or str(self.customer_id) == actor.id:
            return True
        if actor.role == Role.SELLER:
            return self.involves_vendor(actor.shop_name)
        if actor.role == Role.DELIVERY_AGENT:
            return bool(self.agent_id) and str(self.agent_id) == actor.id
        return actor.role == Role.DEPOT_AGENT

    def can_discuss(self, actor: Actor) -> bool:
        """Dispute standing is evaluated on every call, never cached."""
        if actor.is_admin:
            return True
        if actor.role == Role.CUSTOMER:
            return str(self.customer_id) == actor.id
        if actor.role == Role.SELLER:
            return self.involves_vendor(actor.shop_name)
        return False

    def check_revision(self, expected_revision: int | None) -> None:
        if expected_revision is not None and expected_revision != self.revision:
            raise TransactionAbort(
                f"Order {self.tracking_number} was modified concurrently "
                f"(expected revision {expected_revision}, found {self.revision})",
                expected_revision=expected_revision,
                actual_revision=self.revision,
            )

    # -------------------------------------------------------------------
    # Transition engine
    # -------------------------------------------------------------------
    def transition(
        self,
        actor: Actor,
        target: OrderStatus,
        details: str | None = None,
        location: str | None = None,
    ) -> None:
        """Move the order to ``target`` if ``actor`` may, writing both logs."""
        current = self.current_status
        assert_legal(actor.role, current, target)

        now = datetime.now(UTC)
        self.status = target.value
        self.add_tracking_history(
            TrackingEvent(
                status=target.value,
                occurred_at=now,
                location=location,
                details=details or f"Status updated by {actor.label}",
            )
        )
        self.add_status_change_log(
            StatusChange(
                status=target.value,
                occurred_at=now,
                changed_by=actor.label,
            )
        )
        self.revision = (self.revision or 0) + 1
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                previous_status=current.value,
                status=target.value,
                changed_by=actor.label,
                actor_role=actor.role.value,
                revision=self.revision,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Customer
    # -------------------------------------------------------------------
    def cancel(self, actor: Actor, reason: str | None = None) -> None:
        """Cancel before carrier pickup. The caller releases the stock reservation."""
        if actor.role == Role.CUSTOMER:
            self.assert_owned_by(actor)
        self.transition(
            actor,
            OrderStatus.CANCELLED,
            details=f"Order cancelled by {actor.label}" + (f": {reason}" if reason else ""),
        )
        self.cancellation_reason = reason

    def request_refund(self, actor: Actor, reason: str, evidence_urls: list[str] | None = None) -> None:
        self.assert_owned_by(actor)
        if not reason:
            raise ValidationError({"reason": ["A refund request needs a reason"]})

        previous = self.current_status
        self.transition(actor, OrderStatus.REFUND_REQUESTED, details=f"Refund requested: {reason}")
        self.previous_status = previous.value
        self.refund_reason = reason
        self.refund_evidence_urls = json.dumps(evidence_urls or [])
        self._append_dispute(DisputeAuthor.CUSTOMER, f"Refund request: {reason}")

    # -------------------------------------------------------------------
    # Seller
    # -------------------------------------------------------------------
    def mark_ready_for_pickup(self, actor: Actor) -> None:
        actor.require(Role.SELLER)
        self.assert_seller_involved(actor)
        self.transition(
            actor,
            OrderStatus.READY_FOR_PICKUP,
            details=f"Status updated by seller {actor.shop_name}",
        )

    # -------------------------------------------------------------------
    # Delivery agent
    # -------------------------------------------------------------------
    def advance_delivery(
        self,
        actor: Actor,
        target: OrderStatus,
        details: str | None = None,
        failure_reason: str | None = None,
    ) -> None:
        actor.require(Role.DELIVERY_AGENT)
        self.assert_assigned_to(actor)

        failure = None
        if target == OrderStatus.DELIVERY_FAILED:
            valid_reasons = [r.value for r in DeliveryFailureReason]
            if failure_reason not in valid_reasons:
                raise ValidationError({"reason": [f"Delivery failure reason must be one of: {', '.join(valid_reasons)}"]})
            failure = DeliveryFailure(reason=failure_reason, details=details, occurred_at=datetime.now(UTC))

        self.transition(
            actor,
            target,
            details=details or f"Status updated by delivery agent {actor.name}",
        )
        if failure is not None:
            self.delivery_failure = failure

    def confirm_delivery(self, actor: Actor, proof_of_delivery_url: str, signature_url: str | None = None) -> None:
        actor.require(Role.DELIVERY_AGENT)
        self.assert_assigned_to(actor)
        if not proof_of_delivery_url:
            raise ValidationError({"proof_of_delivery_url": ["Proof of delivery is required"]})

        self.transition(
            actor,
            OrderStatus.DELIVERED,
            details=f"Delivered by {actor.name} with proof of delivery",
        )
        self.proof_of_delivery_url = proof_of_delivery_url
        self.signature_url = signature_url

    # -------------------------------------------------------------------
    # Depot agent
    # -------------------------------------------------------------------
    def check_in(self, actor: Actor, storage_location_id: str, notes: str | None = None) -> None:
        actor.require(Role.DEPOT_AGENT)
        if not storage_location_id:
            raise ValidationError({"storage_location_id": ["A storage location is required"]})

        self.transition(
            actor,
            OrderStatus.AT_DEPOT,
            details=f"Arrived at depot, stored at {storage_location_id}",
            location=actor.depot_id,
        )
        now = datetime.now(UTC)
        self.storage_location_id = storage_location_id
        self.depot_id = actor.depot_id
        self.checked_in_at = now
        self.checked_in_by = actor.id
        if notes:
            self.discrepancy = Discrepancy(
                reason=f"Note at check-in: {notes}",
                reported_at=now,
                reported_by=actor.id,
            )

    def process_departure(
        self,
        actor: Actor,
        recipient_name: str | None = None,
        recipient_id_number: str | None = None,
    ) -> None:
        """Release the parcel from the depot.

        Pickup orders are handed to a verified recipient and end here as
        ``delivered``; home deliveries leave with a courier as
        ``out-for-delivery``.
        """
        actor.require(Role.DEPOT_AGENT)
        if self.current_status != OrderStatus.AT_DEPOT:
            raise InvalidState(
                self.status,
                "departure",
                actor.role.value,
                expected=[OrderStatus.AT_DEPOT.value],
            )

        if self.delivery_method == DeliveryMethod.PICKUP.value:
            if not recipient_name or not recipient_id_number:
                raise ValidationError({"recipient_info": ["Recipient name and ID number are required for pickup"]})
            target = OrderStatus.DELIVERED
            details = f"Collected by {recipient_name} at pickup point, released by depot agent {actor.name}"
        else:
            target = OrderStatus.OUT_FOR_DELIVERY
            details = f"Processed for departure by depot agent {actor.name}"

        self.transition(actor, target, details=details, location=self.depot_id or actor.depot_id)
        self.departure_processed_by = actor.id
        self.departure_processed_at = datetime.now(UTC)
        if target == OrderStatus.DELIVERED:
            self.pickup_recipient_name = recipient_name
            self.pickup_recipient_id = recipient_id_number

    def report_discrepancy(self, actor: Actor, reason: str) -> None:
        actor.require(Role.DEPOT_AGENT)
        if not reason:
            raise ValidationError({"reason": ["A discrepancy needs a reason"]})
        if self.current_status not in DEPOT_ADJACENT_STATUSES:
            raise InvalidState(
                self.status,
                OrderStatus.DEPOT_ISSUE.value,
                actor.role.value,
                expected=sorted(s.value for s in DEPOT_ADJACENT_STATUSES),
            )

        self.transition(
            actor,
            OrderStatus.DEPOT_ISSUE,
            details=f"Depot issue reported: {reason}",
            location=actor.depot_id,
        )
        self.discrepancy = Discrepancy(reason=reason, reported_at=datetime.now(UTC), reported_by=actor.id)

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def resolve_refund(self, actor: Actor, resolution: str) -> None:
        actor.require(Role.ADMIN)
        try:
            outcome = RefundResolution(resolution)
        except ValueError as exc:
            raise ValidationError(
                {"resolution": [f"Resolution must be one of: {', '.join(r.value for r in RefundResolution)}"]}
            ) from exc
        if self.current_status != OrderStatus.REFUND_REQUESTED:
            raise InvalidState(
                self.status,
                outcome.value,
                actor.role.value,
                expected=[OrderStatus.REFUND_REQUESTED.value],
            )

        if outcome == RefundResolution.REFUNDED:
            target = OrderStatus.REFUNDED
        else:
            target = OrderStatus(self.previous_status or OrderStatus.DELIVERED.value)

        self.transition(actor, target, details=f"Refund request {outcome.value} by admin")
        self.refund_resolution = outcome.value
        self._append_dispute(DisputeAuthor.ADMIN, f"Refund request {outcome.value}.")

    def force_status(self, actor: Actor, target: OrderStatus, details: str | None = None) -> None:
        actor.require(Role.ADMIN)
        self.transition(actor, target, details=details or f"Status set by {actor.label}")

    def assign_agent(self, actor: Actor, agent_id: str) -> None:
        actor.require(Role.ADMIN)
        if self.is_terminal:
            raise ValidationError({"agent_id": [f"Cannot assign an agent to a {self.status} order"]})

        now = datetime.now(UTC)
        self.agent_id = agent_id
        self.updated_at = now
        self.raise_(
            DeliveryAgentAssigned(
                order_id=str(self.id),
                agent_id=agent_id,
                assigned_by=actor.label,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Disputes
    # -------------------------------------------------------------------
    def post_dispute_message(self, actor: Actor, message: str) -> None:
        if not self.can_discuss(actor):
            raise Unauthorized("Not authorized for this order")
        if not message or not message.strip():
            raise ValidationError({"message": ["Message cannot be empty"]})
        self._append_dispute(_DISPUTE_AUTHORS[actor.role], message.strip())

    def _append_dispute(self, author: DisputeAuthor, message: str) -> None:
        now = datetime.now(UTC)
        self.add_dispute_log(DisputeMessage(author=author.value, message=message, occurred_at=now))
        self.updated_at = now
        self.raise_(
            DisputeMessagePosted(
                order_id=str(self.id),
                author=author.value,
                message=message,
                posted_at=now,
            )
        )
