"""Depot inventory — parcels arriving at, waiting in and leaving a depot.

Orders are addressed by tracking number here, as scanned off the parcel.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.depot.depot import Depot
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.queries import get_order_by_tracking_number, occupied_slot
from marketplace.order.transitions import OrderStatus, assert_legal

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class CheckInOrder:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_depot = String()
    tracking_number = String(required=True)
    storage_location_id = String(required=True, max_length=100)
    notes = String(max_length=500)
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class ProcessDeparture:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_depot = String()
    tracking_number = String(required=True)
    recipient_name = String(max_length=200)
    recipient_id_number = String(max_length=100)
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class ReportDiscrepancy:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    actor_depot = String()
    tracking_number = String(required=True)
    reason = String(required=True, max_length=500)
    expected_revision = Integer()


def _registered_depot(depot_id: str | None) -> Depot | None:
    if not depot_id:
        return None
    try:
        return current_domain.repository_for(Depot).get(depot_id)
    except ObjectNotFoundError:
        return None


def _assert_slot_available(actor: Actor, order: Order, storage_location_id: str) -> None:
    """Slots are checked only at depots with a registered layout."""
    depot = _registered_depot(actor.depot_id)
    if depot is None:
        return
    depot.assert_slot_exists(storage_location_id)
    occupant = occupied_slot(str(depot.id), storage_location_id)
    if occupant is not None and occupant.id != order.id:
        raise ValidationError(
            {"storage_location_id": [f"Slot {storage_location_id} is occupied by order {occupant.tracking_number}"]}
        )


@marketplace.command_handler(part_of=Order)
class DepotInventoryHandler:
    @handle(CheckInOrder)
    def check_in(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.DEPOT_AGENT)
        order = get_order_by_tracking_number(command.tracking_number)
        order.check_revision(command.expected_revision)

        assert_legal(actor.role, order.current_status, OrderStatus.AT_DEPOT)
        _assert_slot_available(actor, order, command.storage_location_id)
        order.check_in(actor, command.storage_location_id, notes=command.notes)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order checked in at depot",
            tracking_number=order.tracking_number,
            depot_id=actor.depot_id,
            storage_location_id=order.storage_location_id,
        )
        return order.revision

    @handle(ProcessDeparture)
    def process_departure(self, command):
        actor = Actor.from_command(command)
        order = get_order_by_tracking_number(command.tracking_number)
        order.check_revision(command.expected_revision)

        order.process_departure(actor, command.recipient_name, command.recipient_id_number)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order departed depot",
            tracking_number=order.tracking_number,
            depot_id=order.depot_id,
            status=order.status,
        )
        return order.revision

    @handle(ReportDiscrepancy)
    def report_discrepancy(self, command):
        actor = Actor.from_command(command)
        order = get_order_by_tracking_number(command.tracking_number)
        order.check_revision(command.expected_revision)

        order.report_discrepancy(actor, command.reason)
        current_domain.repository_for(Order).add(order)

        logger.warning(
            "Depot discrepancy reported",
            tracking_number=order.tracking_number,
            depot_id=actor.depot_id,
            reason=command.reason,
        )
        return order.revision
