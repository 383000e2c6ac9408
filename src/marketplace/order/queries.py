"""Order lookups by identity, tracking number and actor."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.exceptions import NotFound
from marketplace.order.order import Order
from marketplace.order.transitions import OPEN_MISSION_STATUSES, OrderStatus
from marketplace.utils.db import all_pages

def get_order(order_id: str) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError as exc:
        raise NotFound("Order", order_id) from exc


def get_order_by_tracking_number(tracking_number: str) -> Order:
    results = (
        current_domain.repository_for(Order)._dao.query.filter(tracking_number=tracking_number).all().items
    )
    if not results:
        raise NotFound("Order", tracking_number)
    return results[0]


def _find(limit: int | None = None, offset: int = 0, **filters) -> list[Order]:
    """One page of matching orders, newest first; every match when no limit is given."""
    query = current_domain.repository_for(Order)._dao.query
    if filters:
        query = query.filter(**filters)
    query = query.order_by("-created_at")
    if limit is None:
        return list(all_pages(query))
    return query.offset(offset).limit(limit).all().items


def orders_for_customer(customer_id: str, limit: int | None = None, offset: int = 0) -> list[Order]:
    return _find(limit, offset, customer_id=customer_id)


def missions_for_agent(agent_id: str) -> list[Order]:
    return _find(
        agent_id=agent_id,
        status__in=[status.value for status in OPEN_MISSION_STATUSES],
    )


def orders_at_depot(depot_id: str) -> list[Order]:
    """Parcels checked in at the depot, or waiting there for pickup."""
    return [
        order
        for order in _find(status=OrderStatus.AT_DEPOT.value)
        if order.depot_id == depot_id or order.pickup_point_id == depot_id
    ]


def orders_with_status(status: str | None = None, limit: int | None = None, offset: int = 0) -> list[Order]:
    if status:
        return _find(limit, offset, status=status)
    return _find(limit, offset)


def occupied_slot(depot_id: str, storage_location_id: str) -> Order | None:
    """The order currently stored in the slot, if any."""
    results = _find(
        depot_id=depot_id,
        storage_location_id=storage_location_id,
        status=OrderStatus.AT_DEPOT.value,
    )
    return results[0] if results else None
