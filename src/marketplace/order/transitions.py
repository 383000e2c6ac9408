"""Order status machine: which actor may move an order from which status to which.

The table is the only place legality is decided. ``Order.transition`` consults
it before touching ``status``; operations with extra preconditions (depot
check-in, refund resolution) still end up here.

    confirmed -> ready-for-pickup -> picked-up -> at-depot -> out-for-delivery -> delivered
    confirmed | ready-for-pickup -> cancelled
    delivered -> refund-requested -> refunded | <previous status>
    picked-up | at-depot | out-for-delivery -> depot-issue
    out-for-delivery -> delivery-failed
    at-depot -> delivered                  (pickup-point collection)
"""

from enum import Enum

from protean.exceptions import ValidationError

from marketplace.actors import Role
from marketplace.exceptions import InvalidState, InvalidTransition


class OrderStatus(Enum):
    CONFIRMED = "confirmed"
    READY_FOR_PICKUP = "ready-for-pickup"
    PICKED_UP = "picked-up"
    AT_DEPOT = "at-depot"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUND_REQUESTED = "refund-requested"
    REFUNDED = "refunded"
    RETURNED = "returned"
    DEPOT_ISSUE = "depot-issue"
    DELIVERY_FAILED = "delivery-failed"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
        OrderStatus.RETURNED,
    }
)

# Statuses a delivery agent still has work to do on
OPEN_MISSION_STATUSES = frozenset(
    {
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.PICKED_UP,
        OrderStatus.AT_DEPOT,
        OrderStatus.OUT_FOR_DELIVERY,
    }
)

DEPOT_ADJACENT_STATUSES = frozenset(
    {
        OrderStatus.PICKED_UP,
        OrderStatus.AT_DEPOT,
        OrderStatus.OUT_FOR_DELIVERY,
    }
)

_S = OrderStatus

LEGAL_TRANSITIONS: dict[Role, dict[OrderStatus, frozenset[OrderStatus]]] = {
    Role.CUSTOMER: {
        _S.CONFIRMED: frozenset({_S.CANCELLED}),
        _S.READY_FOR_PICKUP: frozenset({_S.CANCELLED}),
        _S.DELIVERED: frozenset({_S.REFUND_REQUESTED}),
    },
    Role.SELLER: {
        _S.CONFIRMED: frozenset({_S.READY_FOR_PICKUP}),
    },
    Role.DELIVERY_AGENT: {
        _S.READY_FOR_PICKUP: frozenset({_S.PICKED_UP}),
        _S.PICKED_UP: frozenset({_S.AT_DEPOT}),
        _S.AT_DEPOT: frozenset({_S.OUT_FOR_DELIVERY}),
        _S.OUT_FOR_DELIVERY: frozenset({_S.DELIVERED, _S.DELIVERY_FAILED}),
    },
    Role.DEPOT_AGENT: {
        _S.PICKED_UP: frozenset({_S.AT_DEPOT, _S.DEPOT_ISSUE}),
        _S.AT_DEPOT: frozenset({_S.OUT_FOR_DELIVERY, _S.DELIVERED, _S.DEPOT_ISSUE}),
        _S.OUT_FOR_DELIVERY: frozenset({_S.DEPOT_ISSUE}),
    },
    # Admins can force any status change; it is still logged as "Admin: <name>".
    Role.ADMIN: {source: frozenset(set(OrderStatus) - {source}) for source in OrderStatus},
}


def allowed_targets(role: Role, current: OrderStatus) -> frozenset[OrderStatus]:
    return LEGAL_TRANSITIONS.get(role, {}).get(current, frozenset())


def is_legal(role: Role, current: OrderStatus, target: OrderStatus) -> bool:
    return target in allowed_targets(role, current)


def reachable_by(role: Role) -> frozenset[OrderStatus]:
    """Every status the role can ever move an order into."""
    targets = set()
    for destinations in LEGAL_TRANSITIONS.get(role, {}).values():
        targets |= destinations
    return frozenset(targets)


def sources_for(role: Role, target: OrderStatus) -> list[str]:
    return sorted(source.value for source, targets in LEGAL_TRANSITIONS.get(role, {}).items() if target in targets)


def assert_legal(role: Role, current: OrderStatus, target: OrderStatus) -> None:
    """Raise unless ``role`` may move an order from ``current`` to ``target``.

    A target the role can never reach is an ``InvalidTransition``. A target the
    role can reach, but not from the current status, is an ``InvalidState``:
    the request was sensible, the order has simply moved on (or not arrived).
    """
    if is_legal(role, current, target):
        return
    if target in reachable_by(role):
        raise InvalidState(current.value, target.value, role.value, expected=sources_for(role, target))
    raise InvalidTransition(current.value, target.value, role.value)


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise ValidationError({"status": [f"Unknown order status '{value}'"]}) from exc
