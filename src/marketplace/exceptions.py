"""Error taxonomy for the fulfillment core.

Errors that describe bad input or an illegal state change extend Protean's
``ValidationError`` so that they abort the Unit of Work and surface as 400s
like every other domain validation failure. Missing entities reuse
``ObjectNotFoundError``. Authorization and concurrency failures have no Protean
counterpart and derive from ``MarketplaceError``.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError

__all__ = [
    "InsufficientStock",
    "InvalidState",
    "InvalidTransition",
    "MarketplaceError",
    "NotFound",
    "TransactionAbort",
    "Unauthorized",
    "ValidationError",
]


class MarketplaceError(Exception):
    """Base for errors that are not validation failures."""

    code = "marketplace_error"

    def __init__(self, messages: dict):
        super().__init__(messages)
        self.messages = messages


class Unauthorized(MarketplaceError):
    """The actor has no standing to act on this order or resource."""

    code = "unauthorized"

    def __init__(self, message: str):
        super().__init__({"actor": [message]})


class TransactionAbort(MarketplaceError):
    """The write lost a race; retry the whole operation."""

    code = "transaction_abort"

    def __init__(self, message: str, expected_revision: int | None = None, actual_revision: int | None = None):
        super().__init__({"revision": [message]})
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class NotFound(ObjectNotFoundError):
    code = "not_found"

    def __init__(self, entity: str, identifier: str):
        messages = {"_entity": [f"{entity} not found: {identifier}"]}
        super().__init__(messages)
        self.messages = messages
        self.entity = entity
        self.identifier = identifier


class InsufficientStock(ValidationError):
    """A line could not be covered by the product's (or variant's) stock."""

    code = "insufficient_stock"

    def __init__(self, product_id: str, name: str, required: int, available: int, variant: dict | None = None):
        if variant:
            message = f"Not enough stock for variant {variant} of {name}. Only {available} available."
        else:
            message = f"Not enough stock for {name}. Only {available} available."
        super().__init__({"stock": [message]})
        self.product_id = product_id
        self.name = name
        self.required = required
        self.available = available
        self.variant = variant

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "selected_variant": self.variant,
            "required": self.required,
            "available": self.available,
        }


class InvalidTransition(ValidationError):
    """The actor may not move the order from its current status to the requested one."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str, role: str, message: str | None = None):
        super().__init__(
            {"status": [message or f"{role} cannot change status from {current} to {requested}"]},
        )
        self.current = current
        self.requested = requested
        self.role = role


class InvalidState(InvalidTransition):
    """The operation is known to the actor but the order is not in a status that allows it."""

    code = "invalid_state"

    def __init__(self, current: str, requested: str, role: str, expected: list[str] | None = None):
        expected_text = f" (expected {', '.join(expected)})" if expected else ""
        super().__init__(
            current,
            requested,
            role,
            message=f"Order status is currently '{current}', cannot move to '{requested}'{expected_text}",
        )
        self.expected = expected or []
