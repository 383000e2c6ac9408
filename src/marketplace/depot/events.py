"""Depot domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Depot")
class DepotRegistered:
    """An admin opened a depot with its storage layout."""

    __version__ = 1

    depot_id = Identifier(required=True)
    name = String(required=True)
    city = String(required=True)
    aisles = Integer(required=True)
    shelves = Integer(required=True)
    locations = Integer(required=True)
    registered_at = DateTime(required=True)
