"""Depot aggregate — a sorting and pickup facility with a grid of storage slots.

Slots are addressed ``A<aisle>-S<shelf>-L<location>``, each index counting
from 1 up to the depot's declared layout.
"""

import re
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, ValueObject

from marketplace.depot.events import DepotRegistered
from marketplace.domain import marketplace

_SLOT_PATTERN = re.compile(r"^A(\d+)-S(\d+)-L(\d+)$")


def parse_slot(storage_location_id: str) -> tuple[int, int, int]:
    match = _SLOT_PATTERN.match(storage_location_id or "")
    if match is None:
        raise ValidationError(
            {"storage_location_id": [f"'{storage_location_id}' is not a slot of the form A<aisle>-S<shelf>-L<location>"]}
        )
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


@marketplace.value_object(part_of="Depot")
class Layout:
    aisles = Integer(required=True, min_value=1)
    shelves = Integer(required=True, min_value=1)
    locations = Integer(required=True, min_value=1)

    @property
    def capacity(self) -> int:
        return self.aisles * self.shelves * self.locations

    def contains(self, aisle: int, shelf: int, location: int) -> bool:
        return 1 <= aisle <= self.aisles and 1 <= shelf <= self.shelves and 1 <= location <= self.locations


@marketplace.aggregate
class Depot:
    name = String(required=True, max_length=200)
    city = String(required=True, max_length=100)
    neighborhood = String(max_length=100)
    layout = ValueObject(Layout, required=True)
    created_at = DateTime()

    @classmethod
    def register(cls, name, city, layout: dict, neighborhood=None, depot_id=None):
        now = datetime.now(UTC)
        fields = {
            "name": name,
            "city": city,
            "neighborhood": neighborhood,
            "layout": Layout(**layout),
            "created_at": now,
        }
        if depot_id:
            fields["id"] = depot_id
        depot = cls(**fields)
        depot.raise_(
            DepotRegistered(
                depot_id=str(depot.id),
                name=name,
                city=city,
                aisles=depot.layout.aisles,
                shelves=depot.layout.shelves,
                locations=depot.layout.locations,
                registered_at=now,
            )
        )
        return depot

    def assert_slot_exists(self, storage_location_id: str) -> None:
        aisle, shelf, location = parse_slot(storage_location_id)
        if not self.layout.contains(aisle, shelf, location):
            raise ValidationError(
                {"storage_location_id": [f"Slot {storage_location_id} is outside the layout of depot {self.name}"]}
            )
