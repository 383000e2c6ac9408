"""Tests for the Depot aggregate and storage slot addressing."""

import pytest
from marketplace.depot.depot import Depot, parse_slot
from marketplace.depot.events import DepotRegistered
from protean.exceptions import ValidationError


def _make_depot():
    return Depot.register(
        name="Accra Central",
        city="Accra",
        neighborhood="Osu",
        layout={"aisles": 2, "shelves": 3, "locations": 4},
        depot_id="depot-accra",
    )


class TestSlotParsing:
    def test_parses_slot(self):
        assert parse_slot("A1-S2-L3") == (1, 2, 3)

    def test_multi_digit_indexes(self):
        assert parse_slot("A12-S03-L100") == (12, 3, 100)

    @pytest.mark.parametrize("slot", ["", "A1-S2", "a1-s2-l3", "B1-S2-L3", "A1-S2-L3-X"])
    def test_malformed_slots_rejected(self, slot):
        with pytest.raises(ValidationError):
            parse_slot(slot)


class TestDepot:
    def test_register(self):
        depot = _make_depot()
        assert str(depot.id) == "depot-accra"
        assert depot.layout.capacity == 24
        assert isinstance(depot._events[0], DepotRegistered)

    def test_slot_within_layout(self):
        _make_depot().assert_slot_exists("A2-S3-L4")

    @pytest.mark.parametrize("slot", ["A3-S1-L1", "A1-S4-L1", "A1-S1-L5", "A0-S1-L1"])
    def test_slot_outside_layout_rejected(self, slot):
        with pytest.raises(ValidationError):
            _make_depot().assert_slot_exists(slot)

    def test_layout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Depot.register(name="Kumasi", city="Kumasi", layout={"aisles": 0, "shelves": 1, "locations": 1})
