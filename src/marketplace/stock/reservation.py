"""StockReservation aggregate — the stock an order holds, line by line.

A reservation is created when an order is placed and released at most once,
when the order is cancelled. Releasing a reservation that is already released
is a no-op, which makes retried cancellations safe.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.stock.events import StockReleased, StockReserved


class ReservationStatus(Enum):
    ACTIVE = "active"
    RELEASED = "released"


@marketplace.entity(part_of="StockReservation")
class ReservationLine:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    selected_variant = Text()  # canonical JSON, absent for scalar stock
    quantity = Integer(required=True, min_value=1)

    @property
    def variant(self) -> dict | None:
        return json.loads(self.selected_variant) if self.selected_variant else None


@marketplace.aggregate
class StockReservation:
    order_reference = Identifier(required=True)
    lines = HasMany(ReservationLine)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime()
    released_at = DateTime()
    release_reason = String(max_length=255)

    @classmethod
    def open(cls, order_reference: str, lines: list[dict]):
        """``lines`` are already merged per (product_id, canonical variant)."""
        now = datetime.now(UTC)
        reservation = cls(
            order_reference=order_reference,
            status=ReservationStatus.ACTIVE.value,
            reserved_at=now,
        )
        for line in lines:
            reservation.add_lines(
                ReservationLine(
                    product_id=line["product_id"],
                    name=line.get("name"),
                    selected_variant=line["selected_variant"] or None,
                    quantity=line["quantity"],
                )
            )

        reservation.raise_(
            StockReserved(
                reservation_id=str(reservation.id),
                order_reference=order_reference,
                lines=json.dumps(lines),
                reserved_at=now,
            )
        )
        return reservation

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE.value

    def mark_released(self, reason: str | None = None) -> None:
        now = datetime.now(UTC)
        self.status = ReservationStatus.RELEASED.value
        self.released_at = now
        self.release_reason = reason
        self.raise_(
            StockReleased(
                reservation_id=str(self.id),
                order_reference=str(self.order_reference),
                reason=reason,
                released_at=now,
            )
        )
