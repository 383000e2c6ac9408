"""Payout domain events."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Payout")
class PayoutRecorded:
    __version__ = 1

    payout_id = Identifier(required=True)
    store_name = String(required=True)
    amount = Float(required=True)
    reference = String()
    paid_at = DateTime(required=True)
