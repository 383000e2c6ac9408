"""Payout aggregate — money paid out to a store. Recorded once, never edited."""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.payout.events import PayoutRecorded


@marketplace.aggregate
class Payout:
    store_name = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.01)
    reference = String(max_length=255)
    recorded_by = Identifier(required=True)
    paid_at = DateTime(required=True)

    @classmethod
    def record(cls, store_name, amount, recorded_by, reference=None):
        now = datetime.now(UTC)
        payout = cls(
            store_name=store_name,
            amount=amount,
            reference=reference,
            recorded_by=recorded_by,
            paid_at=now,
        )
        payout.raise_(
            PayoutRecorded(
                payout_id=str(payout.id),
                store_name=store_name,
                amount=amount,
                reference=reference,
                paid_at=now,
            )
        )
        return payout
