"""Store balances, computed from delivered sales and recorded payouts.

Nothing here is stored: every call recomputes from the seller orders
projection as it stands, so an order that leaves ``delivered`` (a refund, a
forced status) drops out of the revenue on the next call.
"""

from protean.utils.globals import current_domain

from marketplace.order.transitions import OrderStatus
from marketplace.payout.commission import get_commission_rate
from marketplace.payout.payout import Payout
from marketplace.projections.seller_orders import orders_for_vendor
from marketplace.utils.db import all_pages


def payouts_for(store_name: str | None = None) -> list[Payout]:
    query = current_domain.repository_for(Payout)._dao.query
    if store_name:
        query = query.filter(store_name=store_name)
    return list(all_pages(query.order_by("-paid_at")))


def compute_balance(store_name: str) -> dict:
    rate = get_commission_rate()
    revenue = sum(
        entry.vendor_subtotal or 0.0 for entry in orders_for_vendor(store_name, OrderStatus.DELIVERED.value)
    )
    commission = revenue * rate / 100
    payouts = payouts_for(store_name)
    paid_out = sum(payout.amount for payout in payouts)

    return {
        "store_name": store_name,
        "commission_rate": rate,
        "total_revenue": round(revenue, 2),
        "total_commission": round(commission, 2),
        "total_paid_out": round(paid_out, 2),
        "current_balance": round(revenue - commission - paid_out, 2),
        "payout_history": [
            {
                "id": str(payout.id),
                "amount": payout.amount,
                "reference": payout.reference,
                "paid_at": payout.paid_at.isoformat() if payout.paid_at else None,
            }
            for payout in payouts
        ],
    }
