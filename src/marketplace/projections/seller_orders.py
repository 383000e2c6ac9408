"""Seller orders projection — one row per (order, vendor) for the seller dashboard.

A seller sees only their share of a multi-vendor order: their item count and
their subtotal, alongside the order's current status.
"""

import json
from uuid import NAMESPACE_URL, uuid5

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.events import OrderPlaced, OrderStatusChanged
from marketplace.order.order import Order
from marketplace.utils.db import all_pages


def entry_id_for(order_id: str, vendor: str) -> str:
    return str(uuid5(NAMESPACE_URL, f"seller-orders/{order_id}/{vendor}"))


@marketplace.projection
class SellerOrders:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    vendor = String(required=True, max_length=255)
    tracking_number = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    delivery_method = String(max_length=50)
    item_count = Integer(default=0)
    vendor_subtotal = Float(default=0.0)
    placed_at = DateTime()
    updated_at = DateTime()


@marketplace.projector(projector_for=SellerOrders, aggregates=[Order])
class SellerOrdersProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        repo = current_domain.repository_for(SellerOrders)
        for vendor, summary in json.loads(event.vendor_summary).items():
            repo.add(
                SellerOrders(
                    entry_id=entry_id_for(str(event.order_id), vendor),
                    order_id=event.order_id,
                    vendor=vendor,
                    tracking_number=event.tracking_number,
                    customer_id=event.customer_id,
                    status="confirmed",
                    delivery_method=event.delivery_method,
                    item_count=summary["item_count"],
                    vendor_subtotal=summary["subtotal"],
                    placed_at=event.placed_at,
                    updated_at=event.placed_at,
                )
            )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        repo = current_domain.repository_for(SellerOrders)
        entries = repo._dao.query.filter(order_id=str(event.order_id)).all().items
        for entry in entries:
            entry.status = event.status
            entry.updated_at = event.changed_at
            repo.add(entry)


def orders_for_vendor(vendor: str, status: str | None = None) -> list[SellerOrders]:
    query = current_domain.repository_for(SellerOrders)._dao.query.filter(vendor=vendor)
    if status:
        query = query.filter(status=status)
    return list(all_pages(query.order_by("-placed_at")))
