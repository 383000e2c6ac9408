"""Pydantic API schemas for the marketplace.

These are the external API contracts, kept separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    selected_variant: dict[str, str] | None = None
    image_urls: list[str] | None = None
    weight: float | None = None
    additional_shipping_fee: float | None = None


class ShippingAddressRequest(BaseModel):
    full_name: str
    phone: str
    address: str
    city: str
    latitude: float | None = None
    longitude: float | None = None


class PromoCodeRequest(BaseModel):
    code: str
    discount_type: str | None = None
    discount_value: float | None = None


class PlaceOrderRequest(BaseModel):
    items: list[OrderItemRequest]
    shipping_address: ShippingAddressRequest | None = None
    delivery_method: str
    delivery_time_slot: str | None = None
    pickup_point_id: str | None = None
    subtotal: float
    delivery_fee: float = 0.0
    total: float
    applied_promo_code: PromoCodeRequest | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    expected_revision: int | None = None


class RefundRequest(BaseModel):
    reason: str
    evidence_urls: list[str] = []
    expected_revision: int | None = None


class DisputeMessageRequest(BaseModel):
    message: str


class StatusUpdateRequest(BaseModel):
    status: str
    details: str | None = None
    reason: str | None = None
    expected_revision: int | None = None


class ConfirmDeliveryRequest(BaseModel):
    proof_of_delivery_url: str
    signature_url: str | None = None
    expected_revision: int | None = None


class VariantRequest(BaseModel):
    options: dict[str, str]
    stock: int = Field(default=0, ge=0)
    price: float | None = None
    sku: str | None = None


class RegisterProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    description: str | None = None
    stock: int = Field(default=0, ge=0)
    variant_details: list[VariantRequest] = []
    vendor: str | None = None


class StockUpdateRequest(BaseModel):
    product_id: str
    stock: int
    selected_variant: dict[str, str] | None = None


class BulkStockUpdateRequest(BaseModel):
    updates: list[StockUpdateRequest]


class CheckInRequest(BaseModel):
    tracking_number: str
    storage_location_id: str
    notes: str | None = None
    expected_revision: int | None = None


class RecipientInfo(BaseModel):
    name: str | None = None
    id_number: str | None = None


class DepartureRequest(BaseModel):
    tracking_number: str
    recipient_info: RecipientInfo | None = None
    expected_revision: int | None = None


class DiscrepancyRequest(BaseModel):
    tracking_number: str
    reason: str
    expected_revision: int | None = None


class AssignAgentRequest(BaseModel):
    agent_id: str


class ResolveRefundRequest(BaseModel):
    resolution: str
    expected_revision: int | None = None


class RecordPayoutRequest(BaseModel):
    store_name: str
    amount: float
    reference: str | None = None


class RegisterDepotRequest(BaseModel):
    depot_id: str | None = None
    name: str
    city: str
    neighborhood: str | None = None
    aisles: int = Field(ge=1)
    shelves: int = Field(ge=1)
    locations: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str
    tracking_number: str


class RevisionResponse(BaseModel):
    status: str
    revision: int


class IdResponse(BaseModel):
    id: str


class CountResponse(BaseModel):
    updated: int


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    vendor: str
    selected_variant: dict | None = None


class TrackingEventResponse(BaseModel):
    status: str
    occurred_at: datetime
    location: str | None = None
    details: str | None = None


class StatusChangeResponse(BaseModel):
    status: str
    occurred_at: datetime
    changed_by: str


class DisputeMessageResponse(BaseModel):
    author: str
    message: str
    occurred_at: datetime


class OrderResponse(BaseModel):
    id: str
    tracking_number: str
    customer_id: str
    customer_name: str | None = None
    status: str
    revision: int
    delivery_method: str
    pickup_point_id: str | None = None
    agent_id: str | None = None
    depot_id: str | None = None
    storage_location_id: str | None = None
    subtotal: float
    delivery_fee: float
    total: float
    items: list[OrderItemResponse]
    tracking_history: list[TrackingEventResponse]
    status_change_log: list[StatusChangeResponse]
    dispute_log: list[DisputeMessageResponse]
    discrepancy: dict | None = None
    delivery_failure: dict | None = None
    proof_of_delivery_url: str | None = None
    previous_status: str | None = None
    refund_reason: str | None = None
    refund_resolution: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=str(order.id),
            tracking_number=order.tracking_number,
            customer_id=str(order.customer_id),
            customer_name=order.customer_name,
            status=order.status,
            revision=order.revision or 0,
            delivery_method=order.delivery_method,
            pickup_point_id=order.pickup_point_id,
            agent_id=str(order.agent_id) if order.agent_id else None,
            depot_id=order.depot_id,
            storage_location_id=order.storage_location_id,
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee or 0.0,
            total=order.total,
            items=[
                OrderItemResponse(
                    product_id=str(item.product_id),
                    name=item.name,
                    price=item.price,
                    quantity=item.quantity,
                    vendor=item.vendor,
                    selected_variant=item.variant,
                )
                for item in order.items
            ],
            tracking_history=[
                TrackingEventResponse(
                    status=entry.status,
                    occurred_at=entry.occurred_at,
                    location=entry.location,
                    details=entry.details,
                )
                for entry in sorted(order.tracking_history, key=lambda e: e.occurred_at)
            ],
            status_change_log=[
                StatusChangeResponse(status=entry.status, occurred_at=entry.occurred_at, changed_by=entry.changed_by)
                for entry in sorted(order.status_change_log, key=lambda e: e.occurred_at)
            ],
            dispute_log=[
                DisputeMessageResponse(author=entry.author, message=entry.message, occurred_at=entry.occurred_at)
                for entry in sorted(order.dispute_log, key=lambda e: e.occurred_at)
            ],
            discrepancy=order.discrepancy.to_dict() if order.discrepancy else None,
            delivery_failure=order.delivery_failure.to_dict() if order.delivery_failure else None,
            proof_of_delivery_url=order.proof_of_delivery_url,
            previous_status=order.previous_status,
            refund_reason=order.refund_reason,
            refund_resolution=order.refund_resolution,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class SellerOrderResponse(BaseModel):
    order_id: str
    tracking_number: str
    status: str
    delivery_method: str | None = None
    item_count: int
    vendor_subtotal: float
    placed_at: datetime | None = None


class PayoutResponse(BaseModel):
    id: str
    store_name: str
    amount: float
    reference: str | None = None
    paid_at: datetime


class BalanceResponse(BaseModel):
    store_name: str
    commission_rate: float
    total_revenue: float
    total_commission: float
    total_paid_out: float
    current_balance: float
    payout_history: list[dict]
