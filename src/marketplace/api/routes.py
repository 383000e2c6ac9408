"""FastAPI routes for the marketplace, one router per actor role."""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.api.dependencies import require_role
from marketplace.api.schemas import (
    AssignAgentRequest,
    BalanceResponse,
    BulkStockUpdateRequest,
    CancelOrderRequest,
    CheckInRequest,
    ConfirmDeliveryRequest,
    CountResponse,
    DepartureRequest,
    DiscrepancyRequest,
    DisputeMessageRequest,
    IdResponse,
    OrderIdResponse,
    OrderResponse,
    PayoutResponse,
    PlaceOrderRequest,
    RecordPayoutRequest,
    RefundRequest,
    RegisterDepotRequest,
    RegisterProductRequest,
    ResolveRefundRequest,
    RevisionResponse,
    SellerOrderResponse,
    StatusUpdateRequest,
)
from marketplace.depot.inventory import CheckInOrder, ProcessDeparture, ReportDiscrepancy
from marketplace.depot.registration import RegisterDepot
from marketplace.dispute.resolution import AddDisputeMessage, RequestRefund, ResolveRefund
from marketplace.exceptions import Unauthorized
from marketplace.order.admin import AssignDeliveryAgent, ForceOrderStatus
from marketplace.order.cancellation import CancelOrder
from marketplace.order.delivery import ConfirmDelivery, UpdateDeliveryStatus
from marketplace.order.placement import PlaceOrder
from marketplace.order.preparation import UpdateSellerOrderStatus
from marketplace.order.queries import (
    get_order,
    get_order_by_tracking_number,
    missions_for_agent,
    orders_at_depot,
    orders_for_customer,
    orders_with_status,
)
from marketplace.payout.ledger import compute_balance, payouts_for
from marketplace.payout.recording import RecordPayout
from marketplace.projections.seller_orders import orders_for_vendor
from marketplace.stock.management import RegisterProduct, UpdateProductStock


def _revision_response(order_id: str) -> RevisionResponse:
    order = get_order(order_id)
    return RevisionResponse(status=order.status, revision=order.revision)


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(
    body: PlaceOrderRequest,
    actor: Actor = Depends(require_role(Role.CUSTOMER)),
) -> OrderIdResponse:
    """Reserve stock for every line and create a confirmed order."""
    command = PlaceOrder(
        **actor.command_fields(),
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()) if body.shipping_address else None,
        delivery_method=body.delivery_method,
        delivery_time_slot=body.delivery_time_slot,
        pickup_point_id=body.pickup_point_id,
        subtotal=body.subtotal,
        delivery_fee=body.delivery_fee,
        total=body.total,
        applied_promo_code=json.dumps(body.applied_promo_code.model_dump()) if body.applied_promo_code else None,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = get_order(order_id)
    return OrderIdResponse(order_id=order_id, tracking_number=order.tracking_number)


@order_router.get("/myorders", response_model=list[OrderResponse])
async def my_orders(
    limit: int = 50,
    offset: int = 0,
    actor: Actor = Depends(require_role(Role.CUSTOMER)),
) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in orders_for_customer(actor.id, limit, offset)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def order_detail(
    order_id: str,
    actor: Actor = Depends(
        require_role(Role.CUSTOMER, Role.SELLER, Role.DELIVERY_AGENT, Role.DEPOT_AGENT, Role.ADMIN)
    ),
) -> OrderResponse:
    order = get_order(order_id)
    if not order.can_view(actor):
        raise Unauthorized("Not authorized for this order")
    return OrderResponse.from_order(order)


@order_router.put("/{order_id}/cancel", response_model=RevisionResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    actor: Actor = Depends(require_role(Role.CUSTOMER)),
) -> RevisionResponse:
    """Cancel before carrier pickup and return the reserved stock."""
    body = body or CancelOrderRequest()
    command = CancelOrder(
        **actor.command_fields(),
        order_id=order_id,
        reason=body.reason,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@order_router.post("/{order_id}/refund", response_model=RevisionResponse)
async def request_refund(
    order_id: str,
    body: RefundRequest,
    actor: Actor = Depends(require_role(Role.CUSTOMER)),
) -> RevisionResponse:
    command = RequestRefund(
        **actor.command_fields(),
        order_id=order_id,
        reason=body.reason,
        evidence_urls=json.dumps(body.evidence_urls),
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@order_router.post("/{order_id}/dispute", response_model=OrderResponse)
async def add_dispute_message(
    order_id: str,
    body: DisputeMessageRequest,
    actor: Actor = Depends(require_role(Role.CUSTOMER, Role.SELLER, Role.ADMIN)),
) -> OrderResponse:
    command = AddDisputeMessage(
        **actor.command_fields(),
        actor_shop=actor.shop_name,
        order_id=order_id,
        message=body.message,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(get_order(order_id))


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(prefix="/seller", tags=["seller"])


@seller_router.get("/orders", response_model=list[SellerOrderResponse])
async def seller_orders(
    status: str | None = None,
    actor: Actor = Depends(require_role(Role.SELLER)),
) -> list[SellerOrderResponse]:
    return [
        SellerOrderResponse(
            order_id=str(entry.order_id),
            tracking_number=entry.tracking_number,
            status=entry.status,
            delivery_method=entry.delivery_method,
            item_count=entry.item_count,
            vendor_subtotal=entry.vendor_subtotal,
            placed_at=entry.placed_at,
        )
        for entry in orders_for_vendor(actor.shop_name or "", status)
    ]


@seller_router.put("/orders/{order_id}/status", response_model=RevisionResponse)
async def seller_update_status(
    order_id: str,
    body: StatusUpdateRequest,
    actor: Actor = Depends(require_role(Role.SELLER)),
) -> RevisionResponse:
    command = UpdateSellerOrderStatus(
        **actor.command_fields(),
        actor_shop=actor.shop_name,
        order_id=order_id,
        status=body.status,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@seller_router.post("/products", status_code=201, response_model=IdResponse)
async def register_product(
    body: RegisterProductRequest,
    actor: Actor = Depends(require_role(Role.SELLER)),
) -> IdResponse:
    command = RegisterProduct(
        **actor.command_fields(),
        actor_shop=actor.shop_name,
        name=body.name,
        price=body.price,
        description=body.description,
        stock=body.stock,
        variant_details=json.dumps([variant.model_dump() for variant in body.variant_details]),
    )
    product_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=product_id)


@seller_router.put("/products/stock", response_model=CountResponse)
async def update_product_stock(
    body: BulkStockUpdateRequest,
    actor: Actor = Depends(require_role(Role.SELLER)),
) -> CountResponse:
    command = UpdateProductStock(
        **actor.command_fields(),
        actor_shop=actor.shop_name,
        updates=json.dumps([update.model_dump() for update in body.updates]),
    )
    updated = current_domain.process(command, asynchronous=False)
    return CountResponse(updated=updated)


@seller_router.get("/finances", response_model=BalanceResponse)
async def seller_finances(actor: Actor = Depends(require_role(Role.SELLER))) -> BalanceResponse:
    if not actor.shop_name:
        raise Unauthorized("Seller has no shop")
    return BalanceResponse(**compute_balance(actor.shop_name))


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


@delivery_router.get("/missions", response_model=list[OrderResponse])
async def missions(actor: Actor = Depends(require_role(Role.DELIVERY_AGENT))) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in missions_for_agent(actor.id)]


@delivery_router.put("/orders/{order_id}/status", response_model=RevisionResponse)
async def delivery_update_status(
    order_id: str,
    body: StatusUpdateRequest,
    actor: Actor = Depends(require_role(Role.DELIVERY_AGENT)),
) -> RevisionResponse:
    command = UpdateDeliveryStatus(
        **actor.command_fields(),
        order_id=order_id,
        status=body.status,
        details=body.details,
        reason=body.reason,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@delivery_router.post("/orders/{order_id}/confirm", response_model=RevisionResponse)
async def confirm_delivery(
    order_id: str,
    body: ConfirmDeliveryRequest,
    actor: Actor = Depends(require_role(Role.DELIVERY_AGENT)),
) -> RevisionResponse:
    command = ConfirmDelivery(
        **actor.command_fields(),
        order_id=order_id,
        proof_of_delivery_url=body.proof_of_delivery_url,
        signature_url=body.signature_url,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


# ---------------------------------------------------------------------------
# Depot Router
# ---------------------------------------------------------------------------
depot_router = APIRouter(prefix="/depot", tags=["depot"])


def _depot_response(tracking_number: str) -> OrderResponse:
    return OrderResponse.from_order(get_order_by_tracking_number(tracking_number))


@depot_router.get("/inventory", response_model=list[OrderResponse])
async def depot_inventory(actor: Actor = Depends(require_role(Role.DEPOT_AGENT))) -> list[OrderResponse]:
    if not actor.depot_id:
        return []
    return [OrderResponse.from_order(order) for order in orders_at_depot(actor.depot_id)]


@depot_router.post("/orders/check-in", response_model=OrderResponse)
async def check_in(
    body: CheckInRequest,
    actor: Actor = Depends(require_role(Role.DEPOT_AGENT)),
) -> OrderResponse:
    command = CheckInOrder(
        **actor.command_fields(),
        actor_depot=actor.depot_id,
        tracking_number=body.tracking_number,
        storage_location_id=body.storage_location_id,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _depot_response(body.tracking_number)


@depot_router.post("/orders/process-departure", response_model=OrderResponse)
async def process_departure(
    body: DepartureRequest,
    actor: Actor = Depends(require_role(Role.DEPOT_AGENT)),
) -> OrderResponse:
    recipient = body.recipient_info
    command = ProcessDeparture(
        **actor.command_fields(),
        actor_depot=actor.depot_id,
        tracking_number=body.tracking_number,
        recipient_name=recipient.name if recipient else None,
        recipient_id_number=recipient.id_number if recipient else None,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _depot_response(body.tracking_number)


@depot_router.post("/orders/discrepancy", response_model=OrderResponse)
async def report_discrepancy(
    body: DiscrepancyRequest,
    actor: Actor = Depends(require_role(Role.DEPOT_AGENT)),
) -> OrderResponse:
    command = ReportDiscrepancy(
        **actor.command_fields(),
        actor_depot=actor.depot_id,
        tracking_number=body.tracking_number,
        reason=body.reason,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _depot_response(body.tracking_number)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders", response_model=list[OrderResponse])
async def all_orders(
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in orders_with_status(status, limit, offset)]


@admin_router.put("/orders/{order_id}/status", response_model=RevisionResponse)
async def force_status(
    order_id: str,
    body: StatusUpdateRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> RevisionResponse:
    command = ForceOrderStatus(
        **actor.command_fields(),
        order_id=order_id,
        status=body.status,
        details=body.details,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@admin_router.put("/orders/{order_id}/assign-agent", response_model=OrderResponse)
async def assign_agent(
    order_id: str,
    body: AssignAgentRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> OrderResponse:
    command = AssignDeliveryAgent(**actor.command_fields(), order_id=order_id, agent_id=body.agent_id)
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(get_order(order_id))


@admin_router.post("/orders/{order_id}/resolve-refund", response_model=RevisionResponse)
async def resolve_refund(
    order_id: str,
    body: ResolveRefundRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> RevisionResponse:
    command = ResolveRefund(
        **actor.command_fields(),
        order_id=order_id,
        resolution=body.resolution,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _revision_response(order_id)


@admin_router.post("/payouts", status_code=201, response_model=IdResponse)
async def record_payout(
    body: RecordPayoutRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> IdResponse:
    command = RecordPayout(
        **actor.command_fields(),
        store_name=body.store_name,
        amount=body.amount,
        reference=body.reference,
    )
    payout_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=payout_id)


@admin_router.get("/payouts", response_model=list[PayoutResponse])
async def list_payouts(
    store_name: str | None = None,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> list[PayoutResponse]:
    return [
        PayoutResponse(
            id=str(payout.id),
            store_name=payout.store_name,
            amount=payout.amount,
            reference=payout.reference,
            paid_at=payout.paid_at,
        )
        for payout in payouts_for(store_name)
    ]


@admin_router.get("/stores/{store_name}/balance", response_model=BalanceResponse)
async def store_balance(store_name: str, actor: Actor = Depends(require_role(Role.ADMIN))) -> BalanceResponse:
    return BalanceResponse(**compute_balance(store_name))


@admin_router.post("/depots", status_code=201, response_model=IdResponse)
async def register_depot(
    body: RegisterDepotRequest,
    actor: Actor = Depends(require_role(Role.ADMIN)),
) -> IdResponse:
    command = RegisterDepot(**actor.command_fields(), **body.model_dump())
    depot_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=depot_id)
