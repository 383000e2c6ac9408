import json

import pytest
from marketplace.actors import Actor, Role
from marketplace.order.admin import AssignDeliveryAgent
from marketplace.order.delivery import ConfirmDelivery, UpdateDeliveryStatus
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder
from marketplace.order.preparation import UpdateSellerOrderStatus
from marketplace.stock.management import RegisterProduct
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _commission_rate(monkeypatch):
    monkeypatch.delenv("COMMISSION_RATE", raising=False)


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer():
    return Actor(id="cust-kofi", role=Role.CUSTOMER, name="Kofi")


@pytest.fixture()
def other_customer():
    return Actor(id="cust-esi", role=Role.CUSTOMER, name="Esi")


@pytest.fixture()
def seller():
    return Actor(id="seller-ama", role=Role.SELLER, name="Ama", shop_name="Ama Crafts")


@pytest.fixture()
def other_seller():
    return Actor(id="seller-kwame", role=Role.SELLER, name="Kwame", shop_name="Kwame Textiles")


@pytest.fixture()
def agent():
    return Actor(id="agent-yaw", role=Role.DELIVERY_AGENT, name="Yaw")


@pytest.fixture()
def depot_agent():
    return Actor(id="depot-efua", role=Role.DEPOT_AGENT, name="Efua", depot_id="depot-accra")


@pytest.fixture()
def admin():
    return Actor(id="admin-alice", role=Role.ADMIN, name="Alice")


# ---------------------------------------------------------------------------
# Command helpers
# ---------------------------------------------------------------------------
@pytest.fixture()
def register_product(admin):
    """Register a product through the command path and return its id."""

    def _register(name="Kente Scarf", vendor="Ama Crafts", price=25.0, stock=10, variants=None):
        return current_domain.process(
            RegisterProduct(
                **admin.command_fields(),
                vendor=vendor,
                name=name,
                price=price,
                stock=stock,
                variant_details=json.dumps(variants) if variants else None,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def place_order(customer):
    """Place an order for ``lines`` = [(product_id, quantity, selected_variant?), ...]."""

    def _place(lines, by=None, delivery_method="home-delivery", pickup_point_id=None, total=None):
        items = [
            {
                "product_id": line[0],
                "quantity": line[1],
                "selected_variant": line[2] if len(line) > 2 else None,
            }
            for line in lines
        ]
        return current_domain.process(
            PlaceOrder(
                **(by or customer).command_fields(),
                items=json.dumps(items),
                shipping_address=json.dumps(
                    {"full_name": "Kofi Mensah", "phone": "+233200000000", "address": "12 Oxford St", "city": "Accra"}
                ),
                delivery_method=delivery_method,
                pickup_point_id=pickup_point_id,
                subtotal=total or 100.0,
                delivery_fee=0.0,
                total=total or 100.0,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture()
def drive_order(seller, agent, admin):
    """Walk an order along the home-delivery path from where it is up to ``status``."""
    path = ["ready-for-pickup", "picked-up", "at-depot", "out-for-delivery", "delivered"]

    def _drive(order_id, status, shop_name=None):
        current = current_domain.repository_for(Order).get(order_id).status
        start = path.index(current) + 1 if current in path else 0
        for step in path[start : path.index(status) + 1]:
            if step == "ready-for-pickup":
                command = UpdateSellerOrderStatus(
                    **seller.command_fields(),
                    actor_shop=shop_name or seller.shop_name,
                    order_id=order_id,
                    status=step,
                )
                current_domain.process(command, asynchronous=False)
                current_domain.process(
                    AssignDeliveryAgent(**admin.command_fields(), order_id=order_id, agent_id=agent.id),
                    asynchronous=False,
                )
            elif step == "delivered":
                current_domain.process(
                    ConfirmDelivery(
                        **agent.command_fields(),
                        order_id=order_id,
                        proof_of_delivery_url="https://cdn.example.com/pod.jpg",
                    ),
                    asynchronous=False,
                )
            else:
                current_domain.process(
                    UpdateDeliveryStatus(**agent.command_fields(), order_id=order_id, status=step),
                    asynchronous=False,
                )

    return _drive
