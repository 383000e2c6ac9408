"""Application tests for store balances and payouts."""

import pytest
from marketplace.dispute.resolution import RequestRefund, ResolveRefund
from marketplace.exceptions import Unauthorized
from marketplace.payout.commission import get_commission_rate
from marketplace.payout.ledger import compute_balance, payouts_for
from marketplace.payout.recording import RecordPayout
from protean import current_domain
from protean.exceptions import ValidationError


def _pay(actor, store_name, amount, reference=None):
    return current_domain.process(
        RecordPayout(**actor.command_fields(), store_name=store_name, amount=amount, reference=reference),
        asynchronous=False,
    )


@pytest.fixture()
def delivered_sale(register_product, place_order, drive_order):
    """Two scarves from Ama Crafts at 25.0 each, delivered."""
    scarf = register_product(price=25.0, stock=10)
    order_id = place_order([(scarf, 2)])
    drive_order(order_id, "delivered")
    return order_id


class TestCommissionRate:
    def test_default(self):
        assert get_commission_rate() == 10.0

    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("COMMISSION_RATE", "12.5")
        assert get_commission_rate() == 12.5

    def test_out_of_range(self, monkeypatch):
        monkeypatch.setenv("COMMISSION_RATE", "150")
        with pytest.raises(ValueError):
            get_commission_rate()


class TestBalance:
    def test_only_delivered_orders_count(self, register_product, place_order, drive_order, delivered_sale):
        scarf = register_product(price=40.0)
        pending = place_order([(scarf, 1)])
        drive_order(pending, "out-for-delivery")

        balance = compute_balance("Ama Crafts")
        assert balance["total_revenue"] == 50.0
        assert balance["total_commission"] == 5.0
        assert balance["current_balance"] == 45.0

    def test_balance_is_deterministic(self, delivered_sale):
        assert compute_balance("Ama Crafts") == compute_balance("Ama Crafts")

    def test_only_the_stores_lines_count(self, register_product, place_order, drive_order):
        scarf = register_product(price=25.0)
        cloth = register_product(name="Batik Cloth", vendor="Kwame Textiles", price=60.0)
        order_id = place_order([(scarf, 1), (cloth, 1)])
        drive_order(order_id, "delivered")

        assert compute_balance("Ama Crafts")["total_revenue"] == 25.0
        assert compute_balance("Kwame Textiles")["total_revenue"] == 60.0
        assert compute_balance("Unknown Store")["total_revenue"] == 0

    def test_rate_change_applies_on_next_call(self, delivered_sale, monkeypatch):
        monkeypatch.setenv("COMMISSION_RATE", "20")
        balance = compute_balance("Ama Crafts")
        assert balance["commission_rate"] == 20.0
        assert balance["current_balance"] == 40.0

    def test_refund_removes_revenue(self, delivered_sale, customer, admin):
        current_domain.process(
            RequestRefund(**customer.command_fields(), order_id=delivered_sale, reason="Wrong colour"),
            asynchronous=False,
        )
        assert compute_balance("Ama Crafts")["total_revenue"] == 0

        current_domain.process(
            ResolveRefund(**admin.command_fields(), order_id=delivered_sale, resolution="rejected"),
            asynchronous=False,
        )
        assert compute_balance("Ama Crafts")["total_revenue"] == 50.0

    def test_every_delivered_order_counts_across_pages(self, register_product, place_order, drive_order, monkeypatch):
        monkeypatch.setattr("marketplace.utils.db.PAGE_SIZE", 2)
        scarf = register_product(price=25.0, stock=10)
        for _ in range(3):
            drive_order(place_order([(scarf, 1)]), "delivered")

        assert compute_balance("Ama Crafts")["total_revenue"] == 75.0


class TestPayouts:
    def test_payout_reduces_balance(self, delivered_sale, admin):
        _pay(admin, "Ama Crafts", 20.0, reference="MOMO-0001")

        balance = compute_balance("Ama Crafts")
        assert balance["total_paid_out"] == 20.0
        assert balance["current_balance"] == 25.0
        assert [entry["reference"] for entry in balance["payout_history"]] == ["MOMO-0001"]

    def test_balance_may_go_negative(self, delivered_sale, admin):
        _pay(admin, "Ama Crafts", 100.0)
        assert compute_balance("Ama Crafts")["current_balance"] == -55.0

    @pytest.mark.parametrize("amount", [0, -5.0])
    def test_amount_must_be_positive(self, admin, amount):
        with pytest.raises(ValidationError):
            _pay(admin, "Ama Crafts", amount)
        assert payouts_for("Ama Crafts") == []

    def test_only_admin_records(self, seller):
        with pytest.raises(Unauthorized):
            _pay(seller, "Ama Crafts", 10.0)

    def test_payouts_are_per_store(self, admin):
        _pay(admin, "Ama Crafts", 10.0)
        _pay(admin, "Kwame Textiles", 15.0)
        assert [p.amount for p in payouts_for("Kwame Textiles")] == [15.0]
        assert len(payouts_for()) == 2

    def test_every_payout_counts_across_pages(self, admin, monkeypatch):
        monkeypatch.setattr("marketplace.utils.db.PAGE_SIZE", 2)
        for _ in range(5):
            _pay(admin, "Ama Crafts", 10.0)

        balance = compute_balance("Ama Crafts")
        assert balance["total_paid_out"] == 50.0
        assert len(balance["payout_history"]) == 5
