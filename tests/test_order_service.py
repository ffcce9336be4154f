"""Tests for the order lifecycle."""

import re
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from storefront.data.models import CouponModel, CouponUsageModel, OrderModel
from storefront.domain.errors import Conflict, InvalidTransition, NotFound, OrderNotCancellable
from storefront.services import order_service
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.order_service import OrderService, can_transition, generate_order_number
from storefront.tasks import alerts

from helpers import place_order, reload, stock_of


def history_statuses(order):
    return [h.status for h in order.status_history]


class TestOrderNumber:
    def test_format(self):
        number = generate_order_number(datetime(2026, 3, 7, tzinfo=timezone.utc))
        assert re.fullmatch(r"ORD-260307-[A-Z0-9]{6}", number)

    def test_custom_prefix(self):
        assert generate_order_number(prefix="SHOP").startswith("SHOP-")

    def test_collision_retried(self, db, make_product, monkeypatch):
        p = make_product(stock=10)
        first = place_order(db, 1, [(p, 1)])

        numbers = iter([first.order_number, "ORD-260101-AAAAAA"])
        monkeypatch.setattr(order_service, "generate_order_number", lambda now=None, prefix=None: next(numbers))

        second = place_order(db, 1, [(p, 1)])
        assert second.order_number == "ORD-260101-AAAAAA"

    def test_gives_up_after_repeated_collisions(self, db, make_product, monkeypatch):
        p = make_product(stock=10)
        first = place_order(db, 1, [(p, 1)])
        monkeypatch.setattr(
            order_service, "generate_order_number", lambda now=None, prefix=None: first.order_number
        )

        with pytest.raises(Conflict):
            place_order(db, 1, [(p, 1)])
        # stan magazynu wrocil po nieudanym checkoucie
        assert stock_of(db, p.id) == 9


class TestTransitions:
    @pytest.mark.parametrize(
        "current,new,allowed",
        [
            ("pending", "confirmed", True),
            ("pending", "cancelled", True),
            ("confirmed", "processing", True),
            ("confirmed", "cancelled", True),
            ("processing", "shipped", True),
            ("shipped", "delivered", True),
            ("pending", "shipped", False),
            ("processing", "cancelled", False),
            ("shipped", "cancelled", False),
            ("delivered", "pending", False),
            ("cancelled", "pending", False),
            ("pending", "pending", False),
        ],
    )
    def test_table(self, current, new, allowed):
        assert can_transition(current, new) is allowed

    def test_new_order_is_pending_with_history(self, db, make_product):
        order = place_order(db, 1, [(make_product(), 1)])
        assert order.status == "pending"
        assert history_statuses(order) == ["pending"]
        assert order.version == 1

    def test_full_lifecycle(self, db, make_product):
        order = place_order(db, 1, [(make_product(), 1)])
        svc = OrderService(db)

        for status in ("confirmed", "processing", "shipped", "delivered"):
            order = svc.transition(order, status)
            assert order.status == status
            assert order.status_history[-1].status == status

        assert history_statuses(order) == ["pending", "confirmed", "processing", "shipped", "delivered"]
        assert order.version == 5

    def test_invalid_transition(self, db, make_product):
        order = place_order(db, 1, [(make_product(), 1)])
        with pytest.raises(InvalidTransition):
            OrderService(db).transition(order, "shipped")
        assert reload(db, OrderModel, order.id).status == "pending"

    def test_stale_version_conflicts(self, db, make_product):
        order = place_order(db, 1, [(make_product(), 1)])
        assert order.version == 1
        db.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id)
            .values(version=OrderModel.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(Conflict):
            OrderService(db).transition(order, "confirmed")


class TestCancel:
    def test_restocks_and_reverses_coupon(self, db, make_product, make_coupon):
        p = make_product(price="600.00", stock=5)
        c = make_coupon(code="SAVE10")
        order = place_order(db, 1, [(p, 2)], coupon_code="SAVE10")
        assert stock_of(db, p.id) == 3
        assert reload(db, CouponModel, c.id).used_count == 1

        order = OrderService(db).cancel(order, "Zmiana zdania")

        assert order.status == "cancelled"
        assert order.cancel_reason == "Zmiana zdania"
        assert order.status_history[-1].status == "cancelled"
        assert stock_of(db, p.id) == 5
        assert reload(db, CouponModel, c.id).used_count == 0
        assert db.query(CouponUsageModel).count() == 0

    def test_confirmed_order_cancellable(self, db, make_product):
        p = make_product(stock=5)
        svc = OrderService(db)
        order = svc.transition(place_order(db, 1, [(p, 1)]), "confirmed")

        svc.cancel(order)

        assert stock_of(db, p.id) == 5

    def test_shipped_order_not_cancellable(self, db, make_product):
        p = make_product(stock=5)
        svc = OrderService(db)
        order = place_order(db, 1, [(p, 1)])
        for status in ("confirmed", "processing", "shipped"):
            order = svc.transition(order, status)

        with pytest.raises(OrderNotCancellable):
            svc.cancel(order)
        assert stock_of(db, p.id) == 4

    def test_second_cancel_does_not_restock_twice(self, db, make_product):
        p = make_product(stock=5)
        svc = OrderService(db)
        order = svc.cancel(place_order(db, 1, [(p, 2)]))

        with pytest.raises(OrderNotCancellable):
            svc.cancel(order)
        assert stock_of(db, p.id) == 5

    def test_failed_restock_keeps_status_and_flags_order(self, db, make_product, monkeypatch, session_factory):
        p = make_product(stock=5)
        order = place_order(db, 1, [(p, 2)])

        def broken_restock(self, lines):
            raise SQLAlchemyError("db down")

        monkeypatch.setattr(InventoryLedger, "restock", broken_restock)
        OrderService(db).cancel(order)

        saved = reload(db, OrderModel, order.id)
        assert saved.status == "cancelled"
        assert saved.restock_failed is True
        assert stock_of(db, p.id) == 3

        monkeypatch.setattr(alerts, "SessionLocal", session_factory)
        assert alerts.report_failed_restocks_task() == [order.order_number]


class TestAdminStatus:
    def test_cod_paid_on_delivery(self, db, make_product):
        svc = OrderService(db)
        order = place_order(db, 1, [(make_product(), 1)], payment_method="cod")
        for status in ("confirmed", "processing"):
            order = svc.update_status(order, status)
        order = svc.update_status(order, "shipped", tracking_number="PL123456")
        assert order.payment_status == "pending"
        assert order.tracking_number == "PL123456"

        order = svc.update_status(order, "delivered", note="Doreczono")

        assert order.payment_status == "paid"
        assert order.status_history[-1].note == "Doreczono"

    def test_card_payment_status_untouched(self, db, make_product):
        svc = OrderService(db)
        order = place_order(db, 1, [(make_product(), 1)], payment_method="card")
        for status in ("confirmed", "processing", "shipped", "delivered"):
            order = svc.update_status(order, status)
        assert order.payment_status == "pending"

    def test_admin_cancel_restocks(self, db, make_product):
        p = make_product(stock=5)
        order = OrderService(db).update_status(place_order(db, 1, [(p, 2)]), "cancelled")
        assert order.cancel_reason == "Anulowane przez administratora"
        assert stock_of(db, p.id) == 5

    def test_admin_cannot_cancel_processing(self, db, make_product):
        svc = OrderService(db)
        order = svc.transition(place_order(db, 1, [(make_product(), 1)]), "confirmed")
        order = svc.transition(order, "processing")
        with pytest.raises(OrderNotCancellable):
            svc.update_status(order, "cancelled")


class TestQueries:
    def test_user_cannot_see_foreign_order(self, db, make_product):
        order = place_order(db, 1, [(make_product(), 1)])
        with pytest.raises(NotFound):
            OrderService(db).get_user_order(order.id, 2)

    def test_order_items_are_snapshots(self, db, make_product):
        p = make_product(price="100.00", sale_price="90.00", name="Mouse")
        order = place_order(db, 1, [(p, 2)])

        p.price = Decimal("150.00")
        p.sale_price = None
        db.commit()

        item = reload(db, OrderModel, order.id).items[0]
        assert item.name == "Mouse"
        assert item.sale_price == Decimal("90.00")
        assert item.image == f"/img/{p.id}.jpg"
