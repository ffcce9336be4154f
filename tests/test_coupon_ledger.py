"""Tests for coupon rules and usage counters."""

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storefront.data.models import CouponModel, CouponUsageModel
from storefront.domain.errors import Conflict
from storefront.repos.coupon_repo import CouponRepo
from storefront.services.coupon_ledger import CouponLedger, discount_for, is_usable, normalize_code

from helpers import reload, run_concurrently

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def coupon(**kwargs):
    data = dict(
        id=1,
        code="SAVE10",
        type="percentage",
        value=Decimal("10"),
        min_order_amount=Decimal("0"),
        max_discount=None,
        usage_limit=0,
        per_user_limit=1,
        used_count=0,
        is_active=True,
        starts_at=NOW - timedelta(days=1),
        expires_at=NOW + timedelta(days=1),
    )
    data.update(kwargs)
    return CouponModel(**data)


class TestDiscount:
    def test_percentage_capped_by_max_discount(self):
        c = coupon(max_discount=Decimal("200"))
        assert discount_for(c, Decimal("3000"), NOW) == Decimal("200.00")

    def test_percentage_without_cap(self):
        assert discount_for(coupon(), Decimal("333.35"), NOW) == Decimal("33.34")

    def test_fixed_never_exceeds_total(self):
        c = coupon(type="fixed", value=Decimal("100"))
        assert discount_for(c, Decimal("50"), NOW) == Decimal("50.00")

    def test_below_min_order_amount(self):
        c = coupon(min_order_amount=Decimal("500"))
        assert discount_for(c, Decimal("499.99"), NOW) == Decimal("0.00")
        assert discount_for(c, Decimal("500"), NOW) == Decimal("50.00")

    def test_unusable_coupon_gives_nothing(self):
        assert discount_for(coupon(is_active=False), Decimal("1000"), NOW) == Decimal("0.00")

    def test_missing_coupon(self):
        assert discount_for(None, Decimal("1000"), NOW) == Decimal("0.00")


class TestUsable:
    def test_inside_window(self):
        assert is_usable(coupon(), NOW)

    def test_expired(self):
        assert not is_usable(coupon(expires_at=NOW - timedelta(seconds=1)), NOW)

    def test_not_started(self):
        assert not is_usable(coupon(starts_at=NOW + timedelta(hours=1)), NOW)

    def test_missing_window(self):
        assert not is_usable(coupon(starts_at=None), NOW)
        assert not is_usable(coupon(expires_at=None), NOW)

    def test_inverted_window(self):
        assert not is_usable(
            coupon(starts_at=NOW + timedelta(days=2), expires_at=NOW + timedelta(days=1)),
            NOW,
        )

    def test_naive_datetimes_treated_as_utc(self):
        c = coupon(
            starts_at=(NOW - timedelta(days=1)).replace(tzinfo=None),
            expires_at=(NOW + timedelta(days=1)).replace(tzinfo=None),
        )
        assert is_usable(c, NOW)

    def test_usage_limit_reached(self):
        assert not is_usable(coupon(usage_limit=5, used_count=5), NOW)
        assert is_usable(coupon(usage_limit=5, used_count=4), NOW)

    def test_zero_limit_is_unlimited(self):
        assert is_usable(coupon(usage_limit=0, used_count=10_000), NOW)


def test_normalize_code():
    assert normalize_code("  save10 ") == "SAVE10"
    assert normalize_code(None) == ""


class TestLedger:
    def test_find_by_code_is_case_insensitive(self, db, make_coupon):
        make_coupon(code="WELCOME10")
        assert CouponLedger(db).find_by_code(" welcome10 ").code == "WELCOME10"

    def test_record_usage(self, db, make_coupon):
        c = make_coupon(usage_limit=2)
        ledger = CouponLedger(db)

        ledger.record_usage(c, user_id=1)

        assert reload(db, CouponModel, c.id).used_count == 1
        assert db.query(CouponUsageModel).filter_by(coupon_id=c.id, user_id=1).count() == 1
        assert not ledger.user_eligible(c, 1)
        assert ledger.user_eligible(c, 2)

    def test_record_usage_per_user_limit(self, db, make_coupon):
        c = make_coupon(per_user_limit=1)
        ledger = CouponLedger(db)
        ledger.record_usage(c, user_id=1)

        with pytest.raises(Conflict):
            ledger.record_usage(c, user_id=1)
        assert reload(db, CouponModel, c.id).used_count == 1

    def test_record_usage_global_limit(self, db, make_coupon):
        c = make_coupon(usage_limit=1)
        ledger = CouponLedger(db)
        ledger.record_usage(c, user_id=1)

        with pytest.raises(Conflict):
            ledger.record_usage(c, user_id=2)

        assert reload(db, CouponModel, c.id).used_count == 1
        assert db.query(CouponUsageModel).filter_by(coupon_id=c.id).count() == 1

    def test_reverse_usage(self, db, make_coupon):
        c = make_coupon()
        ledger = CouponLedger(db)
        ledger.record_usage(c, user_id=1)

        ledger.reverse_usage(c.id, 1)

        assert reload(db, CouponModel, c.id).used_count == 0
        assert db.query(CouponUsageModel).filter_by(coupon_id=c.id).count() == 0
        assert ledger.user_eligible(c, 1)

    def test_reverse_usage_floors_at_zero(self, db, make_coupon):
        c = make_coupon()
        CouponLedger(db).reverse_usage(c.id, 1)
        assert reload(db, CouponModel, c.id).used_count == 0


class TestConcurrentUsage:
    def test_same_user_in_parallel_checkouts(self, file_session_factory, monkeypatch):
        setup = file_session_factory()
        setup.add(coupon(per_user_limit=1))
        setup.commit()
        setup.close()

        #oba checkouty dochodza do zapisu uzycia jednoczesnie
        barrier = threading.Barrier(2, timeout=10)
        original_increment = CouponRepo.increment_usage

        def increment_together(self, coupon_id):
            barrier.wait()
            return original_increment(self, coupon_id)

        monkeypatch.setattr(CouponRepo, "increment_usage", increment_together)

        def use():
            session = file_session_factory()
            try:
                ledger = CouponLedger(session)
                ledger.record_usage(ledger.get(1), user_id=7)
            finally:
                session.close()

        _, errors = run_concurrently(use, use)

        assert [type(e) for e in errors] == [Conflict]
        check = file_session_factory()
        try:
            assert check.query(CouponUsageModel).filter_by(coupon_id=1, user_id=7).count() == 1
            assert check.get(CouponModel, 1).used_count == 1
        finally:
            check.close()

    def test_per_user_limit_above_one(self, db, make_coupon):
        c = make_coupon(per_user_limit=2)
        ledger = CouponLedger(db)
        ledger.record_usage(c, user_id=1)
        ledger.record_usage(c, user_id=1)

        with pytest.raises(Conflict):
            ledger.record_usage(c, user_id=1)

        assert reload(db, CouponModel, c.id).used_count == 2
        assert db.query(CouponUsageModel).filter_by(coupon_id=c.id, user_id=1).count() == 2
