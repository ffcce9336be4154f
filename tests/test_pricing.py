"""Tests for order amount calculation."""

from decimal import Decimal

from storefront.services import pricing
from storefront.services.pricing import PriceLine, PricingConfig

CONFIG = PricingConfig()


def line(price, quantity=1, sale_price=None, product_id=1):
    return PriceLine(
        product_id,
        Decimal(price),
        Decimal(sale_price) if sale_price is not None else None,
        quantity,
    )


class TestEffectivePrice:
    def test_sale_price_used_when_lower(self):
        assert pricing.effective_price(Decimal("100"), Decimal("80")) == Decimal("80")

    def test_sale_price_ignored_when_not_lower(self):
        assert pricing.effective_price(Decimal("100"), Decimal("100")) == Decimal("100")

    def test_no_sale_price(self):
        assert pricing.effective_price(Decimal("19.99")) == Decimal("19.99")


class TestSubtotal:
    def test_sums_effective_prices(self):
        lines = [line("100", 2, sale_price="80"), line("19.99", 3, product_id=2)]
        assert pricing.subtotal(lines) == Decimal("219.97")

    def test_empty(self):
        assert pricing.subtotal([]) == Decimal("0.00")


class TestShipping:
    def test_free_at_threshold(self):
        assert pricing.shipping_cost(Decimal("999.00"), CONFIG) == Decimal("0.00")

    def test_charged_just_below_threshold(self):
        assert pricing.shipping_cost(Decimal("998.99"), CONFIG) == Decimal("99.00")

    def test_threshold_applies_after_discount(self):
        breakdown = pricing.price_lines([line("1000")], Decimal("10"), CONFIG)
        assert breakdown.shipping_cost == Decimal("99.00")
        assert breakdown.total == Decimal("1089.00")


class TestTax:
    def test_zero_rate(self):
        assert pricing.tax(Decimal("500"), Decimal("0")) == Decimal("0.00")

    def test_rounds_half_up(self):
        # 10.05 * 0.05 = 0.5025 -> 0.50, 10.10 * 0.05 = 0.505 -> 0.51
        assert pricing.tax(Decimal("10.05"), Decimal("0.05")) == Decimal("0.50")
        assert pricing.tax(Decimal("10.10"), Decimal("0.05")) == Decimal("0.51")

    def test_tax_in_breakdown(self):
        config = PricingConfig(tax_rate=Decimal("0.23"))
        breakdown = pricing.price_lines([line("100")], Decimal("0"), config)
        assert breakdown.tax == Decimal("23.00")
        assert breakdown.total == Decimal("222.00")


class TestTotal:
    def test_never_negative(self):
        assert pricing.total(Decimal("10"), Decimal("50"), Decimal("0"), Decimal("0")) == Decimal("0.00")

    def test_discount_capped_at_subtotal(self):
        breakdown = pricing.price_lines([line("50")], Decimal("80"), CONFIG)
        assert breakdown.discount == Decimal("50.00")
        assert breakdown.total == Decimal("99.00")

    def test_full_breakdown(self):
        breakdown = pricing.price_lines(
            [line("1999", 1, sale_price="1499"), line("499.50", 2, product_id=2)],
            Decimal("200"),
            CONFIG,
        )
        assert breakdown.subtotal == Decimal("2498.00")
        assert breakdown.discount == Decimal("200.00")
        assert breakdown.shipping_cost == Decimal("0.00")
        assert breakdown.total == Decimal("2298.00")


def test_config_from_settings(monkeypatch):
    monkeypatch.setattr(pricing.settings, "SHIPPING_COST", "49.90")
    config = PricingConfig.from_settings()
    assert config.shipping_cost == Decimal("49.90")
    assert config.free_shipping_threshold == Decimal("999")
