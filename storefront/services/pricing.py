# storefront/services/pricing.py
"""
Czyste funkcje liczace kwoty zamowienia, bez I/O.

Kazda linia to obiekt z polami price, sale_price, quantity
(CartItemModel, OrderItemModel albo PriceLine).
Zaokraglenie do 2 miejsc (half away from zero) robimy raz na kazdej wartosci pochodnej.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

from storefront.utils import settings

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


class Priced(Protocol):
    price: Decimal
    sale_price: Decimal | None
    quantity: int


@dataclass(frozen=True)
class PriceLine:
    product_id: int
    price: Decimal
    sale_price: Decimal | None
    quantity: int


@dataclass(frozen=True)
class PricingConfig:
    free_shipping_threshold: Decimal = Decimal("999")
    shipping_cost: Decimal = Decimal("99")
    tax_rate: Decimal = Decimal("0")

    @classmethod
    def from_settings(cls) -> "PricingConfig":
        return cls(
            free_shipping_threshold=Decimal(settings.FREE_SHIPPING_THRESHOLD),
            shipping_cost=Decimal(settings.SHIPPING_COST),
            tax_rate=Decimal(settings.TAX_RATE),
        )


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal


def to_money(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    # ROUND_HALF_UP na Decimal = od zera, takze dla ujemnych
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def effective_price(price, sale_price=None) -> Decimal:
    price = to_money(price)
    if sale_price is not None:
        sale_price = to_money(sale_price)
        if sale_price < price:
            return sale_price
    return price


def subtotal(lines: Iterable[Priced]) -> Decimal:
    total = sum(
        (effective_price(line.price, line.sale_price) * line.quantity for line in lines),
        ZERO,
    )
    return round2(total)


def shipping_cost(amount_after_discount, config: PricingConfig) -> Decimal:
    if to_money(amount_after_discount) >= config.free_shipping_threshold:
        return ZERO
    return round2(config.shipping_cost)


def tax(amount_after_discount, rate) -> Decimal:
    return round2(to_money(amount_after_discount) * to_money(rate))


def total(subtotal_amount, discount, shipping, tax_amount) -> Decimal:
    value = round2(
        to_money(subtotal_amount) - to_money(discount) + to_money(shipping) + to_money(tax_amount)
    )
    return max(ZERO, value)


def price_lines(lines: Iterable[Priced], discount, config: PricingConfig) -> PriceBreakdown:
    """Pelne wyliczenie dla checkoutu: subtotal -> rabat -> wysylka -> podatek -> total."""
    sub = subtotal(lines)
    disc = min(round2(discount), sub)
    after_discount = sub - disc
    ship = shipping_cost(after_discount, config)
    tax_amount = tax(after_discount, config.tax_rate)
    return PriceBreakdown(
        subtotal=sub,
        discount=disc,
        shipping_cost=ship,
        tax=tax_amount,
        total=total(sub, disc, ship, tax_amount),
    )
