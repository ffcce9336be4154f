from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, Iterable

from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.coupon import CouponModel
from storefront.domain.errors import (
    Conflict,
    EmptyCart,
    InsufficientStock,
    NotFound,
    ProductUnavailable,
    ValidationError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services import pricing
from storefront.services.coupon_ledger import CouponLedger, discount_for
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

MAX_LINE_QUANTITY = 50


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    total: Decimal


def recalculate_totals(items: Iterable[CartItemModel], coupon: CouponModel | None, now=None) -> CartTotals:
    """Jedyne miejsce liczenia pol pochodnych koszyka. Wolane po kazdej zmianie."""
    subtotal = pricing.subtotal(items)
    discount = discount_for(coupon, subtotal, now) if coupon is not None else pricing.ZERO
    total = max(pricing.ZERO, subtotal - discount)
    return CartTotals(subtotal=subtotal, discount=discount, total=total)


def find_item(cart: CartModel, item_id: int) -> CartItemModel | None:
    return next((i for i in cart.items if i.id == item_id), None)


def find_item_by_product(cart: CartModel, product_id: int) -> CartItemModel | None:
    return next((i for i in cart.items if i.product_id == product_id), None)


def cart_to_dict(cart: CartModel) -> Dict[str, Any]:
    return {
        "cart_id": cart.id,
        "user_id": cart.user_id,
        "items": [
            {
                "id": i.id,
                "product_id": i.product_id,
                "quantity": i.quantity,
                "price": i.price,
                "sale_price": i.sale_price,
                "effective_price": pricing.effective_price(i.price, i.sale_price),
            }
            for i in cart.items
        ],
        "coupon_code": cart.coupon.code if cart.coupon is not None else None,
        "subtotal": cart.subtotal,
        "discount": cart.discount,
        "total": cart.total,
        "updated_at": cart.updated_at,
    }


class CartService:
    """
    Koszyk usera przed zamowieniem (CartAggregator).
    commands (add, update, remove, clear, coupon) modyfikuja stan i przeliczaja sumy
    query (get) tylko odczyt, koszyk tworzony leniwie
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.coupons = CouponLedger(db)

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        return cart_to_dict(self.get_or_create(user_id))

    def get_or_create(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        created = self.repo.create_cart(
            CartModel(
                user_id=user_id,
                subtotal=pricing.ZERO,
                discount=pricing.ZERO,
                total=pricing.ZERO,
                version=1,
                updated_at=utcnow(),
            )
        )
        logger.info(f"Utworzono koszyk {created.id} dla uzytkownika {user_id}")
        return created

    #commands
    def add_product(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        self._check_quantity(quantity)
        product = self.products.get_product(product_id)
        if not product or not product.is_active:
            raise NotFound("Produkt nie istnieje lub jest niedostepny")

        cart = self.get_or_create(user_id)
        existing_item = find_item_by_product(cart, product_id)

        if existing_item:
            new_quantity = existing_item.quantity + quantity
            self._check_quantity(new_quantity)
            if new_quantity > product.stock:
                raise InsufficientStock(product.id, product.name, product.stock)
            logger.info(
                f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {new_quantity}"
            )
            existing_item.quantity = new_quantity
            #update ceny
            existing_item.price = product.price
            existing_item.sale_price = product.sale_price
        else:
            if quantity > product.stock:
                raise InsufficientStock(product.id, product.name, product.stock)
            position = max((i.position for i in cart.items), default=-1) + 1
            cart.items.append(
                CartItemModel(
                    product_id=product_id,
                    position=position,
                    quantity=quantity,
                    price=product.price,
                    sale_price=product.sale_price,
                )
            )
            logger.info(f"Dodaje produkt {product_id} do koszyka {cart.id}")

        return self._save(cart)

    def update_item(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        self._check_quantity(quantity)
        cart = self.get_or_create(user_id)

        item = find_item(cart, item_id)
        if not item:
            raise NotFound("Pozycja nie istnieje w koszyku")

        product = self.products.get_product(item.product_id)
        if not product or not product.is_active:
            raise ProductUnavailable(item.product_id, product.name if product else None)
        if product.stock < quantity:
            raise InsufficientStock(product.id, product.name, product.stock)

        item.quantity = quantity
        item.price = product.price
        item.sale_price = product.sale_price
        return self._save(cart)

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(user_id)

        item = find_item(cart, item_id)
        if not item:
            raise NotFound("Pozycja nie istnieje w koszyku")

        logger.info(f"Usuwanie pozycji {item_id} (produkt {item.product_id}) z koszyka {cart.id}")
        cart.items.remove(item)
        return self._save(cart)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(user_id)
        return self.clear(cart)

    def clear(self, cart: CartModel, expected_version: int | None = None) -> Dict[str, Any]:
        #czyszczenie, nie usuwanie - koszyk zostaje
        #expected_version: wersja odczytana wczesniej, np. na poczatku checkoutu
        cart.items.clear()
        return self._save(cart, coupon=None, expected_version=expected_version)

    def apply_coupon(self, user_id: int, code: str) -> Dict[str, Any]:
        cart = self.get_or_create(user_id)
        if not cart.items:
            raise EmptyCart()

        coupon = self.coupons.find_by_code(code)
        if not coupon:
            raise NotFound("Nieprawidlowy kod kuponu")
        if not self.coupons.is_usable(coupon):
            raise ValidationError("Kupon wygasl lub nie jest juz wazny")
        if not self.coupons.user_eligible(coupon, user_id):
            raise ValidationError("Ten kupon zostal juz przez Ciebie wykorzystany")

        totals = recalculate_totals(cart.items, coupon)
        if totals.discount == pricing.ZERO:
            raise ValidationError(f"Minimalna wartosc zamowienia dla kuponu: {coupon.min_order_amount}")

        logger.info(f"Kupon {coupon.code} dodany do koszyka {cart.id}, rabat {totals.discount}")
        return self._save(cart, coupon=coupon)

    def remove_coupon(self, user_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(user_id)
        return self._save(cart, coupon=None)

    def _save(self, cart: CartModel, coupon=..., expected_version: int | None = None) -> Dict[str, Any]:
        # coupon=... -> zostaw aktualny kupon koszyka
        if coupon is ...:
            coupon = cart.coupon
        totals = recalculate_totals(cart.items, coupon)
        old_version = expected_version if expected_version is not None else cart.version

        # Optimistic locking
        # np w bazie update set version 2 where id 1 and version 1
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data={
                "version": old_version + 1,
                "coupon_id": coupon.id if coupon is not None else None,
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "total": totals.total,
                "updated_at": utcnow(),
            },
        )

        if rowcount == 0:
            self.repo.rollback()
            raise Conflict(
                "Konflikt wspolbieznosci - koszyk zostal zmodyfikowany przez inna operacje"
            )

        self.repo.commit()
        self.repo.refresh(cart)
        return cart_to_dict(cart)

    @staticmethod
    def _check_quantity(quantity: int):
        if quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise ValidationError(f"Ilosc musi byc z zakresu 1-{MAX_LINE_QUANTITY}")
