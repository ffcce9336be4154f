# storefront/services/checkout_service.py
from typing import Any, Dict, List

import redis
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.coupon import CouponModel
from storefront.data.models.order import OrderModel
from storefront.domain.errors import Conflict, EmptyCart
from storefront.domain.schemas import CheckoutIn
from storefront.repos.cart_repo import CartRepo
from storefront.services import pricing
from storefront.services.cart_service import CartService
from storefront.services.coupon_ledger import CouponLedger
from storefront.services.inventory_ledger import CommittedLine, InventoryLedger
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.saga import Saga
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Use Case: checkout (koszyk -> zamowienie).

    1-5 tylko odczyt i liczenie, bez efektow ubocznych:
      koszyk, produkty, stan magazynu, kupon, ceny
    6-9 saga, kazdy krok z kompensacja:
      commit magazynu -> zamowienie -> uzycie kuponu -> czyszczenie koszyka
    10 powiadomienia async, bledy tylko logowane
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        pricing_config: pricing.PricingConfig | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.cart_service = CartService(db)
        self.inventory = InventoryLedger(db)
        self.coupons = CouponLedger(db)
        self.orders = OrderService(db)
        self.notification_service = NotificationService(db)
        self.lock_service = lock_service
        self.pricing_config = pricing_config or pricing.PricingConfig.from_settings()

    def checkout(self, user_id: int, payload: CheckoutIn) -> OrderModel:
        token = self._acquire_lock(user_id)
        try:
            return self._checkout(user_id, payload)
        finally:
            if token is not None:
                self._release_lock(user_id, token)

    def _acquire_lock(self, user_id: int) -> str | None:
        if self.lock_service is None:
            return None

        token = self.lock_service.new_token()
        try:
            acquired = self.lock_service.acquire_checkout_lock(user_id, token, CHECKOUT_LOCK_TTL_SECONDS)
        except redis.RedisError as e:
            #lock chroni tylko przed podwojnym wyslaniem, magazyn i kupony maja wlasne guardy
            logger.warning(f"Redis niedostepny ({e}), checkout usera {user_id} bez locka")
            return None
        if not acquired:
            raise Conflict("Checkout dla tego koszyka juz trwa")
        return token

    def _release_lock(self, user_id: int, token: str):
        #blad redisa przy zwalnianiu nie przykrywa wyniku checkoutu
        try:
            self.lock_service.release_checkout_lock(user_id, token)
        except redis.RedisError as e:
            logger.warning(f"Nie zwolniono locka checkoutu usera {user_id} ({e}), wygasnie po TTL")

    def _checkout(self, user_id: int, payload: CheckoutIn) -> OrderModel:
        # 1. koszyk
        cart = self.carts.get_cart_by_user(user_id)
        if not cart or not cart.items:
            raise EmptyCart()
        #edycja koszyka w trakcie checkoutu (np. druga karta) -> Conflict przy czyszczeniu
        cart_version = cart.version

        # 2-3. produkty aktywne i stan magazynu
        products = self.inventory.validate_availability(cart.items)

        #snapshot linii z aktualnego katalogu, pozniej nie czytamy juz produktu
        lines = self._snapshot_lines(cart, products)
        price_lines = [
            pricing.PriceLine(l["product_id"], l["price"], l["sale_price"], l["quantity"])
            for l in lines
        ]
        stock_lines = [CommittedLine(l["product_id"], l["quantity"]) for l in lines]
        subtotal = pricing.subtotal(price_lines)

        # 4. kupon - nieprawidlowy po prostu odpada
        coupon = self._resolve_coupon(cart, payload.coupon_code, user_id)
        discount = self.coupons.discount_for(coupon, subtotal) if coupon is not None else pricing.ZERO
        if coupon is not None and discount == pricing.ZERO:
            logger.warning(f"Kupon {coupon.code} nie daje rabatu dla kwoty {subtotal}, pomijam")
            coupon = None

        # 5. ceny
        breakdown = pricing.price_lines(price_lines, discount, self.pricing_config)

        # 6-9. commit
        with Saga("checkout", before_compensate=self.db.rollback) as saga:
            saga.run(
                "inventory",
                lambda: self.inventory.commit(stock_lines),
                compensate=self.inventory.restock,
            )
            order = saga.run(
                "order",
                lambda: self.orders.create(
                    user_id=user_id,
                    lines=lines,
                    breakdown=breakdown,
                    shipping_address=payload.shipping_address,
                    payment_method=payload.payment_method,
                    coupon=coupon,
                    notes=payload.notes,
                ),
                compensate=lambda o: self.orders.void(o, "Checkout wycofany"),
            )
            if coupon is not None:
                saga.run(
                    "coupon",
                    lambda: self.coupons.record_usage(coupon, user_id),
                    compensate=lambda _: self.coupons.reverse_usage(coupon.id, user_id),
                )
            saga.run("cart", lambda: self.cart_service.clear(cart, expected_version=cart_version))

        logger.info(
            f"Checkout OK: user {user_id}, order {order.order_number}, total {order.total}"
        )

        # 10. fire-and-forget
        self.notification_service.order_placed(order)
        return order

    def _resolve_coupon(self, cart: CartModel, code: str | None, user_id: int) -> CouponModel | None:
        #kod z requestu ma pierwszenstwo przed kuponem przypietym do koszyka
        if code:
            coupon = self.coupons.find_by_code(code)
        elif cart.coupon_id is not None:
            coupon = self.coupons.find(cart.coupon_id)
        else:
            return None

        if coupon is None:
            logger.warning(f"Kupon '{code or cart.coupon_id}' nie istnieje, checkout bez rabatu")
            return None
        if not self.coupons.is_usable(coupon):
            logger.warning(f"Kupon {coupon.code} nieaktywny/wygasly, checkout bez rabatu")
            return None
        if not self.coupons.user_eligible(coupon, user_id):
            logger.warning(f"Kupon {coupon.code} juz wykorzystany przez {user_id}, checkout bez rabatu")
            return None
        return coupon

    @staticmethod
    def _snapshot_lines(cart: CartModel, products) -> List[Dict[str, Any]]:
        lines = []
        for item in cart.items:
            product = products[item.product_id]
            lines.append(
                {
                    "product_id": product.id,
                    "name": product.name,
                    "price": product.price,
                    "sale_price": product.sale_price,
                    "quantity": item.quantity,
                    "image": (product.images or [""])[0],
                }
            )
        return lines
