"""Wspolne helpery testow (naglowki, adres, lock w pamieci)."""

import uuid
from concurrent.futures import ThreadPoolExecutor

from storefront.data.models import ProductModel
from storefront.domain.schemas import CheckoutIn, ShippingAddress
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService


class FakeLockService:
    """Lock w pamieci zamiast Redisa."""

    def __init__(self):
        self.locks = {}

    def new_token(self):
        return uuid.uuid4().hex

    def acquire_checkout_lock(self, user_id, token, ttl):
        if user_id in self.locks:
            return False
        self.locks[user_id] = token
        return True

    def release_checkout_lock(self, user_id, token):
        if self.locks.get(user_id) == token:
            del self.locks[user_id]
            return True
        return False


def run_concurrently(*calls):
    """Kazde wywolanie we wlasnym watku. Zwraca (wyniki, wyjatki)."""
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]

    results, errors = [], []
    for future in futures:
        error = future.exception()
        if error is not None:
            errors.append(error)
        else:
            results.append(future.result())
    return results, errors


def auth(user_id=1, role="user"):
    return {"X-User-Id": str(user_id), "X-User-Role": role}


ADMIN = auth(99, "admin")

ADDRESS = {
    "full_name": "Jan Kowalski",
    "phone": "+48 600 100 200",
    "street": "Marszalkowska 1",
    "city": "Warszawa",
    "state": "Mazowieckie",
    "zip_code": "00-001",
    "country": "Poland",
}


def stock_of(db, product_id):
    db.expire_all()
    return db.get(ProductModel, product_id).stock


def reload(db, model, pk):
    db.expire_all()
    return db.get(model, pk)


def checkout_payload(payment_method="cod", coupon_code=None, notes=None):
    return CheckoutIn(
        shipping_address=ShippingAddress(**ADDRESS),
        payment_method=payment_method,
        coupon_code=coupon_code,
        notes=notes,
    )


def place_order(db, user_id, lines, **payload):
    """Koszyk z (produkt, ilosc) i checkout bez locka."""
    cart = CartService(db)
    for product, quantity in lines:
        cart.add_product(user_id, product.id, quantity)
    return CheckoutService(db).checkout(user_id, checkout_payload(**payload))
