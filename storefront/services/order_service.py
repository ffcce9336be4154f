# storefront/services/order_service.py
import secrets
import string
from datetime import datetime
from typing import Any, Dict, Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.coupon import CouponModel
from storefront.data.models.order import OrderModel, OrderItemModel, OrderStatusHistoryModel
from storefront.domain.errors import (
    Conflict,
    InvalidTransition,
    NotFound,
    OrderNotCancellable,
)
from storefront.domain.schemas import ShippingAddress
from storefront.repos.order_repo import OrderRepo
from storefront.services.coupon_ledger import CouponLedger
from storefront.services.inventory_ledger import InventoryLedger
from storefront.services.notification_service import NotificationService
from storefront.services.pricing import PriceBreakdown
from storefront.utils import settings
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.pagination import Page, get_pagination_info

logger = get_logger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
PROCESSING = "processing"
SHIPPED = "shipped"
DELIVERED = "delivered"
CANCELLED = "cancelled"

#delivered i cancelled sa terminalne
TRANSITIONS = {
    PENDING: (CONFIRMED, CANCELLED),
    CONFIRMED: (PROCESSING, CANCELLED),
    PROCESSING: (SHIPPED,),
    SHIPPED: (DELIVERED,),
    DELIVERED: (),
    CANCELLED: (),
}
CANCELLABLE = (PENDING, CONFIRMED)

ORDER_NUMBER_ATTEMPTS = 5
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, ())


def generate_order_number(now: datetime | None = None, prefix: str | None = None) -> str:
    now = now or utcnow()
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix or settings.ORDER_NUMBER_PREFIX}-{now:%y%m%d}-{suffix}"


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "items": order.items,
        "shipping_address": {
            "full_name": order.full_name,
            "phone": order.phone,
            "street": order.street,
            "city": order.city,
            "state": order.state,
            "zip_code": order.zip_code,
            "country": order.country,
        },
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "status": order.status,
        "subtotal": order.subtotal,
        "discount": order.discount,
        "shipping_cost": order.shipping_cost,
        "tax": order.tax,
        "total": order.total,
        "coupon_code": order.coupon_code,
        "notes": order.notes,
        "tracking_number": order.tracking_number,
        "estimated_delivery": order.estimated_delivery,
        "cancel_reason": order.cancel_reason,
        "status_history": order.status_history,
        "created_at": order.created_at,
    }


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień (maszyna stanow).
    Zamowienie po utworzeniu jest niezmienne poza statusem, historia,
    numerem przesylki i powodem anulowania. Historia tylko dopisywana.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.inventory = InventoryLedger(db)
        self.coupons = CouponLedger(db)
        self.notification_service = NotificationService(db)

    # =====================================================
    # COMMANDS
    # =====================================================
    def create(
        self,
        user_id: int,
        lines: Iterable[Dict[str, Any]],
        breakdown: PriceBreakdown,
        shipping_address: ShippingAddress,
        payment_method: str,
        coupon: CouponModel | None = None,
        notes: str | None = None,
    ) -> OrderModel:
        """
        Use Case: utworzenie zamowienia ze snapshotu linii.
        Numer zamowienia losowany ponownie przy kolizji.
        """
        lines = list(lines)

        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            now = utcnow()
            order_number = generate_order_number(now)
            if self.repo.order_number_exists(order_number):
                logger.warning(f"Kolizja numeru zamowienia {order_number} (proba {attempt})")
                continue

            order = OrderModel(
                order_number=order_number,
                user_id=user_id,
                full_name=shipping_address.full_name,
                phone=shipping_address.phone,
                street=shipping_address.street,
                city=shipping_address.city,
                state=shipping_address.state,
                zip_code=shipping_address.zip_code,
                country=shipping_address.country,
                payment_method=payment_method,
                payment_status="pending",
                status=PENDING,
                subtotal=breakdown.subtotal,
                discount=breakdown.discount,
                shipping_cost=breakdown.shipping_cost,
                tax=breakdown.tax,
                total=breakdown.total,
                coupon_id=coupon.id if coupon is not None else None,
                coupon_code=coupon.code if coupon is not None else None,
                notes=notes,
                version=1,
                created_at=now,
                updated_at=now,
                items=[OrderItemModel(**line) for line in lines],
                status_history=[
                    OrderStatusHistoryModel(status=PENDING, timestamp=now, note="Zamowienie utworzone")
                ],
            )

            try:
                created = self.repo.create_order(order)
            except IntegrityError:
                #unique na order_number - ktos wstawil ten sam numer miedzy sprawdzeniem a insertem
                self.repo.rollback()
                logger.warning(f"Kolizja numeru zamowienia {order_number} przy zapisie (proba {attempt})")
                continue

            logger.info(f"Order {created.order_number} (id {created.id}) created for user {user_id}")
            return created

        raise Conflict("Nie udalo sie wygenerowac unikalnego numeru zamowienia")

    def transition(
        self,
        order: OrderModel,
        new_status: str,
        note: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> OrderModel:
        if not can_transition(order.status, new_status):
            raise InvalidTransition(order.status, new_status)

        now = utcnow()
        old_status = order.status

        # Optimistic locking na wersji zamowienia
        rowcount = self.repo.update_order_version(
            order_id=order.id,
            old_version=order.version,
            new_data={"status": new_status, "updated_at": now, **(extra or {})},
        )
        if rowcount == 0:
            self.repo.rollback()
            raise Conflict(
                "Konflikt wspolbieznosci - zamowienie zostalo zmodyfikowane przez inna operacje"
            )

        self.repo.add_status_history(
            order.id, new_status, note or f"Status zmieniony na {new_status}", now
        )
        self.repo.commit()
        self.db.refresh(order)

        logger.info(f"Order {order.order_number}: {old_status} -> {new_status}")
        return order

    def cancel(self, order: OrderModel, reason: str | None = None) -> OrderModel:
        """
        Anulowanie: najpierw status (autorytatywny), potem zwrot na magazyn i cofniecie kuponu.
        Blad kompensacji nie cofa statusu - tylko alert operacyjny.
        """
        if order.status not in CANCELLABLE:
            raise OrderNotCancellable(order.status)

        reason = reason or "Anulowane przez klienta"
        order = self.transition(order, CANCELLED, reason, {"cancel_reason": reason})

        self._compensate_cancellation(order)
        self.notification_service.order_status_changed(order, reason)
        return order

    def void(self, order: OrderModel, reason: str) -> OrderModel:
        """Kompensacja checkoutu: anuluje bez zwrotu magazynu (robi to osobny krok sagi)."""
        return self.transition(order, CANCELLED, reason, {"cancel_reason": reason})

    def update_status(
        self,
        order: OrderModel,
        status: str,
        note: str | None = None,
        tracking_number: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> OrderModel:
        """Use Case: zmiana statusu przez admina."""
        if status == CANCELLED:
            return self.cancel(order, note or "Anulowane przez administratora")

        if not can_transition(order.status, status):
            raise InvalidTransition(order.status, status)

        extra: Dict[str, Any] = {}
        if tracking_number:
            extra["tracking_number"] = tracking_number
        if estimated_delivery:
            extra["estimated_delivery"] = estimated_delivery
        #za pobraniem - zaplacone przy dostawie
        if status == DELIVERED and order.payment_method == "cod":
            extra["payment_status"] = "paid"

        order = self.transition(order, status, note, extra)
        self.notification_service.order_status_changed(order, note)
        return order

    def _compensate_cancellation(self, order: OrderModel):
        try:
            self.inventory.restock(order.items)
            if order.coupon_id is not None:
                self.coupons.reverse_usage(order.coupon_id, order.user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"ALERT: zamowienie {order.order_number} anulowane, ale kompensacja "
                f"(restock/kupon) nie powiodla sie: {e}"
            )
            self.repo.flag_restock_failed(order.id)

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Zamówienie nie istnieje")
        return order

    def get_user_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        #cudze zamowienie = 404, nie zdradzamy ze istnieje
        if not order or order.user_id != user_id:
            raise NotFound("Zamówienie nie istnieje")
        return order

    def list_orders(
        self,
        page: Page,
        user_id: int | None = None,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Dict[str, Any]:
        orders, total = self.repo.list_orders(
            offset=page.offset,
            limit=page.limit,
            sort=page.sort,
            order=page.order,
            user_id=user_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
        )
        return {
            "orders": [order_to_dict(o) for o in orders],
            "pagination": get_pagination_info(page.page, page.limit, total),
        }

    def track(self, order: OrderModel) -> Dict[str, Any]:
        return {
            "order_number": order.order_number,
            "status": order.status,
            "tracking_number": order.tracking_number,
            "estimated_delivery": order.estimated_delivery,
            "status_history": order.status_history,
        }
