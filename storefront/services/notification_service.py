# storefront/services/notification_service.py
import smtplib
from email.message import EmailMessage

from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.models.order import OrderModel
from storefront.repos.user_repo import UserRepo
from storefront.services import pricing
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania.
    Fire-and-forget: bledy tylko logujemy, nigdy nie psuja zamowienia.
    """

    def __init__(self, db: Session):
        self.users = UserRepo(db)

    def order_placed(self, order: OrderModel):
        """Potwierdzenie dla klienta + alert dla adminow."""
        try:
            user = self.users.get_user(order.user_id)
            if not user:
                logger.warning(f"[NOTIFICATION] Brak profilu uzytkownika {order.user_id}, pomijam email")
                return

            lines = "\n".join(
                f"- {item.name} x{item.quantity}: "
                f"{pricing.effective_price(item.price, item.sale_price) * item.quantity}"
                for item in order.items
            )
            send_email_task.delay(
                user.email,
                f"Zamowienie potwierdzone: {order.order_number}",
                f"Czesc {user.name},\n\n"
                f"dziekujemy za zamowienie {order.order_number}.\n\n"
                f"{lines}\n\n"
                f"Suma czesciowa: {order.subtotal}\n"
                f"Rabat: {order.discount}\n"
                f"Wysylka: {order.shipping_cost}\n"
                f"Razem: {order.total}\n",
            )

            for admin in self.users.get_admins():
                send_email_task.delay(
                    admin.email,
                    f"Nowe zamowienie: {order.order_number}",
                    f"Klient: {user.name} <{user.email}>\n"
                    f"Pozycji: {len(order.items)}\n"
                    f"Razem: {order.total}\n",
                )
        except Exception as e:
            logger.warning(f"[NOTIFICATION] Nie udalo sie zlecic powiadomien dla {order.order_number}: {e}")

    def order_status_changed(self, order: OrderModel, note: str | None = None):
        try:
            user = self.users.get_user(order.user_id)
            if not user:
                return
            body = f"Czesc {user.name},\n\nstatus zamowienia {order.order_number}: {order.status}.\n"
            if note:
                body += f"\n{note}\n"
            send_email_task.delay(
                user.email,
                f"Zamowienie {order.order_number} - {order.status.capitalize()}",
                body,
            )
        except Exception as e:
            logger.warning(f"[NOTIFICATION] Nie udalo sie zlecic powiadomienia dla {order.order_number}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_email_task", ignore_result=True)
def send_email_task(to: str, subject: str, body: str):
    """
    Celery task - wysyla email przez SMTP.
    Bez skonfigurowanego SMTP tylko loguje. Bez retry.
    """
    if not settings.SMTP_HOST:
        logger.info(f"[NOTIFICATION] (smtp off) To: {to} Subject: {subject}")
        return False

    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
            smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"[NOTIFICATION] Email do {to} nie wyslany: {e}")
        return False

    logger.info(f"[NOTIFICATION] Email wyslany do {to}: {subject}")
    return True
