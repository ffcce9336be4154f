# storefront/tasks/alerts.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.alerts.report_failed_restocks_task")
def report_failed_restocks_task():
    """
    Anulowane zamowienia, dla ktorych zwrot na magazyn / cofniecie kuponu sie nie udalo.
    Status zostaje, stan magazynu do recznej korekty - tylko raportujemy.
    """
    db = SessionLocal()
    try:
        orders = OrderRepo(db).get_restock_failed()

        if orders:
            logger.error(f"ALERT: {len(orders)} anulowanych zamowien bez zwrotu na magazyn")
        for order in orders:
            logger.error(
                f"ALERT: zamowienie {order.order_number} ({order.status}) - "
                + ", ".join(f"produkt {i.product_id} x{i.quantity}" for i in order.items)
            )
        return [order.order_number for order in orders]
    finally:
        db.close()
