# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderStatusHistoryModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def order_number_exists(self, order_number: str) -> bool:
        found = self.db.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number)
        ).first()
        return found is not None

    def list_orders(
        self,
        offset: int,
        limit: int,
        sort: str = "created_at",
        order: str = "desc",
        user_id: int | None = None,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> tuple[list[OrderModel], int]:
        filters = []
        if user_id is not None:
            filters.append(OrderModel.user_id == user_id)
        if status:
            filters.append(OrderModel.status == status)
        if start_date:
            filters.append(OrderModel.created_at >= start_date)
        if end_date:
            filters.append(OrderModel.created_at <= end_date)

        column = getattr(OrderModel, sort)
        ordering = column.asc() if order == "asc" else column.desc()

        rows = self.db.execute(
            select(OrderModel)
            .where(*filters)
            .order_by(ordering, OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        total = self.db.execute(
            select(func.count(OrderModel.id)).where(*filters)
        ).scalar_one()
        return list(rows), total

    def update_order_version(self, order_id: int, old_version: int, new_data: dict) -> int:
        # optimistic locking, tak samo jak koszyk
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == old_version)
            .values(version=old_version + 1, **new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_status_history(self, order_id: int, status: str, note: str | None, timestamp: datetime):
        self.db.add(
            OrderStatusHistoryModel(
                order_id=order_id,
                status=status,
                note=note,
                timestamp=timestamp,
            )
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def flag_restock_failed(self, order_id: int):
        self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .values(restock_failed=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def get_restock_failed(self) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).where(OrderModel.restock_failed.is_(True))
            ).scalars().all()
        )
