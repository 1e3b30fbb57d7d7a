# fulfillment/repos/order_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from fulfillment.data.models.idempotency import IdempotencyRecordModel
from fulfillment.data.models.order import OrderModel, OrderItemModel
from fulfillment.domain.status import OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel, items: List[OrderItemModel]) -> OrderModel:
        # bez commita - wywolujacy trzyma transakcje
        self.db.add(order)
        self.db.flush()
        for item in items:
            item.order_id = order.id
            self.db.add(item)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_for_user(self, order_id: int, user_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id, OrderModel.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_paid_order_for_user(self, order_id: int, user_id: int) -> OrderModel | None:
        # wlasnosc + status w jednym zapytaniu, zawsze swiezy odczyt
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(
                OrderModel.id == order_id,
                OrderModel.user_id == user_id,
                OrderModel.status == OrderStatus.PAID,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_orders_for_user(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def get_idempotency_record(self, key: str, user_id: int) -> IdempotencyRecordModel | None:
        return self.db.execute(
            select(IdempotencyRecordModel).where(
                IdempotencyRecordModel.key == key,
                IdempotencyRecordModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def add_idempotency_record(self, key: str, user_id: int, order_id: int) -> None:
        self.db.add(IdempotencyRecordModel(key=key, user_id=user_id, order_id=order_id))
        self.db.flush()

    def transition_status(self, order_id: int, from_status: str, to_status: str) -> int:
        # warunkowy update zamiast read-then-write:
        # UPDATE orders SET status='PAID' WHERE id=1 AND status='CREATED'
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
