# fulfillment/repos/payment_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fulfillment.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.order_id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_gateway_order_id(self, gateway_order_id: str) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel).where(PaymentModel.gateway_order_id == gateway_order_id)
        ).scalar_one_or_none()

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def transition_status(
        self,
        payment_id: int,
        from_status: str,
        to_status: str,
        gateway_payment_id: str | None = None,
    ) -> int:
        values = {"status": to_status, "updated_at": datetime.now(timezone.utc)}
        if gateway_payment_id:
            values["gateway_payment_id"] = gateway_payment_id

        result = self.db.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment_id, PaymentModel.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
