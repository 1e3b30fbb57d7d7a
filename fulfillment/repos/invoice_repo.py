from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.data.models.invoice import InvoiceModel


class InvoiceRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: int) -> InvoiceModel | None:
        return self.db.execute(
            select(InvoiceModel).where(InvoiceModel.order_id == order_id)
        ).scalar_one_or_none()

    def get_for_user(self, order_id: int, user_id: int) -> InvoiceModel | None:
        return self.db.execute(
            select(InvoiceModel).where(
                InvoiceModel.order_id == order_id,
                InvoiceModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def add_invoice(self, invoice: InvoiceModel) -> InvoiceModel:
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
