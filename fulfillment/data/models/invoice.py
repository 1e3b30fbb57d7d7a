from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String

from fulfillment.data.database import Base


class InvoiceModel(Base):
    """Faktura oplaconego zamowienia, zbudowana wylacznie ze snapshotu zamowienia."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    # jedna faktura na zamowienie - insert jest bramka idempotencji
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    invoice_number = Column(String(32), nullable=False, unique=True)

    billing_address = Column(JSON, nullable=False)
    lines = Column(JSON, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
