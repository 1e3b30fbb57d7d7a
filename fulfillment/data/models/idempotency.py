from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from fulfillment.data.database import Base


class IdempotencyRecordModel(Base):
    __tablename__ = "idempotency_records"

    id = Column(Integer, primary_key=True)
    key = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # insert klucza to atomowa bramka dla duplikatow checkoutu
    __table_args__ = (UniqueConstraint("key", "user_id", name="u_idempotency_key_user"),)
