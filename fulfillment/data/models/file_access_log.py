from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from fulfillment.data.database import Base


class FileAccessLogModel(Base):
    """Append-only, tylko zapis."""

    __tablename__ = "file_access_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False)
    order_id = Column(Integer, nullable=False)
    file_id = Column(Integer, nullable=False)
    ip = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
