# fulfillment/services/audit_service.py
from concurrent.futures import Future
from typing import Any, Dict

from fulfillment.celery_worker import celery_app, publish
from fulfillment.data.database import SessionLocal
from fulfillment.data.models.file_access_log import FileAccessLogModel
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class AuditService:
    """
    Audyt pobran: fire-and-forget. Zapis idzie przez Celery,
    request nigdy nie czeka na broker i nigdy przez niego nie pada.
    """

    def record(self, event: Dict[str, Any]) -> Future:
        return publish(record_file_access_task, event)


@celery_app.task(name="fulfillment.services.audit_service.record_file_access_task")
def record_file_access_task(event: Dict[str, Any]):
    db = SessionLocal()
    try:
        db.add(
            FileAccessLogModel(
                user_id=event["user_id"],
                order_id=event["order_id"],
                file_id=event["file_id"],
                ip=event.get("ip"),
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to write file access log: {e}")
    finally:
        db.close()
