# fulfillment/services/entitlement_service.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from fulfillment.data.models.order import OrderModel
from fulfillment.domain.errors import ForbiddenError, NotFoundError
from fulfillment.repos.catalog_repo import CatalogRepo
from fulfillment.repos.order_repo import OrderRepo
from fulfillment.services.audit_service import AuditService
from fulfillment.services.storage_service import StorageService
from fulfillment.utils.settings import SIGNED_URL_EXPIRY_SECONDS, SIGNED_URL_MAX_SECONDS
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class EntitlementService:
    """
    Bramka dostepu do plikow.

    Zasady:
    1. tylko oplacone (PAID) zamowienia
    2. zamowienie musi nalezec do uzytkownika
    3. plik musi nalezec do produktu z tego zamowienia
    4. tylko krotko zyjace podpisane URL-e, nigdy klucz S3
    5. kazde pobranie idzie do audytu (bez blokowania)
    """

    def __init__(
        self,
        db: Session,
        signer: StorageService,
        audit: AuditService | None = None,
        expiry_seconds: int = SIGNED_URL_EXPIRY_SECONDS,
    ):
        self.orders = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.signer = signer
        self.audit = audit or AuditService()
        self.expiry_seconds = expiry_seconds

    def _paid_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.orders.get_paid_order_for_user(order_id, user_id)

        if not order:
            # 404 dla "nie istnieje", "cudze" i "nieoplacone" - nic nie zdradzamy
            raise NotFoundError("Order not found or not eligible for file access")

        return order

    def list_files(self, order_id: int, user_id: int) -> List[Dict[str, Any]]:
        order = self._paid_order(order_id, user_id)

        product_ids = {item.product_id for item in order.items}
        files = self.catalog.list_files_for_products(product_ids)

        # tylko metadane, bez URL i bez klucza
        return [
            {"file_id": f.id, "file_name": f.file_name, "file_type": f.file_type}
            for f in files
        ]

    def download_file(
        self,
        order_id: int,
        file_id: int,
        user_id: int,
        ip: str | None = None,
        ttl_seconds: int | None = None,
    ) -> Dict[str, Any]:
        order = self._paid_order(order_id, user_id)

        product_file = self.catalog.get_file(file_id)
        if not product_file:
            raise NotFoundError("File not found")

        if product_file.product_id not in {item.product_id for item in order.items}:
            logger.warning(f"User {user_id} attempted to access file {file_id} not in order {order_id}")
            raise ForbiddenError("This file is not available for this order")

        ttl = self.effective_ttl(ttl_seconds)
        url = self.signer.sign(product_file.storage_key, ttl)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)

        try:
            self.audit.record(
                {
                    "user_id": user_id,
                    "order_id": order_id,
                    "file_id": file_id,
                    "ip": ip,
                }
            )
        except Exception as e:
            logger.error(f"Failed to log file access (user: {user_id}, file: {file_id}): {e}")

        logger.info(f"User {user_id} downloaded file {file_id} from order {order_id}")

        return {"download_url": url, "expires_in": ttl, "expires_at": expires_at}

    def effective_ttl(self, requested: int | None) -> int:
        ttl = requested if requested else self.expiry_seconds
        return max(1, min(ttl, self.expiry_seconds, SIGNED_URL_MAX_SECONDS))
