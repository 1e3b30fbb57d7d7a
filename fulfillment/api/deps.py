# fulfillment/api/deps.py
from functools import lru_cache

from fastapi import Depends, Header

from fulfillment.services.audit_service import AuditService
from fulfillment.services.invoice_service import InvoiceService
from fulfillment.services.notification_service import NotificationService
from fulfillment.services.payment_gateway import RazorpayGateway
from fulfillment.services.rate_limit_service import RateLimitService
from fulfillment.services.storage_service import StorageService


def current_user_id(x_user_id: int = Header(..., alias="X-User-Id", gt=0)) -> int:
    # uwierzytelnienie robi gateway przed nami, tu dostajemy gotowe ID
    return x_user_id


def get_gateway() -> RazorpayGateway:
    return RazorpayGateway()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_audit() -> AuditService:
    return AuditService()


def get_invoices() -> InvoiceService:
    return InvoiceService()


@lru_cache
def get_storage() -> StorageService:
    return StorageService()


@lru_cache
def get_rate_limiter() -> RateLimitService:
    return RateLimitService()


def rate_limited(action: str, limit: int):
    def dependency(
        user_id: int = Depends(current_user_id),
        limiter: RateLimitService = Depends(get_rate_limiter),
    ):
        limiter.check(action, user_id, limit)

    return dependency
