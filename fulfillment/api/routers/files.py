# fulfillment/api/routers/files.py
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from fulfillment.api.deps import current_user_id, get_audit, get_storage, rate_limited
from fulfillment.data.database import get_db
from fulfillment.domain.schemas import DownloadLinkOut, FileOut
from fulfillment.services.audit_service import AuditService
from fulfillment.services.entitlement_service import EntitlementService
from fulfillment.services.storage_service import StorageService
from fulfillment.utils.settings import DOWNLOAD_RATE_LIMIT

router = APIRouter(prefix="/orders", tags=["files"])


def get_service(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    audit: AuditService = Depends(get_audit),
) -> EntitlementService:
    return EntitlementService(db, signer=storage, audit=audit)


@router.get("/{order_id}/files", response_model=List[FileOut])
def list_files(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: EntitlementService = Depends(get_service),
):
    return svc.list_files(order_id, user_id)


@router.get(
    "/{order_id}/files/{file_id}/download",
    response_model=DownloadLinkOut,
    dependencies=[Depends(rate_limited("files:download", DOWNLOAD_RATE_LIMIT))],
)
def download_file(
    order_id: int,
    file_id: int,
    request: Request,
    ttl: int | None = Query(None, gt=0),
    user_id: int = Depends(current_user_id),
    svc: EntitlementService = Depends(get_service),
):
    ip = request.client.host if request.client else None
    return svc.download_file(order_id, file_id, user_id, ip=ip, ttl_seconds=ttl)
