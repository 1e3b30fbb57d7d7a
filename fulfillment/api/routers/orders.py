# fulfillment/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from fulfillment.api.deps import current_user_id, get_notifier
from fulfillment.data.database import get_db
from fulfillment.domain.schemas import InvoiceOut, OrderCreate, OrderOut, OrderSummaryOut
from fulfillment.services.invoice_service import InvoiceService
from fulfillment.services.notification_service import NotificationService
from fulfillment.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, notifier=notifier)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    idempotency_key: str = Header(..., alias="Idempotency-Key", min_length=1, max_length=255),
    user_id: int = Depends(current_user_id),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie z koszyka.
    Ten sam Idempotency-Key zwraca to samo zamowienie.
    """
    return svc.create_order(user_id, payload.address_id, idempotency_key)


@router.get("", response_model=List[OrderSummaryOut])
def list_orders(
    user_id: int = Depends(current_user_id),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return svc.get_order(order_id, user_id)


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)


@router.get("/{order_id}/invoice", response_model=InvoiceOut)
def get_invoice(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: InvoiceService = Depends(get_invoice_service),
):
    return svc.get_invoice(order_id, user_id)
