# fulfillment/api/routers/payments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.api.deps import current_user_id, get_gateway, get_invoices, get_notifier, rate_limited
from fulfillment.data.database import get_db
from fulfillment.domain.schemas import (
    PaymentInitiateOut,
    PaymentOut,
    PaymentVerifyIn,
    PaymentVerifyOut,
)
from fulfillment.services.invoice_service import InvoiceService
from fulfillment.services.notification_service import NotificationService
from fulfillment.services.payment_gateway import RazorpayGateway
from fulfillment.services.payment_service import PaymentService
from fulfillment.utils.settings import INITIATE_RATE_LIMIT

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    notifier: NotificationService = Depends(get_notifier),
    invoices: InvoiceService = Depends(get_invoices),
) -> PaymentService:
    return PaymentService(db, gateway=gateway, notifier=notifier, invoices=invoices)


@router.post(
    "/initiate/{order_id}",
    response_model=PaymentInitiateOut,
    dependencies=[Depends(rate_limited("payments:initiate", INITIATE_RATE_LIMIT))],
)
def initiate_payment(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: PaymentService = Depends(get_service),
):
    return svc.initiate(order_id, user_id)


@router.post("/verify", response_model=PaymentVerifyOut)
def verify_payment(
    payload: PaymentVerifyIn,
    user_id: int = Depends(current_user_id),
    svc: PaymentService = Depends(get_service),
):
    return svc.confirm_client_side(
        order_id=payload.order_id,
        user_id=user_id,
        gateway_order_id=payload.gateway_order_id,
        gateway_payment_id=payload.gateway_payment_id,
        signature=payload.signature,
    )


@router.get("/{order_id}", response_model=PaymentOut)
def get_payment(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: PaymentService = Depends(get_service),
):
    return svc.get_payment(order_id, user_id)
