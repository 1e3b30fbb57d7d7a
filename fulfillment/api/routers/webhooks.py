# fulfillment/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from fulfillment.api.routers.payments import get_service
from fulfillment.domain.schemas import WebhookAck
from fulfillment.services.payment_service import PaymentService
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/razorpay", response_model=WebhookAck)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None, alias="X-Razorpay-Signature"),
    svc: PaymentService = Depends(get_service),
):
    """
    Publiczny endpoint (bez X-User-Id). Podpis liczony z surowego body,
    wiec czytamy bajty zanim cokolwiek je sparsuje.
    """
    raw_body = await request.body()
    logger.info("Razorpay webhook received")
    return await run_in_threadpool(svc.handle_webhook, raw_body, x_razorpay_signature)
