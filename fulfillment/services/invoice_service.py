# fulfillment/services/invoice_service.py
from concurrent.futures import Future
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment.celery_worker import celery_app, publish
from fulfillment.data.database import SessionLocal
from fulfillment.data.models.invoice import InvoiceModel
from fulfillment.domain.errors import NotFoundError
from fulfillment.domain.status import OrderStatus
from fulfillment.repos.invoice_repo import InvoiceRepo
from fulfillment.repos.order_repo import OrderRepo
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def invoice_number(order_id: int, issued_at: datetime) -> str:
    # INV-YYYYMMDD-<order id>, unikalne bo order_id jest unikalne
    return f"INV-{issued_at:%Y%m%d}-{order_id:06d}"


def build_invoice(db: Session, order_id: int) -> InvoiceModel | None:
    """
    Idempotentne: istniejaca faktura jest zwracana bez zmian.
    Tylko dane ze snapshotu zamowienia, nigdy z aktualnego katalogu.
    """
    invoices = InvoiceRepo(db)

    existing = invoices.get_by_order(order_id)
    if existing:
        logger.info(f"Invoice already exists for order {order_id}, skipping generation")
        return existing

    orders = OrderRepo(db)
    order = orders.get_order(order_id)
    if order:
        orders.refresh(order)
    if not order or order.status != OrderStatus.PAID:
        logger.warning(f"Order {order_id} is not paid, invoice not generated")
        return None

    issued_at = datetime.now(timezone.utc)
    invoice = InvoiceModel(
        order_id=order.id,
        invoice_number=invoice_number(order.id, issued_at),
        user_id=order.user_id,
        billing_address=dict(order.address_snapshot),
        lines=[
            {
                "product_id": item.product_id,
                "material_id": item.material_id,
                "product_name": item.product_name,
                "material_name": item.material_name,
                "unit_price": str(item.unit_price),
                "quantity": item.quantity,
                "line_total": str(item.line_total),
            }
            for item in order.items
        ],
        subtotal=order.subtotal,
        total=order.total,
        currency=order.currency,
        issued_at=issued_at,
    )

    try:
        invoices.add_invoice(invoice)
        invoices.commit()
    except IntegrityError:
        # rownolegly task wygenerowal ja pierwszy
        invoices.rollback()
        return invoices.get_by_order(order_id)

    logger.info(f"Invoice {invoice.invoice_number} generated for order {order_id}")
    return invoice


class InvoiceService:
    """
    generate - zleca fakture w tle (po wygranym przejsciu na PAID)
    get_invoice - odczyt dla wlasciciela zamowienia
    """

    def __init__(self, db: Session | None = None):
        self.repo = InvoiceRepo(db) if db is not None else None

    def generate(self, order_id: int) -> Future:
        return publish(generate_invoice_task, order_id)

    def get_invoice(self, order_id: int, user_id: int) -> InvoiceModel:
        invoice = self.repo.get_for_user(order_id, user_id)

        if not invoice:
            raise NotFoundError("Invoice not found")

        return invoice


@celery_app.task(name="fulfillment.services.invoice_service.generate_invoice_task")
def generate_invoice_task(order_id: int):
    db = SessionLocal()
    try:
        build_invoice(db, order_id)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to generate invoice for order {order_id}: {e}")
    finally:
        db.close()
