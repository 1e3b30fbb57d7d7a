# fulfillment/services/payment_service.py
import json
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment.data.models.order import OrderModel
from fulfillment.data.models.payment import PaymentModel
from fulfillment.domain.errors import (
    ConflictError,
    InvalidError,
    NotFoundError,
    UnauthorizedError,
)
from fulfillment.domain.status import OrderStatus, PaymentStatus
from fulfillment.repos.order_repo import OrderRepo
from fulfillment.repos.payment_repo import PaymentRepo
from fulfillment.repos.user_repo import UserRepo
from fulfillment.services.invoice_service import InvoiceService
from fulfillment.services.notification_service import NotificationService
from fulfillment.services.payment_gateway import RazorpayGateway, to_minor_units
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS_EVENTS = ("payment.captured", "order.paid")
FAILURE_EVENTS = ("payment.failed",)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class PaymentService:
    """
    Maszyna stanow platnosci: CREATED -> PAID | FAILED (oba koncowe).

    Dwie sciezki potwierdzenia (redirect klienta i webhook bramki) moga
    przyjsc jednoczesnie. Przejscie robi warunkowy UPDATE ... WHERE
    status='CREATED'; kto pierwszy ten wygrywa, drugi widzi stan koncowy
    i konczy bez bledu.
    """

    def __init__(
        self,
        db: Session,
        gateway: RazorpayGateway,
        notifier: NotificationService | None = None,
        invoices: InvoiceService | None = None,
    ):
        self.orders = OrderRepo(db)
        self.payments = PaymentRepo(db)
        self.users = UserRepo(db)
        self.gateway = gateway
        self.notification_service = notifier or NotificationService()
        self.invoice_service = invoices or InvoiceService()

    def initiate(self, order_id: int, user_id: int) -> Dict[str, Any]:
        """
        Use Case: otwarcie platnosci w bramce.
        Idempotentne - istniejaca intencja jest wydawana ponownie.
        """
        order = self.orders.get_order_for_user(order_id, user_id)

        if not order:
            raise NotFoundError("Order not found")

        if order.status != OrderStatus.CREATED:
            raise InvalidError(f"Cannot initiate payment for order with status: {order.status}")

        payment = self.payments.get_by_order(order_id)
        if payment and payment.gateway_order_id:
            logger.info(f"Payment already exists for order {order_id}, returning existing gateway order")
            return self._intent_response(order, payment)

        intent = self.gateway.create_intent(to_minor_units(order.total), receipt=str(order.id))

        try:
            if payment:
                payment.gateway_order_id = intent["gateway_order_id"]
            else:
                payment = self.payments.add_payment(
                    PaymentModel(
                        order_id=order.id,
                        user_id=user_id,
                        amount=order.total,
                        currency=order.currency,
                        status=PaymentStatus.CREATED,
                        gateway=self.gateway.name,
                        gateway_order_id=intent["gateway_order_id"],
                    )
                )
            self.payments.commit()
        except IntegrityError:
            # rownolegle initiate zapisalo platnosc pierwsze
            self.payments.rollback()
            payment = self.payments.get_by_order(order_id)
            if not payment or not payment.gateway_order_id:
                raise ConflictError("Payment could not be initiated, please retry")
            logger.info(f"Concurrent initiate for order {order_id}, reusing {payment.gateway_order_id}")

        logger.info(f"Payment initiated for order {order_id}, gateway order {payment.gateway_order_id}")

        return self._intent_response(order, payment)

    def _intent_response(self, order: OrderModel, payment: PaymentModel) -> Dict[str, Any]:
        return {
            "gateway_order_id": payment.gateway_order_id,
            "amount": to_minor_units(order.total),
            "currency": payment.currency,
            "key": self.gateway.public_key,
        }

    def confirm_client_side(
        self,
        order_id: int,
        user_id: int,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> Dict[str, Any]:
        """
        Use Case: potwierdzenie z przegladarki po zaplacie.
        Podpis weryfikowany przed jakimkolwiek odczytem zamowienia.
        """
        if not self.gateway.verify_payment(gateway_order_id, gateway_payment_id, signature):
            logger.warning(f"Payment signature verification failed for gateway order {gateway_order_id}")
            raise UnauthorizedError("Payment verification failed")

        payment = self.payments.get_by_gateway_order_id(gateway_order_id)

        if not payment or payment.order_id != order_id or payment.user_id != user_id:
            raise NotFoundError("Order not found")

        status = self._transition(payment, OrderStatus.PAID, gateway_payment_id)

        return {"order_id": payment.order_id, "status": status}

    def handle_webhook(self, raw_body: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Use Case: webhook bramki (zrodlo prawdy).
        Musi byc idempotentny - bramka potrafi dostarczyc to samo zdarzenie wiele razy.
        """
        if not self.gateway.verify_webhook(raw_body, signature):
            logger.warning("Razorpay webhook signature verification failed")
            raise UnauthorizedError("Invalid webhook signature")

        try:
            event = json.loads(raw_body)
        except ValueError:
            raise InvalidError("Invalid webhook payload")

        event_type = _dig(event, "event")
        if event_type not in SUCCESS_EVENTS + FAILURE_EVENTS:
            logger.info(f"Unhandled webhook event: {event_type}")
            return {"received": True}

        gateway_order_id = _dig(event, "payload", "payment", "entity", "order_id") or _dig(
            event, "payload", "order", "entity", "id"
        )
        gateway_payment_id = _dig(event, "payload", "payment", "entity", "id")

        if not gateway_order_id:
            logger.error(f"Missing gateway order id in {event_type} event")
            return {"received": True}

        payment = self.payments.get_by_gateway_order_id(gateway_order_id)
        if not payment:
            logger.error(f"Payment not found for gateway order {gateway_order_id}")
            return {"received": True}

        target = OrderStatus.PAID if event_type in SUCCESS_EVENTS else OrderStatus.FAILED
        self._transition(payment, target, gateway_payment_id)

        return {"received": True}

    def _transition(self, payment: PaymentModel, to_status: str, gateway_payment_id: str | None) -> str:
        # jedyne miejsce zmiany statusu: order i payment w jednej transakcji
        rowcount = self.orders.transition_status(payment.order_id, OrderStatus.CREATED, to_status)

        if rowcount == 0:
            self.orders.rollback()
            order = self.orders.get_order(payment.order_id)
            self.orders.refresh(order)
            logger.info(
                f"Order {payment.order_id} already {order.status}, skipping transition to {to_status}"
            )
            return order.status

        self.payments.transition_status(payment.id, PaymentStatus.CREATED, to_status, gateway_payment_id)
        self.orders.commit()

        logger.info(f"Order {payment.order_id} marked as {to_status} (payment {gateway_payment_id})")

        # efekty uboczne tylko dla zwyciezcy, w tle
        if to_status == OrderStatus.PAID:
            self.invoice_service.generate(payment.order_id)
            user = self.users.get_user(payment.user_id)
            if user:
                self.notification_service.notify_payment_success(payment.order_id, user.email)

        return to_status

    def get_payment(self, order_id: int, user_id: int) -> PaymentModel:
        payment = self.payments.get_by_order(order_id)

        # cudza platnosc = brak platnosci
        if not payment or payment.user_id != user_id:
            raise NotFoundError("Payment not found")

        return payment
