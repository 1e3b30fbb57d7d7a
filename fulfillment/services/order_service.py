# fulfillment/services/order_service.py
from decimal import Decimal
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment.data.models.address import AddressModel
from fulfillment.data.models.order import OrderModel, OrderItemModel
from fulfillment.domain.errors import (
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InvalidError,
    NotFoundError,
)
from fulfillment.domain.status import OrderStatus
from fulfillment.repos.order_repo import OrderRepo
from fulfillment.repos.user_repo import UserRepo
from fulfillment.services.cart_service import CartService, is_line_available, price_line
from fulfillment.services.notification_service import NotificationService
from fulfillment.utils.settings import PAYMENT_CURRENCY
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 255


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.
    Zamowienie to niezmienny zapis finansowy: ceny sa snapshotem,
    zmienia sie tylko status.
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.user_repo = UserRepo(db)
        self.cart_service = CartService(db)
        self.notification_service = notifier or NotificationService()

    def create_order(self, user_id: int, address_id: int, idempotency_key: str) -> OrderModel:
        """
        Use Case: Checkout - tworzenie zamówienia z koszyka.

        1. Ten sam klucz idempotencji -> zwraca istniejace zamowienie
        2. Rewalidacja koszyka, pusty -> blad
        3. Adres musi nalezec do uzytkownika
        4. Jedna transakcja: order + snapshot pozycji + klucz + czyszczenie koszyka
        """
        key = (idempotency_key or "").strip()
        if not key or len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise InvalidError("Idempotency key is required")

        existing = self.repo.get_idempotency_record(key, user_id)
        if existing:
            logger.info(f"Klucz idempotencji juz uzyty przez {user_id}, zwracam zamowienie {existing.order_id}")
            return self.repo.get_order_for_user(existing.order_id, user_id)

        cart, lines, _ = self.cart_service.priced_lines(user_id)
        if not lines:
            raise EmptyCartError("Cart is empty. Add items before creating an order.")

        address = self.user_repo.get_address(address_id)
        if not address:
            raise NotFoundError("Address not found")
        if address.user_id != user_id:
            raise ForbiddenError("Address does not belong to you")

        try:
            order = self._materialize(user_id, cart.id, address, key)
            self.repo.commit()
        except IntegrityError:
            # przegrany wyscig o klucz idempotencji
            self.repo.rollback()
            winner = self.repo.get_idempotency_record(key, user_id)
            if winner:
                logger.info(f"Rownolegly checkout wygral, zwracam zamowienie {winner.order_id}")
                return self.repo.get_order_for_user(winner.order_id, user_id)
            raise ConflictError("Order could not be created, please retry")
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.id} created for user {user_id}, total {order.total}")

        user = self.user_repo.get_user(user_id)
        if user:
            self.notification_service.notify_order_created(order.id, user.email, order.total)

        return self.repo.get_order_for_user(order.id, user_id)

    def _materialize(self, user_id: int, cart_id: int, address: AddressModel, key: str) -> OrderModel:
        # snapshot z aktualnego katalogu - ten odczyt wygrywa i jest ostateczny
        current = self.cart_service.repo.get_cart_lines(cart_id)
        if not current:
            raise EmptyCartError("Cart is empty. Add items before creating an order.")
        if not all(is_line_available(item) for item in current):
            raise InvalidError("Cart contains unavailable items. Please refresh your cart before checkout.")

        subtotal = Decimal("0.00")
        items: List[OrderItemModel] = []

        for item in current:
            unit_price, line_total = price_line(item.product, item.material, item.quantity)
            subtotal += line_total
            items.append(
                OrderItemModel(
                    product_id=item.product.id,
                    material_id=item.material.id,
                    product_name=item.product.name,
                    material_name=item.material.name,
                    base_price=item.product.base_price,
                    material_price=item.material.price,
                    unit_price=unit_price,
                    quantity=item.quantity,
                    line_total=line_total,
                )
            )

        order = OrderModel(
            user_id=user_id,
            status=OrderStatus.CREATED,
            address_snapshot=address.snapshot(),
            subtotal=subtotal,
            total=subtotal,
            currency=PAYMENT_CURRENCY,
        )
        self.repo.add_order(order, items)
        self.repo.add_idempotency_record(key, user_id, order.id)

        ordered = [(item.id, item.quantity) for item in current]
        removed = self.cart_service.repo.delete_ordered_lines(ordered)
        if removed != len(ordered):
            # ktoras pozycja zmienila ilosc albo zniknela po odczycie snapshotu
            raise ConflictError("Cart changed during checkout, please retry")

        return order

    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        """
        Use Case: Pobranie zamówienia (Query).
        Cudze zamowienie wyglada tak samo jak nieistniejace.
        """
        order = self.repo.get_order_for_user(order_id, user_id)

        if not order:
            raise NotFoundError("Order not found")

        return order

    def list_orders(self, user_id: int) -> List[OrderModel]:
        return self.repo.list_orders_for_user(user_id)
