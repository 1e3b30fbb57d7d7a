# fulfillment/repos/cart_repo.py
from typing import List, Tuple

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from fulfillment.data.models.cart import CartModel
from fulfillment.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart:
            return cart

        cart = CartModel(user_id=user_id)
        self.db.add(cart)
        try:
            self.db.commit()
        except IntegrityError:
            # rownolegle zapytanie utworzylo koszyk pierwsze
            self.db.rollback()
            return self.get_cart_by_user(user_id)
        self.db.refresh(cart)
        return cart

    def get_cart_item(self, cart_id: int, product_id: int, material_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                CartItemModel.material_id == material_id,
            )
        ).scalar_one_or_none()

    def get_item_with_cart(self, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel)
            .options(joinedload(CartItemModel.cart))
            .where(CartItemModel.id == item_id)
        ).scalar_one_or_none()

    def get_cart_lines(self, cart_id: int) -> List[CartItemModel]:
        # jedno zapytanie: pozycje + aktualny stan produktu i materialu
        return list(
            self.db.execute(
                select(CartItemModel)
                .options(
                    joinedload(CartItemModel.product),
                    joinedload(CartItemModel.material),
                )
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.created_at.desc(), CartItemModel.id.desc())
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def add_cart_item(self, item: CartItemModel) -> None:
        self.db.add(item)

    def increment_quantity(self, item_id: int, by: int) -> int:
        # atomowo po stronie bazy: quantity = quantity + :by
        result = self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == item_id)
            .values(quantity=CartItemModel.quantity + by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)

    def delete_items(self, item_ids: List[int]) -> int:
        if not item_ids:
            return 0
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.id.in_(item_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_ordered_lines(self, lines: List[Tuple[int, int]]) -> int:
        """
        Usuwa tylko pozycje (id, quantity) odczytane do snapshotu.
        Pozycja dodana albo zwiekszona w miedzyczasie zostaje w koszyku,
        wywolujacy porownuje rowcount z len(lines).
        """
        removed = 0
        for item_id, quantity in lines:
            result = self.db.execute(
                delete(CartItemModel)
                .where(CartItemModel.id == item_id, CartItemModel.quantity == quantity)
                .execution_options(synchronize_session=False)
            )
            removed += result.rowcount
        return removed

    def flush(self):
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
