from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment.data.models.cart import CartModel
from fulfillment.data.models.cart_item import CartItemModel
from fulfillment.data.models.catalog import MaterialModel, ProductModel
from fulfillment.domain.errors import ForbiddenError, InvalidError, NotFoundError
from fulfillment.repos.cart_repo import CartRepo
from fulfillment.repos.catalog_repo import CatalogRepo
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

REMOVED_ITEMS_WARNING = "Some items were removed because they are no longer available"


def price_line(product: ProductModel, material: MaterialModel, quantity: int) -> Tuple[Decimal, Decimal]:
    """
    item_price = product.base_price + material.price
    line_total = item_price * quantity
    """
    item_price = Decimal(product.base_price) + Decimal(material.price)
    return item_price, item_price * quantity


def is_line_available(item: CartItemModel) -> bool:
    return bool(
        item.product is not None
        and item.material is not None
        and item.product.is_active
        and item.material.is_active
        and item.material.product_id == item.product_id
    )


class CartService:
    """
    Koszyk to widok na aktualny katalog: ceny nie sa zapisywane,
    kazdy odczyt liczy je od nowa i usuwa pozycje, ktore przestaly byc dostepne.
    commands (add, update, remove) modyfikuja stan
    query (get) czyta i sprzata
    """

    def __init__(self, db: Session, catalog: CatalogRepo | None = None):
        self.repo = CartRepo(db)
        self.catalog = catalog or CatalogRepo(db)

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart, lines, warnings = self.priced_lines(user_id)
        total = sum((line["line_total"] for line in lines), Decimal("0.00"))

        return {
            "items": [
                {
                    "id": line["item"].id,
                    "product": {
                        "id": line["product"].id,
                        "name": line["product"].name,
                        "base_price": line["product"].base_price,
                    },
                    "material": {
                        "id": line["material"].id,
                        "name": line["material"].name,
                        "price": line["material"].price,
                    },
                    "quantity": line["quantity"],
                    "item_price": line["item_price"],
                    "line_total": line["line_total"],
                }
                for line in lines
            ],
            "total": total,
            "warnings": warnings,
        }

    def priced_lines(self, user_id: int) -> Tuple[CartModel, List[Dict[str, Any]], List[str]]:
        """
        Sciezka walidacji wspolna z checkoutem.
        Zwraca (koszyk, pozycje z cenami, ostrzezenia).
        """
        cart = self.repo.get_or_create_cart(user_id)
        items = self.repo.get_cart_lines(cart.id)

        lines: List[Dict[str, Any]] = []
        dead: List[int] = []

        for item in items:
            if not is_line_available(item):
                dead.append(item.id)
                continue

            item_price, line_total = price_line(item.product, item.material, item.quantity)
            lines.append(
                {
                    "item": item,
                    "product": item.product,
                    "material": item.material,
                    "quantity": item.quantity,
                    "item_price": item_price,
                    "line_total": line_total,
                }
            )

        warnings: List[str] = []
        if dead:
            # usuwamy wszystkie martwe pozycje jednym zapytaniem
            removed = self.repo.delete_items(dead)
            self.repo.commit()
            logger.info(f"Usunieto {removed} niedostepnych pozycji z koszyka {cart.id}")
            warnings.append(REMOVED_ITEMS_WARNING)

        return cart, lines, warnings

    #commands
    def add_item(
        self,
        user_id: int,
        product_id: int,
        material_id: int,
        quantity: int,
    ) -> Dict[str, Any]:

        if quantity < 1:
            raise InvalidError("Quantity must be at least 1")

        cart = self.repo.get_or_create_cart(user_id)

        product = self.catalog.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not product.is_active:
            raise InvalidError("Product is no longer available")

        material = self.catalog.get_material(material_id, product_id)
        if not material:
            raise NotFoundError("Material not found or does not belong to this product")
        if not material.is_active:
            raise InvalidError("Material is no longer available")

        try:
            self._merge_item(cart.id, product_id, material_id, quantity)
            self.repo.commit()
        except IntegrityError:
            # podwojny submit: druga transakcja wstawila ten sam wiersz
            self.repo.rollback()
            logger.info(
                f"Wyscig przy dodawaniu produktu {product_id}/{material_id} do koszyka {cart.id}, ponawiam jako inkrementacje"
            )
            self._merge_item(cart.id, product_id, material_id, quantity)
            self.repo.commit()

        return self.get_cart(user_id)

    def _merge_item(self, cart_id: int, product_id: int, material_id: int, quantity: int) -> None:
        existing_item = self.repo.get_cart_item(cart_id, product_id, material_id)

        if existing_item:
            logger.info(
                f"Produkt {product_id} (material {material_id}) juz jest w koszyku {cart_id}, zwiekszam ilosc o {quantity}"
            )
            self.repo.increment_quantity(existing_item.id, quantity)
        else:
            logger.info(f"Dodaje produkt {product_id} (material {material_id}) do koszyka {cart_id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart_id,
                    product_id=product_id,
                    material_id=material_id,
                    quantity=quantity,
                )
            )
        self.repo.flush()

    def update_quantity(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise InvalidError("Quantity must be at least 1")

        item = self._owned_item(user_id, item_id)
        item.quantity = quantity
        self.repo.commit()

        logger.info(f"Pozycja {item_id} w koszyku {item.cart_id}: ilosc {quantity}")

        return self.get_cart(user_id)

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        item = self._owned_item(user_id, item_id)
        self.repo.delete_cart_item(item)
        self.repo.commit()

        logger.info(f"Usunieto pozycje {item_id} z koszyka {item.cart_id}")

        return self.get_cart(user_id)

    def _owned_item(self, user_id: int, item_id: int) -> CartItemModel:
        # wlasnosc sprawdzana przez koszyk-rodzica
        item = self.repo.get_item_with_cart(item_id)

        if not item:
            raise NotFoundError("Cart item not found")

        if item.cart.user_id != user_id:
            logger.warning(f"Uzytkownik {user_id} probowal zmienic cudza pozycje koszyka {item_id}")
            raise ForbiddenError("Access denied")

        return item
