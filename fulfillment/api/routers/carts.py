#fulfillment/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.api.deps import current_user_id
from fulfillment.data.database import get_db
from fulfillment.domain.errors import ForbiddenError, NotFoundError
from fulfillment.domain.schemas import CartOut, ItemIn, QuantityIn
from fulfillment.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(
    user_id: int = Depends(current_user_id),
    svc: CartService = Depends(get_service),
):
    return svc.get_cart(user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    user_id: int = Depends(current_user_id),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(
        user_id=user_id,
        product_id=payload.product_id,
        material_id=payload.material_id,
        quantity=payload.quantity,
    )


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: QuantityIn,
    user_id: int = Depends(current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_quantity(user_id, item_id, payload.quantity)
    except ForbiddenError:
        # na zewnatrz cudza pozycja = brak pozycji
        raise NotFoundError("Cart item not found")


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user_id: int = Depends(current_user_id),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_item(user_id, item_id)
    except ForbiddenError:
        raise NotFoundError("Cart item not found")
