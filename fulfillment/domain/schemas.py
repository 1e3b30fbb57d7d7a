# fulfillment/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    material_id: int = Field(..., gt=0, description="ID materialu (musi być > 0)")
    quantity: int = Field(..., ge=1, description="Ilość produktu (musi być >= 1)")


class QuantityIn(BaseModel):
    quantity: int = Field(..., ge=1, description="Nowa ilość (musi być >= 1)")


class CartProductOut(BaseModel):
    id: int
    name: str
    base_price: Decimal


class CartMaterialOut(BaseModel):
    id: int
    name: str
    price: Decimal


class CartItemOut(BaseModel):
    """Pozycja koszyka z cena policzona przy odczycie."""

    id: int
    product: CartProductOut
    material: CartMaterialOut
    quantity: int
    item_price: Decimal
    line_total: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    items: List[CartItemOut]
    total: Decimal
    warnings: List[str] = []


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamówienia."""

    address_id: int = Field(..., gt=0, description="ID adresu (musi być > 0)")


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    base_price: Decimal
    material_id: int
    material_name: str
    material_price: Decimal
    quantity: int
    item_price: Decimal = Field(validation_alias="unit_price")
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AddressSnapshotOut(BaseModel):
    full_name: str
    phone: Optional[str] = None
    line1: str
    line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    postal_code: str
    country: str


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    status: str
    subtotal: Decimal
    total: Decimal
    currency: str
    items: List[OrderItemOut]
    address: AddressSnapshotOut = Field(validation_alias="address_snapshot")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class OrderSummaryOut(BaseModel):
    id: int
    status: str
    total: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentInitiateOut(BaseModel):
    gateway_order_id: str
    amount: int
    currency: str
    key: str


class PaymentVerifyIn(BaseModel):
    order_id: int = Field(..., gt=0)
    gateway_order_id: str = Field(..., min_length=1)
    gateway_payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class PaymentVerifyOut(BaseModel):
    order_id: int
    status: str


class PaymentOut(BaseModel):
    order_id: int
    amount: Decimal
    currency: str
    status: str
    gateway: str
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WebhookAck(BaseModel):
    received: bool


class FileOut(BaseModel):
    file_id: int
    file_name: str
    file_type: str


class DownloadLinkOut(BaseModel):
    download_url: str
    expires_in: int
    expires_at: datetime


class InvoiceLineOut(BaseModel):
    product_id: int
    material_id: int
    product_name: str
    material_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class InvoiceOut(BaseModel):
    """Faktura - tylko dane ze snapshotu zamowienia."""

    invoice_number: str
    order_id: int
    billing_address: AddressSnapshotOut
    lines: List[InvoiceLineOut]
    subtotal: Decimal
    total: Decimal
    currency: str
    issued_at: datetime

    model_config = ConfigDict(from_attributes=True)
