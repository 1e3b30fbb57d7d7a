#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from fulfillment.data.models.user import UserModel
from fulfillment.data.models.address import AddressModel
from fulfillment.data.models.catalog import ProductModel, MaterialModel, ProductFileModel
from fulfillment.data.models.cart import CartModel
from fulfillment.data.models.cart_item import CartItemModel
from fulfillment.data.models.order import OrderModel, OrderItemModel
from fulfillment.data.models.payment import PaymentModel
from fulfillment.data.models.idempotency import IdempotencyRecordModel
from fulfillment.data.models.file_access_log import FileAccessLogModel
from fulfillment.data.models.invoice import InvoiceModel

__all__ = [
    "UserModel",
    "AddressModel",
    "ProductModel",
    "MaterialModel",
    "ProductFileModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
    "IdempotencyRecordModel",
    "FileAccessLogModel",
    "InvoiceModel",
]
