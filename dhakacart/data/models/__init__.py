# import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from dhakacart.data.models.user import UserModel
from dhakacart.data.models.product import ProductModel
from dhakacart.data.models.order import OrderModel
from dhakacart.data.models.order_item import OrderItemModel
from dhakacart.data.models.payment import PaymentModel

__all__ = ["UserModel", "ProductModel", "OrderModel", "OrderItemModel", "PaymentModel"]
