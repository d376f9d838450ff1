from storefront.models.user import User
from storefront.models.product import Product
from storefront.models.order import Order, OrderItem, OrderStatus

__all__ = ['User', 'Product', 'Order', 'OrderItem', 'OrderStatus']
