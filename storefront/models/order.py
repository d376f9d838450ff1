from storefront import db
from datetime import datetime
from enum import Enum

PAYMENT_CASH_ON_DELIVERY = 'cash_on_delivery'


class OrderStatus(Enum):
    """Order lifecycle states"""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


ORDER_STATUS_VALUES = tuple(status.value for status in OrderStatus)


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    # NULL marks a guest checkout
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=False)
    customer_email = db.Column(db.String(320), nullable=False)
    customer_address = db.Column(db.Text, nullable=False)
    total_price = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.Enum(*ORDER_STATUS_VALUES, name='order_status', native_enum=False),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )
    payment_method = db.Column(db.String(50), nullable=False, default=PAYMENT_CASH_ON_DELIVERY)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = db.relationship(
        'OrderItem', backref='order', lazy=True, order_by='OrderItem.id'
    )

    def to_dict(self, include_items=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'customer_email': self.customer_email,
            'customer_address': self.customer_address,
            'total_price': self.total_price,
            'status': self.status,
            'payment_method': self.payment_method,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f'<Order {self.id}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    # No foreign key: rows must survive deletion of the product
    product_id = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_purchase = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'price_at_purchase': self.price_at_purchase,
        }

    def __repr__(self):
        return f'<OrderItem {self.id}>'
