"""
Order Placement Service

Turns a cart and the customer's contact details into an order header plus one
item row per distinct cart line. Prices come from the catalog at placement
time; whatever total the client computed is ignored.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from storefront import db
from storefront.models import Order, OrderItem, OrderStatus
from storefront.models.order import PAYMENT_CASH_ON_DELIVERY
from storefront.services.actor import Actor
from storefront.services.catalog_store import MAX_DB_INT, CatalogStore, catalog_store, is_db_int
from storefront.services.errors import OrderPersistenceError, PartialOrderError, ValidationError

logger = logging.getLogger(__name__)

# Checked in this order; the first missing one is reported
CUSTOMER_FIELDS = ('name', 'phone', 'email', 'address')


@dataclass
class CustomerInfo:
    name: str
    phone: str
    email: str
    address: str
    notes: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'CustomerInfo':
        if not isinstance(data, Mapping):
            raise ValidationError('Customer details are required', field=CUSTOMER_FIELDS[0])

        values = {}
        for name in CUSTOMER_FIELDS:
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f'Customer {name} is required', field=name)
            values[name] = value.strip()

        notes = data.get('notes')
        if notes is not None and not isinstance(notes, str):
            raise ValidationError('Notes must be text', field='notes')

        return cls(notes=(notes or '').strip() or None, **values)


@dataclass
class CartLine:
    product_id: int
    quantity: int

    @classmethod
    def from_mapping(cls, data: Any, index: int) -> 'CartLine':
        if isinstance(data, CartLine):
            return data
        if not isinstance(data, Mapping):
            raise ValidationError(f'Cart line {index} must be an object', field='items')

        product_id = data.get('product_id')
        quantity = data.get('quantity')
        if not is_db_int(product_id):
            raise ValidationError(f'Cart line {index} has an invalid product_id', field='items')
        if not is_db_int(quantity, minimum=1):
            raise ValidationError(
                f'Cart line {index} quantity must be between 1 and {MAX_DB_INT}', field='items'
            )
        return cls(product_id=product_id, quantity=quantity)


def normalize_cart(cart_lines: Sequence[Any]) -> List[CartLine]:
    """Validate cart lines and fold repeated products into their first line"""
    if isinstance(cart_lines, (str, bytes, Mapping)) or not isinstance(cart_lines, Sequence):
        raise ValidationError('Cart must be a list of lines', field='items')
    if not cart_lines:
        raise ValidationError('Cart is empty', field='items')

    merged: Dict[int, CartLine] = {}
    for index, raw in enumerate(cart_lines):
        line = CartLine.from_mapping(raw, index)
        if line.product_id in merged:
            merged[line.product_id].quantity += line.quantity
            if merged[line.product_id].quantity > MAX_DB_INT:
                raise ValidationError(f'Cart line {index} quantity is too large', field='items')
        else:
            merged[line.product_id] = CartLine(line.product_id, line.quantity)

    # dicts keep first-insertion order
    return list(merged.values())


class OrderPlacementService:
    def __init__(self, catalog: Optional[CatalogStore] = None):
        self.catalog = catalog or catalog_store

    def price_lines(self, lines: Sequence[CartLine]) -> List[OrderItem]:
        """Snapshot the current catalog price of each line; unknown products price at 0"""
        items = []
        for line in lines:
            product = self.catalog.find(line.product_id)
            if product is None:
                logger.warning(f'Cart line references unknown product {line.product_id}', extra={
                    'event_type': 'order_unknown_product',
                    'product_id': line.product_id,
                })
                price = 0
            else:
                price = product.price

            items.append(OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                price_at_purchase=price,
            ))
        return items

    def place_order(
        self,
        customer_info: Mapping[str, Any],
        cart_lines: Sequence[Any],
        actor: Optional[Actor] = None,
        client_total: Optional[int] = None,
    ) -> int:
        """
        Persist an order and its items as a single transaction.

        Returns:
            The new order id.

        Raises:
            ValidationError: missing customer field or malformed cart; nothing is written.
            OrderPersistenceError: the transaction failed and was rolled back.
            PartialOrderError: the committed order does not hold all of its item rows.
        """
        customer = CustomerInfo.from_mapping(customer_info)
        lines = normalize_cart(cart_lines)

        items = self.price_lines(lines)
        total = sum(item.price_at_purchase * item.quantity for item in items)
        if total > MAX_DB_INT:
            raise ValidationError('Order total is too large', field='items')

        if client_total is not None and client_total != total:
            logger.warning(f'Ignoring client total {client_total}, computed {total}', extra={
                'event_type': 'order_total_mismatch',
                'client_total': client_total,
                'total_price': total,
            })

        user_id = actor.id if actor is not None and actor.is_authenticated else None

        logger.info(f'Creating order for user {user_id or "guest"}', extra={
            'event_type': 'order_create',
            'user_id': user_id,
            'item_count': len(items),
            'total_price': total,
        })

        order = Order(
            user_id=user_id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_email=customer.email,
            customer_address=customer.address,
            total_price=total,
            status=OrderStatus.PENDING.value,
            payment_method=PAYMENT_CASH_ON_DELIVERY,
            notes=customer.notes,
        )

        try:
            db.session.add(order)
            # Header id is needed for the item rows
            db.session.flush()

            for item in items:
                item.order_id = order.id
                db.session.add(item)

            db.session.commit()
        except Exception as e:
            # Leave the session usable whatever the driver raised
            db.session.rollback()
            logger.error(f'Order placement rolled back: {e}', extra={
                'event_type': 'order_error',
                'user_id': user_id,
                'error': str(e),
            })
            if isinstance(e, SQLAlchemyError):
                raise OrderPersistenceError('Order could not be saved') from e
            raise

        order_id = order.id
        stored = OrderItem.query.filter_by(order_id=order_id).count()
        if stored != len(items):
            logger.error(f'Order {order_id} stored {stored} of {len(items)} items', extra={
                'event_type': 'order_partial',
                'order_id': order_id,
            })
            raise PartialOrderError(order_id, len(items), stored)

        logger.info('Order placed successfully', extra={
            'event_type': 'order_success',
            'user_id': user_id,
            'order_id': order_id,
            'total_price': total,
        })
        return order_id


order_placement_service = OrderPlacementService()
