"""
Order Retrieval: order lists, single orders and their items, plus the admin
dashboard totals.
"""
import logging
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import func

from storefront import db
from storefront.models import Order, OrderItem, OrderStatus, Product
from storefront.services.actor import Actor, require_admin, require_authenticated
from storefront.services.catalog_store import is_db_int
from storefront.services.errors import NotFound, Unauthorized

logger = logging.getLogger(__name__)


class OrderRetrieval:
    def __init__(self, public_reads: Optional[bool] = None):
        # None defers to PUBLIC_ORDER_READS in the app config
        self._public_reads = public_reads

    @property
    def public_reads(self) -> bool:
        if self._public_reads is not None:
            return self._public_reads
        if has_app_context():
            return current_app.config.get('PUBLIC_ORDER_READS', False)
        return False

    def list_for_actor(self, actor: Actor) -> List[Order]:
        require_authenticated(actor, 'orders.list')

        query = Order.query
        if not actor.is_admin:
            query = query.filter_by(user_id=actor.id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def _require_reader(self, actor: Optional[Actor]) -> None:
        # Anonymous callers learn nothing, not even whether the id exists
        if not self.public_reads and (actor is None or not actor.is_authenticated):
            raise Unauthorized('Sign in to view this order', authenticated=False)

    def _can_read(self, order: Order, actor: Optional[Actor]) -> bool:
        if self.public_reads or actor.is_admin or order.user_id == actor.id:
            return True

        logger.warning(f'User {actor.id} denied access to order {order.id}', extra={
            'event_type': 'order_access_denied',
            'order_id': order.id,
            'actor_id': actor.id,
        })
        return False

    def get_by_id(self, order_id: int, actor: Optional[Actor] = None) -> Order:
        """
        Other users' orders are reported as missing so their ids stay hidden.
        """
        self._require_reader(actor)

        order = db.session.get(Order, order_id) if is_db_int(order_id, minimum=1) else None
        if order is None or not self._can_read(order, actor):
            raise NotFound('Order', order_id)
        return order

    def get_items(self, order_id: int, actor: Optional[Actor] = None) -> List[OrderItem]:
        self.get_by_id(order_id, actor)
        return OrderItem.query.filter_by(order_id=order_id).order_by(OrderItem.id).all()

    def dashboard_stats(self, actor: Actor) -> Dict[str, Any]:
        """Totals shown on the admin dashboard; revenue is in cents"""
        require_admin(actor, 'orders.stats')

        by_status = dict(
            db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )
        return {
            'total_products': db.session.query(func.count(Product.id)).scalar(),
            'total_orders': db.session.query(func.count(Order.id)).scalar(),
            'total_revenue': db.session.query(func.coalesce(func.sum(Order.total_price), 0)).scalar(),
            'orders_by_status': {status.value: by_status.get(status.value, 0) for status in OrderStatus},
        }


order_retrieval = OrderRetrieval()
