"""
Order Status Workflow

pending -> confirmed -> shipped -> delivered, with cancelled reachable from
every non-terminal state. delivered and cancelled are terminal.
"""
import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from storefront import db
from storefront.models import Order, OrderStatus
from storefront.services.actor import Actor, require_admin
from storefront.services.catalog_store import is_db_int
from storefront.services.errors import (
    InvalidStatusTransition,
    NotFound,
    OrderPersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ', '.join(status.value for status in OrderStatus)
        raise ValidationError(f'Unknown order status {value!r} (expected one of {allowed})', field='status') from None


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


class OrderStatusWorkflow:
    def __init__(self, enforce_transitions: Optional[bool] = None):
        # None defers to ENFORCE_STATUS_TRANSITIONS in the app config
        self._enforce_transitions = enforce_transitions

    @property
    def enforce_transitions(self) -> bool:
        if self._enforce_transitions is not None:
            return self._enforce_transitions
        if has_app_context():
            return current_app.config.get('ENFORCE_STATUS_TRANSITIONS', True)
        return True

    def set_status(self, order_id: int, new_status, actor: Actor) -> Order:
        require_admin(actor, 'orders.updateStatus')

        requested = parse_status(new_status)
        order = db.session.get(Order, order_id) if is_db_int(order_id, minimum=1) else None
        if order is None:
            raise NotFound('Order', order_id)

        current = OrderStatus(order.status)
        if self.enforce_transitions and not can_transition(current, requested):
            raise InvalidStatusTransition(current.value, requested.value, terminal=is_terminal(current))

        try:
            order.status = requested.value
            order.updated_at = datetime.utcnow()
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Status update for order {order_id} rolled back: {e}', extra={
                'event_type': 'order_status_error',
                'order_id': order_id,
                'error': str(e),
            })
            if isinstance(e, SQLAlchemyError):
                raise OrderPersistenceError(f'Order {order_id} status could not be saved') from e
            raise

        logger.info(f'Order {order_id} status {current.value} -> {requested.value}', extra={
            'event_type': 'order_status_update',
            'order_id': order_id,
            'from_status': current.value,
            'to_status': requested.value,
            'actor_id': actor.id,
        })
        return order


order_status_workflow = OrderStatusWorkflow()
