"""
Error taxonomy for the storefront services and the Flask handlers that turn
them into JSON responses.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from flask import jsonify, request

from storefront import db

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for errors raised by the storefront services"""

    status_code = 500
    error_type = 'storefront_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': 'error',
            'error_type': self.error_type,
            'message': self.message,
        }


class ValidationError(StorefrontError):
    """Malformed or missing input, optionally naming the offending field"""

    status_code = 400
    error_type = 'validation_error'

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field is not None:
            data['field'] = self.field
        return data


class InvalidStatusTransition(ValidationError):
    status_code = 409
    error_type = 'invalid_status_transition'

    def __init__(self, current: str, requested: str, terminal: bool = False):
        if terminal:
            message = f'Order is {current}, a final status; it cannot change to {requested}'
        else:
            message = f'Cannot change order status from {current} to {requested}'
        super().__init__(message, field='status')
        self.current = current
        self.requested = requested
        self.terminal = terminal


class NotFound(StorefrontError):
    status_code = 404
    error_type = 'not_found'

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f'{entity} {entity_id} not found')
        self.entity = entity
        self.entity_id = entity_id


class Unauthorized(StorefrontError):
    """Actor lacks the required role, or is anonymous where identity is needed"""

    status_code = 403
    error_type = 'unauthorized'

    def __init__(self, message: str = 'Unauthorized', authenticated: bool = True):
        super().__init__(message)
        if not authenticated:
            self.status_code = 401


class OrderPersistenceError(StorefrontError):
    """The order transaction failed and was rolled back"""

    error_type = 'order_persistence_error'


class PartialOrderError(OrderPersistenceError):
    """The store reports an order header without all of its item rows"""

    error_type = 'partial_order'

    def __init__(self, order_id: int, expected_items: int, stored_items: int):
        super().__init__(
            f'Order {order_id} stored {stored_items} of {expected_items} item rows'
        )
        self.order_id = order_id
        self.expected_items = expected_items
        self.stored_items = stored_items


def register_error_handlers(app):
    """
    Register JSON error handlers on the Flask application

    Args:
        app: Flask application instance
    """

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        response_data = error.to_dict()
        response_data['timestamp'] = datetime.utcnow().isoformat()

        log = logger.error if error.status_code >= 500 else logger.warning
        log(f'{error.error_type}: {error.message}', extra={
            'event_type': 'request_error',
            'error_type': error.error_type,
            'endpoint': request.endpoint,
            'status_code': error.status_code,
        })

        return jsonify(response_data), error.status_code

    @app.errorhandler(400)
    def handle_bad_request(error):
        return jsonify({
            'status': 'error',
            'error_type': 'bad_request',
            'message': getattr(error, 'description', 'Bad request'),
            'timestamp': datetime.utcnow().isoformat(),
        }), 400

    @app.errorhandler(500)
    def handle_internal_server_error(error):
        # The unhandled exception, when there was one
        original_error = getattr(error, 'original_exception', None) or error

        db.session.rollback()

        logger.error(f'Unhandled error: {original_error!r}', exc_info=original_error, extra={
            'event_type': 'request_error',
            'error_type': 'internal_error',
            'exception_type': type(original_error).__name__,
            'endpoint': request.endpoint,
            'status_code': 500,
        })

        return jsonify({
            'status': 'error',
            'error_type': 'internal_error',
            'message': 'Internal server error',
            'timestamp': datetime.utcnow().isoformat(),
        }), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({
            'status': 'error',
            'error_type': 'not_found',
            'message': 'Resource not found',
            'timestamp': datetime.utcnow().isoformat(),
        }), 404
