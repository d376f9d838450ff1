from flask import Blueprint, current_app, jsonify, request
from storefront.services.actor import current_actor
from storefront.services.errors import ValidationError
from storefront.services.order_placement import order_placement_service
from storefront.services.order_retrieval import order_retrieval
from storefront.services.order_workflow import order_status_workflow

bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@bp.route('', methods=['GET'])
def list_orders():
    actor = current_actor()
    orders = order_retrieval.list_for_actor(actor)

    current_app.logger.info(f'Listing {len(orders)} orders', extra={
        'event_type': 'orders_listed',
        'user_id': actor.id,
        'is_admin': actor.is_admin,
        'order_count': len(orders)
    })

    return jsonify({'orders': [order.to_dict() for order in orders]})


@bp.route('', methods=['POST'])
def create_order():
    """
    Place an order (guest checkout allowed)

    Expected JSON payload:
    {
        "customer": {"name": "...", "phone": "...", "email": "...", "address": "...", "notes": "..."},
        "items": [{"product_id": 1, "quantity": 2}],
        "total_price": 3000
    }
    "total_price" is optional and never trusted.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No JSON data provided')

    order_id = order_placement_service.place_order(
        data.get('customer'),
        data.get('items'),
        actor=current_actor(),
        client_total=data.get('total_price'),
    )
    return jsonify({'order_id': order_id}), 201


@bp.route('/<int:order_id>', methods=['GET'])
def order_detail(order_id):
    order = order_retrieval.get_by_id(order_id, current_actor())
    return jsonify(order.to_dict())


@bp.route('/<int:order_id>/items', methods=['GET'])
def order_items(order_id):
    items = order_retrieval.get_items(order_id, current_actor())
    return jsonify({'items': [item.to_dict() for item in items]})


@bp.route('/<int:order_id>/status', methods=['PATCH'])
def update_order_status(order_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No JSON data provided', field='status')
    order = order_status_workflow.set_status(order_id, data.get('status'), current_actor())
    return jsonify(order.to_dict())


@bp.route('/stats', methods=['GET'])
def dashboard_stats():
    return jsonify(order_retrieval.dashboard_stats(current_actor()))
