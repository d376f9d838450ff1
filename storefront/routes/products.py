from flask import Blueprint, current_app, jsonify, request
from storefront.services.actor import current_actor
from storefront.services.catalog_store import catalog_store
from storefront.services.errors import ValidationError

bp = Blueprint('products', __name__, url_prefix='/api/products')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No JSON data provided')
    return data


@bp.route('', methods=['GET'])
def list_products():
    current_app.logger.info('Products list requested', extra={
        'event_type': 'page_view',
        'page': 'products_list'
    })

    products = catalog_store.list()
    return jsonify({'products': [product.to_dict() for product in products]})


@bp.route('/<int:product_id>', methods=['GET'])
def product_detail(product_id):
    current_app.logger.info(f'Product detail requested: {product_id}', extra={
        'event_type': 'page_view',
        'page': 'product_detail',
        'product_id': product_id
    })

    product = catalog_store.get(product_id)
    return jsonify(product.to_dict())


@bp.route('', methods=['POST'])
def create_product():
    product = catalog_store.create(_json_body(), current_actor())
    return jsonify(product.to_dict()), 201


@bp.route('/<int:product_id>', methods=['PATCH'])
def update_product(product_id):
    product = catalog_store.update(product_id, _json_body(), current_actor())
    return jsonify(product.to_dict())


@bp.route('/<int:product_id>', methods=['DELETE'])
def delete_product(product_id):
    catalog_store.delete(product_id, current_actor())
    return jsonify({'success': True, 'id': product_id})
