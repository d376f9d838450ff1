"""
Catalog Store: product records read by the catalog and checkout, written by
admin CRUD.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from storefront import db
from storefront.models import Product
from storefront.services.actor import Actor, require_admin
from storefront.services.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ('name', 'description', 'price', 'stock', 'image_url')


# Signed 64-bit column range
MAX_DB_INT = 2 ** 63 - 1


def is_db_int(value, minimum: int = 0) -> bool:
    """True for an int that fits an INTEGER/BIGINT column and is at least ``minimum``"""
    # bool is an int subclass; floats never represent money here
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return minimum <= value <= MAX_DB_INT


def _clean_field(name: str, value: Any) -> Any:
    if name == 'name':
        if not isinstance(value, str) or not value.strip():
            raise ValidationError('Product name is required', field='name')
        return value.strip()

    if name in ('price', 'stock'):
        if not is_db_int(value):
            raise ValidationError(f'Product {name} must be a non-negative integer up to {MAX_DB_INT}', field=name)
        return value

    # description, image_url
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'Product {name} must be a string', field=name)
    return value or None


def _clean_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(fields, Mapping):
        raise ValidationError('Product fields must be an object')

    unknown = sorted(set(fields) - set(PRODUCT_FIELDS))
    if unknown:
        raise ValidationError(f'Unknown product field: {unknown[0]}', field=unknown[0])

    return {name: _clean_field(name, fields[name]) for name in PRODUCT_FIELDS if name in fields}


class CatalogStore:
    """Product CRUD over the ``products`` table"""

    def list(self) -> List[Product]:
        return Product.query.order_by(Product.id).all()

    def find(self, product_id: int) -> Optional[Product]:
        if not is_db_int(product_id, minimum=1):
            return None
        return db.session.get(Product, product_id)

    def get(self, product_id: int) -> Product:
        product = self.find(product_id)
        if product is None:
            raise NotFound('Product', product_id)
        return product

    def create(self, fields: Mapping[str, Any], actor: Actor) -> Product:
        require_admin(actor, 'products.create')

        cleaned = _clean_fields(fields)
        if 'name' not in cleaned:
            raise ValidationError('Product name is required', field='name')
        if 'price' not in cleaned:
            raise ValidationError('Product price must be a non-negative integer', field='price')
        cleaned.setdefault('stock', 0)

        product = Product(**cleaned)
        db.session.add(product)
        db.session.commit()

        logger.info(f'Product created: {product.name}', extra={
            'event_type': 'product_create',
            'product_id': product.id,
            'price': product.price,
            'actor_id': actor.id,
        })
        return product

    def update(self, product_id: int, fields: Mapping[str, Any], actor: Actor) -> Product:
        require_admin(actor, 'products.update')

        cleaned = _clean_fields(fields)
        product = self.get(product_id)

        for name, value in cleaned.items():
            setattr(product, name, value)
        db.session.commit()

        logger.info(f'Product updated: {product.id}', extra={
            'event_type': 'product_update',
            'product_id': product.id,
            'fields': sorted(cleaned),
            'actor_id': actor.id,
        })
        return product

    def delete(self, product_id: int, actor: Actor) -> None:
        """Remove a product row. Order items that reference it are left as they are."""
        require_admin(actor, 'products.delete')

        product = self.get(product_id)
        db.session.delete(product)
        db.session.commit()

        logger.info(f'Product deleted: {product_id}', extra={
            'event_type': 'product_delete',
            'product_id': product_id,
            'actor_id': actor.id,
        })


catalog_store = CatalogStore()
