#!/usr/bin/env python3
"""
JSON API tests through the Flask test client
"""

import unittest

from storefront import create_app, db
from storefront.models import Order, OrderItem, Product, User
from storefront.models.user import ROLE_ADMIN

CHECKOUT = {
    'customer': {
        'name': 'Mona Adel',
        'phone': '01000000000',
        'email': 'mona@example.com',
        'address': 'Cairo',
    },
}


class TestApiRoutes(unittest.TestCase):
    def setUp(self):
        self.app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        })
        # No app context stays pushed: Flask-Login caches the user on g
        with self.app.app_context():
            db.create_all()

            admin = User(username='admin', email='admin@example.com', role=ROLE_ADMIN)
            admin.set_password('admin123')
            shopper = User(username='shopper', email='shopper@example.com')
            shopper.set_password('password123')
            other = User(username='other', email='other@example.com')
            other.set_password('password123')
            product = Product(name='Keyboard', price=1500, stock=2)
            db.session.add_all([admin, shopper, other, product])
            db.session.commit()

            self.shopper_id = shopper.id
            self.product_id = product.id

        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()

    def login(self, email, password):
        response = self.client.post('/auth/login', json={'email': email, 'password': password})
        self.assertEqual(response.status_code, 200)
        return response

    def place_order(self, quantity=2, **extra):
        payload = dict(CHECKOUT, items=[{'product_id': self.product_id, 'quantity': quantity}], **extra)
        return self.client.post('/api/orders', json=payload)

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'status': 'healthy'})

    def test_public_catalog(self):
        listing = self.client.get('/api/products').get_json()
        self.assertEqual([p['name'] for p in listing['products']], ['Keyboard'])

        detail = self.client.get(f'/api/products/{self.product_id}')
        self.assertEqual(detail.get_json()['price'], 1500)

        missing = self.client.get('/api/products/404')
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.get_json()['error_type'], 'not_found')

    def test_guest_checkout_uses_server_prices(self):
        response = self.place_order(quantity=2, total_price=1)
        self.assertEqual(response.status_code, 201)
        order_id = response.get_json()['order_id']

        with self.app.app_context():
            order = db.session.get(Order, order_id)
            self.assertEqual(order.total_price, 3000)
            self.assertIsNone(order.user_id)
            self.assertEqual(OrderItem.query.filter_by(order_id=order_id).count(), 1)

    def test_checkout_validation_error(self):
        payload = {
            'customer': dict(CHECKOUT['customer'], phone=''),
            'items': [{'product_id': self.product_id, 'quantity': 1}],
        }
        response = self.client.post('/api/orders', json=payload)

        self.assertEqual(response.status_code, 400)
        body = response.get_json()
        self.assertEqual(body['error_type'], 'validation_error')
        self.assertEqual(body['field'], 'phone')
        with self.app.app_context():
            self.assertEqual(Order.query.count(), 0)

    def test_checkout_without_json(self):
        response = self.client.post('/api/orders', data='not json')
        self.assertEqual(response.status_code, 400)

    def test_checkout_rejects_oversized_quantity(self):
        response = self.place_order(quantity=10 ** 19)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['field'], 'items')

        # The next request still works
        self.assertEqual(self.place_order().status_code, 201)

    def test_non_object_bodies_are_400(self):
        self.assertEqual(self.client.post('/auth/login', json=['admin@example.com']).status_code, 400)
        self.assertEqual(self.client.post('/auth/register', json='newbie').status_code, 400)

        wrong_type = self.client.post('/auth/register', json={
            'username': 'newbie', 'email': 'newbie@example.com', 'password': 12345
        })
        self.assertEqual(wrong_type.status_code, 400)
        self.assertEqual(wrong_type.get_json()['field'], 'password')

        order_id = self.place_order().get_json()['order_id']
        self.login('admin@example.com', 'admin123')
        listed = self.client.patch(f'/api/orders/{order_id}/status', json=['confirmed'])
        self.assertEqual(listed.status_code, 400)
        self.assertEqual(listed.get_json()['error_type'], 'validation_error')

    def test_product_admin_crud(self):
        self.assertEqual(self.client.post('/api/products', json={'name': 'Pen', 'price': 100}).status_code, 401)

        self.login('shopper@example.com', 'password123')
        self.assertEqual(self.client.post('/api/products', json={'name': 'Pen', 'price': 100}).status_code, 403)
        self.client.post('/auth/logout')

        self.login('admin@example.com', 'admin123')
        created = self.client.post('/api/products', json={'name': 'Pen', 'price': 100})
        self.assertEqual(created.status_code, 201)
        pen_id = created.get_json()['id']

        updated = self.client.patch(f'/api/products/{pen_id}', json={'stock': 9})
        self.assertEqual(updated.get_json()['stock'], 9)
        self.assertEqual(updated.get_json()['price'], 100)

        self.assertEqual(self.client.delete(f'/api/products/{pen_id}').status_code, 200)
        self.assertEqual(self.client.delete(f'/api/products/{pen_id}').status_code, 404)

    def test_order_listing_and_ownership(self):
        self.login('shopper@example.com', 'password123')
        order_id = self.place_order().get_json()['order_id']

        mine = self.client.get('/api/orders').get_json()['orders']
        self.assertEqual([o['id'] for o in mine], [order_id])
        self.assertEqual(mine[0]['user_id'], self.shopper_id)

        items = self.client.get(f'/api/orders/{order_id}/items').get_json()['items']
        self.assertEqual(items[0]['price_at_purchase'], 1500)
        self.client.post('/auth/logout')

        self.login('other@example.com', 'password123')
        self.assertEqual(self.client.get('/api/orders').get_json()['orders'], [])
        self.assertEqual(self.client.get(f'/api/orders/{order_id}').status_code, 404)
        self.assertEqual(self.client.get(f'/api/orders/{order_id}/items').status_code, 404)
        self.client.post('/auth/logout')

        self.assertEqual(self.client.get(f'/api/orders/{order_id}').status_code, 401)
        self.assertEqual(self.client.get('/api/orders/999999').status_code, 401)
        self.assertEqual(self.client.get('/api/orders').status_code, 401)

        self.login('admin@example.com', 'admin123')
        everything = self.client.get('/api/orders').get_json()['orders']
        self.assertEqual([o['id'] for o in everything], [order_id])

    def test_status_updates(self):
        order_id = self.place_order().get_json()['order_id']

        self.login('shopper@example.com', 'password123')
        denied = self.client.patch(f'/api/orders/{order_id}/status', json={'status': 'confirmed'})
        self.assertEqual(denied.status_code, 403)
        self.client.post('/auth/logout')

        self.login('admin@example.com', 'admin123')
        confirmed = self.client.patch(f'/api/orders/{order_id}/status', json={'status': 'confirmed'})
        self.assertEqual(confirmed.status_code, 200)
        self.assertEqual(confirmed.get_json()['status'], 'confirmed')

        backwards = self.client.patch(f'/api/orders/{order_id}/status', json={'status': 'pending'})
        self.assertEqual(backwards.status_code, 409)
        self.assertEqual(backwards.get_json()['error_type'], 'invalid_status_transition')

        unknown = self.client.patch(f'/api/orders/{order_id}/status', json={'status': 'lost'})
        self.assertEqual(unknown.status_code, 400)

        stats = self.client.get('/api/orders/stats').get_json()
        self.assertEqual(stats['total_orders'], 1)
        self.assertEqual(stats['total_revenue'], 3000)
        self.assertEqual(stats['orders_by_status']['confirmed'], 1)

    def test_me_and_logout(self):
        self.assertEqual(self.client.get('/auth/me').get_json(), {'authenticated': False})

        self.login('admin@example.com', 'admin123')
        me = self.client.get('/auth/me').get_json()
        self.assertTrue(me['authenticated'])
        self.assertEqual(me['role'], 'admin')

        self.assertEqual(self.client.post('/auth/logout').status_code, 200)
        self.assertEqual(self.client.get('/auth/me').get_json(), {'authenticated': False})

    def test_login_failure_and_register(self):
        bad = self.client.post('/auth/login', json={'email': 'admin@example.com', 'password': 'nope'})
        self.assertEqual(bad.status_code, 401)

        created = self.client.post('/auth/register', json={
            'username': 'newbie', 'email': 'newbie@example.com', 'password': 'pw12345'
        })
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.get_json()['role'], 'user')

        duplicate = self.client.post('/auth/register', json={
            'username': 'newbie', 'email': 'newbie@example.com', 'password': 'pw12345'
        })
        self.assertEqual(duplicate.status_code, 400)

        self.login('newbie@example.com', 'pw12345')


if __name__ == '__main__':
    unittest.main(verbosity=2)
