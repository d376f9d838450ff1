#!/usr/bin/env python3
"""
Order status workflow tests
"""

import unittest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from storefront import create_app, db
from storefront.models import Order, OrderItem
from storefront.services.actor import Actor
from storefront.services.errors import (
    InvalidStatusTransition,
    NotFound,
    OrderPersistenceError,
    Unauthorized,
    ValidationError,
)
from storefront.services.order_workflow import OrderStatusWorkflow, can_transition, is_terminal
from storefront.models.order import OrderStatus

ADMIN = Actor(id=1, role='admin', username='admin')
SHOPPER = Actor(id=2, role='user', username='shopper')


class TestOrderStatusWorkflow(unittest.TestCase):
    def setUp(self):
        self.app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        })
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        order = Order(
            user_id=SHOPPER.id, customer_name='A', customer_phone='1',
            customer_email='a@example.com', customer_address='Street', total_price=500,
        )
        db.session.add(order)
        db.session.flush()
        db.session.add(OrderItem(order_id=order.id, product_id=1, quantity=1, price_at_purchase=500))
        db.session.commit()
        self.order_id = order.id

        self.workflow = OrderStatusWorkflow()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _status(self):
        return db.session.get(Order, self.order_id).status

    def test_happy_path_to_delivered(self):
        for status in ('confirmed', 'shipped', 'delivered'):
            self.workflow.set_status(self.order_id, status, ADMIN)
            self.assertEqual(self._status(), status)

    def test_cancel_from_every_non_terminal_state(self):
        for path in ([], ['confirmed'], ['confirmed', 'shipped']):
            with self.subTest(path=path):
                order = Order(
                    customer_name='B', customer_phone='2', customer_email='b@example.com',
                    customer_address='Road', total_price=0,
                )
                db.session.add(order)
                db.session.commit()

                for status in path:
                    self.workflow.set_status(order.id, status, ADMIN)
                self.workflow.set_status(order.id, 'cancelled', ADMIN)
                self.assertEqual(db.session.get(Order, order.id).status, 'cancelled')

    def test_terminal_states_reject_changes(self):
        self.workflow.set_status(self.order_id, 'cancelled', ADMIN)

        with self.assertRaises(InvalidStatusTransition) as ctx:
            self.workflow.set_status(self.order_id, 'confirmed', ADMIN)
        self.assertEqual(ctx.exception.current, 'cancelled')
        self.assertTrue(ctx.exception.terminal)
        self.assertIn('final status', ctx.exception.message)
        self.assertEqual(self._status(), 'cancelled')

    def test_skipping_states_is_rejected(self):
        with self.assertRaises(InvalidStatusTransition) as ctx:
            self.workflow.set_status(self.order_id, 'delivered', ADMIN)
        self.assertFalse(ctx.exception.terminal)
        self.assertEqual(self._status(), 'pending')

    def test_database_failure_rolls_back_status(self):
        error = OperationalError('UPDATE', {}, Exception('database is locked'))
        with patch.object(db.session, 'commit', side_effect=error):
            with self.assertRaises(OrderPersistenceError):
                self.workflow.set_status(self.order_id, 'confirmed', ADMIN)

        self.assertEqual(self._status(), 'pending')
        self.workflow.set_status(self.order_id, 'confirmed', ADMIN)
        self.assertEqual(self._status(), 'confirmed')

    def test_unexpected_commit_error_is_reraised(self):
        with patch.object(db.session, 'commit', side_effect=RuntimeError('driver bug')):
            with self.assertRaises(RuntimeError):
                self.workflow.set_status(self.order_id, 'confirmed', ADMIN)

        self.assertEqual(self._status(), 'pending')

    def test_permissive_mode_allows_any_overwrite(self):
        workflow = OrderStatusWorkflow(enforce_transitions=False)
        workflow.set_status(self.order_id, 'delivered', ADMIN)
        workflow.set_status(self.order_id, 'pending', ADMIN)
        self.assertEqual(self._status(), 'pending')

    def test_config_flag_controls_enforcement(self):
        self.app.config['ENFORCE_STATUS_TRANSITIONS'] = False
        self.workflow.set_status(self.order_id, 'delivered', ADMIN)
        self.assertEqual(self._status(), 'delivered')

    def test_non_admin_is_unauthorized(self):
        for actor in (SHOPPER, Actor.anonymous()):
            with self.subTest(actor=actor):
                with self.assertRaises(Unauthorized):
                    self.workflow.set_status(self.order_id, 'confirmed', actor)
        self.assertEqual(self._status(), 'pending')

    def test_unknown_order_and_status(self):
        with self.assertRaises(NotFound):
            self.workflow.set_status(404, 'confirmed', ADMIN)
        with self.assertRaises(ValidationError):
            self.workflow.set_status(self.order_id, 'lost', ADMIN)

    def test_items_untouched_and_timestamp_updated(self):
        before = db.session.get(Order, self.order_id).updated_at

        order = self.workflow.set_status(self.order_id, 'confirmed', ADMIN)

        self.assertGreaterEqual(order.updated_at, before)
        item = OrderItem.query.filter_by(order_id=self.order_id).one()
        self.assertEqual((item.quantity, item.price_at_purchase), (1, 500))

    def test_transition_graph(self):
        self.assertTrue(can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED))
        self.assertFalse(can_transition(OrderStatus.CONFIRMED, OrderStatus.PENDING))
        self.assertTrue(is_terminal(OrderStatus.DELIVERED))
        self.assertTrue(is_terminal(OrderStatus.CANCELLED))
        self.assertFalse(is_terminal(OrderStatus.SHIPPED))


if __name__ == '__main__':
    unittest.main(verbosity=2)
