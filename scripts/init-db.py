#!/usr/bin/env python3
"""
Database initialization script
Creates sample products for the storefront
"""

import sys
import os

# Add parent directory to path to import storefront
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app, db
from storefront.models import Product, User

# Prices are in cents
SAMPLE_PRODUCTS = [
    {
        'name': 'Laptop',
        'description': 'High performance laptop for work and study.',
        'price': 1899900,
        'stock': 10,
        'image_url': 'https://via.placeholder.com/300x300?text=Laptop'
    },
    {
        'name': 'Wireless Mouse',
        'description': 'Comfortable wireless mouse',
        'price': 29900,
        'stock': 50,
        'image_url': 'https://via.placeholder.com/300x300?text=Mouse'
    },
    {
        'name': 'Mechanical Keyboard',
        'description': 'Mechanical keyboard with hot-swappable switches',
        'price': 149900,
        'stock': 30,
        'image_url': 'https://via.placeholder.com/300x300?text=Keyboard'
    },
    {
        'name': 'USB-C Hub',
        'description': '7-in-1 USB-C hub with HDMI and USB 3.0',
        'price': 79900,
        'stock': 40,
        'image_url': 'https://via.placeholder.com/300x300?text=USB-C+Hub'
    },
    {
        'name': 'Wireless Earbuds',
        'description': 'Noise cancelling wireless earbuds',
        'price': 199900,
        'stock': 25,
        'image_url': 'https://via.placeholder.com/300x300?text=Earbuds'
    },
    {
        'name': 'Power Bank',
        'description': '20000mAh power bank',
        'price': 59900,
        'stock': 0,
        'image_url': 'https://via.placeholder.com/300x300?text=Power+Bank'
    },
]


def init_db():
    app = create_app()

    with app.app_context():
        # Create all tables
        print("Creating database tables...")
        db.create_all()

        # Check if products already exist
        if Product.query.first():
            print("Database already initialized.")
            return

        print("Creating sample products...")
        for product_data in SAMPLE_PRODUCTS:
            db.session.add(Product(**product_data))

        # Create a test user
        print("Creating test user...")
        test_user = User(username='testuser', email='test@example.com')
        test_user.set_password('password123')
        db.session.add(test_user)

        db.session.commit()
        print(f"Successfully created {len(SAMPLE_PRODUCTS)} products and 1 test user")
        print("\nTest user credentials:")
        print("Email: test@example.com")
        print("Password: password123")


if __name__ == '__main__':
    init_db()
