#!/usr/bin/env python3
"""
Admin user creation script
Creates an admin user for the storefront admin console
"""

import sys
import os

# Add parent directory to path to import storefront
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app, db
from storefront.models.user import User, ROLE_ADMIN


def create_admin(email='admin@example.com', username='admin', password=None):
    password = password or os.getenv('ADMIN_PASSWORD', 'admin123')
    app = create_app()

    with app.app_context():
        admin_user = User.query.filter_by(email=email).first()

        if admin_user:
            if not admin_user.is_admin:
                admin_user.role = ROLE_ADMIN
                db.session.commit()
                print(f"Promoted existing user to admin: {admin_user.email}")
            else:
                print("Admin user already exists:")
                print(f"Email: {admin_user.email}")
                print(f"Username: {admin_user.username}")
            return

        print("Creating admin user...")
        admin_user = User(username=username, email=email, role=ROLE_ADMIN)
        admin_user.set_password(password)

        db.session.add(admin_user)
        db.session.commit()

        print("Admin user created successfully!")
        print(f"Email: {email}")
        print(f"Username: {username}")


if __name__ == '__main__':
    create_admin()
