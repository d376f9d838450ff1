"""
Identity performing an operation.

Protected service calls take an ``Actor`` argument instead of reading the
Flask-Login session, so authorization can be exercised without a request.
"""
from dataclasses import dataclass
from typing import Optional

from storefront.models.user import ROLE_ADMIN
from storefront.services.errors import Unauthorized


@dataclass(frozen=True)
class Actor:
    id: Optional[int] = None
    role: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def anonymous(cls) -> 'Actor':
        return cls()

    @classmethod
    def from_user(cls, user) -> 'Actor':
        """Build an actor from a Flask-Login user (anonymous users included)"""
        if user is None or not getattr(user, 'is_authenticated', False):
            return cls.anonymous()
        return cls(id=user.id, role=user.role, username=user.username)

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == ROLE_ADMIN

    def to_dict(self):
        if not self.is_authenticated:
            return {'authenticated': False}
        return {
            'authenticated': True,
            'id': self.id,
            'username': self.username,
            'role': self.role,
        }


def require_admin(actor: Optional[Actor], operation: str) -> None:
    if actor is None or not actor.is_authenticated:
        raise Unauthorized(f'{operation} requires an authenticated admin', authenticated=False)
    if not actor.is_admin:
        raise Unauthorized(f'{operation} requires admin privileges')


def require_authenticated(actor: Optional[Actor], operation: str) -> None:
    if actor is None or not actor.is_authenticated:
        raise Unauthorized(f'{operation} requires authentication', authenticated=False)


def current_actor() -> Actor:
    """Actor for the Flask-Login session of the current request"""
    from flask_login import current_user
    return Actor.from_user(current_user)
