from flask import Blueprint, current_app, jsonify, request
from flask_login import login_user, logout_user
from storefront import db
from storefront.models import User
from storefront.services.actor import Actor, current_actor
from storefront.services.errors import Unauthorized, ValidationError

bp = Blueprint('auth', __name__, url_prefix='/auth')


def _credentials(*fields):
    """Read string fields from a JSON object body or a form post"""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form
    elif not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    values = {}
    for field in fields:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f'{field} must be a string', field=field)
        values[field] = value or ''
    return values


@bp.route('/register', methods=['POST'])
def register():
    data = _credentials('username', 'email', 'password')
    username = data['username'].strip()
    email = data['email'].strip()
    password = data['password']

    for field, value in (('username', username), ('email', email), ('password', password)):
        if not value:
            raise ValidationError(f'{field} is required', field=field)

    if User.query.filter((User.email == email) | (User.username == username)).first():
        raise ValidationError('Email or username already registered', field='email')

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    current_app.logger.info(f'User registered: {user.id}', extra={
        'event_type': 'user_register',
        'user_id': user.id
    })

    return jsonify(user.to_dict()), 201


@bp.route('/login', methods=['POST'])
def login():
    data = _credentials('email', 'password')
    email = data['email'].strip()
    password = data['password']

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        current_app.logger.warning(f'Login failed for user: {email}', extra={
            'event_type': 'login_failed'
        })
        raise Unauthorized('Invalid email or password', authenticated=False)

    login_user(user)
    current_app.logger.info(f'Login successful for user: {user.id}', extra={
        'event_type': 'login_success',
        'user_id': user.id
    })
    return jsonify(Actor.from_user(user).to_dict())


@bp.route('/me', methods=['GET'])
def me():
    return jsonify(current_actor().to_dict())


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})
