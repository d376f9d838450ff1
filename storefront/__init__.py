from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager, current_user
from flask_migrate import Migrate
import os

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(config_overrides=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///storefront.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['LOG_FORMAT'] = os.getenv('LOG_FORMAT', 'text')
    app.config['ENFORCE_STATUS_TRANSITIONS'] = _env_flag('ENFORCE_STATUS_TRANSITIONS', True)
    app.config['PUBLIC_ORDER_READS'] = _env_flag('PUBLIC_ORDER_READS', False)

    if config_overrides:
        app.config.update(config_overrides)

    # Setup logging
    from storefront.logging_config import setup_logging
    setup_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # Models must be imported before the user loader is looked up
    from storefront import models  # noqa: F401

    from storefront.services.errors import register_error_handlers
    register_error_handlers(app)

    # New Relic Custom Attributes for User Tracking
    @app.before_request
    def add_newrelic_user_attributes():
        """Add user information as custom attributes to New Relic for error tracking"""
        try:
            import newrelic.agent

            if current_user.is_authenticated:
                # New Relic standard attribute for user tracking in Errors Inbox
                newrelic.agent.add_custom_attribute('enduser.id', str(current_user.id))

                # Additional attributes for compatibility and enhanced tracking
                newrelic.agent.add_custom_attribute('userId', str(current_user.id))
                newrelic.agent.add_custom_attribute('user', current_user.username)
        except ImportError:
            # New Relic is not installed or not running
            app.logger.debug('New Relic not available (ImportError)')
        except Exception as e:
            # Avoid breaking the request if attribute setting fails
            app.logger.error(f'Failed to set New Relic custom attributes: {e}')

    # Register blueprints
    from storefront.routes import main, auth, products, orders
    app.register_blueprint(main.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(orders.bp)

    return app
