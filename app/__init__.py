"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
import logging

from flask import Flask, jsonify

from app.errors import ConfigError

logger = logging.getLogger('app')


def create_app(init_schema=None):
    """Create and configure the Flask application."""
    from app.config import SECRET_KEY, DATABASE_URL
    from app.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY

    # Register blueprints
    from app.routes.leads import bp as leads_bp
    from app.routes.followups import bp as followups_bp
    from app.routes.chat import bp as chat_bp
    from app.routes.dashboard import bp as dashboard_bp

    app.register_blueprint(leads_bp)
    app.register_blueprint(followups_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(dashboard_bp)

    @app.errorhandler(ConfigError)
    def handle_config_error(e):
        logger.error("Configuration error: %s", e)
        return jsonify({'error': str(e)}), 500

    # Initialize circuit breakers for the model and email providers
    from app.extensions import redis_client
    from app.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Postgres schema is managed by Alembic; local SQLite gets create_all.
    from app.database import import_models, init_db
    import_models()
    if init_schema is None:
        init_schema = DATABASE_URL.startswith('sqlite')
    if init_schema:
        init_db()

    return app
