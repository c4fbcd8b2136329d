"""
CardLink - messaging identity <-> loyalty account linking service
Flask application factory
"""
import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.errors import ErrorCode, error_response, response_for_exception
from .utils.exceptions import CardLinkError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()
    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Chat clients and the loyalty login page call the API cross-origin
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        from .api import get_store
        try:
            dialect = get_store().ping()
        except CardLinkError as e:
            logger.error(f"Health check failed: {e.message}")
            return error_response(
                'Database unavailable', ErrorCode.SERVICE_UNAVAILABLE, 503,
                log_error=False, detail=getattr(e, 'detail', None)
            )
        return jsonify({'success': True, 'status': 'healthy', 'service': 'cardlink', 'database': dialect})

    @app.route('/')
    def index():
        return jsonify({'success': True, 'service': 'cardlink', 'status': 'running'})

    logger.info(f"CardLink app created ({config_name})")
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.linking import linking_bp
    from .api.transactions import transactions_bp
    from .api.balance import balance_bp
    from .api.sync import sync_bp

    app.register_blueprint(linking_bp, url_prefix='/api/link')
    app.register_blueprint(transactions_bp, url_prefix='/api/transactions')
    app.register_blueprint(balance_bp, url_prefix='/api/balance')
    app.register_blueprint(sync_bp, url_prefix='/api/sync')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(CardLinkError)
    def cardlink_error(error):
        return response_for_exception(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.METHOD_NOT_ALLOWED, 405, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500)
