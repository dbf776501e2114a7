"""
Flask application entry point for the rankings service.
"""
import logging
import os
from flask import Flask, jsonify, request
from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException
from database import init_db
import config
from services.authorization import is_authorized_request
from services.errors import NotAuthorizedError, RankingsError
from services.logging_setup import configure_error_monitoring, configure_logging

logger = logging.getLogger(__name__)

# Every endpoint of these blueprints changes data
MANAGEMENT_BLUEPRINTS = {'upload'}
# Elsewhere only these methods do
MUTATING_METHODS = {'POST', 'PUT', 'PATCH', 'DELETE'}


def _requires_authorization(endpoint: str, method: str) -> bool:
    blueprint_name = endpoint.split('.', 1)[0] if '.' in endpoint else ''
    if blueprint_name in MANAGEMENT_BLUEPRINTS:
        return True
    return blueprint_name == 'api' and method in MUTATING_METHODS


def create_app(config_object=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object or config.get_config())
    config.validate_runtime(app.config)
    configure_logging(bool(app.config.get('STRUCTURED_LOGGING', True)), app.config.get('LOG_LEVEL', 'INFO'))
    configure_error_monitoring(app.config.get('SENTRY_DSN', ''), app.config.get('ENV_NAME', 'development'))

    @sa_event.listens_for(Engine, 'connect')
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    # Initialize database
    init_db(app)

    # Register blueprints
    from routes.api import api_bp
    from routes.upload import upload_bp

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(upload_bp, url_prefix='/api/upload')

    @app.route('/healthz')
    def healthz():
        return jsonify({'status': 'ok'})

    @app.before_request
    def require_admin_for_management_routes():
        """Reject writes from callers without the admin token."""
        endpoint = request.endpoint or ''
        if endpoint == 'upload.commit':
            # The commit coordinator checks the permission itself
            return None
        if _requires_authorization(endpoint, request.method) and not is_authorized_request():
            raise NotAuthorizedError()
        return None

    @app.errorhandler(RankingsError)
    def handle_rankings_error(error: RankingsError):
        if error.status_code >= 500:
            logger.error('[%s] %s: %s', error.status_code, type(error).__name__, error.message)
        else:
            logger.info('[%s] %s: %s', error.status_code, type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({'error': error.description, 'code': error.name.upper().replace(' ', '_')}), error.code

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app = create_app()
    app.run(host='0.0.0.0', port=port, debug=False)
