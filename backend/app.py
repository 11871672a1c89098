"""
Flask Application Factory - HSSE Composite Dashboard API

The engine reads HSSE record stores and serves one composite report per
(window, department, location) request:

    cache → pre-aggregated rollups → live SQL aggregation

Record lifecycle, authentication and presentation are owned elsewhere.
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from sqlalchemy.orm import sessionmaker

from config import Config, get_database_url
from models.database import db

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s'


def configure_logging(level=None) -> None:
    """Root handler + request-id filter, once per process."""
    from api.middleware import RequestIdLogFilter

    level = level or os.getenv('LOG_LEVEL', 'INFO')
    root = logging.getLogger()
    if not any(getattr(h, '_hsse_handler', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdLogFilter())
        handler._hsse_handler = True
        root.addHandler(handler)
    root.setLevel(level)


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = get_database_url()
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgresql'):
        # Pool sizing options are PostgreSQL-specific (SQLite in tests/dev)
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {'pool_pre_ping': True}

    configure_logging(app.config.get('LOG_LEVEL'))

    # Initialize CORS - allow all origins
    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "OPTIONS", "DELETE"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)  # Always send '*' instead of echoing Origin header

    from api.middleware import (
        setup_error_handlers,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    setup_error_handlers(app)

    @app.after_request
    def add_cache_control(response):
        # Report freshness is governed by the server-side TTL, not by browsers
        if request.path.startswith('/api/hsse/'):
            response.headers['Cache-Control'] = 'private, no-store, no-cache, must-revalidate'
            response.headers['Pragma'] = 'no-cache'
            response.headers['Expires'] = '0'
        return response

    db.init_app(app)

    with app.app_context():
        import models  # noqa: F401  (registers every record model on db.metadata)

        env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
        is_prod = env in {"prod", "production"}
        allow_create = app.config.get("TESTING") or not is_prod
        if allow_create:
            db.create_all()
            app.logger.info("Database initialized (dev/test schema creation)")
        else:
            app.logger.info("Database ready (schema creation disabled in production)")

        # One Session per aggregator task; never the request-scoped db.session
        session_factory = sessionmaker(bind=db.engine)

    from services.hsse_dashboard_service import HSSEDashboardService
    app.extensions['hsse_dashboard'] = HSSEDashboardService.from_config(app.config, session_factory)

    from routes.hsse import hsse_bp
    app.register_blueprint(hsse_bp, url_prefix='/api/hsse')

    @app.route('/api/health')
    def health():
        return {'status': 'ok'}

    return app


if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
