"""Flask application factory."""
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from caja.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache for read models
    from caja.services.cache_service import init_cache
    init_cache(app)

    # Process-wide checkout rate limiter
    from caja.services.rate_limit_service import init_rate_limiter
    init_rate_limiter(app)

    # Prometheus metrics instrumentation
    from caja.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Load cashier and store context before each request
    from caja.middleware import load_cashier_and_store

    @app.before_request
    def before_request_handler():
        """Load cashier and store context for each request."""
        load_cashier_and_store()

    # Error Handlers
    from caja.exceptions import CajaError

    @app.errorhandler(CajaError)
    def handle_caja_error(error):
        """Handle application exceptions as JSON with a stable code."""
        if error.status_code >= 500:
            app.logger.error(f"CajaError [{error.status_code}] {error.code}: {error.message}")
        else:
            app.logger.warning(f"CajaError [{error.status_code}] {error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'status': 'error',
            'code': error.name.upper().replace(' ', '_'),
            'message': error.description,
        }), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception on {request.path}: {error}", exc_info=error)
        return jsonify({
            'status': 'error',
            'code': 'INTERNAL_ERROR',
            'message': 'Error interno del servidor.',
        }), 500

    # Register blueprints
    from caja.blueprints.main import main_bp
    from caja.blueprints.sales import sales_bp
    from caja.blueprints.cash_sessions import cash_sessions_bp
    from caja.blueprints.expenses import expenses_bp
    from caja.blueprints.catalog import catalog_bp
    from caja.blueprints.customers import customers_bp
    from caja.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(cash_sessions_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from caja.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"[APP] Caja started env={app.config.get('ENV')} business={app.config.get('BUSINESS_NAME')}")

    return app
