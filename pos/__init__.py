"""Till service application factory."""
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException

from pos.database import init_db

csrf = CSRFProtect()


def create_app(config_object='config.Config'):
    """Build the till service for `config_object` (import path or class)."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    csrf.init_app(app)
    _init_error_tracking(app)

    from pos.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    if app.config.get('ENV') == 'production':
        # Behind one reverse proxy (TLS terminated upstream)
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_db(app)

    from pos.utils.formatters import money, quantity, datetime_short
    app.jinja_env.filters.update(money=money, quantity=quantity, datetime_short=datetime_short)

    _register_error_handlers(app)
    _register_blueprints(app)

    from pos.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"[APP] {app.config.get('STORE_NAME')} started (env={app.config.get('ENV')})")
    return app


def _init_error_tracking(app):
    """Sentry, production only."""
    dsn = app.config.get('SENTRY_DSN')
    if not dsn or app.config.get('ENV') != 'production':
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration

    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=app.config.get('SENTRY_TRACES_SAMPLE_RATE', 0.1),
        environment=app.config.get('ENV'),
        release=app.config.get('RELEASE'),
    )


def _register_error_handlers(app):
    from pos.exceptions import PosError

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        log = app.logger.error if error.status_code >= 500 else app.logger.warning
        log(f"[API] {type(error).__name__} ({error.status_code}): {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning(f"[API] CSRF rejected: {error.description}")
        return jsonify({'status': 'error', 'message': 'The session has expired. Reload the page.'}), 400

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        if isinstance(error, HTTPException):
            return jsonify({'status': 'error', 'message': error.description}), error.code
        app.logger.exception(f"[API] Unhandled {type(error).__name__}: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500


def _register_blueprints(app):
    from pos.blueprints.sales import sales_bp
    from pos.blueprints.catalog import catalog_bp
    from pos.blueprints.metrics import metrics_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(metrics_bp)
