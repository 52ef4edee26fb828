from dotenv import load_dotenv
import os
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix
from datetime import datetime, timezone

# Load environment variables from .env file
load_dotenv()

from spf_inspector.api.errors import register_error_handlers
from spf_inspector.api.limiter import configure_limiter
from spf_inspector.api.routes import api_bp
from spf_inspector.commands import register_commands
from spf_inspector.config import get_config
from spf_inspector.modules.dns_resolver import DNSPythonResolver
from spf_inspector.modules.spf import SPFValidator
from spf_inspector.utils.logging import configure_logging


def configure_validator(app, txt_resolver=None):
    """
    Create the SPF validator shared by all requests

    Args:
        app: Flask application instance
        txt_resolver: TXT lookup backend, dnspython by default
    """
    if txt_resolver is None:
        txt_resolver = DNSPythonResolver(
            timeout=app.config['DNS_TIMEOUT'],
            nameservers=app.config.get('DNS_NAMESERVERS'),
        )

    app.extensions['spf_validator'] = SPFValidator(
        txt_resolver,
        lookup_limit=app.config['SPF_LOOKUP_LIMIT'],
        deadline=app.config['SPF_REQUEST_DEADLINE'],
    )


def create_app(config=None, txt_resolver=None):
    """
    Create and configure the Flask application

    Args:
        config: Configuration object or dictionary
        txt_resolver: TXT lookup backend used by the SPF engine

    Returns:
        Flask application instance
    """
    # Create Flask app
    app = Flask(__name__)

    # Fix for running behind proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    app.config.from_object(get_config())

    # Apply any provided configuration override
    if config:
        if isinstance(config, dict):
            app.config.update(config)
        else:
            app.config.from_object(config)

    # Set up logging
    logger = configure_logging(app)

    # Configure rate limiter
    configure_limiter(app, api_bp)

    # Register error handlers
    register_error_handlers(app)

    # Set up CORS
    cors_origins = app.config.get('CORS_ORIGINS', '*')
    CORS(app, resources={r"/api/*": {"origins": cors_origins.split(',')}})

    configure_validator(app, txt_resolver)

    # Register blueprints
    app.register_blueprint(api_bp, url_prefix=app.config.get('API_PREFIX', '/api/v1'))

    register_commands(app)

    # Health check endpoint (not rate limited)
    @app.route('/health')
    def health_check():
        return jsonify({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": app.config.get('VERSION', '1.0.0'),
        })

    logger.info(f"{app.config.get('APP_NAME')} started")

    return app


# For directly running the application
if __name__ == '__main__':
    app = create_app()

    # Get port from environment or use default
    port = int(os.environ.get('PORT', 5000))

    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False), threaded=True)
else:
    # Module-level app for gunicorn
    app = create_app()
