from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import logging

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded"
RATE_LIMIT_SCOPE = "spf"


def rate_limit_string(config):
    """Builds the limit, e.g. '10 per 60 seconds', from the app configuration"""
    max_requests = int(config.get('RATELIMIT_MAX_REQUESTS', 10))
    window_seconds = int(config.get('RATELIMIT_WINDOW_SECONDS', 60))
    return f"{max_requests} per {window_seconds} seconds"


def configure_limiter(app, blueprint):
    """
    Configure the rate limiter for the application

    Every route of the blueprint shares one moving window per client
    address. Routes outside the blueprint are not limited.
    """
    limiter = Limiter(
        get_remote_address,
        storage_uri=app.config.get('RATELIMIT_STORAGE_URI', "memory://"),
        strategy="moving-window",
        headers_enabled=True,
    )
    limiter.init_app(app)
    limiter.shared_limit(rate_limit_string(app.config), scope=RATE_LIMIT_SCOPE)(blueprint)
    app.extensions['rate_limiter'] = limiter

    if limiter.enabled:
        logger.info(f"Rate limiter configured: {rate_limit_string(app.config)} per client")
    else:
        logger.info("Rate limiting disabled")

    # Log when rate limit is exceeded
    @app.errorhandler(429)
    def ratelimit_handler(e):
        logger.warning(f"Rate limit exceeded for {get_remote_address()}: {e.description}")
        return jsonify({'detail': RATE_LIMIT_MESSAGE}), 429

    return limiter
