# SPF Inspector Configuration
# spf_inspector/config.py

import os


def _env_list(name, default=""):
    value = os.environ.get(name, default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Base configuration for the application"""
    # Application settings
    APP_NAME = "SPF Inspector"
    VERSION = "1.0.0"
    DEBUG = False
    TESTING = False

    # Logging settings
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DIR = os.environ.get("LOG_DIR", "")  # Empty disables the rotating file log

    # API settings
    API_PREFIX = "/api/v1"

    # CORS settings
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Rate limiting (moving window per client address)
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_MAX_REQUESTS = int(os.environ.get("RATELIMIT_MAX_REQUESTS", "10"))
    RATELIMIT_WINDOW_SECONDS = int(os.environ.get("RATELIMIT_WINDOW_SECONDS", "60"))

    # DNS resolver settings
    DNS_TIMEOUT = float(os.environ.get("DNS_TIMEOUT", "3.0"))  # Per lookup (seconds)
    DNS_NAMESERVERS = _env_list("DNS_NAMESERVERS")  # Empty uses the system resolver

    # SPF evaluation settings
    SPF_LOOKUP_LIMIT = 10  # RFC 7208 section 4.6.4
    SPF_REQUEST_DEADLINE = float(os.environ.get("SPF_REQUEST_DEADLINE", "5.0"))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = "DEBUG"

    # Development DNS settings
    DNS_TIMEOUT = 5.0  # Longer timeout for development
    SPF_REQUEST_DEADLINE = 10.0


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    LOG_DIR = ""


class ProductionConfig(Config):
    """Production configuration"""
    # More restrictive CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "")


# Select configuration based on environment
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig
}


# Helper function to get config
def get_config():
    env = os.environ.get("FLASK_ENV", "default")
    return config.get(env, config["default"])
