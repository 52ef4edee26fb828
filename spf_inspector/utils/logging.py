import os
import logging
from logging.handlers import RotatingFileHandler
import time


def configure_logging(app, log_level=None):
    """
    Configure application logging with a console handler and, when
    LOG_DIR is set, a rotating file handler

    Args:
        app: Flask application instance
        log_level: Logging level (default: app.config.get('LOG_LEVEL', 'INFO'))

    Returns:
        The configured root logger
    """
    if log_level is None:
        log_level = app.config.get('LOG_LEVEL', 'INFO')

    # Convert string log level to actual log level
    numeric_level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(
        app.config.get('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    # Set up root logger
    logger = logging.getLogger()
    logger.setLevel(numeric_level)

    # Clear any existing handlers to avoid duplicates
    if logger.handlers:
        logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f'spf-inspector-{time.strftime("%Y%m%d")}.log')
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10485760, backupCount=10  # 10MB per file, keep 10 files
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Log Flask and Werkzeug through the root logger
    for logger_name in ['werkzeug', 'flask.app']:
        module_logger = logging.getLogger(logger_name)
        module_logger.handlers = []
        module_logger.propagate = True

    app.logger.info(f"Logging configured with level: {log_level}")

    return logger
