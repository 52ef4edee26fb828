from flask import jsonify
from werkzeug.exceptions import HTTPException
import logging

# Configure module logger
logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An error occurred while processing your request"


class APIError(Exception):
    """Base class for API errors"""
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'detail': self.message}


class BadRequestError(APIError):
    """Exception raised for invalid request parameters"""
    status_code = 400


def register_error_handlers(app):
    """Register error handlers for the Flask app"""

    @app.errorhandler(APIError)
    def handle_api_error(error):
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'detail': 'Resource not found'}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'detail': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.error(f"Unexpected error: {str(error)}", exc_info=True)
        return jsonify({'detail': INTERNAL_ERROR_MESSAGE}), 500
