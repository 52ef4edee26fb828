from flask import Blueprint, jsonify, current_app
import logging

from spf_inspector.api.validators import get_domain_param, get_record_param

# Configure logging
logger = logging.getLogger(__name__)

# Create blueprint for API routes; configure_limiter rate limits all of it
api_bp = Blueprint('api', __name__, url_prefix='/api/v1')


def get_validator():
    return current_app.extensions['spf_validator']


@api_bp.route('/spf', methods=['GET', 'POST'])
def spf_endpoint():
    """Validate the SPF record published by a domain"""
    domain = get_domain_param()
    logger.info(f"SPF check requested for domain: {domain}")

    report = get_validator().validate(domain)
    return jsonify(report.to_dict())


@api_bp.route('/spf/record', methods=['POST'])
def spf_record_endpoint():
    """Validate a candidate SPF record for a domain"""
    domain = get_domain_param()
    record = get_record_param()
    logger.info(f"SPF record check requested for domain: {domain}")

    report = get_validator().validate_record(domain, record)
    return jsonify(report.to_dict())
