import re
from flask import request
from spf_inspector.modules.spf_chain import normalize_domain
from .errors import BadRequestError

# Domain validation regex pattern
DOMAIN_PATTERN = re.compile(
    r'^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9][a-z0-9-]{0,61}[a-z0-9]$',
    re.IGNORECASE
)

MAX_DOMAIN_LENGTH = 253
INVALID_DOMAIN_MESSAGE = "Invalid domain format"


def is_valid_domain(domain):
    """
    Checks that a value is a well-formed hostname.

    Args:
        domain: Value to check

    Returns:
        bool: True if valid, False otherwise
    """
    if not domain or not isinstance(domain, str):
        return False
    domain = normalize_domain(domain)
    if len(domain) > MAX_DOMAIN_LENGTH:
        return False
    return bool(DOMAIN_PATTERN.match(domain))


def validate_domain(domain):
    """
    Validates that a domain name matches the expected format.

    Args:
        domain (str): Domain name to validate

    Returns:
        str: The normalized domain

    Raises:
        BadRequestError: If domain is missing or invalid
    """
    if not is_valid_domain(domain):
        raise BadRequestError(INVALID_DOMAIN_MESSAGE)

    return normalize_domain(domain)


def get_json_body():
    """
    Returns the JSON object sent with the request, or an empty dict
    """
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_domain_param():
    """
    Extract and validate domain from the query string or the JSON body

    Returns:
        str: Validated domain name

    Raises:
        BadRequestError: If domain is missing or invalid
    """
    if request.method == 'GET':
        domain = request.args.get('domain')
    else:
        domain = get_json_body().get('domain')
    return validate_domain(domain)


def get_record_param():
    """
    Extract the candidate SPF record from the JSON body

    Returns:
        str: The record text

    Raises:
        BadRequestError: If the record is missing or not a string
    """
    record = get_json_body().get('record')
    if not isinstance(record, str) or not record.strip():
        raise BadRequestError("Invalid record")
    return record
