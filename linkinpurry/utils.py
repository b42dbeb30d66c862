import re
from datetime import datetime

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def success_response(message, body=None):
    return {'success': True, 'message': message, 'body': body if body is not None else {}}


def error_response(message, error=None):
    return {'success': False, 'message': message, 'error': error}


def isoformat(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def is_valid_email(email):
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def escape_like(term):
    """Escape LIKE wildcards so a search term only matches literally (escape char: backslash)."""
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
