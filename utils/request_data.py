"""
Helpers for reading request input.

Routes accept either a JSON body or classic form fields; both come back as a
plain dict so the services never see the difference.
"""
from datetime import datetime

from flask import request

from utils.errors import ValidationError

TRUE_VALUES = ('1', 'true', 'on', 'yes')


def get_payload():
    """JSON body if the request has one, otherwise the form fields."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def parse_date(value, field, required=False):
    """Parse ``YYYY-MM-DD`` into a ``date``; ``None`` when blank and optional."""
    if value is None or value == '':
        if required:
            raise ValidationError(f'{field.replace("_", " ").capitalize()} is required', field=field)
        return None
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Dates must be in YYYY-MM-DD format', field=field)


def parse_int(value, field):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a whole number', field=field)


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in TRUE_VALUES
