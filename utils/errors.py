"""
Domain exceptions raised by the service layer.

Services raise these *before* writing anything, so a caught exception always
means the database was left untouched.  ``app.register_error_handlers`` turns
them into JSON error responses.
"""


class IkiminaError(Exception):
    """Base class for all group-finance rule violations."""
    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        payload = {'success': False, 'error': self.message}
        if self.field:
            payload['field'] = self.field
        return payload


class ValidationError(IkiminaError):
    """Missing or malformed input."""


class InsufficientFundsError(ValidationError):
    """A loan principal exceeds the group's available funds."""

    def __init__(self, requested, available):
        super().__init__(
            f'Insufficient funds: the loan amount ({requested:,.2f}) exceeds '
            f'available savings ({available:,.2f}).',
            field='principal_amount',
        )
        self.requested = requested
        self.available = available

    def to_dict(self):
        payload = super().to_dict()
        payload['requested'] = float(self.requested)
        payload['available'] = float(self.available)
        return payload


class InvalidStateError(IkiminaError):
    """The record is not in a status that allows the requested transition."""
    status_code = 409
