"""
Typed failures raised by the tab core.

Each error carries a stable machine-readable kind (``default_code``) and
an HTTP status so the API layer can hand them straight to DRF.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class TabError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Tab operation failed'
    default_code = 'tab_error'


class ValidationError(TabError):
    default_detail = 'Invalid input'
    default_code = 'validation_error'


class NotFoundError(TabError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found'
    default_code = 'not_found'


class ForbiddenError(TabError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action'
    default_code = 'forbidden'


class ConflictError(TabError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the tab'
    default_code = 'conflict'


class TabClosedError(TabError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This tab is closed'
    default_code = 'tab_closed'


class NotAvailableError(TabError):
    default_detail = 'Menu item not available at this restaurant'
    default_code = 'not_available'


class InvalidPaymentError(TabError):
    default_detail = 'Payment method not found or not accessible'
    default_code = 'invalid_payment'
