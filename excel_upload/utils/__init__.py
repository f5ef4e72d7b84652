"""
Utils Package

Provides utility modules for:
- validation_errors: Structured form validation errors
"""

from .validation_errors import (
    ValidationErrorResponse,
    FormValidationError,
)

__all__ = [
    'ValidationErrorResponse',
    'FormValidationError',
]
