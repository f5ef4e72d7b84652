"""
Structured Validation Error Utilities

Form field errors are plain dicts so they can be rendered, logged or
serialised without knowing which rule produced them:
{
    "error": "missing_parameter" | "invalid_parameter",
    "parameter": "batch_no",
    "message": "batch_no is required",
    "received_value": "..."   # invalid_parameter only, when known
}
"""

from typing import Optional, Any, List, Dict


class ValidationErrorResponse:
    """Structured validation error builder."""

    @staticmethod
    def missing_parameter(parameter: str, message: Optional[str] = None) -> dict:
        return {
            "error": "missing_parameter",
            "parameter": parameter,
            "message": message or f"{parameter} is required"
        }

    @staticmethod
    def invalid_parameter(parameter: str, message: str, value: Optional[Any] = None) -> dict:
        """
        Create an invalid parameter error.

        Args:
            parameter: Form field name
            message: What rule the value broke
            value: The rejected value, echoed back truncated to 100 characters
        """
        response = {
            "error": "invalid_parameter",
            "parameter": parameter,
            "message": message
        }
        if value is not None:
            response["received_value"] = str(value)[:100]
        return response


class FormValidationError(ValueError):
    """Raised when an upload request is built from an invalid form."""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        fields = ", ".join(str(e.get("parameter")) for e in errors)
        super().__init__(f"Form is invalid: {fields}")
