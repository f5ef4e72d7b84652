"""
Upload Form State

Field values and per-field validity of the batch submission form.

Rules:
- batch_no:    required, at most 20 characters
- branch_code: required, one of the loaded branches once they are known
- source_code: required
- exch_rate:   required, >= 0.000001
- entry_date:  required

Validity is derived on read; patching a value never triggers anything
beyond that.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Set

from excel_upload.models.schemas import (
    MAX_BATCH_NO_LENGTH,
    MIN_EXCH_RATE,
    UploadRequest,
)
from excel_upload.utils.validation_errors import ValidationErrorResponse, FormValidationError


FIELD_NAMES = ("batch_no", "branch_code", "source_code", "exch_rate", "entry_date")

DEFAULT_EXCH_RATE = Decimal("1")


@dataclass
class FieldStatus:
    """What the UI needs to decide whether to show a field error."""
    name: str
    value: Any
    errors: Dict[str, dict] = field(default_factory=dict)
    touched: bool = False
    dirty: bool = False

    @property
    def valid(self) -> bool:
        return not self.errors


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_decimal(value: Any) -> Any:
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return value


def _coerce_date(value: Any) -> Any:
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return value
    return value


class UploadFormState:
    """
    Form State Manager for the upload form.

    `today` is injectable so the default entry date can be pinned in tests.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today
        self.known_branch_codes: Optional[Set[str]] = None
        self._values: Dict[str, Any] = {}
        self._touched: Set[str] = set()
        self._dirty: Set[str] = set()
        self.reset()

    # ==================== DEFAULTS / RESET ====================

    def default_values(self) -> Dict[str, Any]:
        return {
            "exch_rate": DEFAULT_EXCH_RATE,
            "entry_date": self._today(),
        }

    def reset(self, defaults: Optional[Dict[str, Any]] = None):
        """
        Return every field to the supplied default (or empty).

        Without explicit defaults, exch_rate=1 and entry_date=today.
        """
        defaults = self.default_values() if defaults is None else defaults
        self._check_names(defaults)
        self._values = {name: None for name in FIELD_NAMES}
        self._assign(defaults)
        self._touched.clear()
        self._dirty.clear()

    # ==================== READ / WRITE ====================

    def get_value(self, name: str) -> Any:
        self._check_names([name])
        return self._values[name]

    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    def patch(self, **values: Any):
        """Bulk update without marking anything dirty."""
        self._check_names(values)
        self._assign(values)

    def set_value(self, name: str, value: Any):
        """A user edit of one field."""
        self._check_names([name])
        self._assign({name: value})
        self._dirty.add(name)

    def mark_touched(self, name: str):
        self._check_names([name])
        self._touched.add(name)

    def mark_all_touched(self):
        self._touched.update(FIELD_NAMES)

    # ==================== VALIDITY ====================

    def errors(self, name: str) -> Dict[str, dict]:
        self._check_names([name])
        value = self._values[name]

        if _is_blank(value):
            return {"required": ValidationErrorResponse.missing_parameter(name)}

        if name == "batch_no" and len(str(value).strip()) > MAX_BATCH_NO_LENGTH:
            return {"maxlength": ValidationErrorResponse.invalid_parameter(
                name, f"{name} cannot exceed {MAX_BATCH_NO_LENGTH} characters", value
            )}

        if name == "branch_code" and self.known_branch_codes and str(value).strip() not in self.known_branch_codes:
            return {"invalid": ValidationErrorResponse.invalid_parameter(
                name, f"Unknown branch {value}", value
            )}

        if name == "exch_rate":
            if not isinstance(value, Decimal) or not value.is_finite():
                return {"invalid": ValidationErrorResponse.invalid_parameter(
                    name, f"{name} must be a decimal number", value
                )}
            if value < MIN_EXCH_RATE:
                return {"min": ValidationErrorResponse.invalid_parameter(
                    name, f"{name} must be at least {MIN_EXCH_RATE}", value
                )}

        if name == "entry_date" and not isinstance(value, date):
            return {"invalid": ValidationErrorResponse.invalid_parameter(
                name, f"{name} must be a date in YYYY-MM-DD format", value
            )}

        return {}

    def field_status(self, name: str) -> FieldStatus:
        return FieldStatus(
            name=name,
            value=self.get_value(name),
            errors=self.errors(name),
            touched=name in self._touched,
            dirty=name in self._dirty,
        )

    def has_error(self, name: str, error_key: str) -> bool:
        """True when the field has that error and the user has interacted with it."""
        status = self.field_status(name)
        return error_key in status.errors and (status.dirty or status.touched)

    @property
    def invalid_fields(self) -> List[str]:
        return [name for name in FIELD_NAMES if self.errors(name)]

    @property
    def is_valid(self) -> bool:
        return not self.invalid_fields

    # ==================== REQUEST ====================

    def build_request(self) -> UploadRequest:
        """Snapshot the form as an UploadRequest. Raises FormValidationError if invalid."""
        problems = [
            error
            for name in FIELD_NAMES
            for error in self.errors(name).values()
        ]
        if problems:
            raise FormValidationError(problems)

        return UploadRequest(
            batch_no=str(self._values["batch_no"]).strip(),
            branch_code=str(self._values["branch_code"]).strip(),
            source_code=str(self._values["source_code"]).strip(),
            exch_rate=self._values["exch_rate"],
            entry_date=self._values["entry_date"],
        )

    # ==================== INTERNALS ====================

    def _assign(self, values: Dict[str, Any]):
        for name, value in values.items():
            if name == "exch_rate":
                value = _coerce_decimal(value)
            elif name == "entry_date":
                value = _coerce_date(value)
            self._values[name] = value

    @staticmethod
    def _check_names(names):
        unknown = [n for n in names if n not in FIELD_NAMES]
        if unknown:
            raise ValueError(f"Unknown form field(s): {', '.join(unknown)}")
