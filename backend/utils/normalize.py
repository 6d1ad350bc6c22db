"""
Input Normalization Utilities
=============================

Single source of truth for query-string normalization.
All parsing of external inputs happens here, nowhere else.

Usage:
    from utils.normalize import to_int, to_bool, ValidationError

    @candidates_bp.route("/candidates")
    def list_candidates():
        try:
            limit = to_int(request.args.get("limit"), default=20, min_value=1,
                           max_value=100, field="limit")
        except ValidationError as e:
            return validation_error_response(e)

Request bodies go through the pydantic models in api/contracts instead.
"""

from typing import Iterable, Optional


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def _check_range(number, min_value, max_value, field, value):
    if min_value is not None and number < min_value:
        raise ValidationError(
            f"{field or 'value'} must be >= {min_value}, got {number}",
            field=field,
            received_value=value
        )
    if max_value is not None and number > max_value:
        raise ValidationError(
            f"{field or 'value'} must be <= {max_value}, got {number}",
            field=field,
            received_value=value
        )
    return number


def to_int(
    value: Optional[str],
    *,
    default: Optional[int] = None,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
    field: str = None
) -> Optional[int]:
    """
    Convert string to int, with explicit None handling.

    Args:
        value: Input string (typically from request.args.get())
        default: Value to return if input is None or empty
        min_value / max_value: Inclusive bounds on the parsed value
        field: Field name for error messages

    Raises:
        ValidationError: If value is not an int or is out of bounds
    """
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected int, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )
    return _check_range(number, min_value, max_value, field, value)


def to_float(
    value: Optional[str],
    *,
    default: Optional[float] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    field: str = None
) -> Optional[float]:
    """
    Convert string to float, with explicit None handling.

    Raises:
        ValidationError: If value is not a number or is out of bounds
    """
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected float, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )
    if number != number:
        raise ValidationError("NaN is not allowed", field=field, received_value=value)
    return _check_range(number, min_value, max_value, field, value)


def to_bool(
    value: Optional[str],
    *,
    default: Optional[bool] = False,
    field: str = None
) -> Optional[bool]:
    """
    Convert string to bool.

    Accepts (case-insensitive):
        True: 'true', '1', 'yes', 'on'
        False: 'false', '0', 'no', 'off'

    Raises:
        ValidationError: If value is not a recognized boolean string
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lower = str(value).lower()
    if lower in ("true", "1", "yes", "on"):
        return True
    if lower in ("false", "0", "no", "off"):
        return False
    raise ValidationError(
        f"Expected bool, got: {value!r}",
        field=field,
        received_value=value
    )


def to_choice(
    value: Optional[str],
    choices: Iterable[str],
    *,
    default: Optional[str] = None,
    field: str = None
) -> Optional[str]:
    """
    Normalize a string that must be one of `choices` (case-insensitive).

    Raises:
        ValidationError: If value is not one of the choices
    """
    if value is None or value.strip() == "":
        return default
    choices = list(choices)
    lowered = value.strip().lower()
    for choice in choices:
        if choice.lower() == lowered:
            return choice
    raise ValidationError(
        f"Expected one of {choices}, got: {value!r}",
        field=field,
        received_value=value
    )


def validation_error_response(error: ValidationError):
    """
    Convert ValidationError to the standard 400 error envelope.

    Usage:
        try:
            limit = to_int(request.args.get("limit"))
        except ValidationError as e:
            return validation_error_response(e)
    """
    from api.middleware.error_envelope import make_error_response

    details = None
    if error.received_value is not None:
        details = {"received_value": str(error.received_value)}
    return make_error_response(
        "VALIDATION_ERROR",
        str(error),
        400,
        field=error.field,
        details=details,
    )
