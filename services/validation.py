from datetime import date

from services.errors import ValidationError


def parse_date(value, field: str = "date") -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def as_int(value, field: str, required: bool = False, minimum=None):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        value = value.strip()
        digits = value[1:] if value.startswith("-") else value
        if not (digits.isascii() and digits.isdigit()):
            raise ValidationError(f"{field} must be an integer")
        value = int(value)
    if not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise ValidationError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return value


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def optional_text(value, field: str, max_len: int = None):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if max_len and len(value) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return value or None


def require_text(value, field: str, message: str = None, max_len: int = None) -> str:
    text = optional_text(value, field, max_len=max_len)
    if not text:
        raise ValidationError(message or f"{field} is required")
    return text


def json_object(value) -> dict:
    """A missing body reads as {}; anything other than an object is rejected."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("Request body must be a JSON object")
    return value
