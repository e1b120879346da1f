"""Input validation for the public scoring operations."""

import math
from numbers import Real
from urllib.parse import urlparse

from ai_visibility.errors import ValidationError


def validate_url(url: str) -> tuple[bool, str]:
    """Validate a URL string.

    Args:
        url: The URL to validate.

    Returns:
        Tuple of (is_valid, error_message).  error_message is empty on success.
    """
    if not url or not isinstance(url, str):
        return False, "URL is empty or not a string."
    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        return False, f"URL parse error: {exc}"
    if parsed.scheme not in ("http", "https"):
        return False, f"Invalid scheme: {parsed.scheme!r}. Must be http or https."
    if not parsed.netloc:
        return False, "URL has no network location (domain)."
    hostname = parsed.hostname or ""
    if not hostname or len(hostname) > 253:
        return False, "Invalid hostname length."
    return True, ""


def require_url(url: str) -> str:
    """Return the stripped URL or raise :class:`ValidationError`."""
    ok, message = validate_url(url)
    if not ok:
        raise ValidationError(message)
    return url.strip()


def require_text(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string.")
    return value.strip()


def require_fraction(value: float, name: str) -> float:
    """Return *value* as a float in ``[0, 1]`` or raise."""
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ValidationError(f"{name} must be a number between 0 and 1, got {value!r}.")
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be between 0 and 1, got {value!r}.")
    return float(value)


def require_non_negative_int(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}.")
    return value
