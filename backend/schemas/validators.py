"""Shared Pydantic validators.

Keep these small and dependency-free so schema modules can reuse them without
introducing import cycles.
"""

from typing import Any


def ensure_utf8_encodable(value: str) -> str:
    """
    Reject strings that cannot be encoded to UTF-8 (e.g., unpaired surrogates).

    Unpaired surrogates can enter the system via JSON escape sequences like
    "\\uD800" and later crash JSON serialization.
    """
    if not isinstance(value, str):
        return value
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("Text contains invalid Unicode characters")
    return value


def normalize_required_text(value: Any, *, field_name: str = "Field") -> Any:
    """Trim required text fields, reject blank, enforce UTF-8."""
    if value is None or not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        raise ValueError(f"{field_name} cannot be blank")
    return ensure_utf8_encodable(text)


def normalize_optional_text(value: Any) -> Any:
    """Trim optional text fields: blank->None, enforce UTF-8."""
    if value is None or not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    return ensure_utf8_encodable(text)
