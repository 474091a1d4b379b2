"""
Input normalization shared by the profile proxy, host list and draw endpoints.
"""

from core.exceptions import InvalidArgumentError


def normalize_profile_key(raw: str) -> str:
    """
    Canonical cache key for a TikTok identifier.

    Leading '@' characters are stripped and the result is lowercased, so
    "@Foo" and "foo" share one key. Empty results are rejected.
    """
    if not isinstance(raw, str):
        raise InvalidArgumentError("username", raw, "Must be a string")

    key = raw.strip().lstrip("@").strip().lower()
    if not key:
        raise InvalidArgumentError("username", raw, "Username cannot be empty")
    return key


def display_username(key: str) -> str:
    return f"@{key}"


def validate_draw_timing(duration_ms: int, step_ms: int) -> None:
    if step_ms <= 0:
        raise InvalidArgumentError("step_ms", step_ms, "Must be positive")
    if duration_ms < 0:
        raise InvalidArgumentError("duration_ms", duration_ms, "Must not be negative")
