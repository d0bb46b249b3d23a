"""
Username normalisation
"""
import re

from app.core.exceptions import ValidationError

USERNAME_MIN_LENGTH = 3
_DISALLOWED = re.compile(r"[^a-z0-9_]")


def normalize_username(raw: str) -> str:
    """
    Lowercase the username and drop everything outside ``[a-z0-9_]``.

    ``"John_Doe!"`` becomes ``"john_doe"``. Raises ValidationError when fewer
    than three characters survive.
    """
    username = _DISALLOWED.sub("", (raw or "").strip().lower())
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    return username


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the value matches literally"""
    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )
