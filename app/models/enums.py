"""
Closed value domains used by the models

Writes carrying a value outside these sets are rejected, never coerced.
"""
from enum import Enum
from sqlalchemy import Enum as SAEnum
from app.core.exceptions import ValidationError


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class FriendshipStatus(str, Enum):
    """Friendship states; BLOCKED is terminal"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class NotificationType(str, Enum):
    """Types of notifications emitted by the social graph"""
    FRIEND_REQUEST = "friend_request"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


def db_enum(enum_cls, name: str) -> SAEnum:
    """Column type storing enum values, guarded by a CHECK constraint"""
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=enum_values,
        create_constraint=True,
        validate_strings=True,
    )


def coerce_enum(enum_cls, value, field: str):
    """Return the enum member for ``value`` or raise ValidationError"""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(enum_values(enum_cls))
        raise ValidationError(f"Invalid {field} '{value}'. Allowed: {allowed}")
