import re

from marshmallow import Schema, ValidationError, RAISE

# upper + lower + digit, anywhere in the string
PASSWORD_COMPLEXITY = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


def norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def not_blank(value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Field may not be blank.")


def validate_password_strength(value: str) -> None:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    if len(value) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Password must not exceed {PASSWORD_MAX_LENGTH} characters.")
    if not PASSWORD_COMPLEXITY.match(value):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number."
        )


class StrictSchema(Schema):
    """Request schema that rejects fields it does not declare."""

    class Meta:
        unknown = RAISE
