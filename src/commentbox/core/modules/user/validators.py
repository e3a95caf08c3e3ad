import re

from commentbox.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def validate_name(name: str) -> str:
    """Return the trimmed name, raising ValidationError if it is empty or too long."""
    name = name.strip()
    if not name:
        raise ValidationError("Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    return name


def validate_email(email: str) -> str:
    """Return the trimmed email, raising ValidationError if it is not shaped like an address.

    Case is preserved: emails are matched exactly.
    """
    email = email.strip()
    if not EMAIL_RE.fullmatch(email):
        raise ValidationError("Please provide a valid email")
    return email


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Requirements:
    - Between 6 and 128 characters

    Raises:
        ValidationError: If password doesn't meet requirements
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")

    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters")
