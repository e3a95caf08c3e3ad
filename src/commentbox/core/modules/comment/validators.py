from commentbox.errors import ValidationError

CONTENT_MAX_LENGTH = 2000


def normalize_content(content: str) -> str:
    """Return trimmed comment text.

    Raises:
        ValidationError: If the trimmed text is empty or longer than 2000 characters.
    """
    content = content.strip()
    if not content:
        raise ValidationError("Comment content is required")
    if len(content) > CONTENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be between 1 and {CONTENT_MAX_LENGTH} characters")
    return content
