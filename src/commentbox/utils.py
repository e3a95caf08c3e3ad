from datetime import UTC, datetime
from uuid import UUID


def now() -> datetime:
    return datetime.now(UTC)


def parse_uuid(value: str) -> UUID | None:
    """Parse a UUID string, returning None when it is not a valid id."""
    try:
        return UUID(value)
    except ValueError:
        return None
