from enum import StrEnum


class CommentEvent(StrEnum):
    """Events pushed to realtime clients."""

    CREATED = "comment:created"
    UPDATED = "comment:updated"
    DELETED = "comment:deleted"
    LIKED = "comment:liked"
    DISLIKED = "comment:disliked"
