"""Filter and sort composition for comment listings.

Timestamp orderings run as an indexed `find`. Orderings by vote count sort on
the size of a voter array, which has no index to use, so they run as an
aggregation pipeline that computes the counts first. Both return the same
`(documents, total)` shape so callers do not care which one ran.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal, TypeAlias
from uuid import UUID

from pymongo.asynchronous.collection import AsyncCollection

from commentbox.errors import ValidationError
from commentbox.utils import parse_uuid

TOP_LEVEL = "null"

Documents: TypeAlias = list[dict[str, Any]]


class CommentSort(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_LIKED = "mostLiked"
    MOST_DISLIKED = "mostDisliked"


def build_parent_query(parent_comment: UUID | str | None) -> dict[str, Any]:
    """Build the parent filter.

    Args:
        parent_comment: None for no filter, "null" for top-level comments only,
            or an id (UUID or its string form) for direct replies to that comment.

    Raises:
        ValidationError: If a string is neither "null" nor a valid id.
    """
    if parent_comment is None:
        return {}
    if isinstance(parent_comment, UUID):
        return {"parent_id": parent_comment}
    if parent_comment == TOP_LEVEL:
        return {"parent_id": None}
    parent_id = parse_uuid(parent_comment)
    if parent_id is None:
        raise ValidationError('Parent comment must be a valid ID or "null"')
    return {"parent_id": parent_id}


class SortStrategy(ABC):
    """Fetches one page of comments in a particular order."""

    @abstractmethod
    async def fetch(
        self, collection: AsyncCollection[dict[str, Any]], query: dict[str, Any], skip: int, limit: int
    ) -> tuple[Documents, int]:
        """Return the documents of the requested page and the total number matching `query`."""


@dataclass(frozen=True)
class TimestampSort(SortStrategy):
    direction: Literal[1, -1]

    def sort_spec(self) -> list[tuple[str, int]]:
        # _id breaks ties between identical timestamps
        return [("created_at", self.direction), ("_id", self.direction)]

    async def fetch(
        self, collection: AsyncCollection[dict[str, Any]], query: dict[str, Any], skip: int, limit: int
    ) -> tuple[Documents, int]:
        total = await collection.count_documents(query)
        cursor = collection.find(query).sort(self.sort_spec()).skip(skip).limit(limit)
        return await cursor.to_list(), total


@dataclass(frozen=True)
class CardinalitySort(SortStrategy):
    field: Literal["likes", "dislikes"]

    @property
    def count_field(self) -> str:
        return f"{self.field}_count"

    def build_pipeline(self, query: dict[str, Any], skip: int, limit: int) -> list[dict[str, Any]]:
        """Build the aggregation: match, compute counts, sort by count then recency, page and count in one pass."""
        return [
            {"$match": query},
            {"$addFields": {"likes_count": {"$size": "$likes"}, "dislikes_count": {"$size": "$dislikes"}}},
            {"$sort": {self.count_field: -1, "created_at": -1, "_id": -1}},
            {
                "$facet": {
                    "items": [{"$skip": skip}, {"$limit": limit}],
                    "total": [{"$count": "count"}],
                }
            },
        ]

    async def fetch(
        self, collection: AsyncCollection[dict[str, Any]], query: dict[str, Any], skip: int, limit: int
    ) -> tuple[Documents, int]:
        cursor = await collection.aggregate(self.build_pipeline(query, skip, limit))
        result = await cursor.to_list()
        if not result:
            return [], 0
        facet = result[0]
        total = facet["total"][0]["count"] if facet["total"] else 0
        return facet["items"], total


SORT_STRATEGIES: dict[CommentSort, SortStrategy] = {
    CommentSort.NEWEST: TimestampSort(direction=-1),
    CommentSort.OLDEST: TimestampSort(direction=1),
    CommentSort.MOST_LIKED: CardinalitySort(field="likes"),
    CommentSort.MOST_DISLIKED: CardinalitySort(field="dislikes"),
}


def get_sort_strategy(sort: CommentSort) -> SortStrategy:
    return SORT_STRATEGIES[sort]
