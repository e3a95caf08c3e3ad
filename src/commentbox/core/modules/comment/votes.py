"""Pure like/dislike toggling over immutable voter sets."""

from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class VoteKind(StrEnum):
    LIKE = "like"
    DISLIKE = "dislike"


class VoteAction(StrEnum):
    """What a toggle did, as reported in realtime events."""

    LIKE = "like"
    UNLIKE = "unlike"
    DISLIKE = "dislike"
    UNDISLIKE = "undislike"


class Votes(BaseModel):
    """Voter sets of a comment. A user id is never in both sets."""

    likes: frozenset[UUID] = frozenset()
    dislikes: frozenset[UUID] = frozenset()

    model_config = ConfigDict(frozen=True)

    @property
    def likes_count(self) -> int:
        return len(self.likes)

    @property
    def dislikes_count(self) -> int:
        return len(self.dislikes)


class VoteOutcome(BaseModel):
    votes: Votes
    action: VoteAction

    model_config = ConfigDict(frozen=True)


def toggle_vote(votes: Votes, user_id: UUID, kind: VoteKind) -> VoteOutcome:
    """Toggle the user's vote of `kind`.

    A user already in the target set is removed from it. Otherwise the user is
    removed from the opposite set and added to the target set.
    """
    if kind == VoteKind.LIKE:
        if user_id in votes.likes:
            return VoteOutcome(
                votes=Votes(likes=votes.likes - {user_id}, dislikes=votes.dislikes), action=VoteAction.UNLIKE
            )
        return VoteOutcome(
            votes=Votes(likes=votes.likes | {user_id}, dislikes=votes.dislikes - {user_id}), action=VoteAction.LIKE
        )

    if user_id in votes.dislikes:
        return VoteOutcome(
            votes=Votes(likes=votes.likes, dislikes=votes.dislikes - {user_id}), action=VoteAction.UNDISLIKE
        )
    return VoteOutcome(
        votes=Votes(likes=votes.likes - {user_id}, dislikes=votes.dislikes | {user_id}), action=VoteAction.DISLIKE
    )


def vote_update(before: Votes, after: Votes) -> dict[str, Any]:
    """Build a MongoDB update that applies only the difference between two vote states.

    Members are added with `$addToSet` and removed with `$pull`, so votes by other
    users written to the same document in the meantime are kept.
    """
    update: dict[str, dict[str, Any]] = {}
    for field, old, new in (("likes", before.likes, after.likes), ("dislikes", before.dislikes, after.dislikes)):
        if added := new - old:
            update.setdefault("$addToSet", {})[field] = {"$each": sorted(added)}
        if removed := old - new:
            update.setdefault("$pull", {})[field] = {"$in": sorted(removed)}
    return update
