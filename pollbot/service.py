"""Poll operations built on the poll and vote repositories."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .errors import PermissionDenied, StorageError
from .models import Poll, Vote, new_id
from .repository import PollRepository, VoteRepository


@dataclass
class PollResults:
    """A poll with its votes and the number of votes per option index."""

    poll: Poll
    votes: list[Vote]
    counts: Counter[int] = field(default_factory=Counter)


class VotingService:
    """Creates, closes and deletes polls and records votes."""

    def __init__(self, poll_repo: PollRepository, vote_repo: VoteRepository) -> None:
        self._polls = poll_repo
        self._votes = vote_repo

    def create_poll(
        self, question: str, options: list[str], user_id: str, channel_id: str
    ) -> Poll:
        """Store a new active poll and return it."""
        poll = Poll(
            id=new_id(),
            question=question,
            options=list(options),
            created_by=user_id,
            channel_id=channel_id,
            active=True,
        )
        self._polls.create_poll(poll)
        return poll

    def close_poll(self, poll_id: str, user_id: str) -> None:
        """Close a poll; only its creator may do so."""
        poll = self._polls.get_poll(poll_id)
        if poll.created_by != user_id:
            raise PermissionDenied()
        self._polls.close_poll(poll_id)

    def vote(self, poll_id: str, user_id: str, option_idx: int) -> None:
        """Record the user's choice, replacing an earlier one."""
        try:
            existing = self._votes.get_vote(poll_id, user_id)
        except StorageError as exc:
            raise StorageError(f"ошибка проверки голоса: {exc}") from exc
        if existing is not None:
            self._votes.update_vote(poll_id, user_id, option_idx)
        else:
            self._votes.create_vote(poll_id, user_id, option_idx)

    def get_results(self, poll_id: str) -> PollResults:
        """Return the poll, all its votes and the per-option counts."""
        poll = self._polls.get_poll(poll_id)
        votes = self._votes.get_votes(poll_id)
        counts = Counter(vote.option_idx for vote in votes)
        return PollResults(poll=poll, votes=votes, counts=counts)

    def list_polls(self, channel_id: str) -> list[Poll]:
        """Return the active polls of a channel."""
        return self._polls.get_polls_by_channel(channel_id)

    def get_poll(self, poll_id: str) -> Poll:
        return self._polls.get_poll(poll_id)

    def update_vote(self, poll_id: str, user_id: str, option_idx: int) -> None:
        self._votes.update_vote(poll_id, user_id, option_idx)

    def delete_poll(self, poll_id: str, user_id: str) -> None:
        """Delete a poll; only its creator may do so."""
        poll = self._polls.get_poll(poll_id)
        if poll.created_by != user_id:
            raise PermissionDenied("недостаточно прав для удаления")
        self._polls.delete_poll(poll_id)