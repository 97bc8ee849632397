"""Storage of polls and votes in Tarantool spaces."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from .errors import PollNotFound, StorageError
from .models import Poll, Vote
from .tarantool import TarantoolConnection, TarantoolError

POLL_SPACE = "polls"
VOTES_SPACE = "votes"
OPTION_SEP = "|"
ACTIVE_FIELD = 5
OPTION_IDX_FIELD = 2


class PollRepository(Protocol):
    """Storage operations for polls."""

    def create_poll(self, poll: Poll) -> None: ...

    def get_poll(self, poll_id: str) -> Poll: ...

    def close_poll(self, poll_id: str) -> None: ...

    def get_polls_by_channel(self, channel_id: str) -> list[Poll]: ...

    def delete_poll(self, poll_id: str) -> None: ...


class VoteRepository(Protocol):
    """Storage operations for votes."""

    def create_vote(self, poll_id: str, user_id: str, option_idx: int) -> None: ...

    def update_vote(self, poll_id: str, user_id: str, option_idx: int) -> None: ...

    def get_vote(self, poll_id: str, user_id: str) -> Vote | None: ...

    def get_votes(self, poll_id: str) -> list[Vote]: ...


def _poll_from_tuple(row: Sequence[Any]) -> Poll:
    return Poll(
        id=row[0],
        question=row[1],
        options=row[2].split(OPTION_SEP),
        created_by=row[3],
        channel_id=row[4],
        active=bool(row[ACTIVE_FIELD]),
    )


def _vote_from_tuple(row: Sequence[Any]) -> Vote:
    return Vote(poll_id=row[0], user_id=row[1], option_idx=int(row[OPTION_IDX_FIELD]))


class TarantoolPollRepository:
    """Polls stored as (id, question, options, created_by, channel_id, active)."""

    def __init__(self, conn: TarantoolConnection) -> None:
        self._conn = conn

    def create_poll(self, poll: Poll) -> None:
        self._conn.insert(
            POLL_SPACE,
            [
                poll.id,
                poll.question,
                OPTION_SEP.join(poll.options),
                poll.created_by,
                poll.channel_id,
                True,
            ],
        )

    def delete_poll(self, poll_id: str) -> None:
        try:
            self._conn.delete(POLL_SPACE, [poll_id])
        except TarantoolError as exc:
            raise StorageError(f"ошибка удаления опроса: {exc}") from exc

    def get_poll(self, poll_id: str) -> Poll:
        try:
            rows = self._conn.call(f"box.space.{POLL_SPACE}:get", [poll_id])
        except TarantoolError as exc:
            raise PollNotFound(poll_id) from exc
        if not rows or rows[0] is None:
            raise PollNotFound(poll_id)
        return _poll_from_tuple(rows[0])

    def close_poll(self, poll_id: str) -> None:
        self._conn.update(POLL_SPACE, [poll_id], [("=", ACTIVE_FIELD, False)])

    def get_polls_by_channel(self, channel_id: str) -> list[Poll]:
        """Return the channel's active polls."""
        try:
            rows = self._conn.select(POLL_SPACE, [channel_id], index="channel")
        except TarantoolError as exc:
            raise StorageError(f"ошибка получения опросов: {exc}") from exc
        return [
            _poll_from_tuple(row)
            for row in rows
            if len(row) > ACTIVE_FIELD and row[ACTIVE_FIELD] is True
        ]


class TarantoolVoteRepository:
    """Votes stored as (poll_id, user_id, option_idx)."""

    def __init__(self, conn: TarantoolConnection) -> None:
        self._conn = conn

    def create_vote(self, poll_id: str, user_id: str, option_idx: int) -> None:
        self._conn.insert(VOTES_SPACE, [poll_id, user_id, option_idx])

    def update_vote(self, poll_id: str, user_id: str, option_idx: int) -> None:
        self._conn.update(VOTES_SPACE, [poll_id, user_id], [("=", OPTION_IDX_FIELD, option_idx)])

    def get_vote(self, poll_id: str, user_id: str) -> Vote | None:
        """Return the user's vote in the poll, or None if there is none."""
        try:
            rows = self._conn.select(VOTES_SPACE, [poll_id, user_id], index="primary")
        except TarantoolError as exc:
            raise StorageError(f"ошибка запроса: {exc}") from exc
        return _vote_from_tuple(rows[0]) if rows else None

    def get_votes(self, poll_id: str) -> list[Vote]:
        try:
            rows = self._conn.select(VOTES_SPACE, [poll_id], index="poll_id")
        except TarantoolError as exc:
            raise StorageError(f"ошибка получения голосов: {exc}") from exc
        return [_vote_from_tuple(row) for row in rows]