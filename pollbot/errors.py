"""Errors raised by the poll bot."""


class PollError(Exception):
    """Base class for every poll-related failure."""


class PollNotFound(PollError):
    """No poll with the requested identifier exists."""

    def __init__(self, poll_id: str) -> None:
        super().__init__(f"опрос с ID '{poll_id}' не найден")
        self.poll_id = poll_id


class VoteConflict(PollError):
    """The user has already voted."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"пользователь '{user_id}' уже проголосовал")
        self.user_id = user_id


class PermissionDenied(PollError):
    """The user may not perform the requested action on a poll."""

    def __init__(self, message: str = "недостаточно прав") -> None:
        super().__init__(message)


class StorageError(PollError):
    """The storage backend failed to complete a request."""