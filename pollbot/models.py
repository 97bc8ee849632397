"""Domain records: polls, votes and chat posts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class Poll:
    """A poll created in a channel."""

    id: str
    question: str
    options: list[str]
    created_by: str
    channel_id: str
    active: bool = True


@dataclass(frozen=True)
class Vote:
    """A single user's choice in a poll (option index starts at 0)."""

    poll_id: str
    user_id: str
    option_idx: int


@dataclass(frozen=True)
class Post:
    """A chat message as delivered by the server."""

    id: str = ""
    channel_id: str = ""
    user_id: str = ""
    message: str = ""
    root_id: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Post:
        """Build a post from the server's JSON representation."""
        known = {"id", "channel_id", "user_id", "message", "root_id"}
        return cls(
            id=str(data.get("id") or ""),
            channel_id=str(data.get("channel_id") or ""),
            user_id=str(data.get("user_id") or ""),
            message=str(data.get("message") or ""),
            root_id=str(data.get("root_id") or ""),
            extra={k: v for k, v in data.items() if k not in known},
        )


def new_id() -> str:
    """Return a fresh random identifier for a poll."""
    return str(uuid.uuid4())