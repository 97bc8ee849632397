"""Dispatch of chat messages to command handlers."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from . import handlers
from .logger import component
from .models import Post
from .service import VotingService

_Handler = Callable[[VotingService, Any, Post, Sequence[str]], None]

_COMMANDS: dict[str, _Handler] = {
    "/delete_poll": handlers.handle_delete_poll,
    "/poll": handlers.handle_create_poll,
    "/vote": handlers.handle_vote,
    "/results": handlers.handle_results,
    "/close": handlers.handle_close_poll,
    "/polls": lambda service, bot, post, args: handlers.handle_list_polls(service, bot, post),
}


class CommandManager:
    """Routes a posted message to the handler of its leading command."""

    def __init__(self, service: VotingService, logger: logging.Logger | None = None) -> None:
        self.service = service
        self.logger = (
            logger.getChild("command_manager")
            if logger is not None
            else component("command_manager")
        )

    def process_command(self, bot: Any, post: Post) -> None:
        """Run the command in the post's message; unknown commands are logged."""
        self.logger.info("Обработка команды: %s", post.message)
        parts = post.message.split()
        if not parts:
            return
        command = parts[0]
        position = post.message.find(command)
        remaining = post.message[position + len(command):].strip()
        args = handlers.split_args(remaining)

        handler = _COMMANDS.get(command)
        if handler is None:
            self.logger.warning("Неизвестная команда: %s", command)
            return
        handler(self.service, bot, post, args)