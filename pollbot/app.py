"""Command-line entry point: connect to storage and chat, then serve commands."""

from __future__ import annotations

import argparse
import json
import logging
import queue
import signal
import threading
from typing import Any, Mapping, Sequence

from .bot import Bot
from .config import load_config
from .logger import component, init_logging
from .manager import CommandManager
from .models import Post
from .repository import TarantoolPollRepository, TarantoolVoteRepository
from .service import VotingService
from .tarantool import TarantoolConnection, TarantoolError

POSTED_EVENT = "posted"
CONNECT_TIMEOUT = 3.0
QUEUE_POLL = 0.5


def parse_posted_event(event: Mapping[str, Any]) -> Post | None:
    """Return the post carried by a "posted" event, or None for other events.

    Raises ValueError if a "posted" event does not hold a valid post.
    """
    if event.get("event") != POSTED_EVENT:
        return None
    data = event.get("data") or {}
    raw = data.get("post") if isinstance(data, Mapping) else None
    if not isinstance(raw, str):
        raise ValueError("posted event carries no post")
    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError("post is not an object")
    return Post.from_dict(decoded)


def _serve(bot: Bot, manager: CommandManager, log: logging.Logger) -> None:
    events: queue.Queue[Any] = queue.Queue()
    stop = threading.Event()

    previous: dict[int, Any] = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, lambda *_: stop.set())

    listener = threading.Thread(target=bot.listen, args=(events, stop), daemon=True)
    listener.start()
    try:
        while not stop.is_set():
            try:
                event = events.get(timeout=QUEUE_POLL)
            except queue.Empty:
                continue
            try:
                post = parse_posted_event(event)
            except ValueError as exc:
                log.error("Ошибка парсинга сообщения: %s", exc)
                continue
            if post is not None:
                manager.process_command(bot, post)
    finally:
        stop.set()
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    log.info("Завершение работы...")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the bot until interrupted; return the process exit status."""
    parser = argparse.ArgumentParser(prog="pollbot", description="Poll bot for a chat server.")
    parser.add_argument("--env-file", default=".env", help="file with settings (default: .env)")
    options = parser.parse_args(argv)

    init_logging()
    log = component("main")
    cfg = load_config(options.env_file)

    log.info("Starting application")
    try:
        conn = TarantoolConnection(cfg.tarantool_addr, timeout=CONNECT_TIMEOUT)
    except TarantoolError as exc:
        log.critical("Connection error: %s", exc)
        return 1

    with conn:
        log.info("Successfully connected!")
        service = VotingService(TarantoolPollRepository(conn), TarantoolVoteRepository(conn))
        manager = CommandManager(service, component("manager"))
        try:
            bot = Bot(cfg.mattermost_url, cfg.bot_token, component("bot"))
        except ConnectionError as exc:
            log.critical("Bot creation error: %s", exc)
            return 1
        try:
            _serve(bot, manager, log)
        finally:
            bot.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())