"""Chat command handlers and their argument parsing."""

from __future__ import annotations

import re
from typing import Any, Sequence

from .errors import PollError
from .logger import component
from .models import Post
from .service import VotingService

_log = component("handlers")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_option_index(text: str) -> int:
    """Turn a 1-based option number into a 0-based index."""
    if not _INTEGER.fullmatch(text) or int(text) < 1:
        raise ValueError("некорректный номер варианта")
    return int(text) - 1


def split_args(text: str) -> list[str]:
    """Split on spaces, keeping spaces inside double quotes; quotes are dropped."""
    _log.debug("split_args input: %r", text)
    args: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        elif char == " " and not in_quotes:
            if current:
                args.append("".join(current))
                current.clear()
        else:
            current.append(char)
    if current:
        args.append("".join(current))
    _log.debug("split_args result: %r", args)
    return args


def reply_to_post(bot: Any, post: Post, message: str) -> None:
    """Reply in the thread of the given post."""
    try:
        bot.create_post(post.channel_id, message, root_id=post.id)
    except Exception as exc:  # a failed send must not stop command handling
        _log.error("Ошибка отправки: %s", exc)


def send_message_to_channel(bot: Any, channel_id: str, message: str) -> None:
    """Post a message to a channel."""
    try:
        bot.create_post(channel_id, message, root_id="")
    except Exception as exc:  # a failed send must not stop command handling
        _log.error("Ошибка отправки: %s", exc)


def handle_create_poll(
    service: VotingService, bot: Any, post: Post, args: Sequence[str]
) -> None:
    if len(args) < 2:
        reply_to_post(bot, post, 'Использование: /poll "Вопрос" "Вариант 1" "Вариант 2" ...')
        _log.info("Ошибка использования /poll")
        return

    question, options = args[0], list(args[1:])
    _log.info(
        "Создание опроса: %s, варианты %s, пользователь %s, канал %s",
        question, options, post.user_id, post.channel_id,
    )
    try:
        poll = service.create_poll(question, options, post.user_id, post.channel_id)
    except PollError as exc:
        reply_to_post(bot, post, f"❌ Ошибка: {exc}")
        _log.error("Ошибка создания опроса: %s", exc)
        return

    listing = "".join(f"{number}. {option}\n" for number, option in enumerate(poll.options, 1))
    send_message_to_channel(
        bot,
        post.channel_id,
        f"📊 **Новый опрос!**\nВопрос: {poll.question}\nВарианты:\n{listing}ID: `{poll.id}`",
    )
    _log.info("Опрос создан: %s в канале %s", poll.id, post.channel_id)


def handle_close_poll(
    service: VotingService, bot: Any, post: Post, args: Sequence[str]
) -> None:
    if len(args) != 1:
        reply_to_post(bot, post, "Использование: /close <ID опроса>")
        _log.info("Неправильно использована команда /close")
        return

    try:
        service.close_poll(args[0], post.user_id)
    except PollError as exc:
        reply_to_post(bot, post, f"❌ Ошибка: {exc}")
        _log.info("Возникла ошибка у пользователя: %s", exc)
        return

    send_message_to_channel(
        bot, post.channel_id, "🔒 Опрос закрыт. Используйте /results для просмотра итогов"
    )
    _log.info("Опрос закрыт: %s пользователем %s", args[0], post.user_id)


def handle_delete_poll(
    service: VotingService, bot: Any, post: Post, args: Sequence[str]
) -> None:
    if len(args) != 1:
        reply_to_post(bot, post, "Использование: /delete_poll <ID опроса>")
        _log.info("Неправильно использована команда /delete")
        return

    try:
        service.delete_poll(args[0], post.user_id)
    except PollError as exc:
        reply_to_post(bot, post, f"❌ Ошибка: {exc}")
        _log.error("Ошибка удаления опроса %s пользователем %s: %s", args[0], post.user_id, exc)
        return

    send_message_to_channel(bot, post.channel_id, "🗑 Опрос успешно удален")
    _log.info("Опрос удален: %s пользователем %s", args[0], post.user_id)


def handle_vote(service: VotingService, bot: Any, post: Post, args: Sequence[str]) -> None:
    if len(args) != 2:
        reply_to_post(bot, post, "Использование: /vote <ID опроса> <номер варианта>")
        _log.info("Неправильно использована команда /vote")
        return

    poll_id = args[0]
    try:
        option_idx = parse_option_index(args[1])
    except ValueError:
        reply_to_post(bot, post, "❌ Некорректный номер варианта")
        _log.info("Некорректный номер варианта у пользователя")
        return

    try:
        poll = service.get_poll(poll_id)
    except PollError:
        reply_to_post(bot, post, "❌ Опрос не найден")
        _log.info("Опрос пользователя не найден")
        return

    if not poll.active:
        reply_to_post(bot, post, "❌ Опрос закрыт")
        return

    try:
        service.vote(poll_id, post.user_id, option_idx)
    except PollError as exc:
        reply_to_post(bot, post, f"❌ Ошибка голосования: {exc}")
        return

    reply_to_post(bot, post, "✅ Ваш голос учтён!")
    _log.info("Голос учтён: пользователь %s, опрос %s", post.user_id, poll_id)


def handle_results(
    service: VotingService, bot: Any, post: Post, args: Sequence[str]
) -> None:
    if len(args) != 1:
        reply_to_post(bot, post, "Использование: /results <ID опроса>")
        _log.info("Неправильно использована команда /result")
        return

    try:
        results = service.get_results(args[0])
    except PollError as exc:
        reply_to_post(bot, post, f"❌ Ошибка: {exc}")
        _log.error("Возникла ошибка у пользователя: %s", exc)
        return

    lines = [f"📊 **Результаты опроса:** {results.poll.question}\n"]
    lines.extend(
        f"{number}. {option} — {results.counts[number - 1]} голосов\n"
        for number, option in enumerate(results.poll.options, 1)
    )
    lines.append(f"\nВсего участников: {len(results.votes)}")
    send_message_to_channel(bot, post.channel_id, "".join(lines))
    _log.info(
        "Результаты опроса отправлены: %s, участников %d",
        results.poll.question, len(results.votes),
    )


def handle_list_polls(service: VotingService, bot: Any, post: Post) -> None:
    try:
        polls = service.list_polls(post.channel_id)
    except PollError:
        reply_to_post(bot, post, "❌ Ошибка получения списка опросов")
        _log.error("Ошибка получения списка опросов у пользователя")
        return

    if not polls:
        reply_to_post(bot, post, "В этом канале нет активных опросов")
        return

    entries = "".join(
        f"• ID: `{poll.id}`\n  Вопрос: {poll.question}\n  Создал: <@{poll.created_by}>\n\n"
        for poll in polls
    )
    send_message_to_channel(bot, post.channel_id, "📋 **Активные опросы:**\n" + entries)
    _log.info("Выведены все активные опросы")