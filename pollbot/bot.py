"""Connection to the chat server: REST calls and the live event stream."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Protocol

import requests
import websocket

from .logger import component

API_PREFIX = "/api/v4"
HTTP_TIMEOUT = 10.0
RECONNECT_DELAY = 5.0
RESTART_DELAY = 2.0
RECV_TIMEOUT = 1.0
PING_INTERVAL = 30.0
PING_TIMEOUT = 30.0


class _EventSink(Protocol):
    def put(self, item: Any) -> None: ...


def to_websocket_url(server_url: str) -> str:
    """Turn an http(s) server URL into the matching ws(s) URL."""
    if server_url.startswith("http://"):
        return "ws://" + server_url[len("http://"):]
    if server_url.startswith("https://"):
        return "wss://" + server_url[len("https://"):]
    return server_url


class Bot:
    """An authenticated bot account on the chat server."""

    def __init__(
        self,
        server_url: str,
        token: str,
        logger: logging.Logger | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.url = server_url.rstrip("/")
        self.token = token
        self.logger = logger if logger is not None else component("bot")
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.session.headers["Authorization"] = f"Bearer {token}"
        self.ws: Any = None

        self.logger.info(
            "Initializing bot: url=%s token_prefix=%s", server_url, token[:4] + "***"
        )
        try:
            response = self.session.get(
                f"{self.url}{API_PREFIX}/users/me", timeout=HTTP_TIMEOUT
            )
            response.raise_for_status()
            self.user: dict[str, Any] = response.json()
        except (requests.RequestException, ValueError) as exc:
            if self._owns_session:
                self.session.close()
            raise ConnectionError(f"ошибка авторизации: {exc}") from exc

    def __repr__(self) -> str:
        return f"Bot(url={self.url!r})"

    def create_post(self, channel_id: str, message: str, root_id: str = "") -> dict[str, Any]:
        """Publish a message in a channel, optionally as a reply in a thread."""
        response = self.session.post(
            f"{self.url}{API_PREFIX}/posts",
            json={"channel_id": channel_id, "message": message, "root_id": root_id},
            timeout=HTTP_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()

    def listen(self, events: _EventSink, stop: threading.Event | None = None) -> None:
        """Put server events into ``events`` until ``stop`` is set, reconnecting as needed."""
        if stop is None:
            stop = threading.Event()
        url = to_websocket_url(self.url) + API_PREFIX + "/websocket"
        while not stop.is_set():
            self.logger.info("Connecting to WebSocket %s", url)
            try:
                ws = websocket.create_connection(url, timeout=RECV_TIMEOUT)
            except (websocket.WebSocketException, OSError) as exc:
                self.logger.error(
                    "WebSocket connection failed: %s; retry in %ss", exc, RECONNECT_DELAY
                )
                stop.wait(RECONNECT_DELAY)
                continue
            self.ws = ws
            try:
                ws.send(
                    json.dumps(
                        {
                            "seq": 1,
                            "action": "authentication_challenge",
                            "data": {"token": self.token},
                        }
                    )
                )
                self.logger.info("WebSocket connected")
                self._pump(ws, events, stop)
            except (websocket.WebSocketException, OSError) as exc:
                self.logger.error("WebSocket failure: %s", exc)
            finally:
                ws.close()
                self.ws = None
            if not stop.is_set():
                self.logger.info("Переподключение через %s секунды...", RESTART_DELAY)
                stop.wait(RESTART_DELAY)

    def _pump(self, ws: Any, events: _EventSink, stop: threading.Event) -> None:
        last_seen = time.monotonic()
        pinged = False
        while not stop.is_set():
            try:
                opcode, data = ws.recv_data(control_frame=True)
            except websocket.WebSocketTimeoutException:
                idle = time.monotonic() - last_seen
                if idle > PING_INTERVAL + PING_TIMEOUT:
                    self.logger.warning("Таймаут пинга, переподключение...")
                    return
                if idle > PING_INTERVAL and not pinged:
                    ws.ping()
                    pinged = True
                continue
            except (websocket.WebSocketException, OSError) as exc:
                self.logger.info("Канал событий закрыт: %s", exc)
                return
            last_seen = time.monotonic()
            pinged = False
            if opcode == websocket.ABNF.OPCODE_CLOSE:
                self.logger.info("Канал событий закрыт")
                return
            if opcode != websocket.ABNF.OPCODE_TEXT:
                continue
            text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
            try:
                message = json.loads(text)
            except ValueError:
                self.logger.error("Malformed event: %r", text)
                continue
            if isinstance(message, dict) and "event" in message:
                events.put(message)

    def close(self) -> None:
        """Close the event stream and, if this bot created it, the HTTP session."""
        ws, self.ws = self.ws, None
        if ws is not None:
            ws.close()
        if self._owns_session:
            self.session.close()