"""A small synchronous Tarantool client speaking the binary protocol."""

from __future__ import annotations

import itertools
import socket
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import msgpack

from .errors import StorageError

GREETING_SIZE = 128

# Request types.
SELECT = 0x01
INSERT = 0x02
UPDATE = 0x04
DELETE = 0x05
CALL = 0x0A

# Header and body keys.
REQUEST_TYPE = 0x00
SYNC = 0x01
SPACE_ID = 0x10
INDEX_ID = 0x11
LIMIT = 0x12
OFFSET = 0x13
ITERATOR = 0x14
KEY = 0x20
TUPLE = 0x21
FUNCTION_NAME = 0x22
DATA = 0x30
ERROR_24 = 0x31

ERROR_FLAG = 0x8000
ITERATOR_EQ = 0
NO_LIMIT = 0xFFFFFFFF

VSPACE_ID = 281
VINDEX_ID = 289
NAME_INDEX_ID = 2

_LENGTH_SIZES = {0xCC: 1, 0xCD: 2, 0xCE: 4, 0xCF: 8}


class TarantoolError(StorageError):
    """A failure reported by or while talking to the database server."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class Response:
    """A successful reply: the request's sync number and its data."""

    sync: int
    data: list[Any]


def encode_request(request_type: int, sync: int, body: dict[int, Any]) -> bytes:
    """Frame a request: a 32-bit length prefix, the header map, the body map."""
    payload = msgpack.packb({REQUEST_TYPE: request_type, SYNC: sync}) + msgpack.packb(body)
    return b"\xce" + len(payload).to_bytes(4, "big") + payload


def decode_response(payload: bytes) -> Response:
    """Decode a framed reply's header and body; raise on an error status."""
    unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
    unpacker.feed(payload)
    try:
        header = unpacker.unpack()
    except msgpack.OutOfData as exc:
        raise TarantoolError("truncated response") from exc
    try:
        body = unpacker.unpack()
    except msgpack.OutOfData:
        body = {}
    if not isinstance(header, dict) or not isinstance(body, dict):
        raise TarantoolError("malformed response")
    status = header.get(REQUEST_TYPE, 0)
    if status & ERROR_FLAG:
        message = body.get(ERROR_24, "unknown error")
        raise TarantoolError(str(message), code=status & ~ERROR_FLAG)
    return Response(sync=header.get(SYNC, 0), data=list(body.get(DATA) or []))


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise TarantoolError(f"invalid address '{address}'")
    try:
        return host, int(port)
    except ValueError as exc:
        raise TarantoolError(f"invalid port in address '{address}'") from exc


class TarantoolConnection:
    """A connection to one server; space and index names are resolved on demand."""

    def __init__(self, address: str, timeout: float = 3.0) -> None:
        host, port = _split_address(address)
        try:
            self._sock: socket.socket | None = socket.create_connection((host, port), timeout=timeout)
        except OSError as exc:
            raise TarantoolError(f"connection to {address} failed: {exc}") from exc
        self._lock = threading.Lock()
        self._sync = itertools.count(1)
        self._space_ids: dict[str, int] = {}
        self._index_ids: dict[tuple[int, str], int] = {}
        try:
            greeting = self._read_exact(GREETING_SIZE)
        except (OSError, TarantoolError) as exc:
            self.close()
            raise TarantoolError(f"no greeting from {address}: {exc}") from exc
        if not greeting.startswith(b"Tarantool"):
            self.close()
            raise TarantoolError(f"unexpected greeting from {address}")
        self._sock.settimeout(None)

    def _read_exact(self, size: int) -> bytes:
        if self._sock is None:
            raise TarantoolError("connection is closed")
        buffer = bytearray()
        while len(buffer) < size:
            chunk = self._sock.recv(size - len(buffer))
            if not chunk:
                raise TarantoolError("connection closed by server")
            buffer.extend(chunk)
        return bytes(buffer)

    def _read_length(self) -> int:
        marker = self._read_exact(1)[0]
        if marker <= 0x7F:
            return marker
        try:
            width = _LENGTH_SIZES[marker]
        except KeyError as exc:
            raise TarantoolError("malformed response length") from exc
        return int.from_bytes(self._read_exact(width), "big")

    def _request(self, request_type: int, body: dict[int, Any]) -> list[Any]:
        with self._lock:
            if self._sock is None:
                raise TarantoolError("connection is closed")
            sync = next(self._sync)
            try:
                self._sock.sendall(encode_request(request_type, sync, body))
                payload = self._read_exact(self._read_length())
            except OSError as exc:
                raise TarantoolError(f"request failed: {exc}") from exc
        response = decode_response(payload)
        if response.sync != sync:
            raise TarantoolError("response does not match request")
        return response.data

    def _space_id(self, space: int | str) -> int:
        if isinstance(space, int):
            return space
        if space not in self._space_ids:
            rows = self.select(VSPACE_ID, [space], NAME_INDEX_ID)
            if not rows:
                raise TarantoolError(f"unknown space '{space}'")
            self._space_ids[space] = rows[0][0]
        return self._space_ids[space]

    def _index_id(self, space_id: int, index: int | str) -> int:
        if isinstance(index, int):
            return index
        key = (space_id, index)
        if key not in self._index_ids:
            rows = self.select(VINDEX_ID, [space_id, index], NAME_INDEX_ID)
            if not rows:
                raise TarantoolError(f"unknown index '{index}'")
            self._index_ids[key] = rows[0][1]
        return self._index_ids[key]

    def insert(self, space: int | str, values: Sequence[Any]) -> list[Any]:
        """Insert a tuple; fails if the primary key already exists."""
        return self._request(INSERT, {SPACE_ID: self._space_id(space), TUPLE: list(values)})

    def delete(self, space: int | str, key: Sequence[Any]) -> list[Any]:
        """Delete the tuple with the given primary key."""
        return self._request(DELETE, {SPACE_ID: self._space_id(space), INDEX_ID: 0, KEY: list(key)})

    def select(self, space: int | str, key: Sequence[Any], index: int | str = 0) -> list[Any]:
        """Return all tuples whose index fields equal the key."""
        space_id = self._space_id(space)
        return self._request(
            SELECT,
            {
                SPACE_ID: space_id,
                INDEX_ID: self._index_id(space_id, index),
                LIMIT: NO_LIMIT,
                OFFSET: 0,
                ITERATOR: ITERATOR_EQ,
                KEY: list(key),
            },
        )

    def update(
        self, space: int | str, key: Sequence[Any], operations: Iterable[Sequence[Any]]
    ) -> list[Any]:
        """Apply (operator, field number, value) operations to one tuple."""
        return self._request(
            UPDATE,
            {
                SPACE_ID: self._space_id(space),
                INDEX_ID: 0,
                KEY: list(key),
                TUPLE: [list(op) for op in operations],
            },
        )

    def call(self, function: str, args: Sequence[Any] = ()) -> list[Any]:
        """Call a stored function and return its results."""
        return self._request(CALL, {FUNCTION_NAME: function, TUPLE: list(args)})

    def close(self) -> None:
        """Close the socket; further requests raise TarantoolError."""
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> TarantoolConnection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()