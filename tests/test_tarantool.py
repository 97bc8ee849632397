import socket
import threading

import msgpack
import pytest

from pollbot.errors import StorageError
from pollbot.tarantool import (
    TarantoolConnection,
    TarantoolError,
    decode_response,
    encode_request,
)

GREETING = (
    b"Tarantool 2.11.0 (Binary) 00000000-0000-0000-0000-000000000000".ljust(63) + b"\n"
    + b"c2FsdA==".ljust(63) + b"\n"
)
POLLS_ID = 512
CHANNEL_INDEX_ID = 3


def default_responder(request_type, body):
    if request_type == 1 and body[0x10] == 281:
        name = body[0x20][0]
        rows = [[POLLS_ID, 1, name]] if name == "polls" else []
        return 0, {0x30: rows}
    if request_type == 1 and body[0x10] == 289:
        space_id, name = body[0x20]
        return 0, {0x30: [[space_id, CHANNEL_INDEX_ID, name]]}
    if request_type == 1:
        return 0, {0x30: [["p1", "q", "a|b", "u", "c", True]]}
    if request_type == 2:
        return 0, {0x30: [body[0x21]]}
    if request_type == 10:
        return 0, {0x30: [["p1", "q"]]}
    return 0, {0x30: []}


class FakeTarantool:
    def __init__(self, responder, greeting):
        self.server = socket.create_server(("127.0.0.1", 0))
        self.server.settimeout(5)
        self.address = "127.0.0.1:%d" % self.server.getsockname()[1]
        self.responder = responder
        self.greeting = greeting
        self.requests = []
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            conn, _ = self.server.accept()
        except OSError:
            return
        with conn:
            try:
                conn.sendall(self.greeting)
                unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
                pending = []
                while True:
                    chunk = conn.recv(4096)
                    if not chunk:
                        return
                    unpacker.feed(chunk)
                    pending.extend(unpacker)
                    while len(pending) >= 3:
                        _size, header, body = pending[:3]
                        del pending[:3]
                        self.requests.append((header[0], body))
                        status, reply_body = self.responder(header[0], body)
                        reply = msgpack.packb({0: status, 1: header[1]}) + msgpack.packb(reply_body)
                        conn.sendall(b"\xce" + len(reply).to_bytes(4, "big") + reply)
            except OSError:
                return

    def stop(self):
        self.server.close()


@pytest.fixture
def make_server():
    servers = []

    def factory(responder=default_responder, greeting=GREETING):
        server = FakeTarantool(responder, greeting)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.stop()


def test_encode_request_wire_bytes():
    assert encode_request(64, 1, {}) == b"\xce\x00\x00\x00\x06\x82\x00\x40\x01\x01\x80"


def test_decode_response_returns_data_and_sync():
    payload = msgpack.packb({0: 0, 1: 7}) + msgpack.packb({0x30: [[1, "a"]]})
    response = decode_response(payload)
    assert response.sync == 7
    assert response.data == [[1, "a"]]


def test_decode_response_error_status():
    payload = msgpack.packb({0: 0x8000 | 3, 1: 2}) + msgpack.packb({0x31: "boom"})
    with pytest.raises(TarantoolError) as info:
        decode_response(payload)
    assert info.value.code == 3
    assert str(info.value) == "boom"


def test_decode_response_truncated():
    with pytest.raises(TarantoolError):
        decode_response(b"")


def test_tarantool_error_is_storage_error():
    error = TarantoolError("x", code=5)
    with pytest.raises(StorageError) as info:
        raise error
    assert info.value is error
    assert info.value.code == 5
    assert str(info.value) == "x"


def test_insert_resolves_space_name(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        assert conn.insert("polls", ["p1", "q"]) == [["p1", "q"]]
    lookup_type, lookup_body = server.requests[0]
    assert lookup_type == 1 and lookup_body[0x10] == 281
    assert lookup_body[0x20] == ["polls"]
    insert_type, insert_body = server.requests[1]
    assert insert_type == 2
    assert insert_body[0x10] == POLLS_ID


def test_space_id_is_cached(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        conn.insert("polls", ["a"])
        conn.insert("polls", ["b"])
    assert [t for t, _ in server.requests] == [1, 2, 2]


def test_select_with_named_index(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        rows = conn.select("polls", ["c"], index="channel")
    assert rows == [["p1", "q", "a|b", "u", "c", True]]
    _, body = server.requests[-1]
    assert body[0x10] == POLLS_ID
    assert body[0x11] == CHANNEL_INDEX_ID
    assert body[0x20] == ["c"]


def test_update_sends_operations(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        conn.update(POLLS_ID, ["p1"], [("=", 5, False)])
    request_type, body = server.requests[-1]
    assert request_type == 4
    assert body[0x21] == [["=", 5, False]]
    assert body[0x20] == ["p1"]


def test_delete_sends_key(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        conn.delete(POLLS_ID, ["p1"])
    request_type, body = server.requests[-1]
    assert request_type == 5
    assert body[0x20] == ["p1"]


def test_call_sends_function_name(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        assert conn.call("box.space.polls:get", ["p1"]) == [["p1", "q"]]
    request_type, body = server.requests[-1]
    assert request_type == 10
    assert body[0x22] == "box.space.polls:get"
    assert body[0x21] == ["p1"]


def test_server_error_raises(make_server):
    server = make_server(lambda t, b: (0x8000 | 10, {0x31: "Duplicate key"}))
    with TarantoolConnection(server.address, timeout=2) as conn:
        with pytest.raises(TarantoolError) as info:
            conn.insert(POLLS_ID, ["p1"])
    assert info.value.code == 10
    assert "Duplicate key" in str(info.value)


def test_unknown_space_raises(make_server):
    server = make_server()
    with TarantoolConnection(server.address, timeout=2) as conn:
        with pytest.raises(TarantoolError, match="unknown space"):
            conn.insert("missing", ["x"])


def test_bad_greeting_raises(make_server):
    server = make_server(greeting=b"x" * 128)
    with pytest.raises(TarantoolError):
        TarantoolConnection(server.address, timeout=2)


def test_request_after_close_raises(make_server):
    server = make_server()
    conn = TarantoolConnection(server.address, timeout=2)
    conn.close()
    with pytest.raises(TarantoolError, match="closed"):
        conn.call("f")


def test_connection_refused_raises():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(TarantoolError):
        TarantoolConnection(f"127.0.0.1:{port}", timeout=1)


@pytest.mark.parametrize("address", ["localhost", "localhost:port", ":3301"])
def test_invalid_address_raises(address):
    with pytest.raises(TarantoolError):
        TarantoolConnection(address)