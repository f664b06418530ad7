import pytest

from server.relay import RelayEngine
from server.table import ConnectionTable


def connect_peers(table, stream_pairs, n):
    """Admit n peers; returns their client ends, index == slot."""
    clients = []
    for i in range(n):
        server_end, client_end = stream_pairs()
        table.admit(server_end, ("127.0.0.1", 50000 + i))
        clients.append(client_end)
    return clients


def nothing_pending(sock):
    sock.setblocking(False)
    try:
        sock.recv(4096)
    except BlockingIOError:
        return True
    finally:
        sock.settimeout(1.0)
    return False


class ResettingSocket:
    def __init__(self):
        self.closed = False

    def recv(self, n):
        raise ConnectionResetError("reset by peer")

    def close(self):
        self.closed = True


@pytest.fixture
def table():
    return ConnectionTable(5)


@pytest.fixture
def engine(table):
    return RelayEngine(table, server_id="test")


def test_single_peer_message_is_dropped(table, engine, stream_pairs):
    (a,) = connect_peers(table, stream_pairs, 1)
    a.sendall(b"anyone?\n")

    assert engine.handle_readable(0) == 0
    assert nothing_pending(a)
    assert len(table) == 1


def test_two_peers_message_reaches_other(table, engine, stream_pairs):
    a, b = connect_peers(table, stream_pairs, 2)
    a.sendall(b"hello\n")

    assert engine.handle_readable(0) == 1
    assert b.recv(4096) == b"127.0.0.1:50000 hello"
    assert nothing_pending(a)


def test_fan_out_skips_sender_only(table, engine, stream_pairs):
    a, b, c = connect_peers(table, stream_pairs, 3)
    a.sendall(b"hi all")

    assert engine.handle_readable(0) == 2
    assert b.recv(4096) == b"127.0.0.1:50000 hi all"
    assert c.recv(4096) == b"127.0.0.1:50000 hi all"
    assert nothing_pending(a)
    assert nothing_pending(b)
    assert nothing_pending(c)


def test_only_one_trailing_newline_is_stripped(table, engine, stream_pairs):
    a, b = connect_peers(table, stream_pairs, 2)
    b.sendall(b"two lines\n\n")

    engine.handle_readable(1)
    assert a.recv(4096) == b"127.0.0.1:50001 two lines\n"


def test_bare_newline_is_discarded_without_eviction(table, engine, stream_pairs):
    a, b = connect_peers(table, stream_pairs, 2)
    a.sendall(b"\n")

    assert engine.handle_readable(0) == 0
    assert nothing_pending(b)
    assert len(table) == 2


def test_zero_read_evicts_only_that_slot(table, engine, stream_pairs):
    a, b, c = connect_peers(table, stream_pairs, 3)
    b.close()

    assert engine.handle_readable(1) == 0
    assert table.get(1) is None
    assert [p.slot for p in table.members()] == [0, 2]
    assert nothing_pending(a)
    assert nothing_pending(c)


def test_read_error_evicts_peer(table, engine):
    sock = ResettingSocket()
    table.admit(sock, ("127.0.0.1", 1))

    engine.handle_readable(0)
    assert len(table) == 0
    assert sock.closed


def test_empty_slot_is_ignored(table, engine):
    assert engine.handle_readable(3) == 0


def test_broken_recipient_does_not_stop_fan_out(table, engine, stream_pairs):
    a, b, c = connect_peers(table, stream_pairs, 3)
    b.close()
    a.sendall(b"still here")

    assert engine.handle_readable(0) == 1
    assert c.recv(4096) == b"127.0.0.1:50000 still here"
    # the broken peer stays until its own zero read
    assert table.get(1) is not None
    engine.handle_readable(1)
    assert table.get(1) is None


def test_read_is_bounded_by_buffer_size(table, stream_pairs):
    engine = RelayEngine(table, buffer_size=4)
    a, b = connect_peers(table, stream_pairs, 2)
    a.sendall(b"abcdefgh")

    engine.handle_readable(0)
    assert b.recv(4096) == b"127.0.0.1:50000 abcd"


def test_eviction_mirrored_at_warn(table, engine, stream_pairs, monkeypatch):
    import server.relay as relay

    warned = []
    monkeypatch.setattr(relay, "LOG_WARN", lambda msg, **fields: warned.append(msg))
    (a,) = connect_peers(table, stream_pairs, 1)
    a.close()

    engine.handle_readable(0)
    assert warned == ["PEER_EVICT"]
