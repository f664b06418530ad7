from common.messages import addr_str, format_relay, is_beacon, parse_relay, strip_newline


def test_strip_newline_removes_one():
    assert strip_newline(b"hi\n") == b"hi"
    assert strip_newline(b"hi\n\n") == b"hi\n"
    assert strip_newline(b"hi") == b"hi"
    assert strip_newline(b"\n") == b""


def test_format_relay_wire_shape():
    assert format_relay("192.168.1.4:53122", b"hello") == b"192.168.1.4:53122 hello"


def test_parse_relay_splits_at_first_space():
    assert parse_relay(b"10.0.0.2:4000 hi there") == ("10.0.0.2:4000", "hi there")


def test_parse_relay_without_sender_is_notice():
    assert parse_relay(b"Server") == (None, "Server")


def test_beacon_is_exact():
    assert is_beacon(b"CHAT_SERVER_HERE")
    assert not is_beacon(b"CHAT_SERVER_HERE\n")
    assert not is_beacon(b"chat_server_here")


def test_addr_str():
    assert addr_str(("127.0.0.1", 8888)) == "127.0.0.1:8888"
