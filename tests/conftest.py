import socket

import pytest


@pytest.fixture
def stream_pairs():
    """
    Factory for connected (server_end, client_end) stream pairs.
    Server ends are handed to the table; client ends play the peer.
    """
    made = []

    def make():
        server_end, client_end = socket.socketpair()
        client_end.settimeout(1.0)
        made.append((server_end, client_end))
        return server_end, client_end

    yield make

    for a, b in made:
        a.close()
        b.close()
