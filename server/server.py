import select
import socket
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from common.config import (
    BROADCAST_ADDR,
    BUFFER_SIZE,
    DISCOVERY_INTERVAL,
    DISCOVERY_PORT,
    LISTEN_HOST,
    MAX_CLIENTS,
    SERVER_FULL_MSG,
    TCP_PORT,
)
from common.log import log
from common.syslog import LOG_ERROR, LOG_INFO, LOG_WARN
from server.broadcast import DiscoveryAnnouncer
from server.relay import RelayEngine
from server.table import ConnectionTable, ServerFull


class EventKind(Enum):
    ACCEPT = "ACCEPT"
    READABLE = "READABLE"
    TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    slot: Optional[int] = None


class Server:
    def __init__(
        self,
        server_id="server",
        host=LISTEN_HOST,
        tcp_port=TCP_PORT,
        discovery_port=DISCOVERY_PORT,
        broadcast_addr=BROADCAST_ADDR,
        capacity=MAX_CLIENTS,
        interval=DISCOVERY_INTERVAL,
        buffer_size=BUFFER_SIZE,
    ):
        self.server_id = server_id
        self.interval = interval
        self.running = False
        self.closed = False
        self.next_beacon = time.monotonic() + interval

        self.table = ConnectionTable(capacity)
        self.relay = RelayEngine(self.table, server_id=server_id, buffer_size=buffer_size)

        # setup errors propagate: nothing to serve without a listener
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.sock.bind((host, tcp_port))
            self.sock.listen(capacity)
            self.announcer = DiscoveryAnnouncer(
                server_id=server_id,
                port=discovery_port,
                broadcast_addr=broadcast_addr,
            )
        except OSError:
            self.sock.close()
            raise

        self.address = self.sock.getsockname()

        log("server", self.server_id, "SERVER_START", level="OK",
            addr=self.address, capacity=capacity, interval=interval)
        LOG_INFO(
            "SERVER_START",
            server_id=self.server_id,
            event="SERVER_START",
            addr=f"{self.address[0]}:{self.address[1]}",
        )

    # ---------------- readiness wait ----------------

    def poll(self, timeout=None) -> List[Event]:
        """
        One select() over the listener and every occupied slot.
        ACCEPT comes first, then READABLE in slot order. A wait that ends
        with nothing ready yields a single TIMEOUT; so does a busy wait
        that returns after the beacon deadline has passed.
        """
        if timeout is None:
            timeout = max(0.0, self.next_beacon - time.monotonic())

        peers = self.table.members()
        watched = [self.sock] + [p.sock for p in peers]

        try:
            readable, _, _ = select.select(watched, [], [], timeout)
        except InterruptedError as e:
            log("server", self.server_id, "POLL_INTERRUPTED", level="WARN", error=e)
            return []
        except OSError as e:
            log("server", self.server_id, "POLL_FAIL", level="ERROR", error=e)
            LOG_ERROR("POLL_FAIL", server_id=self.server_id, event="POLL_FAIL", error=e)
            return []

        if not readable:
            return [Event(EventKind.TIMEOUT)]

        ready = set(readable)
        events = []
        if self.sock in ready:
            events.append(Event(EventKind.ACCEPT))
        for p in peers:
            if p.sock in ready:
                events.append(Event(EventKind.READABLE, p.slot))
        if time.monotonic() >= self.next_beacon:
            events.append(Event(EventKind.TIMEOUT))
        return events

    # ---------------- handlers ----------------

    def dispatch(self, event: Event):
        if event.kind is EventKind.ACCEPT:
            self.on_accept()
        elif event.kind is EventKind.READABLE:
            self.relay.handle_readable(event.slot)
        elif event.kind is EventKind.TIMEOUT:
            self.announce()

    def on_accept(self):
        try:
            conn, addr = self.sock.accept()
        except OSError as e:
            log("server", self.server_id, "ACCEPT_FAIL", level="WARN", error=e)
            return

        log("server", self.server_id, "PEER_CONNECT", peer=addr)

        try:
            peer = self.table.admit(conn, addr)
        except ServerFull:
            self.reject(conn, addr)
            return

        conn.setblocking(False)
        log("server", self.server_id, "PEER_ADMIT", level="OK",
            slot=peer.slot, peer=addr, peers=len(self.table))
        LOG_INFO(
            "PEER_ADMIT",
            server_id=self.server_id,
            event="PEER_ADMIT",
            slot=peer.slot,
            peer=addr,
            peers=len(self.table),
        )

    def announce(self):
        self.next_beacon = time.monotonic() + self.interval
        return self.announcer.announce()

    def reject(self, conn, addr):
        log("server", self.server_id, "PEER_REJECT", level="WARN",
            peer=addr, peers=len(self.table))
        LOG_WARN("PEER_REJECT", server_id=self.server_id, event="PEER_REJECT", peer=addr)
        try:
            conn.sendall(SERVER_FULL_MSG.encode("ascii"))
        except OSError:
            pass
        finally:
            conn.close()

    # ---------------- lifecycle ----------------

    def run_once(self, timeout=None) -> List[Event]:
        events = self.poll(timeout)
        for event in events:
            self.dispatch(event)
        return events

    def run(self):
        self.running = True
        log("server", self.server_id, "SERVER_READY", level="OK", addr=self.address)
        while self.running:
            self.run_once()

    def shutdown(self):
        self.running = False
        if self.closed:
            return
        self.closed = True

        self.table.close_all()
        self.announcer.close()
        try:
            self.sock.close()
        except OSError:
            pass

        log("server", self.server_id, "SERVER_STOP", level="WARN")
        LOG_INFO("SERVER_STOP", server_id=self.server_id, event="SERVER_STOP")


def main(argv):
    if len(argv) > 3:
        print("Usage: python -m server.server [TCP_PORT [DISCOVERY_PORT]]")
        sys.exit(1)

    try:
        tcp_port = int(argv[1]) if len(argv) > 1 else TCP_PORT
        discovery_port = int(argv[2]) if len(argv) > 2 else DISCOVERY_PORT
    except ValueError:
        print("Usage: python -m server.server [TCP_PORT [DISCOVERY_PORT]]")
        sys.exit(1)

    try:
        server = Server(tcp_port=tcp_port, discovery_port=discovery_port)
    except OSError as e:
        log("server", "server", "SETUP_FAIL", level="ERROR", port=tcp_port, error=e)
        sys.exit(1)

    try:
        server.run()
    except KeyboardInterrupt:
        pass
    finally:
        server.shutdown()


if __name__ == "__main__":
    main(sys.argv)
