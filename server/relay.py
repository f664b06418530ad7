from common.config import BUFFER_SIZE
from common.log import log
from common.messages import format_relay, strip_newline
from common.syslog import LOG_WARN


class RelayEngine:
    def __init__(self, table, server_id="server", buffer_size=BUFFER_SIZE):
        """
        table is the server's ConnectionTable. The engine never keeps a
        reference to a peer beyond a single handle_readable() call.
        """
        self.table = table
        self.server_id = server_id
        self.buffer_size = buffer_size

    def handle_readable(self, slot: int) -> int:
        """
        Read one message from the peer in slot and relay it.
        Returns how many peers it was delivered to.
        """
        peer = self.table.get(slot)
        if peer is None:
            return 0

        try:
            data = peer.sock.recv(self.buffer_size)
        except BlockingIOError:
            return 0
        except OSError as e:
            log("server", self.server_id, "READ_FAIL", level="WARN",
                slot=slot, peer=peer.addr, error=e)
            self._evict(slot, reason="read_error")
            return 0

        if not data:
            self._evict(slot, reason="closed")
            return 0

        payload = strip_newline(data)
        if not payload:
            return 0

        sender = peer.identity
        log("server", self.server_id, "MSG_RECV", peer=peer.addr, text=payload)

        if len(self.table) < 2:
            log("server", self.server_id, "MSG_DROP", level="WARN",
                peer=peer.addr, peers=len(self.table), text=payload)
            return 0

        return self.fan_out(slot, format_relay(sender, payload))

    def fan_out(self, sender_slot: int, msg: bytes) -> int:
        delivered = 0
        for target in self.table.members():
            if target.slot == sender_slot:
                continue

            try:
                sent = target.sock.send(msg)
            except OSError as e:
                # a dead recipient is reaped on its own zero read
                log("server", self.server_id, "RELAY_FAIL", level="WARN",
                    slot=target.slot, peer=target.addr, error=e)
                LOG_WARN(
                    "RELAY_FAIL",
                    server_id=self.server_id,
                    event="RELAY_FAIL",
                    slot=target.slot,
                    peer=target.addr,
                )
                continue

            if sent < len(msg):
                log("server", self.server_id, "RELAY_SHORT", level="WARN",
                    slot=target.slot, peer=target.addr, sent=sent, size=len(msg))

            delivered += 1
            log("server", self.server_id, "MSG_RELAY", slot=target.slot, peer=target.addr)

        return delivered

    def _evict(self, slot, reason):
        peer = self.table.evict(slot)
        if peer is None:
            return
        log("server", self.server_id, "PEER_EVICT", level="WARN",
            slot=slot, peer=peer.addr, peers=len(self.table), reason=reason)
        LOG_WARN(
            "PEER_EVICT",
            server_id=self.server_id,
            event="PEER_EVICT",
            slot=slot,
            peer=peer.addr,
            peers=len(self.table),
            reason=reason,
        )
