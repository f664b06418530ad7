import socket
from common.config import BROADCAST_ADDR, DISCOVERY_PORT
from common.log import log
from common.messages import BEACON
from common.syslog import LOG_INFO, LOG_WARN


class DiscoveryAnnouncer:
    """
    Fire-and-forget UDP beacon on DISCOVERY_PORT.
    - tx only: the server never listens on the discovery port
    - announce() is called by the event loop when select() times out
    """
    def __init__(self, server_id="server", port=DISCOVERY_PORT, broadcast_addr=BROADCAST_ADDR, beacon=BEACON):
        self.server_id = server_id
        self.target = (broadcast_addr, port)
        self.beacon = beacon
        self.sent = 0

        self.tx = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.tx.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

        log("server", self.server_id, "DISCOVERY_START", target=self.target)
        LOG_INFO(
            "DISCOVERY_START",
            server_id=self.server_id,
            event="DISCOVERY_START",
            addr=f"{broadcast_addr}:{port}",
        )

    def announce(self) -> bool:
        try:
            self.tx.sendto(self.beacon, self.target)
        except OSError as e:
            # discovery is advisory; chat keeps working without it
            log("server", self.server_id, "BEACON_FAIL", level="WARN", target=self.target, error=e)
            LOG_WARN(
                "BEACON_FAIL",
                server_id=self.server_id,
                event="BEACON_FAIL",
                addr=f"{self.target[0]}:{self.target[1]}",
            )
            return False

        self.sent += 1
        return True

    def close(self):
        try:
            self.tx.close()
        except OSError:
            pass
