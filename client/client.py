import select
import socket
import sys

from common.config import BUFFER_SIZE, DISCOVERY_PORT, TCP_PORT
from common.messages import addr_str, is_beacon, parse_relay, strip_newline


class Client:
    def __init__(self, tcp_port=TCP_PORT, discovery_port=DISCOVERY_PORT):
        self.tcp_port = tcp_port
        self.discovery_port = discovery_port
        self.sock = None

    def start(self):
        print("Searching for chat server on the local network...")
        server_ip = self.discover_server()
        print(f"Server found at {server_ip}. Connecting to chat...")

        self.connect(server_ip)
        print("Connected successfully! You can start typing now.")

        try:
            self.chat_loop()
        finally:
            self.sock.close()

    def open_discovery_socket(self, port=None):
        if port is None:
            port = self.discovery_port

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass
        sock.bind(("0.0.0.0", port))
        return sock

    def wait_for_beacon(self, sock, timeout=None):
        """Block until a datagram arrives; return the beacon sender's IP."""
        sock.settimeout(timeout)
        try:
            data, addr = sock.recvfrom(BUFFER_SIZE)
        except socket.timeout:
            raise Exception("No chat server found")

        if not is_beacon(data):
            raise Exception(f"Received unknown broadcast from {addr_str(addr)}")
        return addr[0]

    def discover_server(self, timeout=None):
        sock = self.open_discovery_socket()
        try:
            return self.wait_for_beacon(sock, timeout)
        finally:
            sock.close()

    def connect(self, server_ip):
        self.sock = socket.create_connection((server_ip, self.tcp_port))
        return self.sock

    def send_line(self, line: str) -> bool:
        data = strip_newline(line.encode("utf-8"))
        if not data:
            return False
        self.sock.sendall(data[:BUFFER_SIZE])
        return True

    def render(self, data: bytes) -> str:
        sender, text = parse_relay(data)
        if sender is None:
            return f"Server broadcast: {text}"
        return f'Client: Received Message "{text}" from <{sender}>'

    def chat_loop(self):
        while True:
            readable, _, _ = select.select([sys.stdin, self.sock], [], [])

            if sys.stdin in readable:
                line = sys.stdin.readline()
                if not line:
                    return
                if self.send_line(line):
                    me = addr_str(self.sock.getsockname())
                    text = line.rstrip("\n")
                    print(f'Client <{me}>: Message "{text}" sent to server')

            if self.sock in readable:
                data = self.sock.recv(BUFFER_SIZE)
                if not data:
                    print("Server disconnected.")
                    return
                print(self.render(data))


if __name__ == "__main__":
    if len(sys.argv) > 1:
        print("Usage: python -m client.client")
        sys.exit(1)

    client = Client()
    try:
        client.start()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Client error: {e}")
        sys.exit(1)
