import sys

from client.client import Client

client = Client()
try:
    server_ip = client.discover_server(timeout=15.0)
except Exception as e:
    print(e)
    sys.exit(1)

print("Chat server at", (server_ip, client.tcp_port))
