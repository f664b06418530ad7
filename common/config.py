import os

TCP_PORT = 8888
DISCOVERY_PORT = 8889
LISTEN_HOST = "0.0.0.0"
BROADCAST_ADDR = "255.255.255.255"

MAX_CLIENTS = 5
BUFFER_SIZE = 1024

# select() timeout; an idle wait of this length fires one beacon
DISCOVERY_INTERVAL = 5.0
DISCOVERY_MSG = "CHAT_SERVER_HERE"

SERVER_FULL_MSG = "Server is full. Try again later.\n"

# Syslog mirror (off unless SYSLOG_ENABLED=1)
SYSLOG_ENABLED = os.getenv("SYSLOG_ENABLED") == "1"
SYSLOG_HOST = os.getenv("SYSLOG_HOST", "127.0.0.1")
SYSLOG_PORT = int(os.getenv("SYSLOG_PORT", "5514"))
SYSLOG_FACILITY = int(os.getenv("SYSLOG_FACILITY", "1"))
