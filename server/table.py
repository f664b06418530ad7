"""
server.table

Bounded registry of connected chat peers.

- Fixed number of slots, each empty or holding one PeerConnection
- New peers take the lowest free slot index
- A slot is only reused after evict()
- Slot order is the iteration order for select() membership and fan-out
"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import List, Optional, Tuple

from common.config import MAX_CLIENTS
from common.messages import addr_str


class ServerFull(Exception):
    """Raised by admit() when every slot is taken."""


@dataclass
class PeerConnection:
    slot: int
    sock: socket.socket
    addr: Tuple[str, int]

    @property
    def identity(self) -> str:
        return addr_str(self.addr)


class ConnectionTable:
    def __init__(self, capacity: int = MAX_CLIENTS):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._slots: List[Optional[PeerConnection]] = [None] * capacity
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def is_full(self) -> bool:
        return self._count >= self.capacity

    def lowest_free_slot(self) -> Optional[int]:
        for i, peer in enumerate(self._slots):
            if peer is None:
                return i
        return None

    def get(self, slot: int) -> Optional[PeerConnection]:
        if 0 <= slot < self.capacity:
            return self._slots[slot]
        return None

    def slot_of(self, sock: socket.socket) -> Optional[int]:
        for peer in self.members():
            if peer.sock is sock:
                return peer.slot
        return None

    def admit(self, sock: socket.socket, addr: Tuple[str, int]) -> PeerConnection:
        """
        Register a freshly accepted stream in the lowest free slot.
        Raises ServerFull when no slot is free; the caller still owns the
        socket in that case and must notify and close it.
        """
        if self.slot_of(sock) is not None:
            raise ValueError(f"stream for {addr_str(addr)} is already registered")

        if self.is_full():
            raise ServerFull(f"all {self.capacity} slots in use")

        slot = self.lowest_free_slot()
        peer = PeerConnection(slot=slot, sock=sock, addr=addr)
        self._slots[slot] = peer
        self._count += 1
        return peer

    def evict(self, slot: int) -> Optional[PeerConnection]:
        """Close and drop the peer in slot. Empty slots are a no-op."""
        peer = self.get(slot)
        if peer is None:
            return None

        self._slots[slot] = None
        self._count -= 1
        try:
            peer.sock.close()
        except OSError:
            pass
        return peer

    def members(self) -> List[PeerConnection]:
        return [peer for peer in self._slots if peer is not None]

    def close_all(self):
        for peer in self.members():
            self.evict(peer.slot)
