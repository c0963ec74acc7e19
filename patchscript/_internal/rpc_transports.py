"""
RPC Transport Layer.

This module contains:
- TransportReceiver Protocol (the side that consumes datagrams)
- GraphTransport Protocol
- DatagramTransport (asyncio UDP socket bound to one remote peer)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Protocol, runtime_checkable

from ..config import parse_address
from ..errors import TransportFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class TransportReceiver(Protocol):
    """Consumer of inbound datagrams, attached to a transport."""

    def message_received(self, data: bytes) -> None:
        """Handle one inbound datagram."""
        ...

    def transport_lost(self, exc: Exception | None) -> None:
        """Called once when the transport can no longer deliver messages."""
        ...


@runtime_checkable
class GraphTransport(Protocol):
    """Protocol for datagram transports to a single remote graph server.

    All methods are called from the event loop thread.
    """

    def attach(self, receiver: TransportReceiver) -> None:
        """Route inbound datagrams to ``receiver``."""
        ...

    def send(self, payload: bytes) -> None:
        """Send one datagram to the remote endpoint. Must not block."""
        ...

    def close(self) -> None:
        """Close the transport. Further sends fail."""
        ...


class _GraphDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: DatagramTransport) -> None:
        self._owner = owner

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        receiver = self._owner._receiver
        if receiver is None:
            logger.warning("[patchscript][UDP] Dropping %d bytes from %s: no receiver attached", len(data), addr)
            return
        receiver.message_received(data)

    def error_received(self, exc: Exception) -> None:
        # ICMP errors (e.g. port unreachable) are reported per datagram; the
        # request that caused them still waits for its own response.
        logger.warning("[patchscript][UDP] Socket error from %s: %s", self._owner.remote_addr, exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self._owner._closed = True
        receiver = self._owner._receiver
        if receiver is not None:
            receiver.transport_lost(exc)


class DatagramTransport:
    """UDP transport bound to a local address and connected to one remote peer."""

    def __init__(self) -> None:
        self._transport: asyncio.DatagramTransport | None = None
        self._receiver: TransportReceiver | None = None
        self._closed = False
        self.local_addr: tuple[str, int] | None = None
        self.remote_addr: tuple[str, int] | None = None

    @classmethod
    async def bind(cls, local_addr: str, remote_addr: str) -> DatagramTransport:
        """Bind ``local_addr`` and connect the socket to ``remote_addr``.

        Raises:
            TransportFailure: If the socket cannot be bound or connected.
        """
        self = cls()
        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _GraphDatagramProtocol(self),
                local_addr=parse_address(local_addr),
                remote_addr=parse_address(remote_addr),
            )
        except OSError as e:
            raise TransportFailure(f"Cannot bind {local_addr} -> {remote_addr}: {e}") from e

        self._transport = transport
        sockname = transport.get_extra_info("sockname")
        peername = transport.get_extra_info("peername")
        self.local_addr = (sockname[0], sockname[1]) if sockname else None
        self.remote_addr = (peername[0], peername[1]) if peername else None
        logger.info("[patchscript][UDP] Bound %s -> %s", self.local_addr, self.remote_addr)
        return self

    def attach(self, receiver: TransportReceiver) -> None:
        self._receiver = receiver

    def send(self, payload: bytes) -> None:
        if self._transport is None or self._closed:
            raise TransportFailure("Datagram transport is closed")
        try:
            self._transport.sendto(payload)
        except OSError as e:
            raise TransportFailure(f"Send to {self.remote_addr} failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._transport is not None:
            with contextlib.suppress(Exception):
                self._transport.close()

    @property
    def closed(self) -> bool:
        return self._closed
