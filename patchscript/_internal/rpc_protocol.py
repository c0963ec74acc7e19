"""
RPC Protocol & Core Logic.

This module contains:
- GraphRPC (request/response correlation over a datagram transport)
- Response checking helpers (expect_node, expect_none)
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid

from ..errors import RemoteOperationFailure, TransportFailure
from .rpc_serialization import (
    GraphOp,
    GraphOpResponse,
    NodeId,
    RPCPendingRequest,
    decode_response,
    encode_request,
)
from .rpc_transports import GraphTransport

logger = logging.getLogger(__name__)


class GraphRPC:
    """Correlates graph operation requests with their responses.

    Every request gets a fresh integer id; the response carrying that id
    resolves the matching future regardless of arrival order. All methods run
    on the event loop thread that owns the transport.
    """

    def __init__(self, transport: GraphTransport, *, request_timeout: float | None = None) -> None:
        self.id = str(uuid.uuid4())
        self._transport = transport
        self._request_timeout = request_timeout
        self._ids = itertools.count()
        self.pending: dict[int, RPCPendingRequest] = {}
        self._stopping = False
        self._lost: TransportFailure | None = None
        transport.attach(self)

    @property
    def transport(self) -> GraphTransport:
        return self._transport

    async def request(self, op: GraphOp) -> GraphOpResponse:
        """Send ``op`` and wait for its response.

        Raises:
            TransportFailure: The transport is closed, lost, the send failed,
                or ``request_timeout`` elapsed.
            RemoteOperationFailure: The server answered with an error.
        """
        if self._lost is not None:
            raise self._lost
        if self._stopping:
            raise TransportFailure(f"RPC {self.id} is shut down")

        loop = asyncio.get_running_loop()
        call_id = next(self._ids)
        future: asyncio.Future[GraphOpResponse] = loop.create_future()
        self.pending[call_id] = RPCPendingRequest(call_id=call_id, op=op, future=future)

        try:
            self._transport.send(encode_request(call_id, op))
        except Exception as exc:
            self.pending.pop(call_id, None)
            logger.error("[patchscript][RPC] Send failed for %s (call_id=%s): %s", op["op"], call_id, exc)
            if isinstance(exc, TransportFailure):
                raise
            raise TransportFailure(f"Send failed for {op['op']}: {exc}") from exc

        if self._request_timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, self._request_timeout)
        except asyncio.TimeoutError as e:
            self.pending.pop(call_id, None)
            raise TransportFailure(
                f"No response to {op['op']} (call_id={call_id}) within {self._request_timeout}s"
            ) from e

    # TransportReceiver ------------------------------------------------------

    def message_received(self, data: bytes) -> None:
        try:
            item = decode_response(data)
        except ValueError as exc:
            logger.error("[patchscript][RPC] Dropping undecodable datagram (%d bytes): %s", len(data), exc)
            return

        pending_request = self.pending.pop(item["id"], None)
        if pending_request is None:
            logger.warning("[patchscript][RPC] Dropping response for unknown call_id=%s", item["id"])
            return

        future = pending_request["future"]
        if future.done():
            return
        if item["error"] is not None:
            future.set_exception(RemoteOperationFailure(pending_request["op"], item["error"]))
        else:
            assert item["response"] is not None
            future.set_result(item["response"])

    def transport_lost(self, exc: Exception | None) -> None:
        if self._stopping:
            logger.debug(f"RPC {self.id} shutting down ({exc})")
        else:
            logger.error(f"RPC transport lost (rpc_id={self.id}): {exc}")
        self._lost = TransportFailure(f"Transport lost: {exc}" if exc else "Transport closed")
        self._fail_pending(self._lost)

    # Lifecycle --------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop accepting requests, fail in-flight ones and close the transport."""
        if self._stopping:
            return
        self._stopping = True
        self._fail_pending(TransportFailure(f"RPC {self.id} shut down with the request in flight"))
        self._transport.close()

    def _fail_pending(self, error: TransportFailure) -> None:
        pending, self.pending = self.pending, {}
        for pending_request in pending.values():
            future = pending_request["future"]
            if not future.done():
                future.set_exception(error)


def expect_node(op: GraphOp, response: GraphOpResponse) -> NodeId:
    """Return the node id from a node-creating op's response."""
    if response["kind"] != "node" or response["node"] is None:
        raise RemoteOperationFailure(op, f"expected a node id, got {response['kind']!r} response")
    return response["node"]


def expect_none(op: GraphOp, response: GraphOpResponse) -> None:
    if response["kind"] != "none":
        raise RemoteOperationFailure(op, f"expected an empty response, got {response!r}")
