"""
Graph operation vocabulary & wire codec.

This module contains:
1. Data Structures: graph operation TypedDicts, request/response envelopes
2. Operation constructors (add_processor, connect, ...)
3. Serialization Functions: encode_request, decode_response (the client half of the codec)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Literal, TypedDict, Union

import numpy as np

logger = logging.getLogger(__name__)

NodeId = Union[int, str]
OutputSelector = Union[int, str]

# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


class WireIndex(TypedDict):
    Index: int


class WireName(TypedDict):
    Name: str


WireSelector = Union[WireIndex, WireName]


class AddConstantOp(TypedDict):
    op: Literal["AddConstantF32", "AddConstantBool", "AddConstantString"]
    value: float | bool | str


class AddProcessorOp(TypedDict):
    op: Literal["AddProcessor"]
    name: str


class AddDacOp(TypedDict):
    op: Literal["AddDac"]


class ConnectOp(TypedDict):
    op: Literal["Connect"]
    source: NodeId
    source_output: WireSelector
    target: NodeId
    target_input: WireSelector


class ReplaceNodeOp(TypedDict):
    op: Literal["ReplaceNode"]
    target: NodeId
    replacement: NodeId


class AddToMixOp(TypedDict):
    op: Literal["AddToMix"]
    channel: int
    source: NodeId
    source_output: WireSelector


class TransportControlOp(TypedDict):
    op: Literal["Play", "Stop"]


GraphOp = Union[
    AddConstantOp, AddProcessorOp, AddDacOp, ConnectOp, ReplaceNodeOp, AddToMixOp, TransportControlOp
]


class GraphOpResponse(TypedDict):
    kind: Literal["node", "none"]
    node: NodeId | None


class RPCRequest(TypedDict):
    id: int
    op: GraphOp


class RPCResponse(TypedDict):
    id: int
    response: GraphOpResponse | None
    error: str | None


class RPCPendingRequest(TypedDict):
    call_id: int
    op: GraphOp
    future: asyncio.Future[GraphOpResponse]


# ---------------------------------------------------------------------------
# Globals / Debug Logic
# ---------------------------------------------------------------------------

# Verbose per-message logging (set via PATCHSCRIPT_DEBUG_RPC=1)
debug_all_messages = bool(os.environ.get("PATCHSCRIPT_DEBUG_RPC"))


def debugprint(*args: Any) -> None:
    if debug_all_messages:
        logger.debug(" ".join(str(arg) for arg in args))


# ---------------------------------------------------------------------------
# Operation constructors
# ---------------------------------------------------------------------------


def selector_to_wire(selector: OutputSelector) -> WireSelector:
    if isinstance(selector, str):
        return WireName(Name=selector)
    return WireIndex(Index=int(selector))


def to_f32(value: Any) -> float:
    """Round a real number to the nearest 32-bit float."""
    return float(np.float32(value))


def add_constant_f32(value: Any) -> AddConstantOp:
    return AddConstantOp(op="AddConstantF32", value=to_f32(value))


def add_constant_bool(value: bool) -> AddConstantOp:
    return AddConstantOp(op="AddConstantBool", value=bool(value))


def add_constant_string(value: str) -> AddConstantOp:
    return AddConstantOp(op="AddConstantString", value=str(value))


def add_processor(name: str) -> AddProcessorOp:
    return AddProcessorOp(op="AddProcessor", name=name)


def add_dac() -> AddDacOp:
    return AddDacOp(op="AddDac")


def connect(
    source: NodeId, source_output: OutputSelector, target: NodeId, target_input: OutputSelector
) -> ConnectOp:
    return ConnectOp(
        op="Connect",
        source=source,
        source_output=selector_to_wire(source_output),
        target=target,
        target_input=selector_to_wire(target_input),
    )


def replace_node(target: NodeId, replacement: NodeId) -> ReplaceNodeOp:
    return ReplaceNodeOp(op="ReplaceNode", target=target, replacement=replacement)


def add_to_mix(channel: int, source: NodeId, source_output: OutputSelector) -> AddToMixOp:
    return AddToMixOp(op="AddToMix", channel=channel, source=source, source_output=selector_to_wire(source_output))


def play() -> TransportControlOp:
    return TransportControlOp(op="Play")


def stop() -> TransportControlOp:
    return TransportControlOp(op="Stop")


# ---------------------------------------------------------------------------
# Serialization Functions
# ---------------------------------------------------------------------------


def encode_request(call_id: int, op: GraphOp) -> bytes:
    request = RPCRequest(id=call_id, op=op)
    debugprint("[patchscript][Wire] ->", request)
    return json.dumps(request, separators=(",", ":")).encode("utf-8")


def decode_response(data: bytes) -> RPCResponse:
    """Decode a response datagram.

    Raises:
        ValueError: If the payload is not a well-formed response envelope.
    """
    message = json.loads(data.decode("utf-8"))
    debugprint("[patchscript][Wire] <-", message)
    if not isinstance(message, dict) or not isinstance(message.get("id"), int):
        raise ValueError(f"Response without a correlation id: {message!r}")

    error = message.get("error")
    if error is not None:
        return RPCResponse(id=message["id"], response=None, error=str(error))

    response = message.get("response")
    if not isinstance(response, dict) or response.get("kind") not in ("node", "none"):
        raise ValueError(f"Malformed response body: {response!r}")
    node = response.get("node")
    if response["kind"] == "node" and (node is None or isinstance(node, (bool, float, dict, list))):
        raise ValueError(f"Node response without a usable node id: {response!r}")
    return RPCResponse(
        id=message["id"],
        response=GraphOpResponse(kind=response["kind"], node=node if response["kind"] == "node" else None),
        error=None,
    )
