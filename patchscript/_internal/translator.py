"""Translate script operators into graph operations.

Each function issues its requests through the session's RPC in a fixed order
and returns a NodeRef built from the server's response.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import numbers
import weakref
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from ..errors import InvalidArgument
from . import rpc_serialization as ops
from .coercion import describe, value_to_output
from .remote_handle import NodeRef
from .rpc_protocol import expect_node, expect_none
from .rpc_serialization import NodeId, OutputSelector

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

BINARY_PROCESSORS = frozenset({"Add", "Sub", "Mul", "Div"})
UNARY_PROCESSORS = frozenset({"Neg"})


def _node_ref(session: Session, node: NodeId) -> NodeRef:
    return NodeRef(weakref.ref(session), node)


async def create_node(session: Session, op: ops.GraphOp) -> NodeId:
    return expect_node(op, await session.request(op))


async def connect(
    session: Session,
    source: NodeId,
    source_output: OutputSelector,
    target: NodeId,
    target_input: OutputSelector,
) -> None:
    op = ops.connect(source, source_output, target, target_input)
    expect_none(op, await session.request(op))


async def binary_op(session: Session, processor: str, lhs: Any, rhs: Any) -> NodeRef:
    """Create ``processor`` and wire ``lhs`` to input 0 and ``rhs`` to input 1.

    Both connects are in flight together. If either fails, the first failure
    in issue order is raised once both have settled.
    """
    if processor not in BINARY_PROCESSORS:
        raise ValueError(f"Unknown binary processor {processor!r}")
    lhs_node, lhs_output = await value_to_output(session, lhs)
    rhs_node, rhs_output = await value_to_output(session, rhs)
    target = await create_node(session, ops.add_processor(processor))

    results = await asyncio.gather(
        connect(session, lhs_node, lhs_output, target, 0),
        connect(session, rhs_node, rhs_output, target, 1),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result

    logger.debug("[patchscript][Translate] %s(%r, %r) -> node %r", processor, lhs_node, rhs_node, target)
    return _node_ref(session, target)


async def unary_op(session: Session, processor: str, operand: Any) -> NodeRef:
    if processor not in UNARY_PROCESSORS:
        raise ValueError(f"Unknown unary processor {processor!r}")
    source, source_output = await value_to_output(session, operand)
    target = await create_node(session, ops.add_processor(processor))
    await connect(session, source, source_output, target, 0)
    return _node_ref(session, target)


async def connect_inputs(session: Session, target: NodeId, args: Iterable[Any]) -> NodeRef:
    """Wire each argument to the input slot at its position, in order.

    ``None`` arguments leave their slot unconnected when the session allows
    sparse argument lists.
    """
    sparse = session.config["sparse_arguments"]
    for target_input, arg in enumerate(args):
        if arg is None and sparse:
            continue
        source, source_output = await value_to_output(session, arg)
        await connect(session, source, source_output, target, target_input)
    return _node_ref(session, target)


async def replace_node(session: Session, node: NodeRef, replacement: Any) -> NodeRef:
    replacement_node, _ = await value_to_output(session, replacement)
    op = ops.replace_node(node.id, replacement_node)
    new_id = expect_node(op, await session.request(op))
    logger.debug("[patchscript][Translate] Replaced node %r with %r (now %r)", node.id, replacement_node, new_id)
    node._rebind(new_id)
    return _node_ref(session, new_id)


def check_mix_assignment(channel: Any, producer: Any) -> int:
    """Validate a ``mixer[channel] = producer`` assignment without any I/O."""
    if isinstance(channel, bool) or not isinstance(channel, numbers.Integral):
        raise InvalidArgument(f"Mixer channel must be an integer, got {describe(channel)}")
    if channel < 0:
        raise InvalidArgument(f"Mixer channel must be non-negative, got {channel}")
    if not callable(producer):
        raise InvalidArgument(f"Mixer channel {channel} needs a callable producer, got {describe(producer)}")
    return int(channel)


async def add_to_mix(session: Session, channel: int, value: Any) -> None:
    source, source_output = await value_to_output(session, value)
    op = ops.add_to_mix(channel, source, source_output)
    expect_none(op, await session.request(op))


async def assign_mix(session: Session, channel: Any, producer: Callable[[], Any]) -> None:
    """Async form of ``mixer[channel] = producer``; awaitable producer results are awaited."""
    channel = check_mix_assignment(channel, producer)
    value = producer()
    if inspect.isawaitable(value):
        value = await value
    await add_to_mix(session, channel, value)
