"""Turn dynamic script values into graph connection sources."""

from __future__ import annotations

import enum
import logging
import numbers
from typing import TYPE_CHECKING, Any

from ..errors import InvalidArgument
from . import rpc_serialization as ops
from .remote_handle import NodeRef, OutputRef
from .rpc_protocol import expect_node
from .rpc_serialization import NodeId, OutputSelector

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class ValueKind(enum.Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    NODE = "node"
    OUTPUT = "output"
    NOTHING = "nothing"
    UNSUPPORTED = "unsupported"


def classify(value: Any) -> ValueKind:
    # bool before NUMBER: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, numbers.Real):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, NodeRef):
        return ValueKind.NODE
    if isinstance(value, OutputRef):
        return ValueKind.OUTPUT
    if value is None:
        return ValueKind.NOTHING
    return ValueKind.UNSUPPORTED


def describe(value: Any) -> str:
    kind = classify(value)
    if kind is ValueKind.UNSUPPORTED:
        return f"{type(value).__name__} ({value!r})"
    return kind.value


async def value_to_output(session: Session, value: Any) -> tuple[NodeId, OutputSelector]:
    """Resolve ``value`` to a ``(node, output)`` pair usable as a connection source.

    Literals create a new constant node on every call; handles resolve
    locally without a round trip.

    Raises:
        InvalidArgument: ``value`` has no graph representation.
        StaleHandle: ``value`` is a handle whose session is gone.
    """
    kind = classify(value)

    if kind is ValueKind.NODE or kind is ValueKind.OUTPUT:
        if value.session is not session:
            raise InvalidArgument(f"{value!r} belongs to a different session")
        return value.node, value.selector

    if kind is ValueKind.NUMBER:
        try:
            op: ops.AddConstantOp = ops.add_constant_f32(value)
        except OverflowError as e:
            raise InvalidArgument("Number is out of range for a 32-bit constant") from e
    elif kind is ValueKind.BOOLEAN and session.config["typed_constants"]:
        op = ops.add_constant_bool(value)
    elif kind is ValueKind.STRING and session.config["typed_constants"]:
        op = ops.add_constant_string(value)
    else:
        raise InvalidArgument(f"Cannot use {describe(value)} as a signal source")

    node = expect_node(op, await session.request(op))
    logger.debug("[patchscript][Coerce] %s constant %r -> node %r", kind.value, op["value"], node)
    return node, 0
