"""Client-side handles to nodes living in the remote graph.

NodeRef and OutputRef are lightweight references: a server-assigned node id,
an output selector for OutputRef, and a weak reference to the owning Session.
They never keep a Session alive; once it is gone or closed every operation
through the handle raises StaleHandle before touching the transport.

Operator syntax (``a + b``, ``-a``, ``node.replace(x)``) blocks the calling
script thread until the graph operations complete. The coroutine methods
(``await a.add(b)``) are the same operations for async callers.
"""
from __future__ import annotations

import numbers
import weakref
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from ..errors import InvalidIndex, StaleHandle
from .rpc_serialization import NodeId, OutputSelector

if TYPE_CHECKING:
    from ..session import Session

T = TypeVar("T")


class _GraphHandle:
    def __init__(self, session_ref: weakref.ReferenceType[Session], node: NodeId) -> None:
        self._session_ref = session_ref
        self._node = node

    @property
    def node(self) -> NodeId:
        return self._node

    @property
    def selector(self) -> OutputSelector:
        return 0

    @property
    def session(self) -> Session:
        """The owning session.

        Raises:
            StaleHandle: The session was garbage collected or closed.
        """
        session = self._session_ref()
        if session is None:
            raise StaleHandle(f"{self!r} outlived its session")
        if session.closed:
            raise StaleHandle(f"{self!r} belongs to a closed session")
        return session

    def _blocking(self, operation: Callable[[Session], Awaitable[T]]) -> T:
        session = self.session
        return session.runtime.call(operation(session))

    # Arithmetic, async ------------------------------------------------------

    async def add(self, other: Any) -> NodeRef:
        from .translator import binary_op
        return await binary_op(self.session, "Add", self, other)

    async def sub(self, other: Any) -> NodeRef:
        from .translator import binary_op
        return await binary_op(self.session, "Sub", self, other)

    async def mul(self, other: Any) -> NodeRef:
        from .translator import binary_op
        return await binary_op(self.session, "Mul", self, other)

    async def div(self, other: Any) -> NodeRef:
        from .translator import binary_op
        return await binary_op(self.session, "Div", self, other)

    async def neg(self) -> NodeRef:
        from .translator import unary_op
        return await unary_op(self.session, "Neg", self)

    # Arithmetic, script operators -------------------------------------------

    def _binary(self, processor: str, lhs: Any, rhs: Any) -> NodeRef:
        from .translator import binary_op
        return self._blocking(lambda session: binary_op(session, processor, lhs, rhs))

    def __add__(self, other: Any) -> NodeRef:
        return self._binary("Add", self, other)

    def __radd__(self, other: Any) -> NodeRef:
        return self._binary("Add", other, self)

    def __sub__(self, other: Any) -> NodeRef:
        return self._binary("Sub", self, other)

    def __rsub__(self, other: Any) -> NodeRef:
        return self._binary("Sub", other, self)

    def __mul__(self, other: Any) -> NodeRef:
        return self._binary("Mul", self, other)

    def __rmul__(self, other: Any) -> NodeRef:
        return self._binary("Mul", other, self)

    def __truediv__(self, other: Any) -> NodeRef:
        return self._binary("Div", self, other)

    def __rtruediv__(self, other: Any) -> NodeRef:
        return self._binary("Div", other, self)

    def __neg__(self) -> NodeRef:
        from .translator import unary_op
        return self._blocking(lambda session: unary_op(session, "Neg", self))

    # Indexing selects outputs; a handle is not a sequence.
    __iter__ = None


class NodeRef(_GraphHandle):
    """Handle to a node created on the remote graph."""

    @property
    def id(self) -> NodeId:
        return self._node

    def __getitem__(self, key: Any) -> OutputRef:
        """Select an output by position (``node[0]``) or by name (``node["out"]``)."""
        if isinstance(key, bool):
            raise InvalidIndex(f"Cannot index a node with a boolean ({key!r})")
        if isinstance(key, numbers.Integral):
            if key < 0:
                raise InvalidIndex(f"Output index must be non-negative, got {key}")
            return OutputRef(self._session_ref, self._node, int(key))
        if isinstance(key, str):
            return OutputRef(self._session_ref, self._node, key)
        raise InvalidIndex(f"Cannot index a node with {type(key).__name__} ({key!r})")

    async def replace_node(self, replacement: Any) -> NodeRef:
        from .translator import replace_node
        return await replace_node(self.session, self, replacement)

    def replace(self, replacement: Any) -> NodeRef:
        """Swap this node for ``replacement`` in the remote graph.

        The handle is updated in place to the id the server assigned, so script
        variables holding it keep working. Output references taken from it
        earlier still point at the old id.
        """
        from .translator import replace_node
        return self._blocking(lambda session: replace_node(session, self, replacement))

    def _rebind(self, node: NodeId) -> None:
        self._node = node

    def __repr__(self) -> str:
        return f"<NodeRef id={self._node!r}>"


class OutputRef(_GraphHandle):
    """Handle to one output slot of a remote node."""

    def __init__(
        self, session_ref: weakref.ReferenceType[Session], node: NodeId, selector: OutputSelector
    ) -> None:
        super().__init__(session_ref, node)
        self._selector = selector

    @property
    def selector(self) -> OutputSelector:
        return self._selector

    def __repr__(self) -> str:
        return f"<OutputRef node={self._node!r} output={self._selector!r}>"
