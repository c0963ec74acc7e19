"""Public protocols for patchscript handles and transports.

These interfaces describe the capabilities the bridge relies on. They enable
structural typing, so alternative transports (or test doubles) can be used
without inheriting from concrete classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._internal.rpc_serialization import NodeId, OutputSelector
from ._internal.rpc_transports import GraphTransport, TransportReceiver

if TYPE_CHECKING:
    from ._internal.remote_handle import NodeRef, OutputRef

__all__ = ["GraphTransport", "TransportReceiver", "GraphSource", "SupportsGraphArithmetic", "SupportsOutputIndexing"]


@runtime_checkable
class GraphSource(Protocol):
    """Anything that names one output of one remote node."""

    @property
    def node(self) -> NodeId:
        """Server-assigned id of the node."""

    @property
    def selector(self) -> OutputSelector:
        """Output index or name on that node."""


@runtime_checkable
class SupportsGraphArithmetic(Protocol):
    """Handles that combine into new processor nodes."""

    async def add(self, other: Any) -> NodeRef:
        """Create an ``Add`` node fed by ``self`` and ``other``."""

    async def sub(self, other: Any) -> NodeRef:
        """Create a ``Sub`` node fed by ``self`` and ``other``."""

    async def mul(self, other: Any) -> NodeRef:
        """Create a ``Mul`` node fed by ``self`` and ``other``."""

    async def div(self, other: Any) -> NodeRef:
        """Create a ``Div`` node fed by ``self`` and ``other``."""

    async def neg(self) -> NodeRef:
        """Create a ``Neg`` node fed by ``self``."""


@runtime_checkable
class SupportsOutputIndexing(Protocol):
    """Handles whose outputs can be selected by index or name."""

    def __getitem__(self, key: Any) -> OutputRef:
        """Return a reference to one output; never contacts the server."""
