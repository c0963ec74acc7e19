"""Exception hierarchy raised by the bridge.

Every error surfaces synchronously at the script expression that caused it.
Nothing here is retried or swallowed by the bridge itself.
"""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for all patchscript errors."""


class TransportFailure(BridgeError):
    """Bind, send or receive failed, or the transport went away.

    Fatal to the script evaluation that observed it.
    """


class RemoteOperationFailure(BridgeError):
    """The remote graph server rejected an operation."""

    def __init__(self, op: Any, message: str) -> None:
        self.op = op
        self.message = message
        name = op.get("op", "<unknown>") if isinstance(op, dict) else op
        super().__init__(f"Remote operation {name} failed: {message}")


class InvalidArgument(BridgeError, TypeError):
    """A value could not be turned into a graph connection source."""


class InvalidIndex(BridgeError, TypeError):
    """A handle was indexed with an unsupported key."""


class StaleHandle(BridgeError):
    """The session backing a handle no longer exists or was closed."""
