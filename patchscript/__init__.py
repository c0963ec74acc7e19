"""
patchscript - Script a remote signal-processing graph from Python.

patchscript hosts a small script runtime whose values stand for nodes on a
remote audio graph server. Calling a procedure creates a processor node,
arithmetic on handles creates and wires arithmetic nodes, and every step is a
request/response round trip over UDP.

Key Features:
    - Catalogue of processors exposed as snake_case script functions
    - Operator syntax (+, -, *, /, unary -) builds processor nodes
    - node[i] / node["name"] output selection, node.replace(...) hot swapping
    - mixer[channel] = producer channel assignment
    - Request/response correlation by id over an unreliable datagram transport

Basic Usage:
    >>> import asyncio
    >>> import patchscript
    >>> async def main():
    ...     async with await patchscript.Session.bind(remote_addr="127.0.0.1:5050") as session:
    ...         await session.execute('''
    ... sine = sine_oscillator(220)
    ... dac(sine * 0.1)
    ... play()
    ... sleep(1)
    ... stop()
    ... ''')
    >>> asyncio.run(main())
"""

from ._internal.remote_handle import NodeRef, OutputRef
from .config import SessionConfig, default_session_config, load_session_config
from .errors import (
    BridgeError,
    InvalidArgument,
    InvalidIndex,
    RemoteOperationFailure,
    StaleHandle,
    TransportFailure,
)
from .session import Session

__version__ = "0.1.0"

__all__ = [
    "Session",
    "SessionConfig",
    "default_session_config",
    "load_session_config",
    "NodeRef",
    "OutputRef",
    "BridgeError",
    "TransportFailure",
    "RemoteOperationFailure",
    "InvalidArgument",
    "InvalidIndex",
    "StaleHandle",
]
