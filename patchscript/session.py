"""Session lifecycle for patchscript.

A Session owns the datagram transport to one remote graph server, the request
correlator, and the embedded script runtime whose globals expose the graph
built-ins (procedures, ``dac``, ``play``, ``stop``, ``sleep``, ``mixer``).
"""

from __future__ import annotations

import asyncio
import logging
import math
import weakref
from types import TracebackType
from typing import Any

from ._internal import rpc_serialization as ops
from ._internal.coercion import ValueKind, classify
from ._internal.mixer import Mixer
from ._internal.registrar import Procedure, create_processor, register_procedures
from ._internal.remote_handle import NodeRef
from ._internal.rpc_protocol import GraphRPC, expect_none
from ._internal.rpc_serialization import GraphOp, GraphOpResponse
from ._internal.rpc_transports import DatagramTransport, GraphTransport
from ._internal.script_runtime import ScriptRuntime
from ._internal.translator import connect_inputs, create_node
from .config import SessionConfig, resolve_session_config
from . import errors
from .errors import InvalidArgument, StaleHandle

__all__ = ["Session"]

logger = logging.getLogger(__name__)

SCRIPT_ERRORS = (
    "BridgeError",
    "TransportFailure",
    "RemoteOperationFailure",
    "InvalidArgument",
    "InvalidIndex",
    "StaleHandle",
)


class Session:
    """One bridge between a script namespace and one remote graph server."""

    def __init__(self, transport: GraphTransport, config: SessionConfig | None = None, **overrides: Any) -> None:
        """Wire a session over an already-bound transport.

        Args:
            transport: Datagram transport to the remote server. The session
                takes ownership and closes it in :meth:`close`.
            config: Session configuration; missing keys use defaults.
            **overrides: Individual config keys, applied over ``config``.

        Raises:
            ValueError: The configuration is invalid or a processor name
                collides with a built-in.
        """
        self.config = resolve_session_config(config, **overrides)
        self._closed = False
        self.rpc = GraphRPC(transport, request_timeout=self.config["request_timeout"])
        self.runtime = ScriptRuntime()
        try:
            self.runtime.bind_loop(asyncio.get_running_loop())
        except RuntimeError:
            pass  # bound on the first execute()

        self.mixer: Mixer | None = Mixer(self) if self.config["mixer"] else None
        self._install_builtins()
        self.procedures: dict[str, Procedure] = register_procedures(
            self, self.runtime.globals, self.config["processors"]
        )

    @classmethod
    async def bind(cls, config: SessionConfig | None = None, **overrides: Any) -> Session:
        """Bind a UDP socket to ``local_addr``, target ``remote_addr`` and build a session.

        Raises:
            TransportFailure: The socket could not be bound.
        """
        resolved = resolve_session_config(config, **overrides)
        transport = await DatagramTransport.bind(resolved["local_addr"], resolved["remote_addr"])
        try:
            return cls(transport, resolved)
        except Exception:
            transport.close()
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    # Graph operations -------------------------------------------------------

    async def request(self, op: GraphOp) -> GraphOpResponse:
        return await self.rpc.request(op)

    async def procedure(self, processor: str, *args: Any) -> NodeRef:
        """Create a processor node and wire ``args`` to its inputs.

        ``processor`` may be the catalogue name (``SineOscillator``) or its
        script name (``sine_oscillator``).
        """
        registered = self.procedures.get(processor)
        if registered is not None:
            processor = registered.processor
        return await create_processor(self, processor, args)

    async def dac(self, *args: Any) -> NodeRef:
        target = await create_node(self, ops.add_dac())
        return await connect_inputs(self, target, args)

    async def play(self) -> None:
        op = ops.play()
        expect_none(op, await self.request(op))

    async def stop(self) -> None:
        op = ops.stop()
        expect_none(op, await self.request(op))

    async def sleep(self, seconds: Any) -> None:
        duration = math.nan
        if classify(seconds) is ValueKind.NUMBER:
            try:
                duration = float(seconds)
            except OverflowError:
                duration = math.inf
        if not math.isfinite(duration) or duration < 0:
            raise InvalidArgument(f"sleep() needs a finite non-negative number of seconds, got {seconds!r}")
        await asyncio.sleep(duration)

    # Script entry points ----------------------------------------------------

    async def execute(self, source: str, filename: str = "<script>") -> None:
        """Run a script; its globals persist across calls."""
        self._check_open()
        logger.debug("[patchscript][Session] Executing %s", filename)
        await self.runtime.execute(source, filename)

    async def evaluate(self, source: str, filename: str = "<script>") -> Any:
        """Evaluate a single expression in the script namespace and return its value."""
        self._check_open()
        return await self.runtime.evaluate(source, filename)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.rpc.shutdown()
        self.runtime.shutdown()
        logger.debug("[patchscript][Session] Closed session (rpc_id=%s)", self.rpc.id)

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Session is closed")

    def _install_builtins(self) -> None:
        runtime = self.runtime
        session_ref = weakref.ref(self)

        def _session() -> Session:
            session = session_ref()
            if session is None:
                raise StaleHandle("Session no longer exists")
            if session.closed:
                raise StaleHandle("Session is closed")
            return session

        def play() -> None:
            """Start playback on the remote engine."""
            runtime.call(_session().play())

        def stop() -> None:
            """Stop playback on the remote engine."""
            runtime.call(_session().stop())

        def sleep(seconds: float) -> None:
            """Pause the script for ``seconds`` without blocking the session's event loop."""
            runtime.call(_session().sleep(seconds))

        def dac(*args: Any) -> NodeRef:
            """Create an output sink and route each argument to its inputs in order."""
            return runtime.call(_session().dac(*args))

        builtins: dict[str, Any] = {"play": play, "stop": stop, "sleep": sleep, "dac": dac}
        # Scripts catch bridge errors by name
        for name in SCRIPT_ERRORS:
            builtins[name] = getattr(errors, name)
        if self.mixer is not None:
            builtins["mixer"] = self.mixer
        runtime.globals.update(builtins)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self.config['remote_addr']} {state} rpc_id={self.rpc.id}>"

