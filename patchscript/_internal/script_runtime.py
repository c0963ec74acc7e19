"""Embedded script runtime.

Scripts are Python source executed in a private global namespace on a single
dedicated thread. Graph operations are coroutines on the session's event
loop; the script thread submits each one with ``run_coroutine_threadsafe`` and
blocks until it completes, so a script reads as straight-line code while the
loop stays free for transport I/O and other tasks.
"""

from __future__ import annotations

import asyncio
import builtins
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from ..errors import TransportFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScriptRuntime:
    """Namespace plus script thread for one session."""

    def __init__(self, name: str = "patchscript") -> None:
        self.name = name
        self.globals: dict[str, Any] = {"__name__": "__patchscript__", "__builtins__": builtins}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self._fatal: TransportFailure | None = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        return self._loop

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def call(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` on the session loop and block the script thread for its result.

        Raises:
            RuntimeError: Called on the event loop thread (it would deadlock) or
                with no loop bound.
        """
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or running is not None or loop.is_closed():
            coro.close()
            if running is not None:
                raise RuntimeError(
                    "Blocking graph operations cannot run on the event loop thread; "
                    "await the coroutine methods (node.add, node.mul, session.procedure, ...) instead"
                )
            raise RuntimeError("No event loop is bound to this session; run code through Session.execute()")

        if self._fatal is not None:
            coro.close()
            raise self._fatal
        try:
            return asyncio.run_coroutine_threadsafe(coro, loop).result()
        except TransportFailure as exc:
            # Recorded so execute() re-raises it even if the script caught it.
            self._fatal = exc
            raise

    async def execute(self, source: str, filename: str = "<script>") -> None:
        code = compile(source, filename, "exec")
        await self._run(exec, code)

    async def evaluate(self, source: str, filename: str = "<script>") -> Any:
        code = compile(source, filename, "eval")
        return await self._run(eval, code)

    async def _run(self, runner: Any, code: Any) -> Any:
        loop = asyncio.get_running_loop()
        self._loop = loop
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-script")

        if not self._lock.acquire(blocking=False):
            raise RuntimeError(f"{self.name}: a script is already executing in this session")
        self._fatal = None
        try:
            result = await loop.run_in_executor(self._executor, runner, code, self.globals)
        except Exception as exc:
            fatal, self._fatal = self._fatal, None
            if fatal is not None and fatal is not exc:
                raise fatal from exc
            raise
        finally:
            self._lock.release()

        fatal, self._fatal = self._fatal, None
        if fatal is not None:
            raise fatal
        return result

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
