"""Expose catalogued processor types as script-level functions."""

from __future__ import annotations

import logging
import re
import weakref
from collections.abc import Iterable, MutableMapping
from typing import TYPE_CHECKING, Any

from ..errors import StaleHandle
from . import rpc_serialization as ops
from .remote_handle import NodeRef
from .translator import connect_inputs, create_node

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def script_name(processor: str) -> str:
    """``BlSawOscillator`` -> ``bl_saw_oscillator``, ``ADSREnvelope`` -> ``adsr_envelope``."""
    return _WORD_BOUNDARY.sub("_", processor).replace("-", "_").lower()


async def create_processor(session: Session, processor: str, args: Iterable[Any]) -> NodeRef:
    target = await create_node(session, ops.add_processor(processor))
    return await connect_inputs(session, target, args)


class Procedure:
    """Script callable that creates one processor node and wires its arguments."""

    def __init__(self, session: Session, processor: str) -> None:
        self._session_ref = weakref.ref(session)
        self.processor = processor
        self.__name__ = script_name(processor)
        self.__doc__ = f"Create a {processor} node; positional arguments feed inputs 0, 1, ..."

    def __call__(self, *args: Any) -> NodeRef:
        session = self._session_ref()
        if session is None:
            raise StaleHandle(f"{self!r} outlived its session")
        if session.closed:
            raise StaleHandle(f"{self!r} belongs to a closed session")
        return session.runtime.call(create_processor(session, self.processor, args))

    def __repr__(self) -> str:
        return f"<procedure {self.__name__} ({self.processor})>"


def register_procedures(
    session: Session, namespace: MutableMapping[str, Any], processors: Iterable[str]
) -> dict[str, Procedure]:
    """Install one :class:`Procedure` per processor into ``namespace``.

    Raises:
        ValueError: A script name collides with an existing global.
    """
    installed: dict[str, Procedure] = {}
    for processor in processors:
        name = script_name(processor)
        if not name.isidentifier():
            raise ValueError(f"Processor {processor!r} does not map to a valid script name ({name!r})")
        if name in namespace:
            raise ValueError(f"Processor {processor!r} collides with the existing script global {name!r}")
        procedure = Procedure(session, processor)
        namespace[name] = procedure
        installed[name] = procedure
    logger.debug("[patchscript][Registrar] Registered %d procedures: %s", len(installed), ", ".join(installed))
    return installed
