"""Script-facing mixer object: ``mixer[channel] = producer``."""

from __future__ import annotations

import weakref
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..errors import StaleHandle
from .translator import add_to_mix, assign_mix, check_mix_assignment

if TYPE_CHECKING:
    from ..session import Session


class Mixer:
    """Routes producer values into the remote graph's summing mix channels."""

    def __init__(self, session: Session) -> None:
        self._session_ref = weakref.ref(session)

    @property
    def session(self) -> Session:
        session = self._session_ref()
        if session is None or session.closed:
            raise StaleHandle("mixer outlived its session")
        return session

    def __setitem__(self, channel: Any, producer: Callable[[], Any]) -> None:
        channel = check_mix_assignment(channel, producer)
        session = self.session
        value = producer()
        session.runtime.call(add_to_mix(session, channel, value))

    async def assign(self, channel: Any, producer: Callable[[], Any]) -> None:
        await assign_mix(self.session, channel, producer)

    def __repr__(self) -> str:
        return "<mixer>"
