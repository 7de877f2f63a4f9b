"""Browsing context identifiers and the alert handle."""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from .codec import Command, CommandName, expect_optional_str
from .errors import LocalFailure, LocalStateError
from .keys import Typeable, join_typing

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session


@dataclass(frozen=True)
class WindowHandle:
    """Server-issued identifier of a top-level browsing context."""

    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class FrameRef:
    """How a frame was entered: by index or through its frame element."""

    index: Optional[int] = None
    element_id: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.index is None) == (self.element_id is None):
            raise ValueError("FrameRef needs exactly one of index or element_id")


WindowLike = Union[WindowHandle, str]


class Alert:
    """A user prompt the session switched to.

    Only valid while the session's context tracker reports the alert as open.
    Accepting or dismissing it resolves the alert; afterwards every operation
    fails locally.
    """

    def __init__(self, session: "Session", text: Optional[str]) -> None:
        self._session_ref = weakref.ref(session)
        self._initial_text = text
        self._resolved = False

    @property
    def initial_text(self) -> Optional[str]:
        """Prompt text observed when the alert was switched to."""

        return self._initial_text

    def _live_session(self) -> "Session":
        session = self._session_ref()
        if session is None or session.closed:
            raise LocalStateError(
                LocalFailure.SESSION_CLOSED, "session owning this alert is closed"
            )
        if self._resolved:
            raise LocalStateError(
                LocalFailure.ALERT_RESOLVED, "alert was already accepted or dismissed"
            )
        return session

    async def text(self) -> Optional[str]:
        session = self._live_session()
        value = await session._execute(Command(CommandName.GET_ALERT_TEXT))
        return expect_optional_str(value)

    async def send_keys(self, *text: Typeable) -> None:
        session = self._live_session()
        await session._execute(
            Command(CommandName.SEND_ALERT_TEXT, {"text": join_typing(text)})
        )

    async def accept(self) -> None:
        await self._resolve(CommandName.ACCEPT_ALERT)

    async def dismiss(self) -> None:
        await self._resolve(CommandName.DISMISS_ALERT)

    async def _resolve(self, name: CommandName) -> None:
        session = self._live_session()
        await session._execute(Command(name))
        self._resolved = True
        session.context.close_alert()
