"""Tracks which browsing context and prompt a session currently addresses."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .codec import ALERT_COMMANDS, CommandName
from .errors import ErrorKind, LocalFailure, LocalStateError
from .handles import FrameRef, WindowHandle

LOGGER = logging.getLogger(__name__)

_ALWAYS_ALLOWED = ALERT_COMMANDS | {CommandName.DELETE_SESSION, CommandName.STATUS}
_FRAME_SWITCHES = frozenset({CommandName.SWITCH_TO_FRAME, CommandName.SWITCH_TO_PARENT_FRAME})


class ContextState(str, enum.Enum):
    DEFAULT = "default"
    IN_FRAME = "in_frame"
    ALERT_OPEN = "alert_open"


@dataclass(frozen=True)
class ContextSnapshot:
    """Immutable view of the tracker at one point in time."""

    state: ContextState
    window: Optional[WindowHandle]
    frames: tuple[FrameRef, ...]


class ContextTracker:
    """Local mirror of the server's current browsing context.

    The tracker is advisory. It decides which local guard applies before a
    command is sent, and it is corrected from server errors because pages can
    close windows or dismiss prompts on their own.
    """

    def __init__(self, window: Optional[WindowHandle] = None) -> None:
        self._window = window
        self._frames: list[FrameRef] = []
        self._alert_open = False
        self._alert_suspected = False

    @property
    def state(self) -> ContextState:
        if self._alert_open:
            return ContextState.ALERT_OPEN
        if self._frames:
            return ContextState.IN_FRAME
        return ContextState.DEFAULT

    @property
    def alert_suspected(self) -> bool:
        """True after an ``unexpected alert open`` error that nothing has confirmed yet.

        Servers usually handle the prompt themselves before reporting it, so the
        suspicion never blocks commands. Only ``switch_to_alert()`` can confirm it.
        """

        return self._alert_suspected

    @property
    def window(self) -> Optional[WindowHandle]:
        return self._window

    @property
    def frames(self) -> tuple[FrameRef, ...]:
        return tuple(self._frames)

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(state=self.state, window=self._window, frames=self.frames)

    # Transitions -------------------------------------------------------------

    def push_frame(self, frame: FrameRef) -> None:
        self._frames.append(frame)

    def pop_frame(self) -> None:
        if self._frames:
            self._frames.pop()

    def clear_frames(self) -> None:
        self._frames.clear()

    def switch_window(self, window: Optional[WindowHandle]) -> None:
        self._window = window
        self._frames.clear()

    def observe_window(self, window: WindowHandle) -> None:
        """Record the active window reported by the server without touching frames."""

        self._window = window

    def open_alert(self) -> None:
        self._alert_open = True
        self._alert_suspected = False

    def close_alert(self) -> None:
        self._alert_open = False
        self._alert_suspected = False

    def reset(self) -> None:
        """Forget everything; the server's context is unknown."""

        self._window = None
        self._frames.clear()
        self._alert_open = False
        self._alert_suspected = False

    # Guards and resynchronisation --------------------------------------------

    def guard(self, name: CommandName) -> None:
        """Reject commands the tracked context makes illegal."""

        if self._alert_open and name not in _ALWAYS_ALLOWED:
            raise LocalStateError(
                LocalFailure.ALERT_OPEN,
                f"cannot run {name.value} while an alert is open; accept or dismiss it first",
            )

    def observe_success(self, name: CommandName) -> None:
        if self._alert_suspected and name not in ALERT_COMMANDS:
            LOGGER.debug("%s succeeded; no prompt is blocking the session", name.value)
            self._alert_suspected = False

    def observe_error(self, name: CommandName, kind: ErrorKind) -> None:
        """Correct local state from an authoritative server error."""

        if kind is ErrorKind.NO_SUCH_WINDOW:
            LOGGER.debug("Server reported no such window; resetting tracked context")
            self.reset()
        elif kind is ErrorKind.NO_SUCH_FRAME and name not in _FRAME_SWITCHES:
            LOGGER.debug("Server reported no such frame; dropping tracked frames")
            self._frames.clear()
        elif kind is ErrorKind.UNEXPECTED_ALERT_OPEN:
            LOGGER.debug("Server reported an unexpected alert during %s", name.value)
            if not self._alert_open:
                self._alert_suspected = True
        elif kind is ErrorKind.NO_SUCH_ALERT:
            if self._alert_open:
                LOGGER.debug("Tracked alert is gone on the server")
            self._alert_open = False
            self._alert_suspected = False
