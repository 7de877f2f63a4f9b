"""Special keys understood by the remote end and helpers to combine them with text."""

from __future__ import annotations

import enum
from typing import Iterable, Union


class Keys(str, enum.Enum):
    """Code points the WebDriver protocol reserves for non-printable keys."""

    NULL = "\ue000"
    CANCEL = "\ue001"
    HELP = "\ue002"
    BACKSPACE = "\ue003"
    TAB = "\ue004"
    CLEAR = "\ue005"
    RETURN = "\ue006"
    ENTER = "\ue007"
    SHIFT = "\ue008"
    CONTROL = "\ue009"
    ALT = "\ue00a"
    PAUSE = "\ue00b"
    ESCAPE = "\ue00c"
    SPACE = "\ue00d"
    PAGE_UP = "\ue00e"
    PAGE_DOWN = "\ue00f"
    END = "\ue010"
    HOME = "\ue011"
    LEFT = "\ue012"
    UP = "\ue013"
    RIGHT = "\ue014"
    DOWN = "\ue015"
    INSERT = "\ue016"
    DELETE = "\ue017"
    SEMICOLON = "\ue018"
    EQUALS = "\ue019"
    NUMPAD0 = "\ue01a"
    NUMPAD1 = "\ue01b"
    NUMPAD2 = "\ue01c"
    NUMPAD3 = "\ue01d"
    NUMPAD4 = "\ue01e"
    NUMPAD5 = "\ue01f"
    NUMPAD6 = "\ue020"
    NUMPAD7 = "\ue021"
    NUMPAD8 = "\ue022"
    NUMPAD9 = "\ue023"
    MULTIPLY = "\ue024"
    ADD = "\ue025"
    SEPARATOR = "\ue026"
    SUBTRACT = "\ue027"
    DECIMAL = "\ue028"
    DIVIDE = "\ue029"
    F1 = "\ue031"
    F2 = "\ue032"
    F3 = "\ue033"
    F4 = "\ue034"
    F5 = "\ue035"
    F6 = "\ue036"
    F7 = "\ue037"
    F8 = "\ue038"
    F9 = "\ue039"
    F10 = "\ue03a"
    F11 = "\ue03b"
    F12 = "\ue03c"
    META = "\ue03d"
    # Same code point as META; enum lookups resolve to META.
    COMMAND = "\ue03d"

    def __str__(self) -> str:
        return self.value

    def __add__(self, other: object) -> "TypingData":
        if not isinstance(other, (str, TypingData)):
            return NotImplemented
        return TypingData(self.value) + other

    def __radd__(self, other: object) -> "TypingData":
        if not isinstance(other, str):
            return NotImplemented
        return TypingData(other) + self.value


class TypingData:
    """An ordered run of characters and special keys to type."""

    def __init__(self, text: str = "") -> None:
        self._chars: list[str] = list(text)

    def __add__(self, other: object) -> "TypingData":
        if isinstance(other, TypingData):
            combined = TypingData()
            combined._chars = self._chars + other._chars
            return combined
        if isinstance(other, str):
            combined = TypingData()
            combined._chars = self._chars + list(str(other))
            return combined
        return NotImplemented

    def __radd__(self, other: object) -> "TypingData":
        if isinstance(other, str):
            return TypingData(str(other)) + self
        return NotImplemented

    def __str__(self) -> str:
        return "".join(self._chars)

    def __repr__(self) -> str:
        return f"TypingData({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypingData):
            return self._chars == other._chars
        if isinstance(other, str):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))

    def chars(self) -> list[str]:
        return list(self._chars)


Typeable = Union[str, Keys, TypingData]


def join_typing(parts: Iterable[Typeable]) -> str:
    """Flatten text, keys and typing data into the string sent on the wire."""

    return "".join(part.value if isinstance(part, Keys) else str(part) for part in parts)
