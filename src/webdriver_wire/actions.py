"""Builder for input action sequences sent with a single ``perform actions`` command."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar, Union

from .keys import Keys, Typeable, join_typing

KEYBOARD = "keyboard"
MOUSE = "mouse"
WHEEL = "wheel"
IDLE = "idle"


class LaneType(str, enum.Enum):
    KEY = "key"
    POINTER = "pointer"
    WHEEL = "wheel"
    NONE = "none"


class PointerType(str, enum.Enum):
    MOUSE = "mouse"
    PEN = "pen"
    TOUCH = "touch"


class MouseButton(enum.IntEnum):
    LEFT = 0
    MIDDLE = 1
    RIGHT = 2
    BACK = 3
    FORWARD = 4


@dataclass
class Lane:
    """One input source and the ticks queued for it."""

    id: str
    type: LaneType
    pointer_type: Optional[PointerType] = None
    ticks: list[dict[str, Any]] = field(default_factory=list)

    def to_wire(self, length: int) -> dict[str, Any]:
        ticks = [dict(tick) for tick in self.ticks]
        # Pad only at the end so queued ticks keep their positions.
        ticks.extend({"type": "pause", "duration": 0} for _ in range(length - len(ticks)))
        payload: dict[str, Any] = {"type": self.type.value, "id": self.id, "actions": ticks}
        if self.pointer_type is not None:
            payload["parameters"] = {"pointerType": self.pointer_type.value}
        return payload


Origin = Union[str, Any]
Builder = TypeVar("Builder", bound="ActionBuilder")


class ActionBuilder:
    """Accumulates per-device ticks; never talks to the server.

    Appends go to the default lanes (``keyboard``, ``mouse``, ``wheel`` and
    ``idle``) unless ``device`` names another lane. Lanes are created on first
    use and keep their creation order in the payload.

    ``element_reference`` turns an element handle used as a pointer origin into
    its wire reference. Bound subclasses supply one that also checks the handle
    belongs to their session.
    """

    def __init__(
        self, element_reference: Optional[Callable[[Any], dict[str, str]]] = None
    ) -> None:
        self._lanes: dict[str, Lane] = {}
        self._element_reference = element_reference

    # Lanes ------------------------------------------------------------------

    @property
    def lanes(self) -> list[Lane]:
        return list(self._lanes.values())

    def add_key_lane(self: Builder, lane_id: str) -> Builder:
        self._add_lane(lane_id, LaneType.KEY)
        return self

    def add_pointer_lane(
        self: Builder, lane_id: str, pointer_type: PointerType = PointerType.MOUSE
    ) -> Builder:
        self._add_lane(lane_id, LaneType.POINTER, pointer_type)
        return self

    def add_wheel_lane(self: Builder, lane_id: str) -> Builder:
        self._add_lane(lane_id, LaneType.WHEEL)
        return self

    def add_none_lane(self: Builder, lane_id: str) -> Builder:
        self._add_lane(lane_id, LaneType.NONE)
        return self

    def _add_lane(
        self, lane_id: str, lane_type: LaneType, pointer_type: Optional[PointerType] = None
    ) -> Lane:
        existing = self._lanes.get(lane_id)
        if existing is not None:
            if existing.type is not lane_type:
                raise ValueError(
                    f"lane {lane_id!r} is a {existing.type.value} lane, not {lane_type.value}"
                )
            return existing
        lane = Lane(id=lane_id, type=lane_type, pointer_type=pointer_type)
        self._lanes[lane_id] = lane
        return lane

    def _lane(self, device: Optional[str], default: str, lane_type: LaneType) -> Lane:
        lane_id = device or default
        lane = self._lanes.get(lane_id)
        if lane is None:
            pointer_type = PointerType.MOUSE if lane_type is LaneType.POINTER else None
            return self._add_lane(lane_id, lane_type, pointer_type)
        if lane_type is not LaneType.NONE and lane.type is not lane_type:
            raise ValueError(f"lane {lane_id!r} is a {lane.type.value} lane, not {lane_type.value}")
        return lane

    # Primitive ticks ----------------------------------------------------------

    def pause(self: Builder, duration: float = 0, *, device: Optional[str] = None) -> Builder:
        """Queue a pause of ``duration`` seconds; any lane type accepts pauses."""

        lane = self._lane(device, IDLE, LaneType.NONE)
        lane.ticks.append({"type": "pause", "duration": _millis(duration)})
        return self

    def key_down(self: Builder, key: Union[str, Keys], *, device: Optional[str] = None) -> Builder:
        lane = self._lane(device, KEYBOARD, LaneType.KEY)
        lane.ticks.append({"type": "keyDown", "value": _single_key(key)})
        return self

    def key_up(self: Builder, key: Union[str, Keys], *, device: Optional[str] = None) -> Builder:
        lane = self._lane(device, KEYBOARD, LaneType.KEY)
        lane.ticks.append({"type": "keyUp", "value": _single_key(key)})
        return self

    def pointer_move(
        self: Builder,
        x: int = 0,
        y: int = 0,
        duration: float = 0,
        *,
        origin: Origin = "viewport",
        device: Optional[str] = None,
    ) -> Builder:
        lane = self._lane(device, MOUSE, LaneType.POINTER)
        lane.ticks.append(
            {
                "type": "pointerMove",
                "duration": _millis(duration),
                "x": int(x),
                "y": int(y),
                "origin": self._origin(origin),
            }
        )
        return self

    def pointer_down(
        self: Builder, button: int = MouseButton.LEFT, *, device: Optional[str] = None
    ) -> Builder:
        lane = self._lane(device, MOUSE, LaneType.POINTER)
        lane.ticks.append({"type": "pointerDown", "button": int(button)})
        return self

    def pointer_up(
        self: Builder, button: int = MouseButton.LEFT, *, device: Optional[str] = None
    ) -> Builder:
        lane = self._lane(device, MOUSE, LaneType.POINTER)
        lane.ticks.append({"type": "pointerUp", "button": int(button)})
        return self

    def scroll(
        self: Builder,
        x: int = 0,
        y: int = 0,
        delta_x: int = 0,
        delta_y: int = 0,
        duration: float = 0,
        *,
        origin: Origin = "viewport",
        device: Optional[str] = None,
    ) -> Builder:
        lane = self._lane(device, WHEEL, LaneType.WHEEL)
        lane.ticks.append(
            {
                "type": "scroll",
                "x": int(x),
                "y": int(y),
                "deltaX": int(delta_x),
                "deltaY": int(delta_y),
                "duration": _millis(duration),
                "origin": self._origin(origin),
            }
        )
        return self

    # Gestures -----------------------------------------------------------------

    def send_keys(self: Builder, *text: Typeable, device: Optional[str] = None) -> Builder:
        for char in join_typing(text):
            self.key_down(char, device=device)
            self.key_up(char, device=device)
        return self

    def move_to(
        self: Builder, element: Any, x: int = 0, y: int = 0, *, device: Optional[str] = None
    ) -> Builder:
        return self.pointer_move(x, y, origin=element, device=device)

    def click(self: Builder, element: Any = None, *, device: Optional[str] = None) -> Builder:
        if element is not None:
            self.move_to(element, device=device)
        return self.pointer_down(device=device).pointer_up(device=device)

    def double_click(
        self: Builder, element: Any = None, *, device: Optional[str] = None
    ) -> Builder:
        self.click(element, device=device)
        return self.click(device=device)

    def context_click(
        self: Builder, element: Any = None, *, device: Optional[str] = None
    ) -> Builder:
        if element is not None:
            self.move_to(element, device=device)
        self.pointer_down(MouseButton.RIGHT, device=device)
        return self.pointer_up(MouseButton.RIGHT, device=device)

    def drag_and_drop(
        self: Builder, source: Any, target: Any, *, device: Optional[str] = None
    ) -> Builder:
        self.move_to(source, device=device).pointer_down(device=device)
        return self.move_to(target, device=device).pointer_up(device=device)

    # Compilation --------------------------------------------------------------

    def tick_count(self) -> int:
        return max((len(lane.ticks) for lane in self._lanes.values()), default=0)

    def to_payload(self) -> dict[str, Any]:
        """Compile every lane, padded to the same tick count, into one payload."""

        length = self.tick_count()
        return {"actions": [lane.to_wire(length) for lane in self._lanes.values()]}

    def reset(self: Builder) -> Builder:
        self._lanes.clear()
        return self

    def _origin(self, origin: Origin) -> Any:
        if isinstance(origin, str):
            if origin not in ("viewport", "pointer"):
                raise ValueError(f"unsupported pointer origin {origin!r}")
            return origin
        if self._element_reference is None:
            raise TypeError("element origins need a builder bound to a session")
        return self._element_reference(origin)


def _millis(seconds: float) -> int:
    if seconds < 0:
        raise ValueError("durations must not be negative")
    return int(round(seconds * 1000))


def _single_key(key: Union[str, Keys]) -> str:
    value = key.value if isinstance(key, Keys) else key
    if len(value) != 1:
        raise ValueError(f"key actions take a single character, got {value!r}")
    return value
