"""Shared models used across the WebDriver client."""

from __future__ import annotations

import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class By(str, enum.Enum):
    """Locator strategies accepted by the find commands."""

    ID = "id"
    CSS = "css selector"
    LINK_TEXT = "link text"
    PARTIAL_LINK_TEXT = "partial link text"
    TAG_NAME = "tag name"
    CLASS_NAME = "class name"
    XPATH = "xpath"
    NAME = "name"


class Selector(BaseModel):
    """A locator strategy paired with its value."""

    model_config = ConfigDict(frozen=True)

    strategy: By
    value: str

    @classmethod
    def of(cls, strategy: "SelectorLike", value: Optional[str] = None) -> "Selector":
        """Accept a ready ``Selector`` or a strategy (``By`` or its name) plus a value."""

        if isinstance(strategy, Selector):
            if value is not None:
                raise TypeError("value must not be given together with a Selector")
            return strategy
        if value is None:
            raise TypeError(f"strategy {strategy!r} needs a value")
        if isinstance(strategy, By):
            return cls(strategy=strategy, value=value)
        key = strategy.strip().lower()
        return cls(strategy=_STRATEGY_ALIASES.get(key) or By(key), value=value)

    @classmethod
    def css(cls, value: str) -> "Selector":
        return cls(strategy=By.CSS, value=value)

    @classmethod
    def xpath(cls, value: str) -> "Selector":
        return cls(strategy=By.XPATH, value=value)

    @classmethod
    def id(cls, value: str) -> "Selector":
        return cls(strategy=By.ID, value=value)


_STRATEGY_ALIASES = {
    "css": By.CSS,
    "link": By.LINK_TEXT,
    "partial link": By.PARTIAL_LINK_TEXT,
    "tag": By.TAG_NAME,
    "class": By.CLASS_NAME,
}

SelectorLike = Union[Selector, By, str]


class Cookie(BaseModel):
    """A cookie as exchanged with the remote end."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    path: Optional[str] = None
    domain: Optional[str] = None
    secure: Optional[bool] = None
    http_only: Optional[bool] = Field(default=None, alias="httpOnly")
    expiry: Optional[int] = None
    same_site: Optional[str] = Field(default=None, alias="sameSite")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Rect(BaseModel):
    """Position and size of a window or element."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class Timeouts(BaseModel):
    """Session timeouts in milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    script: Optional[int] = None
    page_load: Optional[int] = Field(default=None, alias="pageLoad")
    implicit: Optional[int] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WindowType(str, enum.Enum):
    """Kind of browsing context created by ``new_window``."""

    TAB = "tab"
    WINDOW = "window"


class ServerStatus(BaseModel):
    """Readiness report returned by ``GET /status``."""

    ready: bool = False
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
