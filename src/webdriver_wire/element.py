"""Remote element handles."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Optional

from .codec import (
    Command,
    CommandName,
    decode_base64_image,
    decode_element_id,
    decode_element_ids,
    decode_rect,
    expect_bool,
    expect_optional_str,
    expect_str,
    selector_params,
)
from .errors import LocalFailure, LocalStateError
from .keys import Typeable, join_typing
from .models import Rect, Selector, SelectorLike

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session


class ElementRef:
    """Opaque reference to a DOM element inside one session.

    Instances come only from find/active-element commands and script results.
    The session is held weakly: an element never keeps its session alive, and
    every operation checks that the session is still open before sending
    anything. A reference can also go stale on the server at any time, which
    surfaces as ``ErrorKind.STALE_ELEMENT_REFERENCE``.
    """

    def __init__(self, session: "Session", element_id: str) -> None:
        self._session_ref = weakref.ref(session)
        self._session_id = session.session_id
        self._id = element_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def session_id(self) -> str:
        return self._session_id

    def __repr__(self) -> str:
        return f"ElementRef(session={self._session_id!r}, id={self._id!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ElementRef):
            return NotImplemented
        return self._session_id == other._session_id and self._id == other._id

    def __hash__(self) -> int:
        return hash((self._session_id, self._id))

    def belongs_to(self, session: "Session") -> bool:
        return self._session_ref() is session

    def _live_session(self) -> "Session":
        session = self._session_ref()
        if session is None or session.closed:
            raise LocalStateError(
                LocalFailure.SESSION_CLOSED,
                f"session {self._session_id} owning element {self._id} is closed",
            )
        return session

    async def _execute(
        self, name: CommandName, params: Optional[dict[str, Any]] = None, **kw: Any
    ) -> Any:
        session = self._live_session()
        command = Command(name, params or {}, element_id=self._id, **kw)
        return await session._execute(command)

    # Interaction ---------------------------------------------------------------

    async def click(self) -> None:
        await self._execute(CommandName.ELEMENT_CLICK)

    async def clear(self) -> None:
        await self._execute(CommandName.ELEMENT_CLEAR)

    async def send_keys(self, *text: Typeable) -> None:
        """Type text and special keys into the element."""

        await self._execute(CommandName.ELEMENT_SEND_KEYS, {"text": join_typing(text)})

    # State ---------------------------------------------------------------------

    async def text(self) -> str:
        return expect_str(await self._execute(CommandName.GET_ELEMENT_TEXT))

    async def tag_name(self) -> str:
        return expect_str(await self._execute(CommandName.GET_ELEMENT_TAG_NAME))

    async def attribute(self, name: str) -> Optional[str]:
        value = await self._execute(CommandName.GET_ELEMENT_ATTRIBUTE, path_name=name)
        return expect_optional_str(value)

    async def property(self, name: str) -> Any:
        session = self._live_session()
        value = await self._execute(CommandName.GET_ELEMENT_PROPERTY, path_name=name)
        return session._unwrap(value)

    async def css_value(self, name: str) -> str:
        return expect_str(await self._execute(CommandName.GET_ELEMENT_CSS_VALUE, path_name=name))

    async def rect(self) -> Rect:
        return decode_rect(await self._execute(CommandName.GET_ELEMENT_RECT))

    async def is_displayed(self) -> bool:
        return expect_bool(await self._execute(CommandName.IS_ELEMENT_DISPLAYED))

    async def is_enabled(self) -> bool:
        return expect_bool(await self._execute(CommandName.IS_ELEMENT_ENABLED))

    async def is_selected(self) -> bool:
        return expect_bool(await self._execute(CommandName.IS_ELEMENT_SELECTED))

    # Scoped lookups ------------------------------------------------------------

    async def find_element_from(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> "ElementRef":
        """Find the first match inside this element's subtree."""

        session = self._live_session()
        found = await self._execute(
            CommandName.FIND_ELEMENT_FROM_ELEMENT, selector_params(Selector.of(selector, value))
        )
        return ElementRef(session, decode_element_id(found))

    async def find_elements_from(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> list["ElementRef"]:
        session = self._live_session()
        found = await self._execute(
            CommandName.FIND_ELEMENTS_FROM_ELEMENT, selector_params(Selector.of(selector, value))
        )
        return [ElementRef(session, element_id) for element_id in decode_element_ids(found)]

    # Screenshots ---------------------------------------------------------------

    async def screenshot_as_base64(self) -> str:
        return expect_str(await self._execute(CommandName.TAKE_ELEMENT_SCREENSHOT))

    async def screenshot(self) -> bytes:
        """Return the PNG bytes of this element's bounding box."""

        return decode_base64_image(await self._execute(CommandName.TAKE_ELEMENT_SCREENSHOT))
