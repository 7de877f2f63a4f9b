"""Thread-blocking API built on top of the asynchronous session.

Each :class:`BlockingSession` owns a :class:`~webdriver_wire.transport.LoopThread`
and runs every coroutine of its :class:`~webdriver_wire.session.Session` there.
Request building, decoding and error mapping live only in the async layer.
Use one blocking session per thread.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Mapping
from typing import Any, Coroutine, Optional, TypeVar, Union

import httpx

from .actions import ActionBuilder
from .config import ClientConfig
from .context import ContextSnapshot, ContextTracker
from .element import ElementRef
from .errors import LocalFailure, LocalStateError, WebDriverError
from .handles import Alert, WindowHandle, WindowLike
from .keys import Typeable
from .models import Cookie, Rect, SelectorLike, ServerStatus, Timeouts, WindowType
from .session import Session, SessionState, server_status
from .transport import LoopThread

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _to_async(value: Any) -> Any:
    if isinstance(value, BlockingElement):
        return value.async_element
    if isinstance(value, Mapping):
        return {key: _to_async(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_async(item) for item in value]
    return value


def status(
    server_url: Optional[str] = None,
    *,
    config: Optional[ClientConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ServerStatus:
    """Blocking twin of :func:`webdriver_wire.session.server_status`."""

    loop = LoopThread(name="webdriver-wire-status")
    try:
        return loop.run(server_status(server_url, config=config, client=client))
    finally:
        loop.stop()


class BlockingSession:
    """A remote browser session driven from ordinary (non-async) code."""

    def __init__(self, session: Session, loop: LoopThread) -> None:
        self._session = session
        self._loop = loop

    @classmethod
    def create(
        cls,
        server_url: Optional[str] = None,
        capabilities: Optional[Mapping[str, Any]] = None,
        *,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "BlockingSession":
        loop = LoopThread()
        try:
            session = loop.run(
                Session.create(server_url, capabilities, config=config, client=client)
            )
        except BaseException:
            loop.stop()
            raise
        return cls(session, loop)

    @property
    def async_session(self) -> Session:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def capabilities(self) -> Mapping[str, Any]:
        return self._session.capabilities

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def closed(self) -> bool:
        return self._session.closed

    @property
    def context(self) -> ContextTracker:
        return self._session.context

    def context_snapshot(self) -> ContextSnapshot:
        return self._session.context_snapshot()

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        if not self._loop.running:
            coro.close()
            raise LocalStateError(
                LocalFailure.SESSION_CLOSED, f"session {self.session_id} is closed"
            )
        return self._loop.run(coro)

    def _element(self, element: ElementRef) -> "BlockingElement":
        return BlockingElement(self, element)

    def _to_blocking(self, value: Any) -> Any:
        if isinstance(value, ElementRef):
            return self._element(value)
        if isinstance(value, dict):
            return {key: self._to_blocking(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._to_blocking(item) for item in value]
        return value

    # Lifecycle ---------------------------------------------------------------

    def close(self) -> None:
        """Delete the remote session; same retry rules as ``Session.close``."""

        if not self._loop.running:
            return
        try:
            self._loop.run(self._session.close())
        finally:
            if self._session.state is SessionState.CLOSED:
                self._loop.stop()

    def __enter__(self) -> "BlockingSession":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            self.close()
        except WebDriverError as close_error:
            LOGGER.warning("Failed to delete session %s: %s", self.session_id, close_error)

    # Navigation --------------------------------------------------------------

    def get(self, url: str) -> None:
        self._run(self._session.get(url))

    def current_url(self) -> str:
        return self._run(self._session.current_url())

    def title(self) -> str:
        return self._run(self._session.title())

    def page_source(self) -> str:
        return self._run(self._session.page_source())

    def back(self) -> None:
        self._run(self._session.back())

    def forward(self) -> None:
        self._run(self._session.forward())

    def refresh(self) -> None:
        self._run(self._session.refresh())

    # Elements ----------------------------------------------------------------

    def find_element(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> "BlockingElement":
        return self._element(self._run(self._session.find_element(selector, value)))

    def find_elements(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> list["BlockingElement"]:
        found = self._run(self._session.find_elements(selector, value))
        return [self._element(element) for element in found]

    def active_element(self) -> "BlockingElement":
        return self._element(self._run(self._session.active_element()))

    # Scripts -----------------------------------------------------------------

    def execute_script(self, script: str, *args: Any) -> Any:
        result = self._run(self._session.execute_script(script, *_to_async(list(args))))
        return self._to_blocking(result)

    def execute_async_script(self, script: str, *args: Any) -> Any:
        result = self._run(self._session.execute_async_script(script, *_to_async(list(args))))
        return self._to_blocking(result)

    # Timeouts ----------------------------------------------------------------

    def get_timeouts(self) -> Timeouts:
        return self._run(self._session.get_timeouts())

    def set_timeouts(self, timeouts: Timeouts) -> None:
        self._run(self._session.set_timeouts(timeouts))

    def implicitly_wait(self, seconds: float) -> None:
        self._run(self._session.implicitly_wait(seconds))

    def set_script_timeout(self, seconds: float) -> None:
        self._run(self._session.set_script_timeout(seconds))

    def set_page_load_timeout(self, seconds: float) -> None:
        self._run(self._session.set_page_load_timeout(seconds))

    # Windows -----------------------------------------------------------------

    def current_window_handle(self) -> WindowHandle:
        return self._run(self._session.current_window_handle())

    def window_handles(self) -> list[WindowHandle]:
        return self._run(self._session.window_handles())

    def switch_to_window(self, handle: WindowLike) -> None:
        self._run(self._session.switch_to_window(handle))

    def new_window(self, window_type: WindowType = WindowType.TAB) -> WindowHandle:
        return self._run(self._session.new_window(window_type))

    def close_window(self) -> list[WindowHandle]:
        return self._run(self._session.close_window())

    def get_window_rect(self) -> Rect:
        return self._run(self._session.get_window_rect())

    def set_window_rect(
        self,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> Rect:
        return self._run(self._session.set_window_rect(x, y, width, height))

    def maximize_window(self) -> Rect:
        return self._run(self._session.maximize_window())

    def minimize_window(self) -> Rect:
        return self._run(self._session.minimize_window())

    def fullscreen_window(self) -> Rect:
        return self._run(self._session.fullscreen_window())

    # Frames ------------------------------------------------------------------

    def switch_to_frame(self, target: Union[int, "BlockingElement", None]) -> None:
        self._run(self._session.switch_to_frame(_to_async(target)))

    def switch_to_parent_frame(self) -> None:
        self._run(self._session.switch_to_parent_frame())

    def switch_to_default_content(self) -> None:
        self._run(self._session.switch_to_default_content())

    # Alerts ------------------------------------------------------------------

    def switch_to_alert(self) -> "BlockingAlert":
        return BlockingAlert(self, self._run(self._session.switch_to_alert()))

    # Cookies -----------------------------------------------------------------

    def get_cookies(self) -> list[Cookie]:
        return self._run(self._session.get_cookies())

    def get_cookie(self, name: str) -> Cookie:
        return self._run(self._session.get_cookie(name))

    def add_cookie(self, cookie: Union[Cookie, Mapping[str, Any]]) -> None:
        self._run(self._session.add_cookie(cookie))

    def delete_cookie(self, name: str) -> None:
        self._run(self._session.delete_cookie(name))

    def delete_all_cookies(self) -> None:
        self._run(self._session.delete_all_cookies())

    # Screenshots -------------------------------------------------------------

    def screenshot_as_base64(self) -> str:
        return self._run(self._session.screenshot_as_base64())

    def screenshot(self) -> bytes:
        return self._run(self._session.screenshot())

    # Actions -----------------------------------------------------------------

    def action_chain(self) -> "BlockingActionChain":
        return BlockingActionChain(self)

    def perform_actions(self, builder: ActionBuilder) -> None:
        self._run(self._session.perform_actions(builder))

    def release_actions(self) -> None:
        self._run(self._session.release_actions())


class _Owned:
    """Shared plumbing for handles that run through their blocking session."""

    def __init__(self, owner: BlockingSession) -> None:
        self._owner_ref = weakref.ref(owner)

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        owner = self._owner_ref()
        if owner is None:
            coro.close()
            raise LocalStateError(LocalFailure.SESSION_CLOSED, "owning session is gone")
        return owner._run(coro)

    def _owner(self) -> BlockingSession:
        owner = self._owner_ref()
        if owner is None:
            raise LocalStateError(LocalFailure.SESSION_CLOSED, "owning session is gone")
        return owner


class BlockingElement(_Owned):
    """Blocking twin of :class:`~webdriver_wire.element.ElementRef`."""

    def __init__(self, owner: BlockingSession, element: ElementRef) -> None:
        super().__init__(owner)
        self._element = element

    @property
    def async_element(self) -> ElementRef:
        return self._element

    @property
    def id(self) -> str:
        return self._element.id

    def __repr__(self) -> str:
        return f"BlockingElement(session={self._element.session_id!r}, id={self.id!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockingElement):
            return NotImplemented
        return self._element == other._element

    def __hash__(self) -> int:
        return hash(self._element)

    def click(self) -> None:
        self._run(self._element.click())

    def clear(self) -> None:
        self._run(self._element.clear())

    def send_keys(self, *text: Typeable) -> None:
        self._run(self._element.send_keys(*text))

    def text(self) -> str:
        return self._run(self._element.text())

    def tag_name(self) -> str:
        return self._run(self._element.tag_name())

    def attribute(self, name: str) -> Optional[str]:
        return self._run(self._element.attribute(name))

    def property(self, name: str) -> Any:
        return self._owner()._to_blocking(self._run(self._element.property(name)))

    def css_value(self, name: str) -> str:
        return self._run(self._element.css_value(name))

    def rect(self) -> Rect:
        return self._run(self._element.rect())

    def is_displayed(self) -> bool:
        return self._run(self._element.is_displayed())

    def is_enabled(self) -> bool:
        return self._run(self._element.is_enabled())

    def is_selected(self) -> bool:
        return self._run(self._element.is_selected())

    def find_element_from(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> "BlockingElement":
        found = self._run(self._element.find_element_from(selector, value))
        return BlockingElement(self._owner(), found)

    def find_elements_from(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> list["BlockingElement"]:
        found = self._run(self._element.find_elements_from(selector, value))
        owner = self._owner()
        return [BlockingElement(owner, element) for element in found]

    def screenshot_as_base64(self) -> str:
        return self._run(self._element.screenshot_as_base64())

    def screenshot(self) -> bytes:
        return self._run(self._element.screenshot())


class BlockingAlert(_Owned):
    """Blocking twin of :class:`~webdriver_wire.handles.Alert`."""

    def __init__(self, owner: BlockingSession, alert: Alert) -> None:
        super().__init__(owner)
        self._alert = alert

    @property
    def initial_text(self) -> Optional[str]:
        return self._alert.initial_text

    def text(self) -> Optional[str]:
        return self._run(self._alert.text())

    def send_keys(self, *text: Typeable) -> None:
        self._run(self._alert.send_keys(*text))

    def accept(self) -> None:
        self._run(self._alert.accept())

    def dismiss(self) -> None:
        self._run(self._alert.dismiss())


class BlockingActionChain(ActionBuilder):
    """Action builder bound to a blocking session."""

    def __init__(self, owner: BlockingSession) -> None:
        self._owner_ref = weakref.ref(owner)
        super().__init__(element_reference=self._reference)

    def _owner(self) -> BlockingSession:
        owner = self._owner_ref()
        if owner is None:
            raise LocalStateError(LocalFailure.SESSION_CLOSED, "owning session is gone")
        return owner

    def _reference(self, element: Any) -> dict[str, str]:
        return self._owner().async_session._element_wire_reference(_to_async(element))

    def perform(self) -> None:
        self._owner().perform_actions(self)

    def release(self) -> None:
        self._owner().release_actions()
