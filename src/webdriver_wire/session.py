"""Asynchronous WebDriver session, the root of every remote handle."""

from __future__ import annotations

import enum
import logging
import types
import weakref
from collections.abc import Mapping
from typing import Any, Optional, Union

import httpx

from .actions import ActionBuilder
from .codec import (
    Command,
    CommandName,
    capabilities_params,
    decode_base64_image,
    decode_cookie,
    decode_cookies,
    decode_element_id,
    decode_element_ids,
    decode_new_session,
    decode_rect,
    decode_timeouts,
    decode_window_handles,
    element_reference,
    encode_command,
    expect_dict,
    expect_optional_str,
    expect_str,
    selector_params,
    unwrap_script_value,
    wrap_script_value,
)
from .config import ClientConfig
from .context import ContextSnapshot, ContextTracker
from .element import ElementRef
from .errors import LocalFailure, LocalStateError, ProtocolError, WebDriverError
from .handles import Alert, FrameRef, WindowHandle, WindowLike
from .models import (
    Cookie,
    Rect,
    Selector,
    SelectorLike,
    ServerStatus,
    Timeouts,
    WindowType,
)
from .transport import HttpTransport

LOGGER = logging.getLogger(__name__)

FrameTarget = Union[int, ElementRef, None]


class SessionState(str, enum.Enum):
    OPEN = "open"
    CLOSE_FAILED = "close_failed"
    CLOSED = "closed"


def _build_transport(
    server_url: Optional[str],
    config: ClientConfig,
    client: Optional[httpx.AsyncClient],
) -> HttpTransport:
    return HttpTransport(
        server_url or config.server_url,
        timeout=config.request_timeout,
        connect_timeout=config.connect_timeout,
        headers=config.headers,
        client=client,
    )


async def server_status(
    server_url: Optional[str] = None,
    *,
    config: Optional[ClientConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ServerStatus:
    """Ask the remote end whether it can create new sessions."""

    transport = _build_transport(server_url, config or ClientConfig(), client)
    try:
        value = await transport.execute(encode_command(Command(CommandName.STATUS)))
    finally:
        await transport.aclose()
    data = expect_dict(value)
    return ServerStatus(
        ready=bool(data.get("ready", False)),
        message=str(data.get("message", "")),
        details={k: v for k, v in data.items() if k not in {"ready", "message"}},
    )


class Session:
    """A live remote browser session.

    Create one with :meth:`create`; use ``async with`` to guarantee the remote
    session is deleted when the block exits. Commands are sent one at a time:
    awaiting each call before issuing the next is the caller's contract.
    """

    def __init__(
        self,
        transport: HttpTransport,
        session_id: str,
        capabilities: Mapping[str, Any],
        *,
        owns_transport: bool = True,
    ) -> None:
        self._transport = transport
        self._owns_transport = owns_transport
        self._session_id = session_id
        self._capabilities = types.MappingProxyType(dict(capabilities))
        self._state = SessionState.OPEN
        self._context = ContextTracker()

    @classmethod
    async def create(
        cls,
        server_url: Optional[str] = None,
        capabilities: Optional[Mapping[str, Any]] = None,
        *,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[HttpTransport] = None,
    ) -> "Session":
        """Open a session and keep the capabilities the server negotiated."""

        config = config or ClientConfig()
        requested: dict[str, Any] = dict(config.capabilities)
        requested.update(capabilities or {})
        owns_transport = transport is None
        if transport is None:
            transport = _build_transport(server_url, config, client)
        command = Command(
            CommandName.NEW_SESSION,
            capabilities_params(requested, legacy=config.legacy_capabilities),
        )
        try:
            status, payload = await transport.send(encode_command(command))
            session_id, negotiated = decode_new_session(status, payload)
        except BaseException:
            if owns_transport:
                await transport.aclose()
            raise
        LOGGER.info("Created session %s at %s", session_id, transport.base_url)
        return cls(transport, session_id, negotiated, owns_transport=owns_transport)

    # Lifecycle ---------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def capabilities(self) -> Mapping[str, Any]:
        """Capabilities as returned by the server, not as requested."""

        return self._capabilities

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not SessionState.OPEN

    @property
    def context(self) -> ContextTracker:
        return self._context

    def context_snapshot(self) -> ContextSnapshot:
        return self._context.snapshot()

    async def close(self) -> None:
        """Delete the remote session.

        A successful close makes later calls no-ops. If the DELETE fails the
        error is raised and the session stops accepting commands; the next call
        retries the DELETE once more and then gives up for good.
        """

        if self._state is SessionState.CLOSED:
            return
        retrying = self._state is SessionState.CLOSE_FAILED
        request = encode_command(Command(CommandName.DELETE_SESSION), self._session_id)
        try:
            await self._transport.execute(request)
        except WebDriverError:
            if retrying:
                self._state = SessionState.CLOSED
                await self._release_transport()
            else:
                self._state = SessionState.CLOSE_FAILED
            raise
        self._state = SessionState.CLOSED
        await self._release_transport()
        LOGGER.info("Deleted session %s", self._session_id)

    async def _release_transport(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await self.close()
        except WebDriverError as close_error:
            LOGGER.warning("Failed to delete session %s: %s", self._session_id, close_error)

    # Command plumbing --------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._state is not SessionState.OPEN:
            raise LocalStateError(
                LocalFailure.SESSION_CLOSED, f"session {self._session_id} is closed"
            )

    async def _execute(self, command: Command) -> Any:
        self._ensure_open()
        self._context.guard(command.name)
        request = encode_command(command, self._session_id)
        try:
            result = await self._transport.execute(request)
        except ProtocolError as exc:
            self._context.observe_error(command.name, exc.kind)
            raise
        self._context.observe_success(command.name)
        return result

    def _element_id_of(self, value: Any) -> Optional[str]:
        if not isinstance(value, ElementRef):
            return None
        if not value.belongs_to(self):
            raise LocalStateError(
                LocalFailure.FOREIGN_HANDLE,
                f"element {value.id} belongs to session {value.session_id}, "
                f"not {self._session_id}",
            )
        return value.id

    def _element_wire_reference(self, element: Any) -> dict[str, str]:
        element_id = self._element_id_of(element)
        if element_id is None:
            raise TypeError(f"expected an ElementRef, got {type(element).__name__}")
        return element_reference(element_id)

    def _unwrap(self, value: Any) -> Any:
        return unwrap_script_value(value, lambda element_id: ElementRef(self, element_id))

    # Navigation --------------------------------------------------------------

    async def get(self, url: str) -> None:
        await self._execute(Command(CommandName.NAVIGATE_TO, {"url": url}))

    async def current_url(self) -> str:
        return expect_str(await self._execute(Command(CommandName.GET_CURRENT_URL)))

    async def title(self) -> str:
        return expect_str(await self._execute(Command(CommandName.GET_TITLE)))

    async def page_source(self) -> str:
        return expect_str(await self._execute(Command(CommandName.GET_PAGE_SOURCE)))

    async def back(self) -> None:
        await self._execute(Command(CommandName.BACK))

    async def forward(self) -> None:
        await self._execute(Command(CommandName.FORWARD))

    async def refresh(self) -> None:
        await self._execute(Command(CommandName.REFRESH))

    # Elements ----------------------------------------------------------------

    async def find_element(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> ElementRef:
        """Return the first match; raises ``NO_SUCH_ELEMENT`` when nothing matches."""

        params = selector_params(Selector.of(selector, value))
        found = await self._execute(Command(CommandName.FIND_ELEMENT, params))
        return ElementRef(self, decode_element_id(found))

    async def find_elements(
        self, selector: SelectorLike, value: Optional[str] = None
    ) -> list[ElementRef]:
        params = selector_params(Selector.of(selector, value))
        found = await self._execute(Command(CommandName.FIND_ELEMENTS, params))
        return [ElementRef(self, element_id) for element_id in decode_element_ids(found)]

    async def active_element(self) -> ElementRef:
        found = await self._execute(Command(CommandName.GET_ACTIVE_ELEMENT))
        return ElementRef(self, decode_element_id(found))

    # Scripts -----------------------------------------------------------------

    async def execute_script(self, script: str, *args: Any) -> Any:
        """Run ``script`` synchronously in the page; element handles round-trip."""

        params = {"script": script, "args": wrap_script_value(list(args), self._element_id_of)}
        return self._unwrap(await self._execute(Command(CommandName.EXECUTE_SCRIPT, params)))

    async def execute_async_script(self, script: str, *args: Any) -> Any:
        params = {"script": script, "args": wrap_script_value(list(args), self._element_id_of)}
        return self._unwrap(
            await self._execute(Command(CommandName.EXECUTE_ASYNC_SCRIPT, params))
        )

    # Timeouts ----------------------------------------------------------------

    async def get_timeouts(self) -> Timeouts:
        return decode_timeouts(await self._execute(Command(CommandName.GET_TIMEOUTS)))

    async def set_timeouts(self, timeouts: Timeouts) -> None:
        await self._execute(Command(CommandName.SET_TIMEOUTS, timeouts.to_wire()))

    async def implicitly_wait(self, seconds: float) -> None:
        await self.set_timeouts(Timeouts(implicit=int(seconds * 1000)))

    async def set_script_timeout(self, seconds: float) -> None:
        await self.set_timeouts(Timeouts(script=int(seconds * 1000)))

    async def set_page_load_timeout(self, seconds: float) -> None:
        await self.set_timeouts(Timeouts(page_load=int(seconds * 1000)))

    # Windows -----------------------------------------------------------------

    async def current_window_handle(self) -> WindowHandle:
        value = await self._execute(Command(CommandName.GET_WINDOW_HANDLE))
        handle = WindowHandle(expect_str(value))
        self._context.observe_window(handle)
        return handle

    async def window_handles(self) -> list[WindowHandle]:
        value = await self._execute(Command(CommandName.GET_WINDOW_HANDLES))
        return [WindowHandle(item) for item in decode_window_handles(value)]

    async def switch_to_window(self, handle: WindowLike) -> None:
        window = handle if isinstance(handle, WindowHandle) else WindowHandle(handle)
        await self._execute(Command(CommandName.SWITCH_TO_WINDOW, {"handle": window.id}))
        self._context.switch_window(window)

    async def new_window(self, window_type: WindowType = WindowType.TAB) -> WindowHandle:
        """Open a new tab or window without switching to it."""

        value = expect_dict(
            await self._execute(Command(CommandName.NEW_WINDOW, {"type": window_type.value}))
        )
        return WindowHandle(expect_str(value.get("handle")))

    async def close_window(self) -> list[WindowHandle]:
        """Close the current window and return the handles still open."""

        value = await self._execute(Command(CommandName.CLOSE_WINDOW))
        self._context.switch_window(None)
        return [WindowHandle(item) for item in decode_window_handles(value)]

    async def get_window_rect(self) -> Rect:
        return decode_rect(await self._execute(Command(CommandName.GET_WINDOW_RECT)))

    async def set_window_rect(
        self,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> Rect:
        params = {
            key: value
            for key, value in {"x": x, "y": y, "width": width, "height": height}.items()
            if value is not None
        }
        return decode_rect(await self._execute(Command(CommandName.SET_WINDOW_RECT, params)))

    async def maximize_window(self) -> Rect:
        return decode_rect(await self._execute(Command(CommandName.MAXIMIZE_WINDOW)))

    async def minimize_window(self) -> Rect:
        return decode_rect(await self._execute(Command(CommandName.MINIMIZE_WINDOW)))

    async def fullscreen_window(self) -> Rect:
        return decode_rect(await self._execute(Command(CommandName.FULLSCREEN_WINDOW)))

    # Frames ------------------------------------------------------------------

    async def switch_to_frame(self, target: FrameTarget) -> None:
        """Enter a child frame by index or frame element; ``None`` means top level."""

        if target is None:
            await self.switch_to_default_content()
            return
        if isinstance(target, ElementRef):
            frame = FrameRef(element_id=self._element_id_of(target))
            frame_id: Any = self._element_wire_reference(target)
        elif isinstance(target, int) and not isinstance(target, bool):
            if not 0 <= target <= 65535:
                raise ValueError("frame index must be between 0 and 65535")
            frame = FrameRef(index=target)
            frame_id = target
        else:
            raise TypeError(f"cannot switch to frame {target!r}")
        await self._execute(Command(CommandName.SWITCH_TO_FRAME, {"id": frame_id}))
        self._context.push_frame(frame)

    async def switch_to_parent_frame(self) -> None:
        """Leave the current frame; at top level this is ``switch_to_default_content``."""

        if not self._context.frames:
            await self.switch_to_default_content()
            return
        await self._execute(Command(CommandName.SWITCH_TO_PARENT_FRAME))
        self._context.pop_frame()

    async def switch_to_default_content(self) -> None:
        await self._execute(Command(CommandName.SWITCH_TO_FRAME, {"id": None}))
        self._context.clear_frames()

    # Alerts ------------------------------------------------------------------

    async def switch_to_alert(self) -> Alert:
        """Address the open user prompt; fails with ``NO_SUCH_ALERT`` if there is none."""

        text = expect_optional_str(await self._execute(Command(CommandName.GET_ALERT_TEXT)))
        self._context.open_alert()
        return Alert(self, text)

    # Cookies -----------------------------------------------------------------

    async def get_cookies(self) -> list[Cookie]:
        return decode_cookies(await self._execute(Command(CommandName.GET_ALL_COOKIES)))

    async def get_cookie(self, name: str) -> Cookie:
        value = await self._execute(Command(CommandName.GET_NAMED_COOKIE, path_name=name))
        return decode_cookie(value)

    async def add_cookie(self, cookie: Union[Cookie, Mapping[str, Any]]) -> None:
        if not isinstance(cookie, Cookie):
            cookie = Cookie.model_validate(dict(cookie))
        await self._execute(Command(CommandName.ADD_COOKIE, {"cookie": cookie.to_wire()}))

    async def delete_cookie(self, name: str) -> None:
        await self._execute(Command(CommandName.DELETE_COOKIE, path_name=name))

    async def delete_all_cookies(self) -> None:
        await self._execute(Command(CommandName.DELETE_ALL_COOKIES))

    # Screenshots -------------------------------------------------------------

    async def screenshot_as_base64(self) -> str:
        return expect_str(await self._execute(Command(CommandName.TAKE_SCREENSHOT)))

    async def screenshot(self) -> bytes:
        """Return the PNG bytes of the current viewport."""

        return decode_base64_image(await self._execute(Command(CommandName.TAKE_SCREENSHOT)))

    # Actions -----------------------------------------------------------------

    def action_chain(self) -> "ActionChain":
        return ActionChain(self)

    async def perform_actions(self, builder: ActionBuilder) -> None:
        await self._execute(Command(CommandName.PERFORM_ACTIONS, builder.to_payload()))

    async def release_actions(self) -> None:
        await self._execute(Command(CommandName.RELEASE_ACTIONS))


class ActionChain(ActionBuilder):
    """Action builder bound to a session; ``perform`` sends one actions command."""

    def __init__(self, session: Session) -> None:
        self._session_ref = weakref.ref(session)
        super().__init__(element_reference=self._reference)

    def _session(self) -> Session:
        session = self._session_ref()
        if session is None or session.closed:
            raise LocalStateError(
                LocalFailure.SESSION_CLOSED, "session owning this action chain is closed"
            )
        return session

    def _reference(self, element: Any) -> dict[str, str]:
        return self._session()._element_wire_reference(element)

    async def perform(self) -> None:
        """Send every lane, padded to equal length; the lanes are kept afterwards."""

        await self._session().perform_actions(self)

    async def release(self) -> None:
        """Reset pressed keys and buttons on the server."""

        await self._session().release_actions()
