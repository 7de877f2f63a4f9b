"""Wire codec: maps logical commands onto HTTP requests and decodes responses.

Everything here is a pure function of its inputs. Nothing is cached and no
state is shared, so any number of commands on any number of sessions may be
encoded and decoded concurrently.
"""

from __future__ import annotations

import base64
import binascii
import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from urllib.parse import quote

from pydantic import ValidationError

from .errors import ErrorKind, ProtocolError, TransportError, TransportFailure
from .models import By, Cookie, Rect, Selector, Timeouts

ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
LEGACY_ELEMENT_KEY = "ELEMENT"


class CommandName(str, enum.Enum):
    """Every command the client knows how to send."""

    STATUS = "status"
    NEW_SESSION = "new_session"
    DELETE_SESSION = "delete_session"
    GET_TIMEOUTS = "get_timeouts"
    SET_TIMEOUTS = "set_timeouts"
    NAVIGATE_TO = "navigate_to"
    GET_CURRENT_URL = "get_current_url"
    BACK = "back"
    FORWARD = "forward"
    REFRESH = "refresh"
    GET_TITLE = "get_title"
    GET_PAGE_SOURCE = "get_page_source"
    GET_WINDOW_HANDLE = "get_window_handle"
    GET_WINDOW_HANDLES = "get_window_handles"
    CLOSE_WINDOW = "close_window"
    SWITCH_TO_WINDOW = "switch_to_window"
    NEW_WINDOW = "new_window"
    SWITCH_TO_FRAME = "switch_to_frame"
    SWITCH_TO_PARENT_FRAME = "switch_to_parent_frame"
    GET_WINDOW_RECT = "get_window_rect"
    SET_WINDOW_RECT = "set_window_rect"
    MAXIMIZE_WINDOW = "maximize_window"
    MINIMIZE_WINDOW = "minimize_window"
    FULLSCREEN_WINDOW = "fullscreen_window"
    GET_ACTIVE_ELEMENT = "get_active_element"
    FIND_ELEMENT = "find_element"
    FIND_ELEMENTS = "find_elements"
    FIND_ELEMENT_FROM_ELEMENT = "find_element_from_element"
    FIND_ELEMENTS_FROM_ELEMENT = "find_elements_from_element"
    IS_ELEMENT_SELECTED = "is_element_selected"
    IS_ELEMENT_DISPLAYED = "is_element_displayed"
    IS_ELEMENT_ENABLED = "is_element_enabled"
    GET_ELEMENT_ATTRIBUTE = "get_element_attribute"
    GET_ELEMENT_PROPERTY = "get_element_property"
    GET_ELEMENT_CSS_VALUE = "get_element_css_value"
    GET_ELEMENT_TEXT = "get_element_text"
    GET_ELEMENT_TAG_NAME = "get_element_tag_name"
    GET_ELEMENT_RECT = "get_element_rect"
    ELEMENT_CLICK = "element_click"
    ELEMENT_CLEAR = "element_clear"
    ELEMENT_SEND_KEYS = "element_send_keys"
    EXECUTE_SCRIPT = "execute_script"
    EXECUTE_ASYNC_SCRIPT = "execute_async_script"
    GET_ALL_COOKIES = "get_all_cookies"
    GET_NAMED_COOKIE = "get_named_cookie"
    ADD_COOKIE = "add_cookie"
    DELETE_COOKIE = "delete_cookie"
    DELETE_ALL_COOKIES = "delete_all_cookies"
    PERFORM_ACTIONS = "perform_actions"
    RELEASE_ACTIONS = "release_actions"
    DISMISS_ALERT = "dismiss_alert"
    ACCEPT_ALERT = "accept_alert"
    GET_ALERT_TEXT = "get_alert_text"
    SEND_ALERT_TEXT = "send_alert_text"
    TAKE_SCREENSHOT = "take_screenshot"
    TAKE_ELEMENT_SCREENSHOT = "take_element_screenshot"


@dataclass(frozen=True)
class Route:
    method: str
    path: str


_S = "/session/{session_id}"
_E = _S + "/element/{element_id}"

ROUTES: Mapping[CommandName, Route] = {
    CommandName.STATUS: Route("GET", "/status"),
    CommandName.NEW_SESSION: Route("POST", "/session"),
    CommandName.DELETE_SESSION: Route("DELETE", _S),
    CommandName.GET_TIMEOUTS: Route("GET", _S + "/timeouts"),
    CommandName.SET_TIMEOUTS: Route("POST", _S + "/timeouts"),
    CommandName.NAVIGATE_TO: Route("POST", _S + "/url"),
    CommandName.GET_CURRENT_URL: Route("GET", _S + "/url"),
    CommandName.BACK: Route("POST", _S + "/back"),
    CommandName.FORWARD: Route("POST", _S + "/forward"),
    CommandName.REFRESH: Route("POST", _S + "/refresh"),
    CommandName.GET_TITLE: Route("GET", _S + "/title"),
    CommandName.GET_PAGE_SOURCE: Route("GET", _S + "/source"),
    CommandName.GET_WINDOW_HANDLE: Route("GET", _S + "/window"),
    CommandName.GET_WINDOW_HANDLES: Route("GET", _S + "/window/handles"),
    CommandName.CLOSE_WINDOW: Route("DELETE", _S + "/window"),
    CommandName.SWITCH_TO_WINDOW: Route("POST", _S + "/window"),
    CommandName.NEW_WINDOW: Route("POST", _S + "/window/new"),
    CommandName.SWITCH_TO_FRAME: Route("POST", _S + "/frame"),
    CommandName.SWITCH_TO_PARENT_FRAME: Route("POST", _S + "/frame/parent"),
    CommandName.GET_WINDOW_RECT: Route("GET", _S + "/window/rect"),
    CommandName.SET_WINDOW_RECT: Route("POST", _S + "/window/rect"),
    CommandName.MAXIMIZE_WINDOW: Route("POST", _S + "/window/maximize"),
    CommandName.MINIMIZE_WINDOW: Route("POST", _S + "/window/minimize"),
    CommandName.FULLSCREEN_WINDOW: Route("POST", _S + "/window/fullscreen"),
    CommandName.GET_ACTIVE_ELEMENT: Route("GET", _S + "/element/active"),
    CommandName.FIND_ELEMENT: Route("POST", _S + "/element"),
    CommandName.FIND_ELEMENTS: Route("POST", _S + "/elements"),
    CommandName.FIND_ELEMENT_FROM_ELEMENT: Route("POST", _E + "/element"),
    CommandName.FIND_ELEMENTS_FROM_ELEMENT: Route("POST", _E + "/elements"),
    CommandName.IS_ELEMENT_SELECTED: Route("GET", _E + "/selected"),
    CommandName.IS_ELEMENT_DISPLAYED: Route("GET", _E + "/displayed"),
    CommandName.IS_ELEMENT_ENABLED: Route("GET", _E + "/enabled"),
    CommandName.GET_ELEMENT_ATTRIBUTE: Route("GET", _E + "/attribute/{name}"),
    CommandName.GET_ELEMENT_PROPERTY: Route("GET", _E + "/property/{name}"),
    CommandName.GET_ELEMENT_CSS_VALUE: Route("GET", _E + "/css/{name}"),
    CommandName.GET_ELEMENT_TEXT: Route("GET", _E + "/text"),
    CommandName.GET_ELEMENT_TAG_NAME: Route("GET", _E + "/name"),
    CommandName.GET_ELEMENT_RECT: Route("GET", _E + "/rect"),
    CommandName.ELEMENT_CLICK: Route("POST", _E + "/click"),
    CommandName.ELEMENT_CLEAR: Route("POST", _E + "/clear"),
    CommandName.ELEMENT_SEND_KEYS: Route("POST", _E + "/value"),
    CommandName.EXECUTE_SCRIPT: Route("POST", _S + "/execute/sync"),
    CommandName.EXECUTE_ASYNC_SCRIPT: Route("POST", _S + "/execute/async"),
    CommandName.GET_ALL_COOKIES: Route("GET", _S + "/cookie"),
    CommandName.GET_NAMED_COOKIE: Route("GET", _S + "/cookie/{name}"),
    CommandName.ADD_COOKIE: Route("POST", _S + "/cookie"),
    CommandName.DELETE_COOKIE: Route("DELETE", _S + "/cookie/{name}"),
    CommandName.DELETE_ALL_COOKIES: Route("DELETE", _S + "/cookie"),
    CommandName.PERFORM_ACTIONS: Route("POST", _S + "/actions"),
    CommandName.RELEASE_ACTIONS: Route("DELETE", _S + "/actions"),
    CommandName.DISMISS_ALERT: Route("POST", _S + "/alert/dismiss"),
    CommandName.ACCEPT_ALERT: Route("POST", _S + "/alert/accept"),
    CommandName.GET_ALERT_TEXT: Route("GET", _S + "/alert/text"),
    CommandName.SEND_ALERT_TEXT: Route("POST", _S + "/alert/text"),
    CommandName.TAKE_SCREENSHOT: Route("GET", _S + "/screenshot"),
    CommandName.TAKE_ELEMENT_SCREENSHOT: Route("GET", _E + "/screenshot"),
}

ALERT_COMMANDS = frozenset(
    {
        CommandName.DISMISS_ALERT,
        CommandName.ACCEPT_ALERT,
        CommandName.GET_ALERT_TEXT,
        CommandName.SEND_ALERT_TEXT,
    }
)


@dataclass(frozen=True)
class Command:
    """A logical command plus the identifiers and parameters it needs."""

    name: CommandName
    params: dict[str, Any] = field(default_factory=dict)
    element_id: Optional[str] = None
    path_name: Optional[str] = None


@dataclass(frozen=True)
class WireRequest:
    """An encoded command ready to be sent."""

    method: str
    path: str
    body: Optional[dict[str, Any]] = None


def encode_command(command: Command, session_id: Optional[str] = None) -> WireRequest:
    """Encode ``command`` against ``session_id`` into method, path and JSON body."""

    route = ROUTES[command.name]
    bindings: dict[str, str] = {}
    if "{session_id}" in route.path:
        if not session_id:
            raise ValueError(f"{command.name.value} requires a session id")
        bindings["session_id"] = _segment(session_id)
    if "{element_id}" in route.path:
        if not command.element_id:
            raise ValueError(f"{command.name.value} requires an element id")
        bindings["element_id"] = _segment(command.element_id)
    if "{name}" in route.path:
        if command.path_name is None:
            raise ValueError(f"{command.name.value} requires a name")
        bindings["name"] = _segment(command.path_name)
    path = route.path.format(**bindings)
    body: Optional[dict[str, Any]] = None
    if route.method == "POST":
        body = dict(command.params)
    return WireRequest(method=route.method, path=path, body=body)


def _segment(value: str) -> str:
    return quote(value, safe="")


# Request parameter builders -------------------------------------------------


def selector_params(selector: Selector) -> dict[str, str]:
    """Build the ``{using, value}`` pair, mapping non-W3C strategies onto CSS."""

    strategy = selector.strategy
    value = selector.value
    if strategy is By.ID:
        return {"using": By.CSS.value, "value": f'[id="{_css_escape(value)}"]'}
    if strategy is By.NAME:
        return {"using": By.CSS.value, "value": f'[name="{_css_escape(value)}"]'}
    if strategy is By.CLASS_NAME:
        return {"using": By.CSS.value, "value": f".{_css_class(value)}"}
    return {"using": strategy.value, "value": value}


def _css_class(value: str) -> str:
    """Escape one class name as a CSS identifier.

    Compound names such as ``"btn primary"`` are rejected rather than turned
    into a descendant selector.
    """

    if not value or any(char.isspace() for char in value):
        raise ValueError(f"class name must be a single class, got {value!r}")
    escaped: list[str] = []
    for index, char in enumerate(value):
        leading = index == 0 or (index == 1 and value[0] == "-")
        if char.isdigit() and char.isascii() and leading:
            escaped.append(f"\\{ord(char):x} ")
        elif char.isalnum() or char in "-_" or not char.isascii():
            escaped.append(char)
        else:
            escaped.append("\\" + char)
    if escaped == ["-"]:
        return "\\-"
    return "".join(escaped)


def _css_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def capabilities_params(
    capabilities: Mapping[str, Any], *, legacy: bool = True
) -> dict[str, Any]:
    params: dict[str, Any] = {"capabilities": {"alwaysMatch": dict(capabilities)}}
    if legacy:
        params["desiredCapabilities"] = dict(capabilities)
    return params


def element_reference(element_id: str) -> dict[str, str]:
    return {ELEMENT_KEY: element_id}


# Response decoding ----------------------------------------------------------


def decode_response(status: int, payload: Any) -> Any:
    """Return the ``value`` of a success envelope or raise the matching error."""

    value = payload.get("value") if isinstance(payload, Mapping) else None
    if not 200 <= status < 300:
        raise _error_from_payload(status, payload, value)
    if not isinstance(payload, Mapping) or "value" not in payload:
        raise TransportError(
            TransportFailure.INVALID_RESPONSE,
            f"response envelope without 'value' (HTTP {status})",
        )
    if isinstance(value, Mapping) and ErrorKind.is_known(value.get("error")):
        raise _error_from_payload(status, payload, value)
    return value


def _error_from_payload(status: int, payload: Any, value: Any) -> ProtocolError:
    details: Mapping[str, Any] = value if isinstance(value, Mapping) else {}
    code = details.get("error")
    if not isinstance(code, str) and isinstance(payload, Mapping):
        code = payload.get("error")
    message = details.get("message")
    if not isinstance(message, str):
        message = str(value) if value is not None else ""
    if not isinstance(code, str):
        return ProtocolError(
            ErrorKind.UNKNOWN_ERROR,
            message or f"HTTP {status} without an error code",
            status=status,
        )
    return ProtocolError(
        ErrorKind.from_code(code),
        message,
        code=code,
        status=status,
        stacktrace=details.get("stacktrace"),
        data=details.get("data"),
    )


def decode_new_session(status: int, payload: Any) -> tuple[str, dict[str, Any]]:
    """Extract session id and negotiated capabilities from a new-session reply.

    W3C servers answer ``{"value": {"sessionId", "capabilities"}}``. Legacy
    servers put ``sessionId`` at the top level and the capabilities in ``value``.
    """

    value = decode_response(status, payload)
    data: Mapping[str, Any] = value if isinstance(value, Mapping) else {}
    session_id = payload.get("sessionId") or data.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        raise TransportError(
            TransportFailure.INVALID_RESPONSE, "new session response carries no sessionId"
        )
    if "sessionId" in payload:
        capabilities = value
    else:
        capabilities = data.get("capabilities")
    if not isinstance(capabilities, Mapping):
        capabilities = {}
    return session_id, dict(capabilities)


def _mismatch(expected: str, value: Any) -> TransportError:
    return TransportError(
        TransportFailure.INVALID_RESPONSE,
        f"expected {expected}, got {type(value).__name__}: {value!r}",
    )


def expect_str(value: Any) -> str:
    if not isinstance(value, str):
        raise _mismatch("string", value)
    return value


def expect_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return expect_str(value)


def expect_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise _mismatch("boolean", value)
    return value


def expect_list(value: Any) -> list[Any]:
    if not isinstance(value, list):
        raise _mismatch("array", value)
    return value


def expect_dict(value: Any) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise _mismatch("object", value)
    return dict(value)


def is_element_reference(value: Any) -> bool:
    return isinstance(value, Mapping) and (ELEMENT_KEY in value or LEGACY_ELEMENT_KEY in value)


def decode_element_id(value: Any) -> str:
    if isinstance(value, Mapping):
        element_id = value.get(ELEMENT_KEY, value.get(LEGACY_ELEMENT_KEY))
        if isinstance(element_id, str) and element_id:
            return element_id
    raise _mismatch("element reference", value)


def decode_element_ids(value: Any) -> list[str]:
    return [decode_element_id(item) for item in expect_list(value)]


def decode_window_handles(value: Any) -> list[str]:
    return [expect_str(item) for item in expect_list(value)]


def decode_cookie(value: Any) -> Cookie:
    try:
        return Cookie.model_validate(expect_dict(value))
    except ValidationError as exc:
        raise TransportError(TransportFailure.INVALID_RESPONSE, f"invalid cookie: {exc}") from exc


def decode_cookies(value: Any) -> list[Cookie]:
    return [decode_cookie(item) for item in expect_list(value)]


def decode_rect(value: Any) -> Rect:
    try:
        return Rect.model_validate(expect_dict(value))
    except ValidationError as exc:
        raise TransportError(TransportFailure.INVALID_RESPONSE, f"invalid rect: {exc}") from exc


def decode_timeouts(value: Any) -> Timeouts:
    try:
        return Timeouts.model_validate(expect_dict(value))
    except ValidationError as exc:
        raise TransportError(
            TransportFailure.INVALID_RESPONSE, f"invalid timeouts: {exc}"
        ) from exc


def decode_base64_image(value: Any) -> bytes:
    try:
        return base64.b64decode(expect_str(value), validate=True)
    except binascii.Error as exc:
        raise TransportError(
            TransportFailure.INVALID_RESPONSE, "screenshot is not valid base64"
        ) from exc


# Script argument and result conversion --------------------------------------


def wrap_script_value(value: Any, reference_of: Callable[[Any], Optional[str]]) -> Any:
    """Replace handles inside ``value`` with wire element references.

    ``reference_of`` returns the element id for a handle, or ``None`` when the
    object is not a handle and should be kept as is.
    """

    element_id = reference_of(value)
    if element_id is not None:
        return element_reference(element_id)
    if isinstance(value, Mapping):
        return {key: wrap_script_value(item, reference_of) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [wrap_script_value(item, reference_of) for item in value]
    return value


def unwrap_script_value(value: Any, make_element: Callable[[str], Any]) -> Any:
    """Replace wire element references inside ``value`` with handles."""

    if is_element_reference(value):
        return make_element(decode_element_id(value))
    if isinstance(value, Mapping):
        return {key: unwrap_script_value(item, make_element) for key, item in value.items()}
    if isinstance(value, list):
        return [unwrap_script_value(item, make_element) for item in value]
    return value
