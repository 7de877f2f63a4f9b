from __future__ import annotations

import base64
import itertools
import json
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest

from webdriver_wire.codec import ELEMENT_KEY
from webdriver_wire.session import Session

BASE_URL = "http://fake-driver:4444"
SCREENSHOT_BYTES = b"\x89PNG\r\n\x1a\nfake"


@dataclass
class Recorded:
    method: str
    path: str
    body: Any


@dataclass
class FakeElement:
    id: str
    tag: str
    selectors: set[str]
    text: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[str] = field(default_factory=list)
    value: str = ""
    displayed: bool = True


class FakeError(Exception):
    def __init__(self, status: int, code: str, message: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message


def _page() -> dict[str, FakeElement]:
    elements = [
        FakeElement("el-title", "h1", {"h1", '[id="title"]', "#title"}, text="Hello"),
        FakeElement(
            "el-query",
            "input",
            {"input", '[name="q"]', ".search"},
            attributes={"name": "q", "type": "text"},
        ),
        FakeElement("el-list", "ul", {"ul", ".list"}, children=["el-item-1", "el-item-2"]),
        FakeElement("el-item-1", "li", {"li", ".item"}, text="first"),
        FakeElement("el-item-2", "li", {"li", ".item"}, text="second", displayed=False),
        FakeElement("el-frame", "iframe", {"iframe"}),
    ]
    return {element.id: element for element in elements}


class FakeWebDriver:
    """In-memory remote end speaking enough of the W3C protocol for the tests."""

    def __init__(self) -> None:
        self.requests: list[Recorded] = []
        self.sessions: set[str] = set()
        self.elements = _page()
        self.stale: set[str] = set()
        self.cookies: dict[str, dict[str, Any]] = {}
        self.alert_text: Optional[str] = None
        self.prompt_text: Optional[str] = None
        self.frame_depth = 0
        self.windows = ["win-1"]
        self.current_window = "win-1"
        self.url = "about:blank"
        self.timeouts = {"script": 30000, "pageLoad": 300000, "implicit": 0}
        self.window_rect = {"x": 0, "y": 0, "width": 1280, "height": 720}
        self.performed: list[dict[str, Any]] = []
        self.released = 0
        self.legacy = False
        self.fail_delete = 0
        self.ready = True
        self.overrides: dict[tuple[str, str], tuple[httpx.Response, bool]] = {}
        self._ids = itertools.count(1)

    # Test helpers ------------------------------------------------------------

    def respond_with(
        self, method: str, path: str, response: httpx.Response, *, once: bool = False
    ) -> None:
        self.overrides[(method, path)] = (response, once)

    def open_alert(self, text: str = "Are you sure?") -> None:
        self.alert_text = text

    def paths(self, method: Optional[str] = None) -> list[str]:
        return [r.path for r in self.requests if method is None or r.method == method]

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.path == path)

    # HTTP entry point --------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        raw = request.url.raw_path.decode("ascii").split("?", 1)[0]
        segments = [unquote(part) for part in raw.strip("/").split("/")]
        path = "/" + "/".join(segments)
        body = json.loads(request.content) if request.content else None
        self.requests.append(Recorded(request.method, path, body))
        override = self.overrides.get((request.method, path))
        if override is not None:
            response, once = override
            if once:
                del self.overrides[(request.method, path)]
            return response
        try:
            if request.method == "POST" and segments == ["session"]:
                return self._new_session(body)
            value = self._dispatch(request.method, segments, body)
        except FakeError as exc:
            return httpx.Response(
                exc.status,
                json={"value": {"error": exc.code, "message": exc.message, "stacktrace": ""}},
            )
        return httpx.Response(200, json={"value": value})

    def _new_session(self, body: Any) -> httpx.Response:
        requested = body["capabilities"]["alwaysMatch"]
        session_id = f"session-{next(self._ids)}"
        self.sessions.add(session_id)
        capabilities = {
            "browserName": requested.get("browserName", "fakefox"),
            "browserVersion": "1.0",
            "platformName": "linux",
            "acceptInsecureCerts": False,
        }
        if self.legacy:
            return httpx.Response(
                200, json={"sessionId": session_id, "status": 0, "value": capabilities}
            )
        return httpx.Response(
            200, json={"value": {"sessionId": session_id, "capabilities": capabilities}}
        )

    def _dispatch(self, method: str, segments: list[str], body: Any) -> Any:
        if segments == ["status"]:
            return {"ready": self.ready, "message": "fake driver", "build": {"version": "1"}}
        if len(segments) < 2 or segments[0] != "session":
            raise FakeError(404, "unknown command", "/".join(segments))
        session_id, rest = segments[1], segments[2:]
        if session_id not in self.sessions:
            raise FakeError(404, "invalid session id", session_id)
        if not rest and method == "DELETE":
            if self.fail_delete:
                self.fail_delete -= 1
                raise FakeError(500, "unknown error", "browser did not quit")
            self.sessions.discard(session_id)
            return None
        if self.alert_text is not None and rest[:1] != ["alert"]:
            raise FakeError(500, "unexpected alert open", self.alert_text)
        if rest[:1] == ["element"] and len(rest) > 1 and rest[1] != "active":
            return self._element_command(method, rest[1], rest[2:], body)
        return self._session_command(method, rest, body)

    # Session-level commands -------------------------------------------------

    def _session_command(self, method: str, rest: list[str], body: Any) -> Any:
        if not rest:
            raise FakeError(405, "unknown method", method)
        route = (method, "/".join(rest))
        if route == ("POST", "url"):
            self.url = body["url"]
            if "alert" in self.url:
                self.alert_text = "Are you sure?"
            return None
        if route == ("GET", "url"):
            return self.url
        if route == ("GET", "title"):
            return "Fake Page"
        if route == ("GET", "source"):
            return "<html><body><h1>Hello</h1></body></html>"
        if method == "POST" and rest[0] in ("back", "forward", "refresh"):
            return None
        if route == ("GET", "timeouts"):
            return dict(self.timeouts)
        if route == ("POST", "timeouts"):
            self.timeouts.update(body)
            return None
        if rest[0] == "window":
            return self._window_command(method, rest[1:], body)
        if rest[0] == "frame":
            return self._frame_command(method, rest[1:], body)
        if route == ("POST", "element"):
            return self._reference(self._find(body, self.elements)[0])
        if route == ("POST", "elements"):
            return [self._reference(e) for e in self._find(body, self.elements, strict=False)]
        if route == ("GET", "element/active"):
            return self._reference(self.elements["el-query"])
        if rest[0] == "execute":
            return self._execute(body)
        if rest[0] == "cookie":
            return self._cookie_command(method, rest[1:], body)
        if route == ("POST", "actions"):
            self.performed.append(body)
            return None
        if route == ("DELETE", "actions"):
            self.released += 1
            return None
        if rest[0] == "alert":
            return self._alert_command(method, rest[1:], body)
        if route == ("GET", "screenshot"):
            return base64.b64encode(SCREENSHOT_BYTES).decode("ascii")
        raise FakeError(404, "unknown command", "/".join(rest))

    def _window_command(self, method: str, rest: list[str], body: Any) -> Any:
        route = (method, "/".join(rest))
        if route == ("GET", ""):
            if self.current_window not in self.windows:
                raise FakeError(404, "no such window", self.current_window)
            return self.current_window
        if route == ("POST", ""):
            if body["handle"] not in self.windows:
                raise FakeError(404, "no such window", body["handle"])
            self.current_window = body["handle"]
            self.frame_depth = 0
            return None
        if route == ("DELETE", ""):
            self.windows.remove(self.current_window)
            return list(self.windows)
        if route == ("GET", "handles"):
            return list(self.windows)
        if route == ("POST", "new"):
            handle = f"win-{len(self.windows) + 1}"
            self.windows.append(handle)
            return {"handle": handle, "type": body.get("type", "tab")}
        if route == ("GET", "rect"):
            return dict(self.window_rect)
        if route == ("POST", "rect"):
            self.window_rect.update(body)
            return dict(self.window_rect)
        if method == "POST" and rest[0] in ("maximize", "minimize", "fullscreen"):
            return dict(self.window_rect)
        raise FakeError(404, "unknown command", "window/" + "/".join(rest))

    def _frame_command(self, method: str, rest: list[str], body: Any) -> Any:
        if rest == ["parent"]:
            self.frame_depth = max(0, self.frame_depth - 1)
            return None
        target = body["id"]
        if target is None:
            self.frame_depth = 0
        elif isinstance(target, int):
            if target > 0:
                raise FakeError(404, "no such frame", str(target))
            self.frame_depth += 1
        else:
            self._element(target[ELEMENT_KEY])
            self.frame_depth += 1
        return None

    def _cookie_command(self, method: str, rest: list[str], body: Any) -> Any:
        if not rest:
            if method == "GET":
                return list(self.cookies.values())
            if method == "POST":
                cookie = dict(body["cookie"])
                cookie.setdefault("path", "/")
                self.cookies[cookie["name"]] = cookie
                return None
            self.cookies.clear()
            return None
        name = rest[0]
        if method == "DELETE":
            self.cookies.pop(name, None)
            return None
        if name not in self.cookies:
            raise FakeError(404, "no such cookie", name)
        return self.cookies[name]

    def _alert_command(self, method: str, rest: list[str], body: Any) -> Any:
        if self.alert_text is None:
            raise FakeError(404, "no such alert", "no prompt is open")
        if rest == ["text"]:
            if method == "GET":
                return self.alert_text
            self.prompt_text = body["text"]
            return None
        self.alert_text = None
        return None

    def _execute(self, body: Any) -> Any:
        script, args = body["script"], body["args"]
        if "throw" in script:
            raise FakeError(500, "javascript error", "Error: boom")
        if script.startswith("return arguments"):
            return args[0] if len(args) == 1 else args
        if "querySelector" in script:
            return self._reference(self.elements["el-title"])
        return None

    # Element-level commands -------------------------------------------------

    def _element_command(self, method: str, element_id: str, rest: list[str], body: Any) -> Any:
        element = self._element(element_id)
        route = (method, "/".join(rest))
        if route == ("GET", "text"):
            return element.text
        if route == ("GET", "name"):
            return element.tag
        if method == "GET" and rest[0] == "attribute":
            return element.attributes.get(rest[1])
        if method == "GET" and rest[0] == "property":
            if rest[1] == "value":
                return element.value
            if rest[1] == "firstElementChild" and element.children:
                return self._reference(self.elements[element.children[0]])
            return None
        if method == "GET" and rest[0] == "css":
            return "block" if element.displayed else "none"
        if route == ("GET", "rect"):
            return {"x": 10, "y": 20, "width": 100, "height": 30}
        if route == ("GET", "displayed"):
            return element.displayed
        if route in (("GET", "enabled"), ("GET", "selected")):
            return rest[0] == "enabled"
        if route == ("POST", "click"):
            return None
        if route == ("POST", "clear"):
            element.value = ""
            return None
        if route == ("POST", "value"):
            element.value += body["text"]
            return None
        if route == ("GET", "screenshot"):
            return base64.b64encode(SCREENSHOT_BYTES).decode("ascii")
        children = {child: self.elements[child] for child in element.children}
        if route == ("POST", "element"):
            return self._reference(self._find(body, children)[0])
        if route == ("POST", "elements"):
            return [self._reference(e) for e in self._find(body, children, strict=False)]
        raise FakeError(404, "unknown command", "/".join(rest))

    def _element(self, element_id: str) -> FakeElement:
        if element_id in self.stale:
            raise FakeError(404, "stale element reference", element_id)
        element = self.elements.get(element_id)
        if element is None:
            raise FakeError(404, "no such element", element_id)
        return element

    def _find(
        self, body: Any, scope: dict[str, FakeElement], *, strict: bool = True
    ) -> list[FakeElement]:
        using, value = body["using"], body["value"]
        if using not in ("css selector", "link text", "partial link text", "tag name", "xpath"):
            raise FakeError(400, "invalid argument", f"unsupported strategy {using}")
        if using == "tag name":
            found = [e for e in scope.values() if e.tag == value]
        else:
            found = [e for e in scope.values() if value in e.selectors]
        if strict and not found:
            raise FakeError(404, "no such element", f"{using}={value}")
        return found

    @staticmethod
    def _reference(element: FakeElement) -> dict[str, str]:
        return {ELEMENT_KEY: element.id}


@pytest.fixture
def server() -> FakeWebDriver:
    return FakeWebDriver()


@pytest.fixture
def client(server: FakeWebDriver) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server.handle))


@pytest.fixture
def open_session(client: httpx.AsyncClient):
    async def _open(capabilities: Optional[dict[str, Any]] = None, **kwargs: Any) -> Session:
        return await Session.create(BASE_URL, capabilities, client=client, **kwargs)

    return _open


@pytest.fixture
def base_url() -> str:
    return BASE_URL
