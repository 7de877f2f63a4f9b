from __future__ import annotations

import logging

import pytest

from webdriver_wire.blocking import BlockingElement, BlockingSession, status
from webdriver_wire.codec import ELEMENT_KEY
from webdriver_wire.errors import ErrorKind, LocalFailure, LocalStateError, ProtocolError
from webdriver_wire.handles import WindowHandle
from webdriver_wire.keys import Keys
from webdriver_wire.models import By, Selector
from webdriver_wire.session import SessionState


@pytest.fixture
def blocking(client, base_url):
    session = BlockingSession.create(base_url, client=client)
    yield session
    session.close()


def test_blocking_session_end_to_end(server, blocking) -> None:
    blocking.get("https://example.com")

    heading = blocking.find_element(Selector.css("h1"))

    assert isinstance(heading, BlockingElement)
    assert heading.text() == "Hello"
    assert blocking.title() == "Fake Page"
    assert blocking.current_window_handle() == WindowHandle("win-1")
    assert server.paths()[:2] == ["/session", "/session/session-1/url"]


def test_blocking_elements_and_scripts(server, blocking) -> None:
    items = blocking.find_elements(By.CLASS_NAME, "item")
    query = blocking.active_element()

    query.send_keys("hi", Keys.ENTER)
    echoed = blocking.execute_script("return arguments[0]", items)

    assert [item.id for item in items] == ["el-item-1", "el-item-2"]
    assert server.elements["el-query"].value == "hi\ue007"
    assert echoed == items
    assert all(isinstance(item, BlockingElement) for item in echoed)
    assert server.requests[-1].body["args"] == [
        [{ELEMENT_KEY: "el-item-1"}, {ELEMENT_KEY: "el-item-2"}]
    ]


def test_blocking_protocol_errors_propagate(blocking) -> None:
    with pytest.raises(ProtocolError) as excinfo:
        blocking.find_element("css", ".missing")

    assert excinfo.value.kind is ErrorKind.NO_SUCH_ELEMENT


def test_blocking_alert(server, blocking) -> None:
    server.open_alert("Continue?")

    alert = blocking.switch_to_alert()

    assert alert.initial_text == "Continue?"
    with pytest.raises(LocalStateError):
        blocking.title()
    alert.accept()
    assert blocking.title() == "Fake Page"


def test_blocking_action_chain(server, blocking) -> None:
    query = blocking.find_element(Selector.css("input"))

    blocking.action_chain().double_click(query).perform()

    (mouse,) = server.performed[0]["actions"]
    assert mouse["actions"][0]["origin"] == {ELEMENT_KEY: "el-query"}
    assert [tick["type"] for tick in mouse["actions"]] == [
        "pointerMove",
        "pointerDown",
        "pointerUp",
        "pointerDown",
        "pointerUp",
    ]


def test_blocking_close_and_scope_exit(server, client, base_url) -> None:
    with BlockingSession.create(base_url, client=client) as session:
        heading = session.find_element(Selector.css("h1"))

    assert session.state is SessionState.CLOSED
    session.close()
    assert server.count("DELETE", "/session/session-1") == 1
    with pytest.raises(LocalStateError) as excinfo:
        session.title()
    assert excinfo.value.reason is LocalFailure.SESSION_CLOSED
    with pytest.raises(LocalStateError):
        heading.text()


def test_blocking_scope_exit_logs_close_failure(server, client, base_url, caplog) -> None:
    server.fail_delete = 2

    with caplog.at_level(logging.WARNING, logger="webdriver_wire.blocking"):
        with BlockingSession.create(base_url, client=client) as session:
            session.refresh()

    assert session.state is SessionState.CLOSE_FAILED
    assert "Failed to delete session" in caplog.text
    with pytest.raises(ProtocolError):
        session.close()
    assert session.state is SessionState.CLOSED
    session.close()
    assert server.count("DELETE", "/session/session-1") == 2


def test_blocking_status(client, base_url) -> None:
    report = status(base_url, client=client)

    assert report.ready is True
