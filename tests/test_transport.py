from __future__ import annotations

import asyncio

import httpx
import pytest

from webdriver_wire.codec import Command, CommandName, encode_command
from webdriver_wire.errors import ErrorKind, ProtocolError, TransportError, TransportFailure
from webdriver_wire.session import Session, server_status
from webdriver_wire.transport import HttpTransport, LoopThread


def _transport(handler) -> HttpTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport("http://driver:4444/wd/hub/", client=client)


@pytest.mark.asyncio
async def test_send_joins_base_url_and_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": "ok"})

    transport = _transport(handler)

    value = await transport.execute(encode_command(Command(CommandName.GET_TITLE), "s1"))

    assert value == "ok"
    assert str(seen[0].url) == "http://driver:4444/wd/hub/session/s1/title"
    assert seen[0].content == b""


@pytest.mark.asyncio
async def test_connection_failure_maps_to_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = _transport(handler)

    with pytest.raises(TransportError) as excinfo:
        await transport.send(encode_command(Command(CommandName.STATUS)))

    assert excinfo.value.reason is TransportFailure.CONNECTION
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_timeout_maps_to_transport_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    transport = _transport(handler)

    with pytest.raises(TransportError) as excinfo:
        await transport.send(encode_command(Command(CommandName.STATUS)))

    assert excinfo.value.reason is TransportFailure.TIMEOUT


@pytest.mark.asyncio
async def test_non_json_body_is_invalid_response() -> None:
    transport = _transport(lambda request: httpx.Response(502, text="<html>Bad gateway</html>"))

    with pytest.raises(TransportError) as excinfo:
        await transport.execute(encode_command(Command(CommandName.STATUS)))

    assert excinfo.value.reason is TransportFailure.INVALID_RESPONSE


@pytest.mark.asyncio
async def test_empty_error_body_is_unknown_protocol_error() -> None:
    transport = _transport(lambda request: httpx.Response(500))

    with pytest.raises(ProtocolError) as excinfo:
        await transport.execute(encode_command(Command(CommandName.STATUS)))

    assert excinfo.value.kind is ErrorKind.UNKNOWN_ERROR
    assert excinfo.value.status == 500


@pytest.mark.asyncio
async def test_server_status(client, base_url) -> None:
    status = await server_status(base_url, client=client)

    assert status.ready is True
    assert status.message == "fake driver"
    assert status.details == {"build": {"version": "1"}}


@pytest.mark.asyncio
async def test_create_over_explicit_transport(server, client, base_url) -> None:
    transport = HttpTransport(base_url, client=client)

    session = await Session.create(transport=transport)
    await session.close()

    assert server.paths() == ["/session", "/session/session-1"]


def test_loop_thread_runs_coroutines_and_stops() -> None:
    loop = LoopThread(name="test-loop")

    async def answer() -> int:
        await asyncio.sleep(0)
        return 42

    assert loop.run(answer()) == 42
    loop.stop()
    assert not loop.running
    with pytest.raises(RuntimeError):
        loop.run(answer())

