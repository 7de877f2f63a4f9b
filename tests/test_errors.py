from __future__ import annotations

import pytest

from webdriver_wire.errors import (
    ErrorKind,
    LocalFailure,
    LocalStateError,
    ProtocolError,
    TransportError,
    TransportFailure,
    WebDriverError,
)


@pytest.mark.parametrize(
    ("code", "kind"),
    [
        ("no such element", ErrorKind.NO_SUCH_ELEMENT),
        ("  Stale Element Reference ", ErrorKind.STALE_ELEMENT_REFERENCE),
        ("script timeout", ErrorKind.TIMEOUT),
        ("javascript error", ErrorKind.SCRIPT_ERROR),
        ("unrecognized", ErrorKind.UNRECOGNIZED),
        ("something else", ErrorKind.UNRECOGNIZED),
    ],
)
def test_error_kind_from_code(code: str, kind: ErrorKind) -> None:
    assert ErrorKind.from_code(code) is kind


def test_is_known_rejects_non_strings_and_unknown_codes() -> None:
    assert ErrorKind.is_known("no such window")
    assert not ErrorKind.is_known("nope")
    assert not ErrorKind.is_known(None)
    assert not ErrorKind.is_known("unrecognized")


def test_protocol_error_message_includes_kind_and_status() -> None:
    error = ProtocolError(ErrorKind.NO_SUCH_FRAME, "frame 3", status=404)

    assert str(error) == "no such frame (HTTP 404): frame 3"
    assert error.code == "no such frame"


def test_protocol_error_for_unrecognized_code_shows_raw_code() -> None:
    error = ProtocolError(ErrorKind.UNRECOGNIZED, "", code="weird thing")

    assert str(error) == "weird thing"


def test_all_errors_share_a_base_class() -> None:
    errors = [
        ProtocolError(ErrorKind.UNKNOWN_ERROR),
        TransportError(TransportFailure.TIMEOUT, "slow"),
        LocalStateError(LocalFailure.SESSION_CLOSED, "closed"),
    ]

    assert all(isinstance(error, WebDriverError) for error in errors)
    assert str(errors[1]) == "timeout: slow"
