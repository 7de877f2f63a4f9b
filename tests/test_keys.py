from __future__ import annotations

from webdriver_wire.keys import Keys, TypingData, join_typing


def test_special_keys_use_reserved_code_points() -> None:
    assert Keys.NULL.value == "\ue000"
    assert Keys.ENTER.value == "\ue007"
    assert Keys.F12.value == "\ue03c"
    assert Keys.COMMAND is Keys.META


def test_keys_concatenate_with_text_into_typing_data() -> None:
    combined = "abc" + Keys.ENTER
    assert isinstance(combined, TypingData)
    assert str(combined) == "abc\ue007"

    chord = Keys.CONTROL + "a"
    assert chord.chars() == ["\ue009", "a"]


def test_typing_data_compares_with_strings() -> None:
    data = TypingData("hi") + Keys.TAB + TypingData("there")

    assert data == "hi\ue004there"
    assert hash(data) == hash("hi\ue004there")


def test_join_typing_flattens_mixed_parts() -> None:
    assert join_typing(["user", Keys.TAB, TypingData("pw"), Keys.ENTER]) == "user\ue004pw\ue007"
