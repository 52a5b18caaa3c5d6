"""Tests for HelperConfig environment readers."""

import pytest


def test_string_value_and_default(monkeypatch, helper_config) -> None:
    monkeypatch.setenv("SOME_STRING", "  hello ")
    monkeypatch.delenv("MISSING_STRING", raising=False)

    assert helper_config.get_string_val("some_string") == "hello"
    assert helper_config.get_string_val("MISSING_STRING", default="fallback") == "fallback"


def test_missing_required_value_raises(monkeypatch, helper_config) -> None:
    monkeypatch.delenv("MISSING_STRING", raising=False)

    with pytest.raises(ValueError, match="MISSING_STRING"):
        helper_config.get_string_val("MISSING_STRING")


def test_empty_value_counts_as_unset(monkeypatch, helper_config) -> None:
    monkeypatch.setenv("BLANK", "   ")

    assert helper_config.get_string_val("BLANK", default="d") == "d"
    assert helper_config.get_number_val("BLANK", default=3) == 3


def test_number_values(monkeypatch, helper_config) -> None:
    monkeypatch.setenv("AN_INT", "20")
    monkeypatch.setenv("A_FLOAT", "0.7")
    monkeypatch.setenv("NOT_A_NUMBER", "abc")

    assert helper_config.get_number_val("AN_INT") == 20
    assert isinstance(helper_config.get_number_val("AN_INT"), int)
    assert helper_config.get_number_val("A_FLOAT") == pytest.approx(0.7)
    with pytest.raises(ValueError):
        helper_config.get_number_val("NOT_A_NUMBER")


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("Yes", True), ("false", False), ("0", False)])
def test_bool_values(monkeypatch, helper_config, raw, expected) -> None:
    monkeypatch.setenv("A_BOOL", raw)

    assert helper_config.get_bool_val("A_BOOL") is expected


def test_list_values(monkeypatch, helper_config) -> None:
    monkeypatch.setenv("ORIGINS", "[http://a.test, http://b.test]")
    monkeypatch.setenv("NUMBERS", "[1,2,3]")
    monkeypatch.setenv("BAD_LIST", "a,b")
    monkeypatch.delenv("NO_LIST", raising=False)

    assert helper_config.get_list_val("ORIGINS") == ["http://a.test", "http://b.test"]
    assert helper_config.get_list_val("NUMBERS", element_type=int) == [1, 2, 3]
    assert helper_config.get_list_val("NO_LIST", default=["*"]) == ["*"]
    with pytest.raises(ValueError):
        helper_config.get_list_val("BAD_LIST")
