"""Tests for the shared input validators."""

from __future__ import annotations

import pytest

from bugtrack.validation import check_choice, check_description, coerce_role, is_blank, sanitize_name, sanitize_title


class TestSanitizeTitle:
    def test_strips(self) -> None:
        assert sanitize_title("  Broken link  ") == ("Broken link", None)

    def test_empty(self) -> None:
        _, err = sanitize_title("   ")
        assert err == "title must not be empty"

    def test_non_string(self) -> None:
        _, err = sanitize_title(123)
        assert err == "title must be a string"

    def test_control_characters(self) -> None:
        _, err = sanitize_title("tab\there")
        assert err is not None
        assert "U+0009" in err

    def test_max_length(self) -> None:
        assert sanitize_title("x" * 200)[1] is None
        assert sanitize_title("x" * 201)[1] == "title must be at most 200 characters"


class TestSanitizeName:
    def test_unicode_name(self) -> None:
        assert sanitize_name("Zoë Ørsted") == ("Zoë Ørsted", None)

    def test_too_long(self) -> None:
        assert sanitize_name("n" * 129)[1] is not None


class TestCheckDescription:
    def test_multiline_kept(self) -> None:
        assert check_description("line one\nline two") == ("line one\nline two", None)

    def test_none_is_empty(self) -> None:
        assert check_description(None) == ("", None)

    @pytest.mark.parametrize("value", [["a"], {"k": "v"}, 3])
    def test_non_string(self, value: object) -> None:
        assert check_description(value) == ("", "description must be a string")


class TestCheckChoice:
    def test_valid(self) -> None:
        assert check_choice("Open", {"Open", "Closed"}, "status") == ("Open", None)

    @pytest.mark.parametrize("value", ["open", "OPEN", "", None, 1])
    def test_exact_match_only(self, value: object) -> None:
        _, err = check_choice(value, {"Open", "Closed"}, "status")
        assert err is not None
        assert err.startswith("Invalid status")
        assert "Closed, Open" in err


class TestCoerceRole:
    @pytest.mark.parametrize(("value", "expected"), [("admin", "admin"), ("reporter", "reporter"), ("Admin", "reporter"), (None, "reporter")])
    def test_coerce(self, value: object, expected: str) -> None:
        assert coerce_role(value) == expected


@pytest.mark.parametrize(("value", "blank"), [(None, True), ("", True), ("  \t", True), ("x", False), (0, False)])
def test_is_blank(value: object, blank: bool) -> None:
    assert is_blank(value) is blank
