"""Tests for request field coercion."""

from __future__ import annotations

import pytest

from services.errors import ValidationError
from services.validation import as_int, json_object


class TestAsInt:
    def test_accepts_ints_and_numeric_strings(self):
        assert as_int(7, "room_id") == 7
        assert as_int(" 12 ", "room_id") == 12
        assert as_int("-3", "offset") == -3
        assert as_int(4.0, "break_hours") == 4

    @pytest.mark.parametrize("value", ["²", "1²", "٣", "--5", "-", "1.5", True, 2.5])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError, match="must be an integer"):
            as_int(value, "room_id")

    def test_required_and_minimum(self):
        assert as_int("", "editor_id") is None
        with pytest.raises(ValidationError, match="room_id is required"):
            as_int(None, "room_id", required=True)
        with pytest.raises(ValidationError, match="must be >= 1"):
            as_int("0", "room_id", minimum=1)


class TestJsonObject:
    def test_missing_body_is_empty(self):
        assert json_object(None) == {}

    @pytest.mark.parametrize("value", [["x"], "late", 3, []])
    def test_non_objects_are_rejected(self, value):
        with pytest.raises(ValidationError, match="must be a JSON object"):
            json_object(value)
