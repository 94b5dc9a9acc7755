"""Tests for the conflict detector and the conflict report."""

from __future__ import annotations

from datetime import date, time

import pytest

from models import db
from models.editor import EditorLeave
from services.bookings import cancel_booking, create_booking
from services.conflicts import detect_conflicts, find_conflicting_pairs, overlaps
from services.errors import NotFound


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps(time(9), time(12), time(11), time(14))

    def test_touching_endpoints_do_not_overlap(self):
        assert not overlaps(time(9), time(12), time(12), time(15))
        assert not overlaps(time(12), time(15), time(9), time(12))

    def test_containment(self):
        assert overlaps(time(9), time(18), time(10), time(11))


class TestDetectConflicts:
    def test_empty_day_has_no_conflict(self, masters):
        report = detect_conflicts(masters.stage, "2025-12-16", "09:00", "12:00")
        assert not report.has_conflict
        assert report.to_dict() == {"has_conflict": False, "conflicts": [], "editor_on_leave": False}

    def test_room_overlap(self, masters, booking_data):
        existing = create_booking(booking_data(from_time="09:00", to_time="12:00", editor_id=None))

        report = detect_conflicts(masters.stage, "2025-12-16", "11:00", "14:00")

        assert report.has_conflict
        assert [c.to_dict() for c in report.conflicts] == [
            {"type": "room", "booking_id": existing.id, "message": 'Room "Sound Stage A" is already booked'}
        ]

    def test_touching_bookings_do_not_conflict(self, masters, booking_data):
        create_booking(booking_data(from_time="09:00", to_time="12:00"))
        report = detect_conflicts(masters.stage, "2025-12-16", "12:00", "15:00", editor_id=masters.rajesh)
        assert not report.has_conflict

    def test_other_days_are_ignored(self, masters, booking_data):
        create_booking(booking_data(booking_date="2025-12-17"))
        report = detect_conflicts(masters.stage, date(2025, 12, 16), "09:00", "14:00")
        assert not report.has_conflict

    def test_editor_overlap_in_another_room(self, masters, booking_data):
        existing = create_booking(booking_data(room_id=masters.suite))

        report = detect_conflicts(masters.stage, "2025-12-16", "10:00", "11:00", editor_id=masters.rajesh)

        assert [(c.type, c.booking_id) for c in report.conflicts] == [("editor", existing.id)]
        assert report.conflicts[0].message == 'Editor "Rajesh Kumar" is already assigned'

    def test_one_booking_can_raise_room_and_editor_conflicts(self, masters, booking_data):
        existing = create_booking(booking_data())
        report = detect_conflicts(masters.stage, "2025-12-16", "10:00", "11:00", editor_id=masters.rajesh)
        assert [(c.type, c.booking_id) for c in report.conflicts] == [
            ("room", existing.id),
            ("editor", existing.id),
        ]

    def test_cancelled_bookings_are_ignored(self, masters, booking_data):
        existing = create_booking(booking_data())
        cancel_booking(existing.id, "Client postponed")

        report = detect_conflicts(masters.stage, "2025-12-16", "10:00", "11:00", editor_id=masters.rajesh)
        assert not report.has_conflict

    def test_exclude_booking_id_skips_self(self, masters, booking_data):
        existing = create_booking(booking_data())
        report = detect_conflicts(
            masters.stage, "2025-12-16", "10:00", "15:00", editor_id=masters.rajesh, exclude_booking_id=existing.id
        )
        assert not report.has_conflict

    def test_ignore_conflict_room_never_conflicts(self, masters, booking_data):
        create_booking(booking_data(room_id=masters.lounge, editor_id=None))
        report = detect_conflicts(masters.lounge, "2025-12-16", "09:00", "14:00")
        assert not report.has_conflict

    def test_ignore_conflict_editor_never_conflicts(self, masters, booking_data):
        create_booking(booking_data(room_id=masters.suite, editor_id=masters.floater))
        report = detect_conflicts(masters.stage, "2025-12-16", "10:00", "11:00", editor_id=masters.floater)
        assert not report.has_conflict

    def test_editor_leave_is_reported_not_counted(self, masters):
        db.session.add(EditorLeave(
            editor_id=masters.amit, from_date=date(2025, 12, 15), to_date=date(2025, 12, 17), reason="Wedding"
        ))
        db.session.commit()

        report = detect_conflicts(masters.stage, "2025-12-16", "09:00", "12:00", editor_id=masters.amit)

        assert not report.has_conflict
        assert report.editor_on_leave
        assert report.to_dict()["leave_info"] == {
            "from_date": "2025-12-15",
            "to_date": "2025-12-17",
            "reason": "Wedding",
        }

    def test_leave_range_is_inclusive(self, masters):
        db.session.add(EditorLeave(editor_id=masters.amit, from_date=date(2025, 12, 16), to_date=date(2025, 12, 16)))
        db.session.commit()

        assert detect_conflicts(masters.stage, "2025-12-16", "09:00", "10:00", editor_id=masters.amit).editor_on_leave
        assert not detect_conflicts(masters.stage, "2025-12-17", "09:00", "10:00", editor_id=masters.amit).editor_on_leave

    def test_unknown_room(self, masters):
        with pytest.raises(NotFound):
            detect_conflicts(9999, "2025-12-16", "09:00", "10:00")


class TestConflictingPairs:
    def test_reports_overlapping_pairs(self, masters, booking_data):
        first = create_booking(booking_data())
        second = create_booking(booking_data(editor_id=masters.amit, from_time="13:00", to_time="18:00"))
        create_booking(booking_data(from_time="18:00", to_time="20:00", editor_id=None))

        pairs = find_conflicting_pairs("2025-12-01", "2025-12-31")

        assert [(a.id, b.id, types) for a, b, types in pairs] == [(first.id, second.id, ["room"])]

    def test_override_flags_apply(self, masters, booking_data):
        create_booking(booking_data(room_id=masters.lounge, editor_id=None))
        create_booking(booking_data(room_id=masters.lounge, editor_id=None, from_time="10:00"))
        assert find_conflicting_pairs("2025-12-16", "2025-12-16") == []
