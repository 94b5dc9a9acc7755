"""API tests through the Flask test client."""

from __future__ import annotations

from models import db
from models.booking import Booking
from utils.seed import create_user


def _booking(masters, **overrides) -> dict:
    body = {
        "room_id": masters.stage,
        "customer_id": masters.dharma,
        "project_id": masters.movie,
        "editor_id": masters.rajesh,
        "booking_date": "2025-12-16",
        "from_time": "09:00",
        "to_time": "14:00",
        "status": "confirmed",
    }
    body.update(overrides)
    return body


class TestAuth:
    def test_routes_require_login(self, client, masters):
        assert client.get("/bookings").status_code == 401
        assert client.get("/auth/me").status_code == 401

    def test_bad_pin(self, client):
        create_user("desk", "4321")
        resp = client.post("/auth/login", json={"username": "desk", "security_pin": "0000"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_me_and_logout(self, admin_client):
        me = admin_client.get("/auth/me").get_json()
        assert me["username"] == "admin"
        assert me["roles"] == ["ADMIN"]

        assert admin_client.post("/auth/logout").status_code == 200
        assert admin_client.get("/auth/me").status_code == 401

    def test_csrf_header_required_when_enabled(self, app, admin_client, masters):
        app.config["CSRF_ENABLED"] = True

        resp = admin_client.post("/bookings/check-conflicts", json={})
        assert resp.status_code == 403

        token = admin_client.get_cookie("csrf_token").value
        resp = admin_client.post(
            "/bookings/check-conflicts",
            json={"room_id": masters.stage, "booking_date": "2025-12-16", "from_time": "09:00", "to_time": "10:00"},
            headers={"X-CSRF-Token": token},
        )
        assert resp.status_code == 200


class TestMasters:
    def test_writes_are_admin_only(self, staff_client):
        resp = staff_client.post("/rooms", json={"name": "Dubbing 2"})
        assert resp.status_code == 403
        assert staff_client.get("/rooms").status_code == 200

    def test_room_override_toggle(self, admin_client):
        created = admin_client.post("/rooms", json={"name": "Dubbing 2", "room_type": "dubbing"})
        assert created.status_code == 201
        room_id = created.get_json()["id"]

        resp = admin_client.patch(f"/rooms/{room_id}", json={"ignore_conflict": True})
        assert resp.status_code == 200
        assert resp.get_json()["ignore_conflict"] is True

    def test_bad_room_type(self, admin_client):
        resp = admin_client.post("/rooms", json={"name": "Dubbing 2", "room_type": "kitchen"})
        assert resp.status_code == 400

    def test_customer_with_contacts_and_project(self, admin_client):
        customer = admin_client.post("/customers", json={
            "name": "Maddock Films",
            "contacts": [{"name": "Dinesh", "is_primary": True}],
        }).get_json()
        assert [c["name"] for c in customer["contacts"]] == ["Dinesh"]

        project = admin_client.post("/projects", json={"name": "Stree 2", "customer_id": customer["id"]})
        assert project.status_code == 201
        assert project.get_json()["has_chalan_created"] is False

        listed = admin_client.get(f"/projects?customer_id={customer['id']}").get_json()
        assert [p["name"] for p in listed] == ["Stree 2"]

    def test_editor_leave_crud(self, admin_client, masters):
        bad = admin_client.post("/editor-leaves", json={
            "editor_id": masters.amit, "from_date": "2025-12-20", "to_date": "2025-12-19",
        })
        assert bad.status_code == 400

        leave = admin_client.post("/editor-leaves", json={
            "editor_id": masters.amit, "from_date": "2025-12-20", "to_date": "2025-12-22", "reason": "Travel",
        })
        assert leave.status_code == 201
        leave_id = leave.get_json()["id"]

        listed = admin_client.get(f"/editor-leaves?editor_id={masters.amit}").get_json()
        assert [(l["from_date"], l["to_date"]) for l in listed] == [("2025-12-20", "2025-12-22")]

        assert admin_client.patch(f"/editor-leaves/{leave_id}", json={"to_date": "2025-12-21"}).status_code == 200
        assert admin_client.delete(f"/editor-leaves/{leave_id}").status_code == 200
        assert admin_client.get("/editor-leaves").get_json() == []


class TestBookingApi:
    def test_create_renders_clock_times(self, staff_client, masters):
        resp = staff_client.post("/bookings", json=_booking(masters, break_hours=1))

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["from_time"] == "09:00"
        assert body["to_time"] == "14:00"
        assert body["total_hours"] == 4.0
        assert body["warnings"] == {"conflicts": []}

    def test_validation_error_shape(self, staff_client, masters):
        resp = staff_client.post("/bookings", json=_booking(masters, from_time="25:00"))
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_non_ascii_digits_are_rejected(self, staff_client, masters):
        check = staff_client.post("/bookings/check-conflicts", json={
            "room_id": masters.stage, "booking_date": "2025-12-16", "from_time": "0²:00", "to_time": "10:00",
        })
        assert check.status_code == 400
        assert "error" in check.get_json()

        resp = staff_client.post("/bookings", json=_booking(masters, room_id="²"))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "room_id must be an integer"

    def test_body_must_be_an_object(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters)).get_json()["id"]

        for resp in (
            staff_client.patch(f"/bookings/{booking_id}", json=["x"]),
            staff_client.post("/bookings", json=["x"]),
            staff_client.post(f"/bookings/{booking_id}/cancel", json="late"),
            staff_client.post("/chalans", json=[1, 2]),
        ):
            assert resp.status_code == 400
            assert resp.get_json() == {"error": "Request body must be a JSON object"}

    def test_repeat_days(self, staff_client, masters):
        resp = staff_client.post("/bookings", json=_booking(masters, repeat_days=2))

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["count"] == 3
        assert [b["booking_date"] for b in body["bookings"]] == ["2025-12-16", "2025-12-17", "2025-12-18"]

    def test_leave_warning_is_returned(self, admin_client, masters):
        admin_client.post("/editor-leaves", json={
            "editor_id": masters.rajesh, "from_date": "2025-12-16", "to_date": "2025-12-16", "reason": "Doctor",
        })
        body = admin_client.post("/bookings", json=_booking(masters)).get_json()
        assert body["warnings"]["editor_on_leave"] is True
        assert body["warnings"]["leave_info"]["reason"] == "Doctor"

    def test_list_filters(self, staff_client, masters):
        staff_client.post("/bookings", json=_booking(masters))
        staff_client.post("/bookings", json=_booking(masters, room_id=masters.suite, editor_id=masters.amit,
                                                     booking_date="2025-12-20"))

        assert len(staff_client.get("/bookings?from=2025-12-17").get_json()) == 1
        assert len(staff_client.get(f"/bookings?room_id={masters.stage}").get_json()) == 1
        assert len(staff_client.get("/bookings?status=confirmed").get_json()) == 2
        assert staff_client.get("/bookings?status=archived").status_code == 400

    def test_patch_and_logs(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters)).get_json()["id"]

        resp = staff_client.patch(f"/bookings/{booking_id}", json={"actual_to_time": "15:00", "status": "tentative"})
        assert resp.status_code == 200
        assert resp.get_json()["total_hours"] == 6.0

        logs = staff_client.get(f"/bookings/{booking_id}/logs").get_json()
        assert [l["action"] for l in logs] == ["Created", "Updated"]
        assert logs[0]["user_id"] is not None

    def test_cancel_requires_reason(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters)).get_json()["id"]

        assert staff_client.post(f"/bookings/{booking_id}/cancel", json={}).status_code == 400
        resp = staff_client.post(f"/bookings/{booking_id}/cancel", json={"reason": "Client postponed"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "cancelled"

        again = staff_client.post(f"/bookings/{booking_id}/cancel", json={"reason": "twice"})
        assert again.status_code == 409
        assert staff_client.patch(f"/bookings/{booking_id}", json={"notes": "x"}).status_code == 409

    def test_past_cancel_is_forbidden(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters, booking_date="2025-12-10")).get_json()["id"]

        resp = staff_client.post(f"/bookings/{booking_id}/cancel", json={"reason": "late"})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == (
            "Cannot cancel past bookings. Only current date and future bookings can be cancelled."
        )

    def test_unknown_booking(self, staff_client):
        assert staff_client.get("/bookings/999").status_code == 404


class TestConflictScenario:
    def test_detect_then_resolve(self, staff_client, masters):
        first = staff_client.post("/bookings", json=_booking(masters))
        assert first.status_code == 201
        first_id = first.get_json()["id"]

        second_body = _booking(masters, editor_id=masters.amit, from_time="13:00", to_time="18:00")

        check = staff_client.post("/bookings/check-conflicts", json=second_body).get_json()
        assert check["has_conflict"] is True
        assert check["conflicts"] == [
            {"type": "room", "booking_id": first_id, "message": 'Room "Sound Stage A" is already booked'}
        ]

        blocked = staff_client.post("/bookings", json=second_body)
        assert blocked.status_code == 409
        assert blocked.get_json()["conflicts"][0]["type"] == "room"

        second = staff_client.post("/bookings", json=dict(second_body, allow_conflicts=True))
        assert second.status_code == 201
        second_id = second.get_json()["id"]
        assert [c["type"] for c in second.get_json()["warnings"]["conflicts"]] == ["room"]

        report = staff_client.get("/reports/conflicts?from=2025-12-16&to=2025-12-16").get_json()
        assert len(report) == 1
        assert report[0]["types"] == ["room"]
        assert [b["id"] for b in report[0]["bookings"]] == [first_id, second_id]

        resolved = staff_client.post(
            "/bookings/resolve-conflict", json={"keep_booking_id": first_id, "cancel_booking_id": second_id}
        )
        assert resolved.status_code == 200
        body = resolved.get_json()
        assert body["kept"]["status"] == "confirmed"
        assert body["cancelled"]["status"] == "cancelled"
        assert body["cancelled"]["cancel_reason"] == "Cancelled due to Conflict Resolution"

        assert staff_client.get("/reports/conflicts?from=2025-12-16&to=2025-12-16").get_json() == []

        again = staff_client.post(
            "/bookings/resolve-conflict", json={"keep_booking_id": first_id, "cancel_booking_id": second_id}
        )
        assert again.status_code == 409

    def test_patch_rechecks_conflicts(self, staff_client, masters):
        staff_client.post("/bookings", json=_booking(masters))
        other_id = staff_client.post(
            "/bookings", json=_booking(masters, room_id=masters.suite, editor_id=masters.amit)
        ).get_json()["id"]

        resp = staff_client.patch(f"/bookings/{other_id}", json={"room_id": masters.stage})
        assert resp.status_code == 409
        assert db.session.get(Booking, other_id).room_id == masters.suite

        moved = staff_client.patch(f"/bookings/{other_id}", json={"room_id": masters.stage, "allow_conflicts": True})
        assert moved.status_code == 200


class TestChalanApi:
    ITEMS = [{"description": "Sound Stage A - 5 hours", "quantity": 5, "rate": 2500, "amount": 12500}]

    def _create(self, client, masters, **overrides):
        body = {
            "customer_id": masters.dharma,
            "project_id": masters.movie,
            "chalan_date": "2025-12-16",
            "items": self.ITEMS,
        }
        body.update(overrides)
        return client.post("/chalans", json=body)

    def test_create_and_fetch(self, staff_client, masters):
        resp = self._create(staff_client, masters)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["chalan_number"] == "CH2512-01"
        assert body["total_amount"] == 12500
        assert body["revisions"] == []

        fetched = staff_client.get(f"/chalans/{body['id']}").get_json()
        assert fetched["items"][0]["description"] == "Sound Stage A - 5 hours"

    def test_duplicate_booking_returns_existing_id(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters)).get_json()["id"]
        first = self._create(staff_client, masters, booking_id=booking_id).get_json()

        dup = self._create(staff_client, masters, booking_id=booking_id)
        assert dup.status_code == 409
        assert dup.get_json()["chalan_id"] == first["id"]

        by_booking = staff_client.get(f"/chalans/by-booking/{booking_id}").get_json()
        assert by_booking["id"] == first["id"]

    def test_patch_revise_and_delete(self, staff_client, masters):
        chalan_id = self._create(staff_client, masters).get_json()["id"]

        patched = staff_client.patch(f"/chalans/{chalan_id}", json={
            "items": [{"description": "Flat fee", "quantity": 1, "rate": 10000, "amount": 10000}],
            "changes": "Switched to flat fee",
        })
        assert patched.status_code == 200
        assert patched.get_json()["total_amount"] == 10000

        revised = staff_client.post(f"/chalans/{chalan_id}/revise", json={"changes": "Sent to client"})
        assert revised.status_code == 201
        assert revised.get_json()["revision_number"] == 2

        assert staff_client.post(f"/chalans/{chalan_id}/revise", json={}).get_json() == {
            "error": "Changes description is required"
        }

        assert staff_client.delete(f"/chalans/{chalan_id}").status_code == 200
        chalan = staff_client.get(f"/chalans/{chalan_id}").get_json()
        assert chalan["is_cancelled"] is True
        assert chalan["cancel_reason"] == "Deleted"

        revisions = staff_client.get(f"/chalans/{chalan_id}/revisions").get_json()
        assert [r["revision_number"] for r in revisions] == [1, 2, 3]
        assert [r["changes"] for r in revisions] == [
            "Switched to flat fee",
            "Sent to client",
            "Cancelled. Reason: Deleted",
        ]

        assert staff_client.patch(f"/chalans/{chalan_id}", json={"notes": "x"}).status_code == 409
        assert staff_client.post(f"/chalans/{chalan_id}/revise", json={"changes": "x"}).status_code == 409
        assert staff_client.post(f"/chalans/{chalan_id}/cancel", json={"reason": "x"}).status_code == 409

    def test_list_filters(self, staff_client, masters):
        self._create(staff_client, masters)
        self._create(staff_client, masters, chalan_date="2026-01-03")

        assert len(staff_client.get("/chalans").get_json()) == 2
        assert [c["chalan_number"] for c in staff_client.get("/chalans?from=2026-01-01").get_json()] == ["CH2601-01"]
        assert staff_client.get(f"/chalans?customer_id={masters.yrf}").get_json() == []


class TestReports:
    def test_editor_report(self, staff_client, masters):
        staff_client.post("/bookings", json=_booking(masters, break_hours=1))
        staff_client.post("/bookings", json=_booking(masters, room_id=masters.suite, booking_date="2025-12-17",
                                                     from_time="10:00", to_time="12:00"))

        rows = staff_client.get(f"/reports/editors?from=2025-12-01&to=2025-12-31&editor_id={masters.rajesh}").get_json()

        assert len(rows) == 1
        assert rows[0]["booking_count"] == 2
        assert rows[0]["total_hours"] == 6.0
        assert rows[0]["project_count"] == 1

    def test_range_is_required(self, staff_client):
        assert staff_client.get("/reports/editors").status_code == 400

    def test_history_merges_logs_and_revisions(self, staff_client, masters):
        booking_id = staff_client.post("/bookings", json=_booking(masters)).get_json()["id"]
        chalan_id = staff_client.post("/chalans", json={
            "customer_id": masters.dharma, "project_id": masters.movie, "chalan_date": "2025-12-16", "items": [],
        }).get_json()["id"]
        staff_client.post(f"/chalans/{chalan_id}/revise", json={"changes": "Checked"})

        rows = staff_client.get("/reports/history").get_json()
        assert {(r["entity_type"], r["entity_id"], r["action"]) for r in rows} == {
            ("booking", booking_id, "created"),
            ("chalan", chalan_id, "revision"),
        }
        assert all(r["username"] == "desk" for r in rows)

        only_chalans = staff_client.get("/reports/history?entity_type=chalan").get_json()
        assert [r["changes"] for r in only_chalans] == ["Checked"]


class TestAuditLogs:
    def test_admin_sees_login_and_master_writes(self, admin_client):
        admin_client.post("/rooms", json={"name": "Dubbing 2"})

        actions = [r["action"] for r in admin_client.get("/audit-logs").get_json()]
        assert "LOGIN_SUCCESS" in actions
        assert "ROOM_CREATE" in actions

    def test_staff_is_forbidden(self, staff_client):
        assert staff_client.get("/audit-logs").status_code == 403


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
