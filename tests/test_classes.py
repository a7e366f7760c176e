"""Tests for scheduling, registration and attendance."""
from datetime import date, datetime, timedelta

import pytest

from app.core.errors import BusinessRuleError, NotFoundError
from app.core.permissions import Role
from app.domain.classes import ClassUpdateRequest
from app.services import classes, passes
from app.services.classes import suggest_alternatives


def _class_body(instructor_id, day="Monday", time="09:00"):
    return {
        "className": "Evening Yin",
        "classType": "Yin",
        "instructorId": instructor_id,
        "slots": [{"day": day, "time": time, "duration": 60}],
    }


def _buy(store, account, pass_id, **kwargs):
    return passes.purchase(store, account, pass_id, **kwargs)["ownedPass"]["ownedPassId"]


@pytest.fixture
def instructor_profile(store, instructor):
    return store.instructors.by_account(instructor.account_id)


@pytest.fixture
def owned_pass_id(store, client_account, monthly_pass):
    """A 10-session pass bought by ``client_account``."""
    return _buy(store, client_account, monthly_pass["passId"])


class TestSchedule:
    """Test class creation and schedule conflicts."""

    def test_create_class(self, test_client, store, manager, instructor_profile, auth_headers):
        """Test creation links the class to the instructor."""
        response = test_client.post(
            "/api/classes", json=_class_body(instructor_profile.instructor_id), headers=auth_headers(manager)
        )

        assert response.status_code == 201
        assert response.json()["classId"] == "C00001"
        assert response.json()["class"]["capacity"] == 20
        assert "C00001" in store.instructors.get(instructor_profile.instructor_id).class_ids

    def test_same_instructor_same_slot_conflicts(self, test_client, store, manager, make_account, auth_headers):
        """Test I1 double booking is rejected while I2 may use the slot."""
        headers = auth_headers(manager)
        first = store.instructors.by_account(make_account(Role.INSTRUCTOR).account_id)
        second = store.instructors.by_account(make_account(Role.INSTRUCTOR).account_id)

        created = test_client.post("/api/classes", json=_class_body(first.instructor_id, "Mon"), headers=headers)
        assert created.status_code == 201

        clash = test_client.post("/api/classes", json=_class_body(first.instructor_id, "Mon"), headers=headers)
        assert clash.status_code == 409
        body = clash.json()
        assert body["message"] == "Schedule conflict found."
        assert body["classId"] == created.json()["classId"]
        assert body["conflictWith"] == "Evening Yin"
        assert body["slot"] == {"day": "Monday", "time": "09:00"}
        assert body["alternatives"] == ["08:00", "10:00"]

        other = test_client.post("/api/classes", json=_class_body(second.instructor_id, "Mon"), headers=headers)
        assert other.status_code == 201

    def test_inactive_class_does_not_conflict(self, test_client, manager, instructor_profile, auth_headers):
        """Test that deactivated classes free their slots."""
        headers = auth_headers(manager)
        created = test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)
        test_client.put(f"/api/classes/{created.json()['classId']}", json={"isActive": False}, headers=headers)

        response = test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)

        assert response.status_code == 201

    def test_reactivating_into_taken_slot_conflicts(self, test_client, store, manager, instructor_profile, auth_headers):
        """Test that reactivation re-runs the conflict check."""
        headers = auth_headers(manager)
        first = test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)
        first_id = first.json()["classId"]
        test_client.put(f"/api/classes/{first_id}", json={"isActive": False}, headers=headers)
        second = test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)

        response = test_client.put(f"/api/classes/{first_id}", json={"isActive": True}, headers=headers)

        assert response.status_code == 409
        assert response.json()["classId"] == second.json()["classId"]
        assert store.classes.get(first_id).is_active is False

    def test_reactivating_free_slot(self, test_client, manager, instructor_profile, auth_headers):
        """Test reactivation when nothing took the slot."""
        headers = auth_headers(manager)
        created = test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)
        class_id = created.json()["classId"]
        test_client.put(f"/api/classes/{class_id}", json={"isActive": False}, headers=headers)

        response = test_client.put(f"/api/classes/{class_id}", json={"isActive": True}, headers=headers)

        assert response.status_code == 200
        assert response.json()["class"]["isActive"] is True

    def test_update_moving_into_taken_slot(self, test_client, manager, instructor_profile, auth_headers):
        """Test that updates re-run the conflict check."""
        headers = auth_headers(manager)
        test_client.post("/api/classes", json=_class_body(instructor_profile.instructor_id), headers=headers)
        later = test_client.post(
            "/api/classes", json=_class_body(instructor_profile.instructor_id, time="11:00"), headers=headers
        )

        response = test_client.put(
            f"/api/classes/{later.json()['classId']}",
            json={"slots": [{"day": "Monday", "time": "09:00"}]},
            headers=headers,
        )

        assert response.status_code == 409

    def test_duplicate_slot_in_request(self, test_client, manager, instructor_profile, auth_headers):
        """Test the same slot listed twice."""
        body = _class_body(instructor_profile.instructor_id)
        body["slots"] = body["slots"] * 2

        response = test_client.post("/api/classes", json=body, headers=auth_headers(manager))

        assert response.status_code == 400

    def test_class_needs_a_slot(self, test_client, manager, instructor_profile, auth_headers):
        """Test that at least one slot is required."""
        body = _class_body(instructor_profile.instructor_id)
        body["slots"] = []

        response = test_client.post("/api/classes", json=body, headers=auth_headers(manager))

        assert response.status_code == 400

    def test_unknown_instructor(self, test_client, manager, auth_headers):
        """Test class for a missing instructor."""
        response = test_client.post("/api/classes", json=_class_body("I99999"), headers=auth_headers(manager))

        assert response.status_code == 404

    def test_instructor_cannot_create_class(self, test_client, instructor, instructor_profile, auth_headers):
        """Test manage_classes permission."""
        response = test_client.post(
            "/api/classes", json=_class_body(instructor_profile.instructor_id), headers=auth_headers(instructor)
        )

        assert response.status_code == 403

    @pytest.mark.parametrize("time,expected", [
        ("06:00", ["07:00"]),
        ("09:30", ["08:00", "10:00"]),
        ("20:00", ["19:00"]),
    ])
    def test_alternatives_stay_within_opening_hours(self, time, expected):
        """Test suggested times."""
        assert suggest_alternatives(time) == expected

    def test_capacity_cannot_drop_below_roster(self, store, morning_class, make_account, monthly_pass):
        """Test capacity guard on update."""
        for name in ("Ana", "Ben"):
            account = make_account(Role.CLIENT, first_name=name)
            classes.register(store, morning_class["classId"], account, _buy(store, account, monthly_pass["passId"]))

        with pytest.raises(BusinessRuleError):
            classes.update_class(store, morning_class["classId"], ClassUpdateRequest(capacity=1))

        result = classes.update_class(store, morning_class["classId"], ClassUpdateRequest(capacity=2))
        assert result["class"]["capacity"] == 2

    def test_list_and_delete(self, test_client, store, manager, morning_class, instructor_profile, auth_headers):
        """Test public listing and deletion."""
        assert len(test_client.get("/api/classes").json()) == 1

        response = test_client.delete(f"/api/classes/{morning_class['classId']}", headers=auth_headers(manager))

        assert response.status_code == 200
        assert test_client.get("/api/classes").json() == []
        assert store.instructors.get(instructor_profile.instructor_id).class_ids == []


class TestRegistration:
    """Test joining and leaving classes."""

    def test_register_does_not_debit(self, test_client, store, morning_class, client_account, owned_pass_id, auth_headers):
        """Test that registering keeps all sessions."""
        response = test_client.post(
            f"/api/classes/{morning_class['classId']}/register",
            json={"ownedPassId": owned_pass_id},
            headers=auth_headers(client_account),
        )

        assert response.status_code == 200
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 10
        assert store.classes.get(morning_class["classId"]).is_registered(client_account.account_id)

    def test_register_twice(self, store, morning_class, client_account, owned_pass_id):
        """Test that an account appears at most once on a roster."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        with pytest.raises(BusinessRuleError, match="already registered"):
            classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        assert len(store.classes.get(morning_class["classId"]).roster) == 1

    def test_register_full_class(self, store, morning_class, make_account, monthly_pass):
        """Test that the roster never exceeds capacity."""
        accounts = [make_account(Role.CLIENT, first_name=name) for name in ("Ana", "Ben", "Cy")]
        for account in accounts[:2]:
            classes.register(store, morning_class["classId"], account, _buy(store, account, monthly_pass["passId"]))

        late = accounts[2]
        with pytest.raises(BusinessRuleError, match="full capacity"):
            classes.register(store, morning_class["classId"], late, _buy(store, late, monthly_pass["passId"]))

        assert len(store.classes.get(morning_class["classId"]).roster) == 2

    def test_register_with_someone_elses_pass(self, store, morning_class, make_account, owned_pass_id):
        """Test that the pass must belong to the caller."""
        stranger = make_account(Role.CLIENT, first_name="Sam")

        with pytest.raises(NotFoundError):
            classes.register(store, morning_class["classId"], stranger, owned_pass_id)

    def test_register_with_exhausted_pass(self, store, morning_class, client_account, owned_pass_id):
        """Test a pass without sessions."""
        store.owned_passes.update(owned_pass_id, {"sessionsRemaining": 0})

        with pytest.raises(BusinessRuleError, match="No sessions remaining"):
            classes.register(store, morning_class["classId"], client_account, owned_pass_id)

    def test_register_with_expired_pass(self, store, morning_class, client_account, monthly_pass):
        """Test a pass past its expiry date."""
        old = _buy(store, client_account, monthly_pass["passId"], now=datetime.utcnow() - timedelta(days=45))

        with pytest.raises(BusinessRuleError, match="expired"):
            classes.register(store, morning_class["classId"], client_account, old)

    def test_register_unknown_class(self, store, client_account, owned_pass_id):
        """Test the class is checked first."""
        with pytest.raises(NotFoundError, match="Class not found"):
            classes.register(store, "C99999", client_account, owned_pass_id)

    def test_unregister(self, test_client, store, morning_class, client_account, owned_pass_id, auth_headers):
        """Test leaving a class frees the place."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        response = test_client.delete(
            f"/api/classes/{morning_class['classId']}/register", headers=auth_headers(client_account)
        )

        assert response.status_code == 200
        assert store.classes.get(morning_class["classId"]).roster == []
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 10

    def test_unregister_when_not_registered(self, test_client, morning_class, client_account, auth_headers):
        """Test leaving a class the caller never joined."""
        response = test_client.delete(
            f"/api/classes/{morning_class['classId']}/register", headers=auth_headers(client_account)
        )

        assert response.status_code == 404


class TestAttendance:
    """Test attendance marking and session debits."""

    MONDAY = date(2024, 3, 4)

    def _single_session_pass(self, store, manager, account):
        from app.domain.passes import Duration, PassCreateRequest

        definition = passes.create_definition(
            store, manager, PassCreateRequest(name="Single", duration=Duration(value=1, unit="weeks"), sessions=1, price=15)
        )["pass"]
        return _buy(store, account, definition["passId"])

    def test_mark_attendance_debits_once(self, test_client, store, morning_class, instructor, client_account, owned_pass_id, auth_headers):
        """Test the owning instructor marks attendance."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        response = test_client.post(
            f"/api/classes/{morning_class['classId']}/attendance",
            json={"date": self.MONDAY.isoformat(), "attendees": [client_account.account_id]},
            headers=auth_headers(instructor),
        )

        assert response.status_code == 200
        assert response.json()["attendeesCount"] == 1
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 9

    def test_pass_with_one_session(self, store, manager, morning_class, instructor, client_account):
        """Test that a pass at zero sessions is silently excluded."""
        owned_pass_id = self._single_session_pass(store, manager, client_account)
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        first = classes.mark_attendance(store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id])
        assert first["attendeesCount"] == 1
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 0

        later = self.MONDAY + timedelta(days=7)
        second = classes.mark_attendance(store, morning_class["classId"], instructor, later, [client_account.account_id])
        assert second["attendeesCount"] == 0
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 0

    def test_non_roster_accounts_dropped(self, store, morning_class, instructor, client_account, owned_pass_id):
        """Test that unregistered accounts are ignored without error."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        result = classes.mark_attendance(
            store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id, "U99999"]
        )

        assert result["attendeesCount"] == 1

    def test_duplicate_ids_counted_once(self, store, morning_class, instructor, client_account, owned_pass_id):
        """Test a repeated id in one submission."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        result = classes.mark_attendance(
            store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id] * 3
        )

        assert result["attendeesCount"] == 1
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 9

    def test_remarking_same_date_replaces_without_double_debit(self, store, morning_class, instructor, client_account, make_account, monthly_pass, owned_pass_id):
        """Test repeated marking for one date."""
        other = make_account(Role.CLIENT, first_name="Otto")
        other_pass = _buy(store, other, monthly_pass["passId"])
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)
        classes.register(store, morning_class["classId"], other, other_pass)

        classes.mark_attendance(store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id])
        result = classes.mark_attendance(
            store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id, other.account_id]
        )
        classes.mark_attendance(store, morning_class["classId"], instructor, self.MONDAY, [other.account_id])

        assert result["attendeesCount"] == 2
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 9
        assert store.owned_passes.get(other_pass).sessions_remaining == 9

        offering = store.classes.get(morning_class["classId"])
        assert len(offering.attendance) == 1
        assert offering.attendance[0].account_ids() == [other.account_id]

    def test_remarking_drops_unregistered_account(self, test_client, store, morning_class, instructor, client_account, owned_pass_id, auth_headers):
        """Test that leaving the roster removes a client from a re-marked date."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)
        classes.mark_attendance(store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id])
        test_client.delete(f"/api/classes/{morning_class['classId']}/register", headers=auth_headers(client_account))

        result = classes.mark_attendance(
            store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id]
        )

        assert result["attendeesCount"] == 0
        assert store.classes.get(morning_class["classId"]).attendance[0].attendees == []
        assert store.owned_passes.get(owned_pass_id).sessions_remaining == 9

    def test_other_instructor_cannot_mark(self, test_client, morning_class, make_account, auth_headers):
        """Test class ownership."""
        stranger = make_account(Role.INSTRUCTOR, first_name="Ivy")

        response = test_client.post(
            f"/api/classes/{morning_class['classId']}/attendance",
            json={"date": self.MONDAY.isoformat(), "attendees": []},
            headers=auth_headers(stranger),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Class not found or access denied"

    def test_manager_can_mark_any_class(self, store, manager, morning_class, client_account, owned_pass_id):
        """Test manager override."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        result = classes.mark_attendance(store, morning_class["classId"], manager, self.MONDAY, [client_account.account_id])

        assert result["attendeesCount"] == 1

    def test_client_cannot_mark(self, test_client, morning_class, client_account, auth_headers):
        """Test take_attendance permission."""
        response = test_client.post(
            f"/api/classes/{morning_class['classId']}/attendance",
            json={"date": self.MONDAY.isoformat(), "attendees": []},
            headers=auth_headers(client_account),
        )

        assert response.status_code == 403

    def test_get_attendance(self, test_client, store, morning_class, instructor, client_account, owned_pass_id, auth_headers):
        """Test reading one date's record."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)
        classes.mark_attendance(store, morning_class["classId"], instructor, self.MONDAY, [client_account.account_id])
        headers = auth_headers(instructor)

        marked = test_client.get(
            f"/api/classes/{morning_class['classId']}/attendance", params={"date": "2024-03-04"}, headers=headers
        )
        empty = test_client.get(
            f"/api/classes/{morning_class['classId']}/attendance", params={"date": "2024-03-11"}, headers=headers
        )

        assert [a["accountId"] for a in marked.json()["attendance"]["attendees"]] == [client_account.account_id]
        assert empty.json()["attendance"]["attendees"] == []

    def test_my_classes_hydrates_roster(self, test_client, store, morning_class, instructor, client_account, owned_pass_id, auth_headers):
        """Test the instructor's class list."""
        classes.register(store, morning_class["classId"], client_account, owned_pass_id)

        response = test_client.get("/api/classes/mine", headers=auth_headers(instructor))

        assert response.status_code == 200
        roster = response.json()[0]["roster"]
        assert roster[0]["name"] == "Cora Person"
        assert roster[0]["email"] == client_account.email
