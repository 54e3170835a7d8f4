import pytest
from datetime import date, datetime

from clinicbook.core.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError
)
from clinicbook.models import Appointment, AppointmentStatus, Slot
from clinicbook.repositories import SlotRepository
from clinicbook.schemas.appointment import AppointmentCreate, AppointmentUpdate
from clinicbook.services.appointment_service import (
    AppointmentService, normalize_slot_time, parse_slot_time
)
from clinicbook.services.slot_service import SlotService

from tests.conftest import (
    ADMIN_DATA, DOCTOR_DATA, PATIENT_DATA, auth_headers, register
)

FUTURE_DAY = date(2099, 1, 1)

@pytest.fixture
def doctor(make_user):
    return make_user(DOCTOR_DATA)

@pytest.fixture
def patient(make_user):
    return make_user(PATIENT_DATA)

@pytest.fixture
def other_patient(make_user):
    return make_user(PATIENT_DATA, email="second@example.com", first_name="Second")

@pytest.fixture
def service(db):
    return AppointmentService(db)

def book(service, patient, doctor, slot_time="09:00 AM", slot_date=FUTURE_DAY, purpose=None):
    return service.create_appointment(patient, AppointmentCreate(
        doctor_id=doctor.id, slot_date=slot_date, slot_time=slot_time, purpose=purpose
    ))


class TestCreateAppointment:

    def test_book_creates_slot_and_appointment(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor, purpose="Checkup")

        assert appointment.status == AppointmentStatus.BOOKED
        assert appointment.patient_id == patient.id
        assert appointment.doctor_id == doctor.id
        assert appointment.purpose == "Checkup"

        slot = db.get(Slot, appointment.slot_id)
        assert slot.doctor_id == doctor.id
        assert slot.slot_date == FUTURE_DAY
        assert slot.slot_time == "09:00 AM"
        assert slot.expire_at.hour == 9

    @pytest.mark.parametrize("missing", ["doctor_id", "slot_date", "slot_time"])
    def test_missing_fields(self, service, patient, doctor, missing):
        fields = {"doctor_id": doctor.id, "slot_date": FUTURE_DAY, "slot_time": "09:00 AM"}
        fields[missing] = None

        with pytest.raises(ValidationError) as exc_info:
            service.create_appointment(patient, AppointmentCreate(**fields))
        assert missing in exc_info.value.detail

    def test_past_slot_rejected(self, service, db, patient, doctor):
        with pytest.raises(ValidationError):
            book(service, patient, doctor, slot_date=date(2000, 1, 1))
        assert db.query(Slot).count() == 0

    def test_unparsable_time_rejected(self, service, patient, doctor):
        with pytest.raises(ValidationError):
            book(service, patient, doctor, slot_time="25:99")

    def test_unknown_doctor(self, service, patient):
        with pytest.raises(NotFoundError):
            service.create_appointment(patient, AppointmentCreate(
                doctor_id=9999, slot_date=FUTURE_DAY, slot_time="09:00 AM"
            ))

    def test_patient_is_not_a_doctor(self, service, patient, other_patient):
        with pytest.raises(NotFoundError):
            book(service, patient, other_patient)

    def test_same_triple_conflicts(self, service, db, patient, other_patient, doctor):
        book(service, patient, doctor)

        with pytest.raises(ConflictError):
            book(service, other_patient, doctor)
        assert db.query(Slot).count() == 1
        assert db.query(Appointment).count() == 1

    @pytest.mark.parametrize("spelling", ["09:00", "9:00am", "09:00:00", " 09:00 am "])
    def test_other_spelling_of_same_time_conflicts(self, service, db, patient, other_patient, doctor, spelling):
        book(service, patient, doctor, slot_time="09:00 AM")

        with pytest.raises(ConflictError):
            book(service, other_patient, doctor, slot_time=spelling)
        assert db.query(Slot).count() == 1

    def test_label_is_stored_in_one_form(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor, slot_time="14:15")

        slot = db.get(Slot, appointment.slot_id)
        assert slot.slot_time == "02:15 PM"
        assert SlotService(db).get_booked_times(doctor.id, FUTURE_DAY) == ["02:15 PM"]

    def test_same_time_other_day_is_free(self, service, patient, doctor):
        book(service, patient, doctor)
        book(service, patient, doctor, slot_date=date(2099, 1, 2))

    def test_database_constraint_catches_race(self, service, db, patient, other_patient, doctor, monkeypatch):
        """Two bookings that both pass the existence check still cannot share a slot."""
        book(service, patient, doctor)
        monkeypatch.setattr(SlotRepository, "find", lambda self, *args: None)

        with pytest.raises(ConflictError):
            book(service, other_patient, doctor)
        assert db.query(Slot).count() == 1
        assert db.query(Appointment).count() == 1


class TestUpdateAppointment:

    def test_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.update_appointment(42, AppointmentUpdate(purpose="x"))

    def test_reschedule_moves_slot(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor)
        old_slot_id = appointment.slot_id

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            slot_date=date(2099, 2, 1), slot_time="11:30 AM"
        ))

        assert updated.slot_id != old_slot_id
        assert db.get(Slot, old_slot_id) is None
        new_slot = db.get(Slot, updated.slot_id)
        assert new_slot.slot_date == date(2099, 2, 1)
        assert new_slot.slot_time == "11:30 AM"
        assert new_slot.doctor_id == doctor.id

    def test_same_slot_is_not_recreated(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor, purpose="Checkup")
        slot_id = appointment.slot_id

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            slot_date=FUTURE_DAY, slot_time="09:00 AM",
            purpose="Follow-up", status=AppointmentStatus.COMPLETED
        ))

        assert updated.slot_id == slot_id
        assert db.get(Slot, slot_id) is not None
        assert db.query(Slot).count() == 1
        assert updated.purpose == "Follow-up"
        assert updated.status == AppointmentStatus.COMPLETED

    def test_same_time_in_other_spelling_keeps_slot(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor)
        slot_id = appointment.slot_id

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            slot_date=FUTURE_DAY, slot_time="09:00"
        ))
        assert updated.slot_id == slot_id
        assert db.query(Slot).count() == 1

    def test_conflicting_reschedule_changes_nothing(self, service, db, patient, other_patient, doctor):
        first = book(service, patient, doctor, slot_time="09:00 AM")
        second = book(service, other_patient, doctor, slot_time="10:00 AM", purpose="Original")
        second_slot_id = second.slot_id

        with pytest.raises(ConflictError):
            service.update_appointment(second.id, AppointmentUpdate(
                slot_date=FUTURE_DAY, slot_time="09:00 AM", purpose="Changed"
            ))

        db.expire_all()
        reloaded = db.get(Appointment, second.id)
        assert reloaded.slot_id == second_slot_id
        assert reloaded.purpose == "Original"
        assert db.get(Slot, second_slot_id).slot_time == "10:00 AM"
        assert db.get(Slot, first.slot_id).slot_time == "09:00 AM"

    def test_reschedule_into_past_rejected(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor)

        with pytest.raises(ValidationError):
            service.update_appointment(appointment.id, AppointmentUpdate(
                slot_date=date(2000, 1, 1), slot_time="09:00 AM"
            ))
        assert db.get(Slot, appointment.slot_id) is not None

    def test_partial_update_keeps_omitted_fields(self, service, patient, doctor):
        appointment = book(service, patient, doctor, purpose="Checkup")

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            status=AppointmentStatus.NO_SHOW
        ))
        assert updated.purpose == "Checkup"
        assert updated.status == AppointmentStatus.NO_SHOW

    def test_date_without_time_does_not_reschedule(self, service, patient, doctor):
        appointment = book(service, patient, doctor)
        slot_id = appointment.slot_id

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            slot_date=date(2099, 3, 3)
        ))
        assert updated.slot_id == slot_id

    def test_doctor_comes_from_appointment(self, service, db, patient, doctor, make_user):
        make_user(DOCTOR_DATA, email="other.doctor@example.com")
        appointment = book(service, patient, doctor)

        updated = service.update_appointment(appointment.id, AppointmentUpdate(
            slot_date=FUTURE_DAY, slot_time="02:00 PM"
        ))
        assert updated.doctor_id == doctor.id
        assert db.get(Slot, updated.slot_id).doctor_id == doctor.id

    def test_update_sets_updated_at(self, service, patient, doctor):
        appointment = book(service, patient, doctor)

        updated = service.update_appointment(appointment.id, AppointmentUpdate(purpose="x"))
        assert updated.updated_at is not None


class TestDeleteAppointment:

    def test_delete_removes_appointment_and_slot(self, service, db, patient, doctor):
        appointment = book(service, patient, doctor)
        slot_id = appointment.slot_id

        service.delete_appointment(appointment.id)

        assert db.get(Appointment, appointment.id) is None
        with pytest.raises(NotFoundError):
            SlotService(db).get_slot(slot_id)

    def test_delete_frees_the_time(self, service, patient, other_patient, doctor):
        appointment = book(service, patient, doctor)
        service.delete_appointment(appointment.id)

        assert book(service, other_patient, doctor).status == AppointmentStatus.BOOKED

    def test_delete_missing(self, service):
        with pytest.raises(NotFoundError):
            service.delete_appointment(42)


class TestListing:

    def test_list_all_resolves_relations(self, service, patient, doctor):
        book(service, patient, doctor, purpose="Checkup")

        [row] = service.list_appointments()
        assert row.patient.first_name == PATIENT_DATA["first_name"]
        assert row.doctor.specialization == "Medicine"
        assert row.slot.slot_time == "09:00 AM"

    def test_patient_view(self, service, patient, doctor):
        book(service, patient, doctor, purpose="Checkup")

        [row] = service.list_appointments_for_user(patient)
        assert row.counterparty_name == "Gregory House"
        assert row.counterparty_email == DOCTOR_DATA["email"]
        assert row.date == FUTURE_DAY
        assert row.time == "09:00 AM"
        assert row.purpose == "Checkup"
        assert row.status == AppointmentStatus.BOOKED

    def test_doctor_view(self, service, patient, other_patient, doctor):
        book(service, patient, doctor)
        book(service, other_patient, doctor, slot_time="10:00 AM")

        rows = service.list_appointments_for_user(doctor)
        assert [row.counterparty_email for row in rows] == [PATIENT_DATA["email"], "second@example.com"]
        assert rows[0].purpose == ""

    def test_admin_has_no_own_appointments(self, service, make_user):
        admin = make_user(ADMIN_DATA)
        with pytest.raises(ForbiddenError):
            service.list_appointments_for_user(admin)

    def test_dangling_slot_is_skipped(self, service, db, patient, doctor):
        kept = book(service, patient, doctor, slot_time="09:00 AM")
        lost = book(service, patient, doctor, slot_time="10:00 AM")
        db.delete(db.get(Slot, lost.slot_id))
        db.commit()

        rows = service.list_appointments_for_user(patient)
        assert [row.id for row in rows] == [kept.id]

        admin_rows = {row.id: row for row in service.list_appointments()}
        assert admin_rows[lost.id].slot is None


class TestReconcile:

    def test_removes_unowned_slots_and_reports_dangling(self, service, db, patient, doctor):
        owned = book(service, patient, doctor, slot_time="09:00 AM")
        dangling = book(service, patient, doctor, slot_time="10:00 AM")
        db.delete(db.get(Slot, dangling.slot_id))
        SlotRepository(db).create(doctor.id, FUTURE_DAY, "11:00 AM", datetime(2099, 1, 1, 11))
        db.commit()

        report = service.reconcile()

        assert report.orphaned_slots_removed == 1
        assert report.dangling_appointments == [dangling.id]
        assert db.get(Slot, owned.slot_id) is not None
        assert db.query(Slot).count() == 1

    def test_clean_store(self, service, patient, doctor):
        book(service, patient, doctor)

        report = service.reconcile()
        assert report.orphaned_slots_removed == 0
        assert report.dangling_appointments == []


@pytest.mark.parametrize("label, expected", [
    ("09:00 AM", (9, 0)),
    ("9:30 pm", (21, 30)),
    ("14:15", (14, 15)),
    ("08:05:00", (8, 5)),
])
def test_parse_slot_time(label, expected):
    parsed = parse_slot_time(label)
    assert (parsed.hour, parsed.minute) == expected

@pytest.mark.parametrize("label, expected", [
    ("9:00am", "09:00 AM"),
    ("21:30", "09:30 PM"),
    ("12:00:00", "12:00 PM"),
])
def test_normalize_slot_time(label, expected):
    assert normalize_slot_time(label) == expected


class TestAppointmentAPI:

    @pytest.fixture
    def accounts(self, client):
        doctor = register(client, DOCTOR_DATA)
        first = register(client, PATIENT_DATA)
        second = register(client, PATIENT_DATA, email="second@example.com")
        admin = register(client, ADMIN_DATA)
        client.cookies.clear()
        return {"doctor": doctor, "p1": first, "p2": second, "admin": admin}

    def _book(self, client, account, doctor_id, slot_time="09:00 AM"):
        return client.post("/api/v1/appointments", json={
            "doctor_id": doctor_id,
            "slot_date": "2099-01-01",
            "slot_time": slot_time,
            "purpose": "Checkup"
        }, headers=auth_headers(account["access_token"]))

    def test_booking_scenario(self, client, accounts):
        doctor_id = accounts["doctor"]["user"]["id"]

        response = self._book(client, accounts["p1"], doctor_id)
        assert response.status_code == 201
        assert response.json()["status"] == "booked"

        response = self._book(client, accounts["p2"], doctor_id)
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

        response = self._book(client, accounts["p2"], doctor_id, slot_time="09:00")
        assert response.status_code == 409

        response = client.get(
            "/api/v1/slots/doctor",
            params={"doctor_id": doctor_id, "slot_date": "2099-01-01"},
            headers=auth_headers(accounts["p1"]["access_token"])
        )
        assert response.status_code == 200
        assert response.json() == ["09:00 AM"]

    def test_only_patients_book(self, client, accounts):
        doctor_id = accounts["doctor"]["user"]["id"]
        response = self._book(client, accounts["doctor"], doctor_id)
        assert response.status_code == 403

    def test_missing_fields_is_400(self, client, accounts):
        response = client.post(
            "/api/v1/appointments",
            json={"slot_time": "09:00 AM"},
            headers=auth_headers(accounts["p1"]["access_token"])
        )
        assert response.status_code == 400

    def test_malformed_date_is_400(self, client, accounts):
        response = client.post("/api/v1/appointments", json={
            "doctor_id": accounts["doctor"]["user"]["id"],
            "slot_date": "not-a-date",
            "slot_time": "09:00 AM"
        }, headers=auth_headers(accounts["p1"]["access_token"]))
        assert response.status_code == 400

        body = response.json()
        assert body["error"] == "Validation Error"
        assert "slot_date" in body["message"]
        assert body["path"] == "/api/v1/appointments"

    def test_my_appointments(self, client, accounts):
        doctor_id = accounts["doctor"]["user"]["id"]
        self._book(client, accounts["p1"], doctor_id)

        response = client.get("/api/v1/appointments/me", headers=auth_headers(accounts["doctor"]["access_token"]))
        assert response.status_code == 200
        [row] = response.json()
        assert row["counterparty_email"] == PATIENT_DATA["email"]
        assert row["date"] == "2099-01-01"
        assert row["time"] == "09:00 AM"

        response = client.get("/api/v1/appointments/me", headers=auth_headers(accounts["admin"]["access_token"]))
        assert response.status_code == 403

    def test_admin_listing(self, client, accounts):
        doctor_id = accounts["doctor"]["user"]["id"]
        self._book(client, accounts["p1"], doctor_id)

        response = client.get("/api/v1/appointments", headers=auth_headers(accounts["p1"]["access_token"]))
        assert response.status_code == 403

        response = client.get("/api/v1/appointments", headers=auth_headers(accounts["admin"]["access_token"]))
        assert response.status_code == 200
        [row] = response.json()
        assert row["doctor"]["id"] == doctor_id
        assert row["slot"]["slot_time"] == "09:00 AM"

    def test_update_and_delete(self, client, accounts):
        doctor_id = accounts["doctor"]["user"]["id"]
        booked = self._book(client, accounts["p1"], doctor_id).json()
        path = f"/api/v1/appointments/{booked['id']}"

        response = client.put(path, json={"purpose": "Stolen"}, headers=auth_headers(accounts["p2"]["access_token"]))
        assert response.status_code == 403

        response = client.put(path, json={
            "slot_date": "2099-01-01", "slot_time": "10:00 AM"
        }, headers=auth_headers(accounts["p1"]["access_token"]))
        assert response.status_code == 200
        new_slot_id = response.json()["slot_id"]
        assert new_slot_id != booked["slot_id"]
        assert response.json()["purpose"] == "Checkup"

        response = client.delete(path, headers=auth_headers(accounts["doctor"]["access_token"]))
        assert response.status_code == 204

        response = client.get(f"/api/v1/slots/{new_slot_id}", headers=auth_headers(accounts["p1"]["access_token"]))
        assert response.status_code == 404
        assert response.json()["message"] == "Invalid slot ID"

        response = client.delete(path, headers=auth_headers(accounts["admin"]["access_token"]))
        assert response.status_code == 404

    def test_reconcile_is_admin_only(self, client, accounts):
        response = client.post("/api/v1/appointments/reconcile", headers=auth_headers(accounts["p1"]["access_token"]))
        assert response.status_code == 403

        response = client.post("/api/v1/appointments/reconcile", headers=auth_headers(accounts["admin"]["access_token"]))
        assert response.status_code == 200
        assert response.json() == {"orphaned_slots_removed": 0, "dangling_appointments": []}
