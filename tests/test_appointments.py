import logging

import pytest

from .conftest import DOCTOR_ID, PATIENT_ID, appointment_payload

def book(client, headers, **overrides):
    response = client.post("/api/v1/appointments", json=appointment_payload(**overrides), headers=headers)
    assert response.status_code == 201
    return response.json()

class TestCreateAppointment:

    def test_patient_books_pending_appointment(self, client, patient_headers):
        data = book(client, patient_headers)

        assert data["id"]
        assert data["patientId"] == PATIENT_ID
        assert data["doctorId"] == DOCTOR_ID
        assert data["appointmentType"] == "in-person"
        assert data["consultationFee"] == 150.0
        assert data["status"] == "pending"
        assert data["paymentStatus"] == "pending"
        assert data["createdAt"]
        assert data["updatedAt"]

    def test_client_supplied_patient_id_ignored(self, client, patient_headers):
        """The booking is always bound to the caller, not to the body."""
        data = book(client, patient_headers, patientId="someone-else", patient_id="someone-else")
        assert data["patientId"] == PATIENT_ID

    def test_doctor_cannot_book(self, client, doctor_headers):
        response = client.post("/api/v1/appointments", json=appointment_payload(), headers=doctor_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Only patients can book appointments"

    def test_requires_token(self, client):
        response = client.post("/api/v1/appointments", json=appointment_payload())
        assert response.status_code == 401

    @pytest.mark.parametrize("overrides", [
        {"appointmentType": "house-call"},
        {"consultationFee": -10},
        {"consultationFee": 10.005},
        {"appointmentDate": "tomorrow"},
        {"doctorId": ""},
    ])
    def test_invalid_body(self, client, patient_headers, overrides):
        response = client.post(
            "/api/v1/appointments",
            json=appointment_payload(**overrides),
            headers=patient_headers
        )
        assert response.status_code == 400

class TestListAppointments:

    def test_patient_lists_own_in_booking_order(self, client, patient_headers, other_patient_headers):
        first = book(client, patient_headers, appointmentType="virtual")
        book(client, other_patient_headers)
        second = book(client, patient_headers)

        response = client.get("/api/v1/appointments/patient", headers=patient_headers)
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [first["id"], second["id"]]

    def test_doctor_lists_assigned(self, client, patient_headers, doctor_headers, other_doctor_headers):
        mine = book(client, patient_headers)
        book(client, patient_headers, doctorId="doctor-e")

        response = client.get("/api/v1/appointments/doctor", headers=doctor_headers)
        assert [a["id"] for a in response.json()] == [mine["id"]]

    def test_empty_list(self, client, doctor_headers):
        response = client.get("/api/v1/appointments/doctor", headers=doctor_headers)
        assert response.status_code == 200
        assert response.json() == []

    def test_cross_role_listing_forbidden(self, client, patient_headers, doctor_headers):
        assert client.get("/api/v1/appointments/doctor", headers=patient_headers).status_code == 403
        assert client.get("/api/v1/appointments/patient", headers=doctor_headers).status_code == 403

    def test_mine_dispatches_on_role(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)

        for headers in (patient_headers, doctor_headers):
            response = client.get("/api/v1/appointments/mine", headers=headers)
            assert [a["id"] for a in response.json()] == [booked["id"]]

class TestGetAppointment:

    def test_participants_can_read(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)

        for headers in (patient_headers, doctor_headers):
            response = client.get(f"/api/v1/appointments/{booked['id']}", headers=headers)
            assert response.status_code == 200
            assert response.json()["id"] == booked["id"]

    def test_outsiders_cannot_read(self, client, patient_headers, other_patient_headers, other_doctor_headers):
        booked = book(client, patient_headers)

        for headers in (other_patient_headers, other_doctor_headers):
            response = client.get(f"/api/v1/appointments/{booked['id']}", headers=headers)
            assert response.status_code == 403

    def test_unknown_id(self, client, patient_headers):
        response = client.get("/api/v1/appointments/missing", headers=patient_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Appointment not found"

class TestStatusTransitions:

    def test_assigned_doctor_confirms(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)

        response = client.put(
            f"/api/v1/appointments/{booked['id']}/status",
            json={"status": "confirmed"},
            headers=doctor_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "confirmed"
        assert data["paymentStatus"] == "pending"

    def test_full_lifecycle(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        url = f"/api/v1/appointments/{booked['id']}/status"

        assert client.put(url, json={"status": "confirmed"}, headers=doctor_headers).status_code == 200
        response = client.put(url, json={"status": "completed"}, headers=doctor_headers)
        assert response.json()["status"] == "completed"

    @pytest.mark.parametrize("path, target", [
        ([], "completed"),
        ([], "pending"),
        (["confirmed"], "pending"),
        (["confirmed"], "confirmed"),
        (["confirmed", "completed"], "cancelled"),
        (["cancelled"], "confirmed"),
    ])
    def test_invalid_transition_conflicts(self, client, patient_headers, doctor_headers, path, target):
        booked = book(client, patient_headers)
        url = f"/api/v1/appointments/{booked['id']}/status"
        for status in path:
            assert client.put(url, json={"status": status}, headers=doctor_headers).status_code == 200

        response = client.put(url, json={"status": target}, headers=doctor_headers)
        assert response.status_code == 409

    def test_unknown_status_value(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        response = client.put(
            f"/api/v1/appointments/{booked['id']}/status",
            json={"status": "rescheduled"},
            headers=doctor_headers
        )
        assert response.status_code == 400

    def test_patient_cannot_change_status(self, client, patient_headers):
        booked = book(client, patient_headers)
        response = client.put(
            f"/api/v1/appointments/{booked['id']}/status",
            json={"status": "confirmed"},
            headers=patient_headers
        )
        assert response.status_code == 403

    def test_other_doctor_cannot_change_status(self, client, patient_headers, doctor_headers, other_doctor_headers):
        booked = book(client, patient_headers)
        response = client.put(
            f"/api/v1/appointments/{booked['id']}/status",
            json={"status": "confirmed"},
            headers=other_doctor_headers
        )
        assert response.status_code == 403

        unchanged = client.get(f"/api/v1/appointments/{booked['id']}", headers=doctor_headers).json()
        assert unchanged["status"] == "pending"

    def test_unknown_id(self, client, doctor_headers):
        response = client.put(
            "/api/v1/appointments/missing/status",
            json={"status": "confirmed"},
            headers=doctor_headers
        )
        assert response.status_code == 404

class TestCancelAppointment:

    def test_patient_cancels(self, client, patient_headers):
        booked = book(client, patient_headers)

        response = client.delete(f"/api/v1/appointments/{booked['id']}", headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Appointment cancelled successfully"

        data = client.get(f"/api/v1/appointments/{booked['id']}", headers=patient_headers).json()
        assert data["status"] == "cancelled"
        assert data["paymentStatus"] == "pending"

    def test_assigned_doctor_cancels_confirmed(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        client.put(f"/api/v1/appointments/{booked['id']}/status", json={"status": "confirmed"}, headers=doctor_headers)

        response = client.delete(f"/api/v1/appointments/{booked['id']}", headers=doctor_headers)
        assert response.status_code == 200

    def test_other_patient_forbidden(self, client, patient_headers, other_patient_headers):
        booked = book(client, patient_headers)

        response = client.delete(f"/api/v1/appointments/{booked['id']}", headers=other_patient_headers)
        assert response.status_code == 403

        data = client.get(f"/api/v1/appointments/{booked['id']}", headers=patient_headers).json()
        assert data == booked

    def test_other_doctor_forbidden(self, client, patient_headers, other_doctor_headers):
        booked = book(client, patient_headers)

        response = client.delete(f"/api/v1/appointments/{booked['id']}", headers=other_doctor_headers)
        assert response.status_code == 403

    def test_cancel_is_idempotent(self, client, patient_headers):
        booked = book(client, patient_headers)
        url = f"/api/v1/appointments/{booked['id']}"

        client.delete(url, headers=patient_headers)
        first = client.get(url, headers=patient_headers).json()

        response = client.delete(url, headers=patient_headers)
        assert response.status_code == 200
        assert client.get(url, headers=patient_headers).json() == first

    def test_repeated_cancel_is_not_logged_as_a_cancellation(self, client, patient_headers, caplog):
        booked = book(client, patient_headers)
        url = f"/api/v1/appointments/{booked['id']}"
        caplog.set_level(logging.INFO, logger="carebook.services.booking_service")

        client.delete(url, headers=patient_headers)
        client.delete(url, headers=patient_headers)

        messages = [r.getMessage() for r in caplog.records if r.name == "carebook.services.booking_service"]
        assert sum("cancelled by" in m for m in messages) == 1
        assert sum("already cancelled" in m for m in messages) == 1

    def test_completed_cannot_be_cancelled(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        status_url = f"/api/v1/appointments/{booked['id']}/status"
        client.put(status_url, json={"status": "confirmed"}, headers=doctor_headers)
        client.put(status_url, json={"status": "completed"}, headers=doctor_headers)

        response = client.delete(f"/api/v1/appointments/{booked['id']}", headers=patient_headers)
        assert response.status_code == 409

    def test_unknown_id(self, client, patient_headers):
        response = client.delete("/api/v1/appointments/missing", headers=patient_headers)
        assert response.status_code == 404
