from decimal import Decimal

import pytest

from carebook.core.exceptions import PaymentGatewayError
from carebook.services.payment_gateway import SimulatedGateway

from .conftest import appointment_payload

class RecordingGateway(SimulatedGateway):
    """Simulated processor that remembers the amounts it was asked to charge."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.charged = []

    async def create_intent(self, appointment_id, amount, currency):
        self.charged.append((appointment_id, amount, currency))
        return await super().create_intent(appointment_id, amount, currency)

class UnavailableGateway(SimulatedGateway):

    async def create_intent(self, appointment_id, amount, currency):
        raise PaymentGatewayError()

@pytest.fixture
def gateway():
    return RecordingGateway()

def book(client, headers, **overrides):
    response = client.post("/api/v1/appointments", json=appointment_payload(**overrides), headers=headers)
    assert response.status_code == 201
    return response.json()

def create_intent(client, headers, appointment_id):
    return client.post(
        "/api/v1/payments/create-payment-intent",
        json={"appointmentId": appointment_id},
        headers=headers
    )

def intent_id_from(client_secret: str) -> str:
    return client_secret.split("_secret_")[0]

def confirm(client, headers, appointment_id, payment_intent_id):
    return client.post(
        "/api/v1/payments/confirm",
        json={"appointmentId": appointment_id, "paymentIntentId": payment_intent_id},
        headers=headers
    )

class TestPaymentScenario:

    def test_book_confirm_pay(self, client, stores, gateway, patient_headers, doctor_headers):
        """Booking, doctor confirmation, intent and payment confirmation end to end."""
        booked = book(client, patient_headers)
        assert (booked["status"], booked["paymentStatus"]) == ("pending", "pending")

        confirmed = client.put(
            f"/api/v1/appointments/{booked['id']}/status",
            json={"status": "confirmed"},
            headers=doctor_headers
        ).json()
        assert (confirmed["status"], confirmed["paymentStatus"]) == ("confirmed", "pending")

        response = create_intent(client, patient_headers, booked["id"])
        assert response.status_code == 200
        assert list(response.json()) == ["clientSecret"]
        assert gateway.charged == [(booked["id"], 15000, "usd")]

        intent_id = intent_id_from(response.json()["clientSecret"])
        payments = stores.bookings.find_payments(booked["id"])
        assert [(p.payment_intent_id, p.amount, p.status.value) for p in payments] == [
            (intent_id, Decimal("150.00"), "pending")
        ]

        response = confirm(client, patient_headers, booked["id"], intent_id)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Payment confirmed successfully"
        assert data["appointment"]["status"] == "confirmed"
        assert data["appointment"]["paymentStatus"] == "completed"

        payment = stores.bookings.find_payment(booked["id"], intent_id)
        assert payment.status.value == "completed"

    def test_paying_pending_appointment_confirms_it(self, client, patient_headers):
        booked = book(client, patient_headers)
        secret = create_intent(client, patient_headers, booked["id"]).json()["clientSecret"]

        data = confirm(client, patient_headers, booked["id"], intent_id_from(secret)).json()
        assert data["appointment"]["status"] == "confirmed"
        assert data["appointment"]["paymentStatus"] == "completed"

    def test_cents_survive_conversion(self, client, stores, gateway, patient_headers):
        booked = book(client, patient_headers, consultationFee=129.99)
        create_intent(client, patient_headers, booked["id"])

        assert gateway.charged[-1][1] == 12999
        assert stores.bookings.find_payments(booked["id"])[0].amount == Decimal("129.99")

class TestCreatePaymentIntent:

    def test_doctor_forbidden(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        assert create_intent(client, doctor_headers, booked["id"]).status_code == 403

    def test_other_patient_forbidden(self, client, patient_headers, other_patient_headers):
        booked = book(client, patient_headers)
        assert create_intent(client, other_patient_headers, booked["id"]).status_code == 403

    def test_unknown_appointment(self, client, patient_headers):
        response = create_intent(client, patient_headers, "missing")
        assert response.status_code == 404
        assert response.json()["message"] == "Appointment not found"

    def test_already_paid(self, client, patient_headers):
        booked = book(client, patient_headers)
        secret = create_intent(client, patient_headers, booked["id"]).json()["clientSecret"]
        confirm(client, patient_headers, booked["id"], intent_id_from(secret))

        response = create_intent(client, patient_headers, booked["id"])
        assert response.status_code == 400
        assert response.json()["message"] == "Payment already completed"

    def test_cancelled_appointment(self, client, patient_headers):
        booked = book(client, patient_headers)
        client.delete(f"/api/v1/appointments/{booked['id']}", headers=patient_headers)

        assert create_intent(client, patient_headers, booked["id"]).status_code == 409

    def test_new_intent_replaces_pending_one(self, client, stores, patient_headers):
        booked = book(client, patient_headers)
        first = intent_id_from(create_intent(client, patient_headers, booked["id"]).json()["clientSecret"])
        second = intent_id_from(create_intent(client, patient_headers, booked["id"]).json()["clientSecret"])

        assert first != second
        assert [p.payment_intent_id for p in stores.bookings.find_payments(booked["id"])] == [second]
        assert confirm(client, patient_headers, booked["id"], first).status_code == 404

    def test_gateway_unavailable(self, client, stores, patient_headers):
        from carebook.api.deps import get_payment_gateway
        from carebook.main import app

        app.dependency_overrides[get_payment_gateway] = lambda: UnavailableGateway()
        booked = book(client, patient_headers)

        response = create_intent(client, patient_headers, booked["id"])
        assert response.status_code == 500
        assert response.json() == {"message": "Payment processor unavailable"}
        assert stores.bookings.find_payments(booked["id"]) == []

class TestConfirmPayment:

    def test_unknown_payment(self, client, patient_headers):
        booked = book(client, patient_headers)
        create_intent(client, patient_headers, booked["id"])

        response = confirm(client, patient_headers, booked["id"], "pi_unknown")
        assert response.status_code == 404
        assert response.json()["message"] == "Payment not found"

    def test_intent_of_another_appointment(self, client, patient_headers):
        first = book(client, patient_headers)
        second = book(client, patient_headers)
        secret = create_intent(client, patient_headers, first["id"]).json()["clientSecret"]

        response = confirm(client, patient_headers, second["id"], intent_id_from(secret))
        assert response.status_code == 404

    def test_unknown_appointment(self, client, patient_headers):
        assert confirm(client, patient_headers, "missing", "pi_sim_00000001").status_code == 404

    def test_other_patient_forbidden(self, client, patient_headers, other_patient_headers):
        booked = book(client, patient_headers)
        secret = create_intent(client, patient_headers, booked["id"]).json()["clientSecret"]

        response = confirm(client, other_patient_headers, booked["id"], intent_id_from(secret))
        assert response.status_code == 403

    def test_doctor_forbidden(self, client, patient_headers, doctor_headers):
        booked = book(client, patient_headers)
        secret = create_intent(client, patient_headers, booked["id"]).json()["clientSecret"]

        response = confirm(client, doctor_headers, booked["id"], intent_id_from(secret))
        assert response.status_code == 403

    def test_confirm_twice(self, client, patient_headers):
        booked = book(client, patient_headers)
        intent_id = intent_id_from(create_intent(client, patient_headers, booked["id"]).json()["clientSecret"])

        assert confirm(client, patient_headers, booked["id"], intent_id).status_code == 200
        response = confirm(client, patient_headers, booked["id"], intent_id)
        assert response.status_code == 400
        assert response.json()["message"] == "Payment already completed"

    def test_declined_payment_leaves_records_untouched(self, client, stores, gateway, patient_headers):
        gateway.declined.add("pi_sim_00000001")
        booked = book(client, patient_headers)
        intent_id = intent_id_from(create_intent(client, patient_headers, booked["id"]).json()["clientSecret"])
        assert intent_id == "pi_sim_00000001"

        response = confirm(client, patient_headers, booked["id"], intent_id)
        assert response.status_code == 400
        assert response.json()["message"] == "Your card was declined"

        appointment = stores.bookings.find_by_id(booked["id"])
        assert appointment.status.value == "pending"
        assert appointment.payment_status.value == "pending"
        assert stores.bookings.find_payment(booked["id"], intent_id).status.value == "pending"
