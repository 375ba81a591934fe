from datetime import timedelta

import pytest
from httpx import AsyncClient

from sms_api.models.base import utcnow


def assert_null_rejected(response, field):
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert f"{field} cannot be null" in body["message"]


@pytest.mark.asyncio
async def test_payment_amount_cannot_be_cleared(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    payment = (await client.post(
        "/api/v1/payments",
        json={"fee_assignment_id": str(assignment.id), "amount": 300, "payment_method": "cash"},
        headers=finance_headers,
    )).json()["data"]["data"]

    response = await client.patch(f"/api/v1/payments/{payment['id']}", json={"amount": None}, headers=finance_headers)

    assert_null_rejected(response, "amount")
    data = (await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)).json()["data"]["data"]
    assert data["paid_amount"] == 300
    assert data["remaining_amount"] == 700


@pytest.mark.asyncio
async def test_payment_notes_can_be_cleared(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    payment = (await client.post(
        "/api/v1/payments",
        json={"fee_assignment_id": str(assignment.id), "amount": 100, "payment_method": "card", "notes": "front desk"},
        headers=finance_headers,
    )).json()["data"]["data"]

    response = await client.patch(f"/api/v1/payments/{payment['id']}", json={"notes": None}, headers=finance_headers)

    assert response.status_code == 200
    assert response.json()["data"]["data"]["notes"] is None


@pytest.mark.asyncio
async def test_assigned_amount_cannot_be_cleared(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=500))

    response = await client.patch(
        f"/api/v1/fee-assignments/{assignment.id}", json={"assigned_amount": None}, headers=finance_headers
    )

    assert_null_rejected(response, "assigned_amount")


@pytest.mark.asyncio
async def test_event_end_time_cannot_be_cleared(client: AsyncClient, admin_headers):
    start = utcnow() + timedelta(days=2)
    event = (await client.post("/api/v1/events", json={
        "title": "Parents evening",
        "description": "Meet the form tutors",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=3)).isoformat(),
        "location": "Hall",
        "category": "Meeting",
    }, headers=admin_headers)).json()["data"]["data"]

    response = await client.patch(f"/api/v1/events/{event['id']}", json={"end_time": None}, headers=admin_headers)

    assert_null_rejected(response, "end_time")


@pytest.mark.asyncio
async def test_fee_amount_cannot_be_cleared(client: AsyncClient, finance_headers, make_fee):
    fee = await make_fee(description="Term one")

    response = await client.patch(f"/api/v1/fees/{fee.id}", json={"amount": None}, headers=finance_headers)
    assert_null_rejected(response, "amount")

    response = await client.patch(f"/api/v1/fees/{fee.id}", json={"description": None}, headers=finance_headers)
    assert response.status_code == 200
    assert response.json()["data"]["data"]["description"] is None


@pytest.mark.asyncio
async def test_student_and_class_required_fields(client: AsyncClient, admin_headers, make_student, make_class):
    student = await make_student()
    class_obj = await make_class()

    response = await client.patch(f"/api/v1/students/{student.id}", json={"email": None}, headers=admin_headers)
    assert_null_rejected(response, "email")

    response = await client.patch(f"/api/v1/classes/{class_obj.id}", json={"capacity": None}, headers=admin_headers)
    assert_null_rejected(response, "capacity")
