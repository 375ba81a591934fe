import pytest
from httpx import AsyncClient

from sms_api.models.fee import Payment


async def pay(client, headers, assignment, amount, method="cash"):
    return await client.post(
        "/api/v1/payments",
        json={"fee_assignment_id": str(assignment.id), "amount": amount, "payment_method": method},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_record_payment_updates_assignment(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    student = await make_student()
    assignment = await make_assignment(student, await make_fee(amount=1000))

    response = await pay(client, finance_headers, assignment, 400)

    assert response.status_code == 201
    payment = response.json()["data"]["data"]
    assert payment["receipt_number"] == "000001"
    assert payment["status"] == "completed"
    assert payment["student_id"] == str(student.id)

    response = await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)
    data = response.json()["data"]["data"]
    assert data["paid_amount"] == 400
    assert data["remaining_amount"] == 600
    assert data["remaining_amount"] == data["assigned_amount"] - data["paid_amount"]
    assert data["status"] == "pending"


@pytest.mark.asyncio
async def test_receipt_numbers_increase(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))

    await pay(client, finance_headers, assignment, 100)
    response = await pay(client, finance_headers, assignment, 100)

    assert response.json()["data"]["data"]["receipt_number"] == "000002"


@pytest.mark.asyncio
async def test_full_payment_marks_paid(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))

    await pay(client, finance_headers, assignment, 600)
    await pay(client, finance_headers, assignment, 400)

    response = await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)
    data = response.json()["data"]["data"]
    assert data["status"] == "paid"
    assert data["remaining_amount"] == 0


@pytest.mark.asyncio
async def test_overpayment_rejected(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    await pay(client, finance_headers, assignment, 700)

    response = await pay(client, finance_headers, assignment, 301)

    assert response.status_code == 400
    assert response.json()["message"] == "Payment amount exceeds remaining amount (300.00)"


@pytest.mark.asyncio
async def test_zero_payment_rejected(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee())

    response = await pay(client, finance_headers, assignment, 0)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_payment_on_cancelled_assignment(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(), status="cancelled")

    response = await pay(client, finance_headers, assignment, 10)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_payment_restores_balance(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    payment = (await pay(client, finance_headers, assignment, 1000)).json()["data"]["data"]

    response = await client.delete(f"/api/v1/payments/{payment['id']}", headers=finance_headers)
    assert response.status_code == 204

    data = (await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)).json()["data"]["data"]
    assert data["paid_amount"] == 0
    assert data["remaining_amount"] == 1000
    assert data["status"] == "pending"


@pytest.mark.asyncio
async def test_cancelling_payment_releases_amount(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    payment = (await pay(client, finance_headers, assignment, 250)).json()["data"]["data"]

    response = await client.patch(
        f"/api/v1/payments/{payment['id']}", json={"status": "cancelled"}, headers=finance_headers
    )
    assert response.status_code == 200

    data = (await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)).json()["data"]["data"]
    assert data["paid_amount"] == 0
    assert data["remaining_amount"] == 1000


@pytest.mark.asyncio
async def test_update_payment_amount(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    payment = (await pay(client, finance_headers, assignment, 250)).json()["data"]["data"]

    await client.patch(f"/api/v1/payments/{payment['id']}", json={"amount": 300}, headers=finance_headers)

    data = (await client.get(f"/api/v1/fee-assignments/{assignment.id}", headers=finance_headers)).json()["data"]["data"]
    assert data["paid_amount"] == 300
    assert data["remaining_amount"] == 700


@pytest.mark.asyncio
async def test_payment_statistics(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    await pay(client, finance_headers, assignment, 100, method="cash")
    await pay(client, finance_headers, assignment, 300, method="card")
    await pay(client, finance_headers, assignment, 200, method="card")

    response = await client.get("/api/v1/payments/statistics", headers=finance_headers)

    stats = response.json()["data"]["data"]
    assert stats["total_payments"] == 3
    assert stats["total_amount"] == 600
    assert stats["by_method"][0] == {"method": "card", "count": 2, "total_amount": 500}
    assert sum(m["count"] for m in stats["monthly"]) == 3


@pytest.mark.asyncio
async def test_student_payment_history(client: AsyncClient, finance_headers, make_user, make_student, make_fee, make_assignment):
    user, student_headers = await make_user("student")
    student = await make_student(user_id=user.id)
    assignment = await make_assignment(student, await make_fee(amount=1000))
    await pay(client, finance_headers, assignment, 100)
    await pay(client, finance_headers, assignment, 150)

    response = await client.get(f"/api/v1/payments/student/{student.id}", headers=student_headers)

    body = response.json()
    assert body["total"] == 2
    assert body["total_amount"] == 250


@pytest.mark.asyncio
async def test_list_payments_filtered_by_method(client: AsyncClient, finance_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee(amount=1000))
    await pay(client, finance_headers, assignment, 100, method="cash")
    await pay(client, finance_headers, assignment, 100, method="check")

    response = await client.get("/api/v1/payments?payment_method=check", headers=finance_headers)

    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_teacher_cannot_record_payments(client: AsyncClient, teacher_headers, make_student, make_fee, make_assignment):
    assignment = await make_assignment(await make_student(), await make_fee())

    response = await pay(client, teacher_headers, assignment, 100)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_receipt_numbers_past_six_digits(client: AsyncClient, db_session, finance_headers, make_student, make_fee, make_assignment):
    student = await make_student()
    assignment = await make_assignment(student, await make_fee(amount=1000))
    db_session.add(Payment(
        fee_assignment_id=assignment.id, student_id=student.id, amount=1,
        payment_method="cash", receipt_number="999999",
    ))
    await db_session.commit()

    first = await pay(client, finance_headers, assignment, 100)
    second = await pay(client, finance_headers, assignment, 100)

    assert first.json()["data"]["data"]["receipt_number"] == "1000000"
    assert second.status_code == 201
    assert second.json()["data"]["data"]["receipt_number"] == "1000001"
