from datetime import timedelta

import pytest
from httpx import AsyncClient

from sms_api.models.base import utcnow


async def pay(client, headers, assignment, amount, method="cash"):
    response = await client.post(
        "/api/v1/payments",
        json={"fee_assignment_id": str(assignment.id), "amount": amount, "payment_method": method},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]["data"]


@pytest.fixture
async def ledger(make_class, make_student, make_fee, make_assignment):
    """Two students in one class: one partly paid, one overdue"""
    class_obj = await make_class(name="9A")
    ada = await make_student(class_id=class_obj.id, student_code="S0001", first_name="Ada", last_name="King")
    bob = await make_student(class_id=class_obj.id, student_code="S0002", first_name="Bob", last_name="Ross")
    tuition = await make_fee(category="tuition", amount=1000)
    meals = await make_fee(name="Meals", category="meals", amount=200)
    ada_tuition = await make_assignment(ada, tuition)
    bob_meals = await make_assignment(bob, meals, due_date=utcnow() - timedelta(days=10))
    return {"class": class_obj, "ada": ada, "bob": bob, "ada_tuition": ada_tuition, "bob_meals": bob_meals}


@pytest.mark.asyncio
async def test_admin_summary_cards(client: AsyncClient, admin_headers, ledger, make_teacher):
    await make_teacher()

    response = await client.get("/api/v1/dashboard/summary", headers=admin_headers)

    body = response.json()["data"]["data"]
    assert body["role"] == "super_admin"
    cards = body["cards"]
    assert cards["students"] == 2
    assert cards["classes"] == 1
    assert cards["teachers"] == 1
    assert cards["users"] == 1
    assert cards["active_sessions"] == 1
    assert cards["outstanding_fees"] == 1200
    assert cards["overdue_fees"] == 200
    assert "announcements" not in cards


@pytest.mark.asyncio
async def test_teacher_summary_hides_finance(client: AsyncClient, teacher_headers, ledger):
    response = await client.get("/api/v1/dashboard/summary", headers=teacher_headers)

    cards = response.json()["data"]["data"]["cards"]
    assert cards["students"] == 2
    assert "outstanding_fees" not in cards
    assert "teachers" not in cards
    assert cards["announcements"] == 0


@pytest.mark.asyncio
async def test_student_summary(client: AsyncClient, make_user, make_student, make_fee, make_assignment):
    user, headers = await make_user("student")
    student = await make_student(user_id=user.id)
    await make_assignment(student, await make_fee(amount=450))

    response = await client.get("/api/v1/dashboard/summary", headers=headers)

    cards = response.json()["data"]["data"]["cards"]
    assert cards == {"students": 1, "outstanding_fees": 450, "unread_reminders": 0, "announcements": 0}


@pytest.mark.asyncio
async def test_user_stats(client: AsyncClient, admin_headers, make_user):
    await make_user("teacher")
    await make_user("teacher")
    await make_user("student", is_active=False)

    response = await client.get("/api/v1/dashboard/user-stats", headers=admin_headers)

    stats = response.json()["data"]["data"]
    assert stats["total"] == 3
    counts = dict(zip(stats["labels"], stats["datasets"][0]["data"]))
    assert counts["teacher"] == 2
    assert counts["super_admin"] == 1
    assert counts["student"] == 0


@pytest.mark.asyncio
async def test_user_stats_restricted(client: AsyncClient, teacher_headers):
    response = await client.get("/api/v1/dashboard/user-stats", headers=teacher_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_recent_activities(client: AsyncClient, admin_headers, finance_headers, ledger):
    await pay(client, finance_headers, ledger["ada_tuition"], 100)

    response = await client.get("/api/v1/dashboard/activities?limit=5", headers=admin_headers)

    assert response.json()["results"] == 1
    assert response.json()["data"]["data"][0]["action"] == "PAYMENT_CREATE"


@pytest.mark.asyncio
async def test_financial_dashboard(client: AsyncClient, finance_headers, ledger):
    await pay(client, finance_headers, ledger["ada_tuition"], 400, method="card")

    response = await client.get("/api/v1/financial-reports/dashboard", headers=finance_headers)

    assert response.status_code == 200
    report = response.json()["data"]["data"]
    assert report["summary"]["total_fees_collected"] == 400
    assert report["summary"]["total_payments"] == 1
    assert report["summary"]["outstanding_fees"] == 800
    assert report["summary"]["overdue_fees"] == 200
    assert report["summary"]["overdue_count"] == 1
    assert report["summary"]["avg_days_overdue"] == 10
    assert report["fees_by_category"][0]["category"] == "tuition"
    assert report["payment_methods"] == [{"method": "card", "total_amount": 400, "count": 1}]
    assert report["class_summary"][0]["students"] == 2
    assert report["class_summary"][0]["total_outstanding"] == 800


@pytest.mark.asyncio
async def test_financial_dashboard_is_audited(client: AsyncClient, finance_headers):
    await client.get("/api/v1/financial-reports/dashboard", headers=finance_headers)

    response = await client.get("/api/v1/audit/financial", headers=finance_headers)

    assert [log["action"] for log in response.json()["data"]["data"]] == ["FINANCIAL_REPORT_GENERATED"]


@pytest.mark.asyncio
async def test_financial_dashboard_bad_range(client: AsyncClient, finance_headers):
    response = await client.get(
        "/api/v1/financial-reports/dashboard?start_date=2025-06-01T00:00:00&end_date=2025-05-01T00:00:00",
        headers=finance_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_outstanding_report(client: AsyncClient, finance_headers, ledger):
    response = await client.get("/api/v1/financial-reports/outstanding", headers=finance_headers)

    rows = response.json()["data"]["data"]
    assert [row["student_code"] for row in rows] == ["S0001", "S0002"]
    assert rows[1]["overdue_assignments"] == 1
    assert rows[1]["class_name"] == "9A"


@pytest.mark.asyncio
async def test_export_payments_csv(client: AsyncClient, finance_headers, ledger):
    receipt = (await pay(client, finance_headers, ledger["ada_tuition"], 250))["receipt_number"]

    response = await client.get("/api/v1/financial-reports/export?report=payments", headers=finance_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=payments_report_" in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "receipt_number,payment_date,student_code,student_name,amount,payment_method,status,reference_number"
    assert lines[1].startswith(f"{receipt},")
    assert "Ada King" in lines[1]


@pytest.mark.asyncio
async def test_export_unknown_report(client: AsyncClient, finance_headers):
    response = await client.get("/api/v1/financial-reports/export?report=salaries", headers=finance_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reports_restricted(client: AsyncClient, teacher_headers):
    response = await client.get("/api/v1/financial-reports/dashboard", headers=teacher_headers)

    assert response.status_code == 403
