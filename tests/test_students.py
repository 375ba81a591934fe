import pytest
from httpx import AsyncClient


def student_payload(**overrides):
    data = {
        "student_code": "STU0001",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.edu",
        "sex": "FEMALE",
        "grade_level": 7,
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_create_student(client: AsyncClient, admin_headers, make_class):
    class_obj = await make_class()

    response = await client.post(
        "/api/v1/students", json=student_payload(class_id=str(class_obj.id)), headers=admin_headers
    )

    assert response.status_code == 201
    student = response.json()["data"]["data"]
    assert student["full_name"] == "Ada Lovelace"
    assert student["status"] == "active"
    assert student["class_id"] == str(class_obj.id)


@pytest.mark.asyncio
async def test_create_student_duplicate_email(client: AsyncClient, admin_headers, make_student):
    await make_student(email="ada@example.edu")

    response = await client.post("/api/v1/students", json=student_payload(), headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["message"] == "A student with this email already exists"


@pytest.mark.asyncio
async def test_create_student_full_class(client: AsyncClient, admin_headers, make_class, make_student):
    class_obj = await make_class(capacity=1)
    await make_student(class_id=class_obj.id)

    response = await client.post(
        "/api/v1/students", json=student_payload(class_id=str(class_obj.id)), headers=admin_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_teacher_cannot_create_student(client: AsyncClient, teacher_headers):
    response = await client.post("/api/v1/students", json=student_payload(), headers=teacher_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_students_filter_sort_paginate(client: AsyncClient, teacher_headers, make_student):
    await make_student(first_name="Zed", grade_level=7)
    await make_student(first_name="Amy", grade_level=7)
    await make_student(first_name="Bob", grade_level=8)

    response = await client.get(
        "/api/v1/students?grade_level=7&sort=first_name&limit=1&page=2&fields=first_name",
        headers=teacher_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["total"] == 2
    assert body["pages"] == 2
    assert body["results"] == 1
    assert body["data"]["data"] == [{"id": body["data"]["data"][0]["id"], "first_name": "Zed"}]


@pytest.mark.asyncio
async def test_list_students_search(client: AsyncClient, admin_headers, make_student):
    await make_student(first_name="Grace", last_name="Hopper")
    await make_student(first_name="Alan", last_name="Turing")

    response = await client.get("/api/v1/students?search=hop", headers=admin_headers)

    assert response.json()["total"] == 1
    assert response.json()["data"]["data"][0]["last_name"] == "Hopper"


@pytest.mark.asyncio
async def test_list_students_invalid_sort(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/students?sort=nonexistent", headers=admin_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_student_sees_own_record_only(client: AsyncClient, make_user, make_student):
    user, headers = await make_user("student")
    own = await make_student(user_id=user.id)
    other = await make_student()

    assert (await client.get(f"/api/v1/students/{own.id}", headers=headers)).status_code == 200
    assert (await client.get(f"/api/v1/students/{other.id}", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_get_missing_student(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/students/00000000-0000-0000-0000-000000000000", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_update_and_delete_student(client: AsyncClient, admin_headers, make_student):
    student = await make_student()

    response = await client.patch(
        f"/api/v1/students/{student.id}", json={"gpa": 3.5, "status": "graduated"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["data"]["status"] == "graduated"

    response = await client.delete(f"/api/v1/students/{student.id}", headers=admin_headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/students/{student.id}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_students_by_class(client: AsyncClient, admin_headers, make_class, make_student):
    class_obj = await make_class()
    await make_student(class_id=class_obj.id)
    await make_student()

    response = await client.get(f"/api/v1/students/class/{class_obj.id}", headers=admin_headers)

    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_bulk_preflight_reports_errors(client: AsyncClient, admin_headers, make_student):
    await make_student(email="taken@example.edu")
    rows = [
        student_payload(student_code="S1", email="one@example.edu"),
        student_payload(student_code="S2", email="one@example.edu"),
        student_payload(student_code="S3", email="taken@example.edu"),
        student_payload(student_code="S4", email="not-an-email"),
    ]

    response = await client.post("/api/v1/students/bulk/preflight", json={"students": rows}, headers=admin_headers)

    assert response.status_code == 200
    report = response.json()["data"]["data"]
    assert report["valid_rows"] == [1]
    assert report["summary"] == {"total_rows": 4, "valid": 1, "invalid": 1, "duplicates": 2}
    assert {e["row_number"] for e in report["duplicate_errors"]} == {2, 3}


@pytest.mark.asyncio
async def test_bulk_create_students(client: AsyncClient, admin_headers):
    rows = [
        student_payload(student_code="S1", email="one@example.edu"),
        student_payload(student_code="S2", email="two@example.edu"),
        {"student_code": "S3", "first_name": "Missing"},
    ]

    response = await client.post("/api/v1/students/bulk", json={"students": rows}, headers=admin_headers)

    assert response.status_code == 201
    result = response.json()["data"]["data"]
    assert result["summary"]["created"] == 2
    assert len(result["validation_errors"]) == 1
    assert (await client.get("/api/v1/students", headers=admin_headers)).json()["total"] == 2


@pytest.mark.asyncio
async def test_bulk_csv_upload(client: AsyncClient, admin_headers):
    csv_content = (
        "Student Code,First Name,Last Name,Email,Sex,Grade Level\n"
        "0012,Ada,Lovelace,ada@example.edu,FEMALE,7\n"
        "0013,Alan,Turing,alan@example.edu,MALE,8\n"
    )

    response = await client.post(
        "/api/v1/students/bulk/csv",
        files={"file": ("students.csv", csv_content, "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 201
    created = response.json()["data"]["data"]["created"]
    assert sorted(s["student_code"] for s in created) == ["0012", "0013"]


@pytest.mark.asyncio
async def test_bulk_csv_missing_columns(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/students/bulk/csv",
        files={"file": ("students.csv", "first_name\nAda\n", "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert "Missing required columns" in response.json()["message"]


@pytest.mark.asyncio
async def test_bulk_template(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/students/bulk/template", headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0].startswith("student_code,first_name,last_name,email")


@pytest.mark.asyncio
async def test_bulk_create_respects_class_capacity(client: AsyncClient, admin_headers, make_class):
    class_obj = await make_class(capacity=1)
    rows = [
        student_payload(student_code=f"C{i}", email=f"c{i}@example.edu", class_id=str(class_obj.id))
        for i in range(3)
    ]

    response = await client.post("/api/v1/students/bulk", json={"students": rows}, headers=admin_headers)

    assert response.status_code == 201
    result = response.json()["data"]["data"]
    assert result["summary"]["created"] == 1
    assert [e["row_number"] for e in result["validation_errors"]] == [2, 3]
    assert "is full (capacity 1)" in result["validation_errors"][0]["error"]
    class_data = (await client.get(f"/api/v1/classes/{class_obj.id}", headers=admin_headers)).json()["data"]["data"]
    assert class_data["student_count"] == 1


@pytest.mark.asyncio
async def test_bulk_preflight_unknown_class(client: AsyncClient, admin_headers):
    missing = "00000000-0000-0000-0000-000000000001"
    rows = [
        student_payload(student_code="K1", email="k1@example.edu", class_id=missing),
        student_payload(student_code="K2", email="k2@example.edu"),
    ]

    response = await client.post("/api/v1/students/bulk", json={"students": rows}, headers=admin_headers)

    assert response.status_code == 201
    result = response.json()["data"]["data"]
    assert result["summary"]["created"] == 1
    assert result["validation_errors"][0]["row_number"] == 1
    assert result["validation_errors"][0]["error"] == f"Class {missing} does not exist"


@pytest.mark.asyncio
async def test_delete_student_with_fee_assignments_rejected(client: AsyncClient, admin_headers, make_student, make_fee, make_assignment):
    student = await make_student()
    await make_assignment(student, await make_fee())

    response = await client.delete(f"/api/v1/students/{student.id}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete a student with fee assignments"


@pytest.mark.asyncio
async def test_student_profile_self_service(client: AsyncClient, make_user, make_student):
    user, headers = await make_user("student")
    student = await make_student(user_id=user.id, phone="555-0100")

    response = await client.get("/api/v1/students/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["data"]["id"] == str(student.id)

    response = await client.patch(
        "/api/v1/students/me", json={"phone": "555-0199", "gpa": 4.0}, headers=headers
    )
    assert response.status_code == 200
    data = response.json()["data"]["data"]
    assert data["phone"] == "555-0199"
    assert data["gpa"] == student.gpa

    response = await client.patch("/api/v1/students/me", json={"status": "graduated"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"


@pytest.mark.asyncio
async def test_student_profile_missing(client: AsyncClient, make_user, teacher_headers):
    _, headers = await make_user("student")

    assert (await client.get("/api/v1/students/me", headers=headers)).status_code == 404
    assert (await client.get("/api/v1/students/me", headers=teacher_headers)).status_code == 403


@pytest.mark.asyncio
async def test_parent_links_and_children(client: AsyncClient, admin_headers, make_user, make_student):
    parent, parent_headers = await make_user("parent")
    first = await make_student()
    second = await make_student()

    response = await client.post(
        f"/api/v1/parents/{parent.id}/assign-students",
        json={"student_ids": [str(first.id), str(second.id)]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["results"] == 2

    children = await client.get("/api/v1/students/my-children", headers=parent_headers)
    assert {s["id"] for s in children.json()["data"]["data"]} == {str(first.id), str(second.id)}

    response = await client.post(
        f"/api/v1/parents/{parent.id}/unassign-students",
        json={"student_ids": [str(first.id)]},
        headers=admin_headers,
    )
    assert response.json()["results"] == 1
    response = await client.get(f"/api/v1/parents/{parent.id}/students", headers=admin_headers)
    assert [s["id"] for s in response.json()["data"]["data"]] == [str(second.id)]


@pytest.mark.asyncio
async def test_parent_reassignment_guard(client: AsyncClient, admin_headers, make_user, make_student):
    parent, _ = await make_user("parent")
    other_parent, _ = await make_user("parent")
    student = await make_student(parent_user_id=other_parent.id)

    response = await client.post(
        f"/api/v1/parents/{parent.id}/assign-students",
        json={"student_ids": [str(student.id)], "allow_reassign": False},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "One or more students already have a different parent"

    response = await client.post(
        f"/api/v1/parents/{parent.id}/unassign-students",
        json={"student_ids": [str(student.id)]},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_linked_accounts_must_have_matching_role(client: AsyncClient, admin_headers, make_user):
    teacher, _ = await make_user("teacher")

    response = await client.post(
        "/api/v1/students", json=student_payload(parent_user_id=str(teacher.id)), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "parent_user_id must reference a parent account"

    response = await client.post(
        f"/api/v1/parents/{teacher.id}/assign-students",
        json={"student_ids": ["00000000-0000-0000-0000-000000000002"]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "User is not a parent account"
