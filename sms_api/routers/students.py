# sms_api/routers/students.py
from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from ..core.auth import get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..core.exceptions import BadRequestError
from ..models.user import User
from ..schemas.student_schemas import (
    StudentCreate, StudentUpdate, StudentSelfUpdate, StudentResponse, BulkStudentRequest
)
from ..services.csv_processor import CSVProcessor
from ..services.student_service import StudentService, ensure_student_access
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/students", tags=["Students"])

STUDENT_READERS = ADMINS + (
    "academic_admin", "exam_admin", "finance_admin", "student_affairs_admin", "teacher"
)
STUDENT_WRITERS = ADMINS + ("student_affairs_admin",)
CSV_REQUIRED_COLUMNS = ("student_code", "first_name", "last_name", "email", "sex", "grade_level")


def _format_bulk_result(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "created": [serialize(StudentResponse, s) for s in result["created"]],
        "validation_errors": jsonable_encoder(result["validation_errors"]),
        "duplicate_errors": jsonable_encoder(result["duplicate_errors"]),
        "summary": result["summary"],
    }


@router.get("")
async def list_students(
    request: Request,
    search: Optional[str] = Query(None, description="Search by name, code or email"),
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*STUDENT_READERS)),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db, service.search_statement(search))
    data = [features.project(serialize(StudentResponse, s)) for s in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_student(
    student_data: StudentCreate,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db).create_student(student_data.model_dump(mode="python"))
    await invalidate_counts(db, "students")
    logger.info(f"Student {student.student_code} created by {current_user.username}")
    return success_response(serialize(StudentResponse, student))


add_count_route(router, "students")


@router.get("/me")
async def get_my_profile(
    current_user: User = Depends(restrict_to("student")),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db).get_own_profile(current_user)
    return success_response(serialize(StudentResponse, student))


@router.patch("/me")
async def update_my_profile(
    student_data: StudentSelfUpdate,
    current_user: User = Depends(restrict_to("student")),
    db: AsyncSession = Depends(get_db),
):
    """Students may change their name, contact details, sex and birthday"""
    student = await StudentService(db).update_own_profile(
        current_user, student_data.model_dump(exclude_unset=True)
    )
    return success_response(serialize(StudentResponse, student))


@router.get("/my-children")
async def get_my_children(
    current_user: User = Depends(restrict_to("parent")),
    db: AsyncSession = Depends(get_db),
):
    students = await StudentService(db).get_by_user(current_user)
    return {
        "status": "success",
        "results": len(students),
        "data": {"data": [serialize(StudentResponse, s) for s in students]},
    }


@router.post("/bulk/preflight")
async def preflight_students(
    body: BulkStudentRequest,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    """Validate an import without writing anything"""
    report = await StudentService(db).preflight(body.students)
    return success_response({
        "valid_rows": [row_number for row_number, _ in report["valid_rows"]],
        "validation_errors": jsonable_encoder(report["validation_errors"]),
        "duplicate_errors": jsonable_encoder(report["duplicate_errors"]),
        "summary": report["summary"],
    })


@router.post("/bulk", status_code=201)
async def bulk_create_students(
    body: BulkStudentRequest,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    result = await StudentService(db).bulk_create(body.students)
    await invalidate_counts(db, "students")
    return success_response(_format_bulk_result(result))


@router.post("/bulk/csv", status_code=201)
async def bulk_create_students_csv(
    file: UploadFile = File(...),
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    """Import students from an uploaded CSV file"""
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise BadRequestError("File must be a CSV")
    contents = await file.read()
    rows = CSVProcessor.read_rows(contents, CSV_REQUIRED_COLUMNS)
    if not rows:
        raise BadRequestError("CSV file contains no rows")

    result = await StudentService(db).bulk_create(rows)
    await invalidate_counts(db, "students")
    return success_response(_format_bulk_result(result))


@router.get("/bulk/template")
async def download_template(current_user: User = Depends(restrict_to(*STUDENT_WRITERS))):
    return Response(
        content=CSVProcessor.generate_student_template(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=student_import_template.csv"},
    )


@router.get("/class/{class_id}")
async def get_students_by_class(
    class_id: UUID,
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*STUDENT_READERS)),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db)
    query_params = dict(request.query_params, class_id=str(class_id))
    features = service.features(params, query_params, default_sort="last_name")
    items, total = await features.execute(db)
    data = [features.project(serialize(StudentResponse, s)) for s in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.get("/{student_id}")
async def get_student(
    student_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db).get_or_404(student_id)
    ensure_student_access(current_user, student, allowed_roles=STUDENT_READERS)
    return success_response(serialize(StudentResponse, student))


@router.patch("/{student_id}")
async def update_student(
    student_id: UUID,
    student_data: StudentUpdate,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    student = await StudentService(db).update_student(
        student_id, student_data.model_dump(mode="python", exclude_unset=True)
    )
    return success_response(serialize(StudentResponse, student))


@router.delete("/{student_id}", status_code=204)
async def delete_student(
    student_id: UUID,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    await StudentService(db).delete_student(student_id)
    await invalidate_counts(db, "students")
    return Response(status_code=204)
