"""
School Management API - Test Configuration and Fixtures
"""
import os
from datetime import timedelta
from typing import AsyncGenerator, Callable, Dict, Tuple
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_sms.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['CACHE_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_REQUESTS'] = '10000'
os.environ['AUTH_RATE_LIMIT_REQUESTS'] = '1000'
os.environ['LOG_LEVEL'] = 'warning'

from sms_api.main import app
from sms_api.core.database import AsyncSessionLocal, engine, get_db
from sms_api.core.rate_limiter import rate_limiter
from sms_api.core.security import get_password_hash
from sms_api.models import Base, User, Student, ClassModel, Fee, FeeAssignment, Teacher
from sms_api.models.base import utcnow
from sms_api.models.user import ROLE_PERMISSIONS, department_for_role
from sms_api.services.auth_service import issue_access_token
from sms_api.services.session_service import SessionService

fake = Faker()

TEST_PASSWORD = 'Password123'


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory: create a user of a role with an open session; returns (user, auth headers)"""
    async def _make_user(role: str = 'super_admin', **overrides) -> Tuple[User, Dict[str, str]]:
        data = {
            "username": f"{role}_{fake.unique.user_name()}"[:50].lower(),
            "email": fake.unique.email(),
            "role": role,
            "department": department_for_role(role, overrides.pop("department", None)),
            "permissions": list(ROLE_PERMISSIONS.get(role, [])),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "is_active": True,
            "login_attempts": 0,
        }
        password = overrides.pop("password", TEST_PASSWORD)
        data.update(overrides)
        user = User(password_hash=get_password_hash(password), **data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)

        session, _ = await SessionService(db_session).create_session(user)
        token = issue_access_token(user, session)
        return user, {'Authorization': f'Bearer {token}'}

    return _make_user


@pytest.fixture
async def admin_headers(make_user) -> Dict[str, str]:
    _, headers = await make_user('super_admin')
    return headers


@pytest.fixture
async def finance_headers(make_user) -> Dict[str, str]:
    _, headers = await make_user('finance_admin')
    return headers


@pytest.fixture
async def teacher_headers(make_user) -> Dict[str, str]:
    _, headers = await make_user('teacher')
    return headers


@pytest.fixture
def make_class(db_session: AsyncSession) -> Callable:
    async def _make_class(**overrides) -> ClassModel:
        data = {
            'name': f"Grade {fake.unique.random_int(1, 9999)}",
            'grade_level': 7,
            'section': 'A',
            'academic_year': '2025-2026',
            'capacity': 30,
        }
        data.update(overrides)
        class_obj = ClassModel(**data)
        db_session.add(class_obj)
        await db_session.commit()
        await db_session.refresh(class_obj)
        return class_obj

    return _make_class


@pytest.fixture
def make_student(db_session: AsyncSession) -> Callable:
    async def _make_student(**overrides) -> Student:
        data = {
            'student_code': f"STU{fake.unique.random_int(1, 999999):06d}",
            'first_name': fake.first_name(),
            'last_name': fake.last_name(),
            'email': fake.unique.email(),
            'sex': 'FEMALE',
            'grade_level': 7,
            'status': 'active',
        }
        data.update(overrides)
        student = Student(**data)
        db_session.add(student)
        await db_session.commit()
        await db_session.refresh(student)
        return student

    return _make_student


@pytest.fixture
def make_teacher(db_session: AsyncSession) -> Callable:
    async def _make_teacher(**overrides) -> Teacher:
        data = {
            'first_name': fake.first_name(),
            'last_name': fake.last_name(),
            'email': fake.unique.email(),
            'sex': 'MALE',
            'subjects': ['Mathematics'],
            'status': 'active',
        }
        data.update(overrides)
        teacher = Teacher(**data)
        db_session.add(teacher)
        await db_session.commit()
        await db_session.refresh(teacher)
        return teacher

    return _make_teacher


@pytest.fixture
def make_fee(db_session: AsyncSession) -> Callable:
    async def _make_fee(**overrides) -> Fee:
        data = {
            'name': 'Tuition',
            'category': 'tuition',
            'amount': 1000.0,
            'academic_year': '2025-2026',
            'semester': 'annual',
            'is_active': True,
            'due_date': utcnow() + timedelta(days=30),
        }
        data.update(overrides)
        fee = Fee(**data)
        db_session.add(fee)
        await db_session.commit()
        await db_session.refresh(fee)
        return fee

    return _make_fee


@pytest.fixture
def make_assignment(db_session: AsyncSession) -> Callable:
    async def _make_assignment(student: Student, fee: Fee, **overrides) -> FeeAssignment:
        data = {
            'student_id': student.id,
            'fee_id': fee.id,
            'assigned_amount': fee.amount,
            'due_date': fee.due_date,
            'paid_amount': 0,
        }
        data.update(overrides)
        assignment = FeeAssignment(**data)
        db_session.add(assignment)
        await db_session.commit()
        await db_session.refresh(assignment)
        return assignment

    return _make_assignment
