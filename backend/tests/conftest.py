"""
ThesisHub - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set testing environment before the settings object is built
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'false'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['USE_MOCK_AI'] = 'true'
os.environ['ANTHROPIC_API_KEY'] = ''
os.environ['DEFAULT_ADMIN_USERNAME'] = ''

from thesishub.main import app
from thesishub.api.deps import get_ai_service
from thesishub.core.database import Base, get_db
from thesishub.core.security import create_access_token, get_password_hash
from thesishub.models import Admin, Student, Teacher
from thesishub.services.access import Role
from thesishub.services.proposal_ai import ProposalAIService

from tests.mocks.mock_ai import MockAIClient

fake = Faker()

TEST_PASSWORD = 'testpassword123'


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database file per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for calling services directly"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_ai() -> MockAIClient:
    return MockAIClient()


@pytest_asyncio.fixture
async def client(session_factory, mock_ai) -> AsyncGenerator[AsyncClient, None]:
    """Test client with a fresh session per request, like production"""
    async def override_get_db():
        async with session_factory() as session:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: ProposalAIService(mock_ai)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Record factories ====================

@pytest.fixture
def make_student(db_session: AsyncSession) -> Callable:
    """Insert an active student; returns the Student"""
    async def _make(student_id: str = None, **fields) -> Student:
        student = Student(
            student_id=student_id or f"S{fake.unique.random_number(digits=6)}",
            full_name=fields.pop('full_name', fake.name()),
            email=fields.pop('email', fake.unique.email()),
            password_hash=get_password_hash(TEST_PASSWORD),
            department=fields.pop('department', 'Computer Science'),
            **fields,
        )
        db_session.add(student)
        await db_session.commit()
        return student
    return _make


@pytest.fixture
def make_teacher(db_session: AsyncSession) -> Callable:
    """Insert an active teacher; returns the Teacher"""
    async def _make(teacher_id: str = None, **fields) -> Teacher:
        teacher = Teacher(
            teacher_id=teacher_id or f"T{fake.unique.random_number(digits=6)}",
            full_name=fields.pop('full_name', f"Dr. {fake.name()}"),
            email=fields.pop('email', fake.unique.email()),
            password_hash=get_password_hash(TEST_PASSWORD),
            department=fields.pop('department', 'Computer Science'),
            max_students=fields.pop('max_students', 5),
            current_students_count=fields.pop('current_students_count', 0),
            **fields,
        )
        db_session.add(teacher)
        await db_session.commit()
        return teacher
    return _make


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> Admin:
    admin = Admin(
        username='admin',
        email='admin@example.com',
        password_hash=get_password_hash(TEST_PASSWORD),
        role='superuser',
    )
    db_session.add(admin)
    await db_session.commit()
    return admin


# ==================== Auth headers ====================

def bearer(subject: str, role: Role) -> Dict[str, str]:
    return {'Authorization': f'Bearer {create_access_token(subject, role.value)}'}


def student_headers(student: Student) -> Dict[str, str]:
    return bearer(student.student_id, Role.STUDENT)


def teacher_headers(teacher: Teacher) -> Dict[str, str]:
    return bearer(teacher.teacher_id, Role.TEACHER)


@pytest.fixture
def admin_headers(admin_user: Admin) -> Dict[str, str]:
    return bearer(admin_user.username, Role.ADMIN)
