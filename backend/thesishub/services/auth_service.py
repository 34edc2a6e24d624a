"""
Auth Service
Registration and login for students, teachers and admins.

Human keys (student_id, teacher_id, email, username) are checked for
uniqueness here before insert; the unique indexes back this up.
"""

from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.config import settings
from thesishub.core.exceptions import AuthenticationError, DuplicateRecordError, ValidationError
from thesishub.core.logging_config import logger
from thesishub.core.security import create_access_token, get_password_hash, verify_password
from thesishub.models import Admin, Student, StudentStatus, Teacher, TeacherStatus
from thesishub.models.base import utcnow
from thesishub.services.access import Role
from thesishub.services.entity_store import EntityStore

STUDENT_PROFILE_FIELDS = {
    "full_name", "department", "year", "semester", "gpa", "skills", "interests", "profile_photo",
}
TEACHER_PROFILE_FIELDS = {
    "full_name", "department", "research_field", "publications", "accepted_topics",
    "acceptance_criteria", "profile_photo", "max_students", "status",
}


class AuthService:
    """Service for account registration, login and profile updates"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    async def _ensure_unique(self, model, label: str, **keys: Any) -> None:
        for field, value in keys.items():
            if await self.store.find_one(model, **{field: value}):
                raise DuplicateRecordError(label, field, str(value))

    @staticmethod
    def _require_password(password: Optional[str]) -> str:
        if not password or len(password) < 6:
            raise ValidationError("Password must be at least 6 characters", field="password")
        return get_password_hash(password)

    # =====================================================
    # REGISTRATION
    # =====================================================

    async def register_student(self, data: Dict[str, Any]) -> Student:
        data = dict(data)
        password_hash = self._require_password(data.pop("password", None))
        data["email"] = data["email"].lower()
        await self._ensure_unique(Student, "Student", student_id=data["student_id"], email=data["email"])

        try:
            async with self.store.transaction("Student"):
                student = await self.store.create(Student, {
                    **data,
                    "password_hash": password_hash,
                    "status": StudentStatus.ACTIVE,
                })
        except IntegrityError as e:
            raise DuplicateRecordError("Student", "student_id", data["student_id"]) from e

        logger.log_auth_event("register", True, principal=student.student_id, role="student")
        return student

    async def register_teacher(self, data: Dict[str, Any]) -> Teacher:
        data = dict(data)
        password_hash = self._require_password(data.pop("password", None))
        data["email"] = data["email"].lower()
        data.setdefault("max_students", settings.DEFAULT_MAX_STUDENTS)
        if data["max_students"] is None or data["max_students"] < 0:
            raise ValidationError("max_students must be zero or more", field="max_students")
        await self._ensure_unique(Teacher, "Teacher", teacher_id=data["teacher_id"], email=data["email"])

        try:
            async with self.store.transaction("Teacher"):
                teacher = await self.store.create(Teacher, {
                    **data,
                    "password_hash": password_hash,
                    "current_students_count": 0,
                    "status": TeacherStatus.ACTIVE,
                })
        except IntegrityError as e:
            raise DuplicateRecordError("Teacher", "teacher_id", data["teacher_id"]) from e

        logger.log_auth_event("register", True, principal=teacher.teacher_id, role="teacher")
        return teacher

    async def create_admin(self, username: str, password: str, email: Optional[str] = None,
                           role: str = "admin") -> Admin:
        password_hash = self._require_password(password)
        await self._ensure_unique(Admin, "Admin", username=username)
        async with self.store.transaction("Admin"):
            admin = await self.store.create(Admin, {
                "username": username,
                "email": email,
                "password_hash": password_hash,
                "role": role,
            })
        logger.info(f"Admin account created: {username}")
        return admin

    async def ensure_default_admin(self) -> Optional[Admin]:
        """Create the configured default admin when no admin exists yet"""
        if await self.store.count(Admin):
            return None
        return await self.create_admin(
            settings.DEFAULT_ADMIN_USERNAME,
            settings.DEFAULT_ADMIN_PASSWORD,
            settings.DEFAULT_ADMIN_EMAIL,
            role="superuser",
        )

    # =====================================================
    # LOGIN
    # =====================================================

    async def login_student(self, student_id: str, password: str) -> Tuple[Student, str]:
        student = await self.store.find_one(Student, student_id=student_id)
        if not student or not verify_password(password, student.password_hash):
            logger.log_auth_event("login", False, principal=student_id, reason="invalid credentials")
            raise AuthenticationError()
        if student.status != StudentStatus.ACTIVE:
            logger.log_auth_event("login", False, principal=student_id, reason="inactive")
            raise AuthenticationError("Account is not active")

        logger.log_auth_event("login", True, principal=student_id, role="student")
        return student, create_access_token(student.student_id, Role.STUDENT.value)

    async def login_teacher(self, teacher_id: str, password: str) -> Tuple[Teacher, str]:
        teacher = await self.store.find_one(Teacher, teacher_id=teacher_id)
        if not teacher or not verify_password(password, teacher.password_hash):
            logger.log_auth_event("login", False, principal=teacher_id, reason="invalid credentials")
            raise AuthenticationError()

        logger.log_auth_event("login", True, principal=teacher_id, role="teacher")
        return teacher, create_access_token(teacher.teacher_id, Role.TEACHER.value)

    async def login_admin(self, username: str, password: str) -> Tuple[Admin, str]:
        admin = await self.store.find_one(Admin, username=username)
        if not admin or not verify_password(password, admin.password_hash):
            logger.log_auth_event("login", False, principal=username, reason="invalid credentials")
            raise AuthenticationError()
        if not admin.is_active:
            logger.log_auth_event("login", False, principal=username, reason="inactive")
            raise AuthenticationError("Account is not active")

        async with self.store.transaction("Admin", admin.id):
            admin.last_login = utcnow()
            await self.store.flush()

        logger.log_auth_event("login", True, principal=username, role="admin")
        return admin, create_access_token(admin.username, Role.ADMIN.value)

    # =====================================================
    # PROFILES
    # =====================================================

    async def update_student_profile(self, student: Student, fields: Dict[str, Any]) -> Student:
        unknown = set(fields) - STUDENT_PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
        async with self.store.transaction("Student", student.student_id):
            student = await self.store.update(Student, student.id, fields)
        return student

    async def update_teacher_profile(self, teacher: Teacher, fields: Dict[str, Any]) -> Teacher:
        unknown = set(fields) - TEACHER_PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
        if "max_students" in fields and fields["max_students"] < teacher.current_students_count:
            raise ValidationError(
                "max_students cannot be lower than the number of supervised groups",
                field="max_students",
            )
        async with self.store.transaction("Teacher", teacher.teacher_id):
            teacher = await self.store.update(Teacher, teacher.id, fields)
        return teacher
