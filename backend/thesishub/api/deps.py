from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from thesishub.core.database import get_db
from thesishub.core.exceptions import AuthenticationError, AuthorizationError
from thesishub.core.logging_config import set_user_id
from thesishub.core.security import decode_token
from thesishub.models import Admin, Student, StudentStatus, Teacher
from thesishub.services.access import Principal, Role
from thesishub.services.entity_store import EntityStore
from thesishub.services.proposal_ai import ProposalAIService, get_proposal_ai_service

# auto_error=False: a missing header is a 401 in our envelope, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Resolve the bearer token to a student, teacher or admin"""
    if not credentials:
        raise AuthenticationError("Authentication required")

    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    subject = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Invalid token payload")
    if not subject:
        raise AuthenticationError("Invalid token payload")

    store = EntityStore(db)
    if role == Role.STUDENT:
        account = await store.find_one(Student, student_id=subject)
        if account and account.status != StudentStatus.ACTIVE:
            raise AuthorizationError("Student account is inactive")
    elif role == Role.TEACHER:
        account = await store.find_one(Teacher, teacher_id=subject)
    else:
        account = await store.find_one(Admin, username=subject)
        if account and not account.is_active:
            raise AuthorizationError("Admin account is inactive")

    if not account:
        raise AuthenticationError("Account not found")

    set_user_id(f"{role.value}:{subject}")
    display_name = getattr(account, "full_name", None) or subject
    return Principal(role=role, subject=subject, display_name=display_name)


def _require_role(principal: Principal, role: Role) -> Principal:
    if principal.role != role:
        raise AuthorizationError(f"{role.value.capitalize()} access required")
    return principal


async def get_current_student(principal: Principal = Depends(get_current_principal)) -> Principal:
    return _require_role(principal, Role.STUDENT)


async def get_current_teacher(principal: Principal = Depends(get_current_principal)) -> Principal:
    return _require_role(principal, Role.TEACHER)


async def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    return _require_role(principal, Role.ADMIN)


def get_ai_service() -> ProposalAIService:
    """Overridden in tests with a mock client"""
    return get_proposal_ai_service()
