"""
Dashboard API

Admin reporting, the two-step clear-all, admin teacher creation and the
per-role home dashboard.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from thesishub.api.deps import get_current_admin, get_current_principal
from thesishub.core.config import settings
from thesishub.core.database import get_db
from thesishub.core.exceptions import AuthorizationError
from thesishub.schemas.account import StudentResponse, TeacherRegister, TeacherResponse
from thesishub.schemas.collaboration import (
    MessageResponse, MeetingResponse, TaskResponse, FileResponse, ProgressResponse,
)
from thesishub.schemas.group import GroupResponse, InvitationResponse
from thesishub.schemas.proposal import ProposalResponse
from thesishub.schemas.supervision import RequestResponse
from thesishub.services.access import Principal
from thesishub.services.dashboard_service import DashboardService

router = APIRouter()


def _group(group) -> GroupResponse:
    response = GroupResponse.model_validate(group)
    response.member_count = len(response.members)
    return response


ENTITY_SERIALIZERS = {
    "students": StudentResponse.model_validate,
    "teachers": TeacherResponse.model_validate,
    "groups": _group,
    "proposals": ProposalResponse.model_validate,
    "messages": MessageResponse.model_validate,
    "meetings": MeetingResponse.model_validate,
    "tasks": TaskResponse.model_validate,
    "files": FileResponse.model_validate,
    "progressReports": ProgressResponse.model_validate,
    "invitations": InvitationResponse.model_validate,
    "supervisionRequests": RequestResponse.model_validate,
}


def _optional(serializer, value):
    return serializer(value) if value is not None else None


@router.get("/stats")
async def get_dashboard_stats(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    counts = await DashboardService(db).get_counts()
    return {"success": True, "data": counts}


@router.get("/all-data")
async def get_all_data(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    data = await DashboardService(db).get_all()
    return {
        "success": True,
        "data": {
            name: [ENTITY_SERIALIZERS[name](record) for record in records]
            for name, records in data.items()
        },
    }


@router.post("/clear-all/confirmation")
async def request_clear_all(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Step one: issue a short-lived token that the DELETE must echo back"""
    token = DashboardService(db).request_clear_all(principal.subject)
    return {
        "success": True,
        "message": "Send this token to DELETE /clear-all to confirm",
        "confirm_token": token,
        "expires_in_minutes": settings.CLEAR_ALL_CONFIRM_MINUTES,
    }


@router.delete("/clear-all")
async def clear_all_data(
    confirm_token: str = Query(..., min_length=1),
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Step two: wipe every entity except admins"""
    deleted = await DashboardService(db).clear_all(principal.subject, confirm_token)
    return {
        "success": True,
        "message": "All data cleared successfully",
        "deleted": deleted,
    }


@router.post("/teachers", status_code=status.HTTP_201_CREATED)
async def add_teacher(
    data: TeacherRegister,
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    teacher = await DashboardService(db).add_teacher(data.model_dump(exclude_none=True))
    return {
        "success": True,
        "message": "Teacher created successfully",
        "teacher": TeacherResponse.model_validate(teacher),
    }


@router.get("/me")
async def get_my_dashboard(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    service = DashboardService(db)
    if principal.is_student:
        raw = await service.student_dashboard(principal.subject)
        data: Dict[str, Any] = {
            "student": StudentResponse.model_validate(raw["student"]),
            "group": _optional(_group, raw["group"]),
            "proposal": _optional(ProposalResponse.model_validate, raw["proposal"]),
            "supervisor": _optional(TeacherResponse.model_validate, raw["supervisor"]),
            "pending_invitations": [InvitationResponse.model_validate(i) for i in raw["pending_invitations"]],
            "supervision_requests": [RequestResponse.model_validate(r) for r in raw["supervision_requests"]],
            "upcoming_meetings": [MeetingResponse.model_validate(m) for m in raw["upcoming_meetings"]],
            "open_tasks": raw["open_tasks"],
            "unread_messages": raw["unread_messages"],
        }
    elif principal.is_teacher:
        raw = await service.teacher_dashboard(principal.subject)
        data = {
            "teacher": TeacherResponse.model_validate(raw["teacher"]),
            "supervised_groups": [_group(g) for g in raw["supervised_groups"]],
            "pending_requests": [RequestResponse.model_validate(r) for r in raw["pending_requests"]],
            "available_slots": raw["available_slots"],
            "upcoming_meetings": [MeetingResponse.model_validate(m) for m in raw["upcoming_meetings"]],
            "progress_awaiting_review": [ProgressResponse.model_validate(p) for p in raw["progress_awaiting_review"]],
        }
    else:
        raise AuthorizationError("Admins use /dashboard/stats")

    return {"success": True, "dashboard": data}
