"""
Group API

Group formation for up to three students: creation, invitations, membership
changes, dissolution and supervisor suggestions.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from thesishub.api.deps import get_current_principal, get_current_student
from thesishub.core.config import settings
from thesishub.core.database import get_db
from thesishub.core.exceptions import NotAuthorizedError
from thesishub.core.logging_config import set_group_id
from thesishub.models import GroupStatus, Student, StudentGroup, Teacher, TeacherStatus
from thesishub.schemas.account import TeacherResponse
from thesishub.schemas.group import (
    GroupCreate, GroupResponse, GroupMemberResponse, InvitationCreate, InvitationResponse,
    TransferLeadership, SuggestedTeacher,
)
from thesishub.schemas.proposal import ProposalResponse
from thesishub.services.access import Principal, ensure_group_access
from thesishub.services.entity_store import EntityStore
from thesishub.services.group_service import GroupService
from thesishub.services.matching import rank_teachers
from thesishub.services.proposal_service import ProposalService

router = APIRouter()


# ==================== Helper Functions ====================

async def build_group_response(group: StudentGroup, db: AsyncSession) -> GroupResponse:
    """Build GroupResponse with member names filled in"""
    names: Dict[str, str] = {}
    store = EntityStore(db)
    for member in group.members:
        student = await store.find_one(Student, student_id=member.student_id)
        if student:
            names[member.student_id] = student.full_name

    members = [
        GroupMemberResponse(
            student_id=m.student_id,
            role=m.role,
            joined_at=m.joined_at,
            full_name=names.get(m.student_id),
        )
        for m in group.members
    ]
    response = GroupResponse.model_validate(group)
    response.members = members
    response.member_count = len(members)
    return response


# ==================== Group Endpoints ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_group(
    data: GroupCreate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    group = await GroupService(db).create_group(
        principal.subject,
        data.group_name,
        project_title=data.project_title,
        project_description=data.project_description,
        project_type=data.project_type,
    )
    return {
        "success": True,
        "message": "Group created successfully",
        "group": await build_group_response(group, db),
    }


@router.get("")
async def list_groups(
    status_filter: Optional[GroupStatus] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    groups = await GroupService(db).list_groups(status_filter)
    return {
        "success": True,
        "count": len(groups),
        "groups": [await build_group_response(g, db) for g in groups],
    }


@router.get("/{group_id}")
async def get_group(
    group_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    set_group_id(group_id)
    group = await GroupService(db).get_group(group_id)
    return {"success": True, "group": await build_group_response(group, db)}


@router.post("/{group_id}/invitations", status_code=status.HTTP_201_CREATED)
async def invite_student(
    group_id: str,
    data: InvitationCreate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    invitation = await GroupService(db).invite_student(
        group_id, principal.subject, data.to_student_id, data.message
    )
    return {
        "success": True,
        "message": "Invitation sent",
        "invitation": InvitationResponse.model_validate(invitation),
    }


@router.get("/{group_id}/invitations")
async def list_group_invitations(
    group_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    service = GroupService(db)
    ensure_group_access(await service.get_group(group_id), principal)
    invitations = await service.pending_invitations(group_id)
    return {
        "success": True,
        "invitations": [InvitationResponse.model_validate(i) for i in invitations],
    }


@router.delete("/{group_id}/members/{student_id}")
async def remove_member(
    group_id: str,
    student_id: str,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    group = await GroupService(db).remove_member(group_id, principal.subject, student_id)
    return {
        "success": True,
        "message": "Member removed",
        "group": await build_group_response(group, db),
    }


@router.post("/{group_id}/leave")
async def leave_group(
    group_id: str,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    group = await GroupService(db).leave_group(group_id, principal.subject)
    return {
        "success": True,
        "message": "You left the group",
        "group": await build_group_response(group, db),
    }


@router.post("/{group_id}/transfer-leadership")
async def transfer_leadership(
    group_id: str,
    data: TransferLeadership,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    group = await GroupService(db).transfer_leadership(group_id, principal.subject, data.new_leader_id)
    return {
        "success": True,
        "message": "Leadership transferred",
        "group": await build_group_response(group, db),
    }


@router.post("/{group_id}/dissolve")
async def dissolve_group(
    group_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Leader (or an admin) dissolves the group"""
    if principal.is_teacher:
        raise NotAuthorizedError("Teachers cannot dissolve groups")
    group = await GroupService(db).dissolve_group(
        group_id,
        requester_id=principal.subject,
        by_admin=principal.is_admin,
    )
    return {
        "success": True,
        "message": "Group dissolved",
        "group": await build_group_response(group, db),
    }


@router.get("/{group_id}/proposal")
async def get_group_proposal(
    group_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    await GroupService(db).get_group(group_id)
    proposal = await ProposalService(db).get_group_proposal(group_id)
    return {
        "success": True,
        "proposal": ProposalResponse.model_validate(proposal) if proposal else None,
    }


@router.get("/{group_id}/suggested-teachers")
async def suggested_teachers(
    group_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Active teachers ranked by relevance to the group's proposal"""
    await GroupService(db).get_group(group_id)
    proposal = await ProposalService(db).get_group_proposal(group_id)
    teachers = await EntityStore(db).filter(Teacher, status=TeacherStatus.ACTIVE)

    ranked = rank_teachers(teachers, proposal, neutral_score=settings.NEUTRAL_MATCH_SCORE)
    return {
        "success": True,
        "has_proposal": proposal is not None,
        "teachers": [
            SuggestedTeacher(
                teacher=TeacherResponse.model_validate(match.teacher),
                score=match.score,
                has_capacity=match.teacher.has_capacity,
            )
            for match in ranked
        ],
    }
