"""Pydantic schemas for student groups and invitations"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from thesishub.models import GroupStatus, MemberRole, ProjectType, InvitationStatus
from thesishub.schemas.account import TeacherResponse


# ==================== Group Schemas ====================

class GroupCreate(BaseModel):
    """Create a group; the caller becomes its leader"""
    group_name: str = Field(..., min_length=1, max_length=255)
    project_title: Optional[str] = Field(None, max_length=500)
    project_description: Optional[str] = None
    project_type: ProjectType = ProjectType.THESIS


class GroupMemberResponse(BaseModel):
    student_id: str
    role: MemberRole
    joined_at: datetime

    # Populated from the Student record when available
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GroupResponse(BaseModel):
    id: str
    group_name: str
    leader_student_id: str
    supervisor_id: Optional[str] = None
    project_title: Optional[str] = None
    project_description: Optional[str] = None
    project_type: ProjectType
    status: GroupStatus
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    members: List[GroupMemberResponse] = []
    member_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class TransferLeadership(BaseModel):
    new_leader_id: str = Field(..., min_length=1)


class SuggestedTeacher(BaseModel):
    """A ranked supervisor candidate"""
    teacher: TeacherResponse
    score: int
    has_capacity: bool


# ==================== Invitation Schemas ====================

class InvitationCreate(BaseModel):
    to_student_id: str = Field(..., min_length=1)
    message: Optional[str] = Field(None, max_length=1000)


class InvitationRespond(BaseModel):
    accept: bool


class InvitationResponse(BaseModel):
    id: str
    group_id: str
    from_student_id: str
    to_student_id: str
    message: Optional[str] = None
    status: InvitationStatus
    sent_date: datetime
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
