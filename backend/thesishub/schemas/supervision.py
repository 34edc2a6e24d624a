"""Pydantic schemas for supervision requests"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from thesishub.models import RequestStatus
from thesishub.services.supervision_service import TeacherDecision, AdminDecision


class RequestCreate(BaseModel):
    group_id: str = Field(..., min_length=1)
    teacher_id: str = Field(..., min_length=1)
    proposal_id: str = Field(..., min_length=1)
    message: Optional[str] = Field(None, max_length=2000)


class RequestRespond(BaseModel):
    """Teacher's decision on a pending request"""
    decision: TeacherDecision
    message: Optional[str] = Field(None, max_length=2000)


class RequestFinalize(BaseModel):
    """Admin's decision on a teacher-accepted request"""
    decision: AdminDecision
    message: Optional[str] = Field(None, max_length=2000)


class RequestResponse(BaseModel):
    id: str
    group_id: str
    teacher_id: str
    proposal_id: str
    requested_by: Optional[str] = None
    message: Optional[str] = None
    status: RequestStatus
    requested_date: datetime
    response_date: Optional[datetime] = None
    response_message: Optional[str] = None
    finalized_by: Optional[str] = None
    finalized_date: Optional[datetime] = None
    admin_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
