"""Pydantic schemas for proposals and the AI drafting helpers"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from thesishub.models import ProposalStatus, ProjectType


class ProposalCreate(BaseModel):
    group_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    full_proposal: Optional[str] = None
    field: Optional[str] = Field(None, max_length=255)
    keywords: List[str] = []
    project_type: Optional[ProjectType] = None


class ProposalUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, min_length=1)
    full_proposal: Optional[str] = None
    field: Optional[str] = Field(None, max_length=255)
    keywords: Optional[List[str]] = None
    project_type: Optional[ProjectType] = None


class ProposalReview(BaseModel):
    status: ProposalStatus
    comments: Optional[str] = None


class ProposalResponse(BaseModel):
    id: str
    group_id: str
    title: str
    description: str
    full_proposal: Optional[str] = None
    field: Optional[str] = None
    keywords: List[str] = []
    project_type: ProjectType
    status: ProposalStatus
    submission_date: Optional[datetime] = None
    review_date: Optional[datetime] = None
    supervisor_comments: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== AI Helpers ====================

class AITitleRequest(BaseModel):
    description: Optional[str] = None
    field: Optional[str] = None


class AIImproveRequest(BaseModel):
    description: str = Field(..., min_length=1)
    field: Optional[str] = None


class AIFullProposalRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    field: Optional[str] = None
    project_type: Optional[ProjectType] = None
    keywords: List[str] = []


class AIKeywordsRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
