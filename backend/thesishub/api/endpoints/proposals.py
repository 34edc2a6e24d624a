"""
Proposal API

Drafting, submission and review of a group's proposal, plus the AI drafting
helpers used by the proposal form.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.api.deps import (
    get_ai_service, get_current_principal, get_current_student, get_current_teacher,
)
from thesishub.core.database import get_db
from thesishub.schemas.proposal import (
    ProposalCreate, ProposalUpdate, ProposalReview, ProposalResponse,
    AITitleRequest, AIImproveRequest, AIFullProposalRequest, AIKeywordsRequest,
)
from thesishub.services.access import Principal
from thesishub.services.proposal_ai import ProposalAIService
from thesishub.services.proposal_service import ProposalService

router = APIRouter()


# ==================== AI Helpers ====================
# Declared before /{proposal_id} so "ai" is never taken for an id

@router.post("/ai/title")
async def ai_generate_title(
    data: AITitleRequest,
    principal: Principal = Depends(get_current_student),
    ai: ProposalAIService = Depends(get_ai_service)
):
    title = await ai.generate_proposal_title(data.description, data.field)
    return {"success": True, "title": title}


@router.post("/ai/full")
async def ai_generate_full_proposal(
    data: AIFullProposalRequest,
    principal: Principal = Depends(get_current_student),
    ai: ProposalAIService = Depends(get_ai_service)
):
    proposal = await ai.generate_full_proposal(data.model_dump(mode="json"))
    return {"success": True, "full_proposal": proposal}


@router.post("/ai/improve")
async def ai_improve_description(
    data: AIImproveRequest,
    principal: Principal = Depends(get_current_student),
    ai: ProposalAIService = Depends(get_ai_service)
):
    description = await ai.improve_description(data.description, data.field)
    return {"success": True, "description": description}


@router.post("/ai/keywords")
async def ai_suggest_keywords(
    data: AIKeywordsRequest,
    principal: Principal = Depends(get_current_student),
    ai: ProposalAIService = Depends(get_ai_service)
):
    keywords = await ai.suggest_keywords(data.title, data.description)
    return {"success": True, "keywords": keywords}


# ==================== Proposal CRUD ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_proposal(
    data: ProposalCreate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    fields = data.model_dump(exclude={"group_id"}, exclude_none=True)
    proposal = await ProposalService(db).create_proposal(data.group_id, principal.subject, fields)
    return {
        "success": True,
        "message": "Proposal created successfully",
        "proposal": ProposalResponse.model_validate(proposal),
    }


@router.get("/{proposal_id}")
async def get_proposal(
    proposal_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    proposal = await ProposalService(db).get_proposal(proposal_id)
    return {"success": True, "proposal": ProposalResponse.model_validate(proposal)}


@router.put("/{proposal_id}")
async def update_proposal(
    proposal_id: str,
    data: ProposalUpdate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    proposal = await ProposalService(db).update_proposal(
        proposal_id, principal.subject, data.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Proposal updated",
        "proposal": ProposalResponse.model_validate(proposal),
    }


@router.post("/{proposal_id}/submit")
async def submit_proposal(
    proposal_id: str,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    proposal = await ProposalService(db).submit_proposal(proposal_id, principal.subject)
    return {
        "success": True,
        "message": "Proposal submitted",
        "proposal": ProposalResponse.model_validate(proposal),
    }


@router.post("/{proposal_id}/review")
async def review_proposal(
    proposal_id: str,
    data: ProposalReview,
    principal: Principal = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    proposal = await ProposalService(db).review_proposal(
        proposal_id, principal.subject, data.status, data.comments
    )
    return {
        "success": True,
        "message": f"Proposal {proposal.status.value}",
        "proposal": ProposalResponse.model_validate(proposal),
    }
