"""Invitation inbox/outbox and responses"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from thesishub.api.deps import get_current_student
from thesishub.core.database import get_db
from thesishub.models import InvitationStatus
from thesishub.schemas.group import InvitationRespond, InvitationResponse
from thesishub.services.access import Principal
from thesishub.services.group_service import GroupService

router = APIRouter()


@router.get("")
async def list_invitations(
    direction: str = Query("received", pattern="^(received|sent)$"),
    status_filter: Optional[InvitationStatus] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    invitations = await GroupService(db).list_invitations(principal.subject, direction, status_filter)
    return {
        "success": True,
        "count": len(invitations),
        "invitations": [InvitationResponse.model_validate(i) for i in invitations],
    }


@router.post("/{invitation_id}/respond")
async def respond_to_invitation(
    invitation_id: str,
    data: InvitationRespond,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    invitation = await GroupService(db).respond_to_invitation(
        invitation_id, data.accept, responder_id=principal.subject
    )
    return {
        "success": True,
        "message": "Invitation accepted" if data.accept else "Invitation declined",
        "invitation": InvitationResponse.model_validate(invitation),
    }


@router.post("/{invitation_id}/cancel")
async def cancel_invitation(
    invitation_id: str,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    invitation = await GroupService(db).cancel_invitation(invitation_id, principal.subject)
    return {
        "success": True,
        "message": "Invitation cancelled",
        "invitation": InvitationResponse.model_validate(invitation),
    }
