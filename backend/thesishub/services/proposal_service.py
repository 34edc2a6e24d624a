"""
Proposal Service
One proposal per group; students draft and submit, the reviewing teacher
moves it through review.

    draft -> submitted -> under_review -> approved | rejected
    rejected -> draft (editing a rejected proposal reopens it)
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.exceptions import (
    GroupNotFoundError, InvalidStateTransitionError, NotAuthorizedError,
    ProposalNotFoundError, ValidationError,
)
from thesishub.core.logging_config import logger
from thesishub.models import (
    StudentGroup, Proposal, ProposalStatus, SupervisionRequest, RequestStatus,
)
from thesishub.models.base import utcnow
from thesishub.services.entity_store import EntityStore

PROPOSAL_TRANSITIONS = {
    ProposalStatus.DRAFT: {ProposalStatus.SUBMITTED},
    ProposalStatus.SUBMITTED: {ProposalStatus.UNDER_REVIEW, ProposalStatus.APPROVED, ProposalStatus.REJECTED},
    ProposalStatus.UNDER_REVIEW: {ProposalStatus.APPROVED, ProposalStatus.REJECTED},
    ProposalStatus.REJECTED: {ProposalStatus.DRAFT},
    ProposalStatus.APPROVED: set(),
}

EDITABLE_STATUSES = (ProposalStatus.DRAFT, ProposalStatus.REJECTED)
REVIEW_OUTCOMES = (ProposalStatus.UNDER_REVIEW, ProposalStatus.APPROVED, ProposalStatus.REJECTED)
EDITABLE_FIELDS = {"title", "description", "full_proposal", "field", "keywords", "project_type"}


class ProposalService:
    """Service for proposal drafting and review"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    async def get_proposal(self, proposal_id: str) -> Proposal:
        proposal = await self.store.find_by_id(Proposal, proposal_id)
        if not proposal:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    async def get_group_proposal(self, group_id: str) -> Optional[Proposal]:
        return await self.store.find_one(Proposal, group_id=group_id)

    async def _get_member_group(self, group_id: str, student_id: str) -> StudentGroup:
        group = await self.store.find_by_id(StudentGroup, group_id)
        if not group:
            raise GroupNotFoundError(group_id)
        if not group.has_member(student_id):
            raise NotAuthorizedError("Only group members can edit the group's proposal")
        return group

    def _transition(self, proposal: Proposal, target: ProposalStatus) -> None:
        if target not in PROPOSAL_TRANSITIONS[proposal.status]:
            raise InvalidStateTransitionError("proposal", proposal.status.value, f"move to '{target.value}'")
        proposal.status = target

    async def create_proposal(self, group_id: str, student_id: str, fields: Dict[str, Any]) -> Proposal:
        group = await self._get_member_group(group_id, student_id)
        if await self.get_group_proposal(group_id):
            raise ValidationError("This group already has a proposal; edit it instead", field="group_id")

        data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        if not data.get("title") or not data.get("description"):
            raise ValidationError("Title and description are required", field="title")
        data.setdefault("project_type", group.project_type)

        async with self.store.transaction("Proposal"):
            proposal = await self.store.create(Proposal, {
                **data,
                "group_id": group_id,
                "status": ProposalStatus.DRAFT,
            })
            # Keep the group's project summary in line with its proposal
            group.project_title = proposal.title
            group.project_description = proposal.description
            group.touch()
            await self.store.flush()

        logger.log_workflow_event("proposal", proposal.id, "created", group=group_id)
        return proposal

    async def update_proposal(self, proposal_id: str, student_id: str, fields: Dict[str, Any]) -> Proposal:
        proposal = await self.get_proposal(proposal_id)
        group = await self._get_member_group(proposal.group_id, student_id)
        if proposal.status not in EDITABLE_STATUSES:
            raise InvalidStateTransitionError("proposal", proposal.status.value, "edit")

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

        async with self.store.transaction("Proposal", proposal_id):
            if proposal.status == ProposalStatus.REJECTED:
                self._transition(proposal, ProposalStatus.DRAFT)
            for field, value in fields.items():
                setattr(proposal, field, value)
            proposal.updated_at = utcnow()
            if "title" in fields or "description" in fields:
                group.project_title = proposal.title
                group.project_description = proposal.description
                group.touch()
            await self.store.flush()
        return proposal

    async def submit_proposal(self, proposal_id: str, student_id: str) -> Proposal:
        proposal = await self.get_proposal(proposal_id)
        await self._get_member_group(proposal.group_id, student_id)

        async with self.store.transaction("Proposal", proposal_id):
            self._transition(proposal, ProposalStatus.SUBMITTED)
            proposal.submission_date = utcnow()
            await self.store.flush()

        logger.log_workflow_event("proposal", proposal_id, "submitted")
        return proposal

    async def _may_review(self, proposal: Proposal, teacher_id: str) -> bool:
        group = await self.store.find_by_id(StudentGroup, proposal.group_id)
        if group and group.supervisor_id == teacher_id:
            return True
        requests = await self.store.filter(SupervisionRequest, proposal_id=proposal.id, teacher_id=teacher_id)
        return any(r.status in (RequestStatus.PENDING, RequestStatus.ACCEPTED) for r in requests)

    async def review_proposal(
        self,
        proposal_id: str,
        teacher_id: str,
        status: ProposalStatus,
        comments: Optional[str] = None,
    ) -> Proposal:
        """Teacher review: only the supervisor or a teacher with an open request on it"""
        status = ProposalStatus(status)
        if status not in REVIEW_OUTCOMES:
            raise ValidationError("Review status must be under_review, approved or rejected", field="status")

        proposal = await self.get_proposal(proposal_id)
        if not await self._may_review(proposal, teacher_id):
            raise NotAuthorizedError("Only the supervisor or a requested teacher can review this proposal")

        async with self.store.transaction("Proposal", proposal_id):
            self._transition(proposal, status)
            proposal.review_date = utcnow()
            if comments is not None:
                proposal.supervisor_comments = comments
            await self.store.flush()

        logger.log_workflow_event("proposal", proposal_id, status.value, teacher=teacher_id)
        return proposal
