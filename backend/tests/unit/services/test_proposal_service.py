"""
Unit Tests for ProposalService
"""
import pytest
import pytest_asyncio

from thesishub.core.exceptions import InvalidStateTransitionError, NotAuthorizedError, ValidationError
from thesishub.models import ProposalStatus, StudentGroup
from thesishub.services.entity_store import EntityStore
from thesishub.services.group_service import GroupService
from thesishub.services.proposal_service import ProposalService
from thesishub.services.supervision_service import SupervisionService

PROPOSAL = {
    'title': 'Explainable Credit Scoring',
    'description': 'Interpretable models for lending decisions',
    'field': 'Machine Learning',
    'keywords': ['xai', 'credit'],
}


@pytest_asyncio.fixture
async def group(db_session, make_student):
    await make_student('S1')
    await make_student('S2')
    return await GroupService(db_session).create_group('S1', 'Team Alpha')


@pytest_asyncio.fixture
async def proposal(db_session, group):
    return await ProposalService(db_session).create_proposal(group.id, 'S1', dict(PROPOSAL))


class TestDrafting:

    @pytest.mark.asyncio
    async def test_create_starts_as_draft_and_syncs_group(self, db_session, group, proposal):
        assert proposal.status == ProposalStatus.DRAFT
        assert proposal.keywords == ['xai', 'credit']

        refreshed = await EntityStore(db_session).find_by_id(StudentGroup, group.id)
        assert refreshed.project_title == PROPOSAL['title']
        assert refreshed.project_description == PROPOSAL['description']

    @pytest.mark.asyncio
    async def test_one_proposal_per_group(self, db_session, group, proposal):
        with pytest.raises(ValidationError):
            await ProposalService(db_session).create_proposal(group.id, 'S1', dict(PROPOSAL))

    @pytest.mark.asyncio
    async def test_title_and_description_required(self, db_session, group):
        with pytest.raises(ValidationError):
            await ProposalService(db_session).create_proposal(group.id, 'S1', {'title': 'Only a title'})

    @pytest.mark.asyncio
    async def test_non_member_cannot_create(self, db_session, group):
        with pytest.raises(NotAuthorizedError):
            await ProposalService(db_session).create_proposal(group.id, 'S2', dict(PROPOSAL))

    @pytest.mark.asyncio
    async def test_update_draft(self, db_session, proposal):
        updated = await ProposalService(db_session).update_proposal(
            proposal.id, 'S1', {'title': 'Explainable Credit Risk Models'}
        )
        assert updated.title == 'Explainable Credit Risk Models'
        assert updated.status == ProposalStatus.DRAFT

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, db_session, proposal):
        with pytest.raises(ValidationError):
            await ProposalService(db_session).update_proposal(proposal.id, 'S1', {'status': 'approved'})


class TestReviewCycle:

    @pytest.mark.asyncio
    async def test_submit_then_cannot_edit(self, db_session, proposal):
        service = ProposalService(db_session)
        submitted = await service.submit_proposal(proposal.id, 'S1')
        assert submitted.status == ProposalStatus.SUBMITTED
        assert submitted.submission_date is not None

        with pytest.raises(InvalidStateTransitionError):
            await service.update_proposal(proposal.id, 'S1', {'title': 'Changed'})
        with pytest.raises(InvalidStateTransitionError):
            await service.submit_proposal(proposal.id, 'S1')

    @pytest.mark.asyncio
    async def test_unrelated_teacher_cannot_review(self, db_session, proposal, make_teacher):
        await make_teacher('T1')
        await ProposalService(db_session).submit_proposal(proposal.id, 'S1')
        with pytest.raises(NotAuthorizedError):
            await ProposalService(db_session).review_proposal(proposal.id, 'T1', ProposalStatus.APPROVED)

    @pytest.mark.asyncio
    async def test_requested_teacher_reviews_and_rejection_reopens(self, db_session, group, proposal, make_teacher):
        await make_teacher('T1')
        service = ProposalService(db_session)
        await service.submit_proposal(proposal.id, 'S1')
        await SupervisionService(db_session).send_request(group.id, 'T1', proposal.id, requester_id='S1')

        reviewed = await service.review_proposal(proposal.id, 'T1', ProposalStatus.REJECTED, 'Narrow the scope')
        assert reviewed.status == ProposalStatus.REJECTED
        assert reviewed.supervisor_comments == 'Narrow the scope'
        assert reviewed.review_date is not None

        reopened = await service.update_proposal(proposal.id, 'S1', {'description': 'Narrower scope'})
        assert reopened.status == ProposalStatus.DRAFT

    @pytest.mark.asyncio
    async def test_review_outcome_must_be_a_review_state(self, db_session, proposal):
        with pytest.raises(ValidationError):
            await ProposalService(db_session).review_proposal(proposal.id, 'T1', ProposalStatus.DRAFT)

    @pytest.mark.asyncio
    async def test_draft_cannot_be_approved_directly(self, db_session, group, proposal, make_teacher):
        await make_teacher('T1')
        await SupervisionService(db_session).send_request(group.id, 'T1', proposal.id, requester_id='S1')
        with pytest.raises(InvalidStateTransitionError):
            await ProposalService(db_session).review_proposal(proposal.id, 'T1', ProposalStatus.APPROVED)
