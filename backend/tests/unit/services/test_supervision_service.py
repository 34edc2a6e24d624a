"""
Unit Tests for the supervision request workflow

    pending -> accepted -> approved | admin_rejected
    pending -> rejected
"""
import pytest
import pytest_asyncio

from thesishub.core.exceptions import (
    CapacityExceededError, DomainConflictError, InvalidStateTransitionError,
    NotAuthorizedError, NotGroupAdminError, ValidationError,
)
from thesishub.models import (
    GroupStatus, Message, MessageType, RequestStatus, StudentGroup, Teacher, TeacherStatus,
)
from thesishub.services.entity_store import EntityStore
from thesishub.services.group_service import GroupService
from thesishub.services.proposal_service import ProposalService
from thesishub.services.supervision_service import AdminDecision, SupervisionService, TeacherDecision


@pytest_asyncio.fixture
async def setup(db_session, make_student, make_teacher):
    """A two-member group with a proposal and two teachers"""
    for student_id in ('S1', 'S2'):
        await make_student(student_id)
    teacher = await make_teacher('T1', max_students=2)
    other = await make_teacher('T2', max_students=2)

    groups = GroupService(db_session)
    group = await groups.create_group('S1', 'Team Alpha')
    invitation = await groups.invite_student(group.id, 'S1', 'S2')
    await groups.respond_to_invitation(invitation.id, accept=True, responder_id='S2')

    proposal = await ProposalService(db_session).create_proposal(group.id, 'S1', {
        'title': 'Federated Learning on Edge Devices',
        'description': 'Privacy preserving training',
        'field': 'Machine Learning',
    })
    return {'group': group, 'proposal': proposal, 'teacher': teacher, 'other': other}


async def send(db_session, setup, teacher_id='T1'):
    return await SupervisionService(db_session).send_request(
        setup['group'].id, teacher_id, setup['proposal'].id,
        message='Please supervise us', requester_id='S1',
    )


async def accepted_request(db_session, setup):
    request = await send(db_session, setup)
    return await SupervisionService(db_session).respond(request.id, TeacherDecision.ACCEPT, teacher_id='T1')


async def teacher_count(db_session, teacher_id='T1'):
    teacher = await EntityStore(db_session).find_one(Teacher, teacher_id=teacher_id)
    return teacher.current_students_count


async def notifications(db_session, group_id):
    messages = await EntityStore(db_session).filter(Message, group_id=group_id)
    return [m for m in messages if m.message_type == MessageType.NOTIFICATION]


class TestSendRequest:

    @pytest.mark.asyncio
    async def test_request_starts_pending(self, db_session, setup):
        request = await send(db_session, setup)
        assert request.status == RequestStatus.PENDING
        assert request.requested_by == 'S1'
        assert request.requested_date is not None

    @pytest.mark.asyncio
    async def test_non_member_cannot_request(self, db_session, setup, make_student):
        await make_student('S9')
        with pytest.raises(NotAuthorizedError):
            await SupervisionService(db_session).send_request(
                setup['group'].id, 'T1', setup['proposal'].id, requester_id='S9'
            )

    @pytest.mark.asyncio
    async def test_only_leader_can_request(self, db_session, setup):
        with pytest.raises(NotGroupAdminError) as exc:
            await SupervisionService(db_session).send_request(
                setup['group'].id, 'T1', setup['proposal'].id, requester_id='S2'
            )
        assert exc.value.code == 'NOT_GROUP_ADMIN'
        assert await SupervisionService(db_session).list_requests(group_id=setup['group'].id) == []

    @pytest.mark.asyncio
    async def test_duplicate_open_request_conflicts(self, db_session, setup):
        await send(db_session, setup)
        with pytest.raises(DomainConflictError) as exc:
            await send(db_session, setup)
        assert exc.value.code == 'DUPLICATE_REQUEST'

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_rejection(self, db_session, setup):
        request = await send(db_session, setup)
        await SupervisionService(db_session).respond(request.id, TeacherDecision.REJECT, teacher_id='T1')
        again = await send(db_session, setup)
        assert again.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_inactive_teacher_rejected(self, db_session, setup):
        setup['other'].status = TeacherStatus.ON_LEAVE
        await db_session.commit()
        with pytest.raises(ValidationError):
            await send(db_session, setup, teacher_id='T2')

    @pytest.mark.asyncio
    async def test_proposal_must_belong_to_group(self, db_session, setup, make_student):
        await make_student('S7')
        other_group = await GroupService(db_session).create_group('S7', 'Other')
        with pytest.raises(ValidationError):
            await SupervisionService(db_session).send_request(
                other_group.id, 'T1', setup['proposal'].id, requester_id='S7'
            )


class TestTeacherResponse:

    @pytest.mark.asyncio
    async def test_accept_waits_for_admin(self, db_session, setup):
        request = await accepted_request(db_session, setup)

        assert request.status == RequestStatus.ACCEPTED
        assert request.response_date is not None
        # Nothing is assigned until the admin approves
        group = await GroupService(db_session).get_group(setup['group'].id)
        assert group.supervisor_id is None
        assert await teacher_count(db_session) == 0
        assert len(await notifications(db_session, group.id)) == 1

    @pytest.mark.asyncio
    async def test_only_addressed_teacher_responds(self, db_session, setup):
        request = await send(db_session, setup)
        with pytest.raises(NotAuthorizedError):
            await SupervisionService(db_session).respond(request.id, TeacherDecision.ACCEPT, teacher_id='T2')

    @pytest.mark.asyncio
    async def test_full_teacher_cannot_accept(self, db_session, setup):
        setup['teacher'].current_students_count = 2
        await db_session.commit()
        request = await send(db_session, setup)

        with pytest.raises(CapacityExceededError):
            await SupervisionService(db_session).respond(request.id, TeacherDecision.ACCEPT, teacher_id='T1')

        unchanged = await SupervisionService(db_session).get_request(request.id)
        assert unchanged.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejected_request_is_terminal(self, db_session, setup):
        service = SupervisionService(db_session)
        request = await send(db_session, setup)
        rejected = await service.respond(request.id, TeacherDecision.REJECT, teacher_id='T1',
                                         response_message='No capacity this term')
        assert rejected.status == RequestStatus.REJECTED
        assert rejected.is_terminal
        assert rejected.response_message == 'No capacity this term'

        with pytest.raises(InvalidStateTransitionError):
            await service.respond(request.id, TeacherDecision.ACCEPT, teacher_id='T1')
        with pytest.raises(InvalidStateTransitionError):
            await service.finalize(request.id, AdminDecision.APPROVE, admin_username='admin')


class TestAdminFinalize:

    @pytest.mark.asyncio
    async def test_approve_assigns_supervisor(self, db_session, setup):
        request = await accepted_request(db_session, setup)
        approved = await SupervisionService(db_session).finalize(
            request.id, AdminDecision.APPROVE, admin_username='admin', admin_message='Approved'
        )

        assert approved.status == RequestStatus.APPROVED
        assert approved.finalized_by == 'admin'
        assert approved.finalized_date is not None

        group = await EntityStore(db_session).find_by_id(StudentGroup, setup['group'].id)
        assert group.supervisor_id == 'T1'
        assert group.status == GroupStatus.SUPERVISED
        assert await teacher_count(db_session) == 1
        assert len(await notifications(db_session, group.id)) == 2

    @pytest.mark.asyncio
    async def test_admin_reject_has_no_side_effects(self, db_session, setup):
        request = await accepted_request(db_session, setup)
        rejected = await SupervisionService(db_session).finalize(
            request.id, AdminDecision.REJECT, admin_username='admin'
        )

        assert rejected.status == RequestStatus.ADMIN_REJECTED
        group = await EntityStore(db_session).find_by_id(StudentGroup, setup['group'].id)
        assert group.supervisor_id is None
        assert group.status == GroupStatus.ACTIVE
        assert await teacher_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_pending_request_cannot_be_finalized(self, db_session, setup):
        request = await send(db_session, setup)
        with pytest.raises(InvalidStateTransitionError):
            await SupervisionService(db_session).finalize(request.id, AdminDecision.APPROVE)

    @pytest.mark.asyncio
    async def test_approved_request_is_terminal(self, db_session, setup):
        service = SupervisionService(db_session)
        request = await accepted_request(db_session, setup)
        await service.finalize(request.id, AdminDecision.APPROVE, admin_username='admin')
        with pytest.raises(InvalidStateTransitionError):
            await service.finalize(request.id, AdminDecision.REJECT, admin_username='admin')

    @pytest.mark.asyncio
    async def test_capacity_rechecked_at_approval(self, db_session, setup):
        request = await accepted_request(db_session, setup)
        # Slots filled by other approvals in the meantime
        setup['teacher'].current_students_count = 2
        await db_session.commit()

        with pytest.raises(CapacityExceededError):
            await SupervisionService(db_session).finalize(request.id, AdminDecision.APPROVE, admin_username='admin')

        unchanged = await SupervisionService(db_session).get_request(request.id)
        assert unchanged.status == RequestStatus.ACCEPTED
        group = await EntityStore(db_session).find_by_id(StudentGroup, setup['group'].id)
        assert group.supervisor_id is None
        assert await teacher_count(db_session) == 2

    @pytest.mark.asyncio
    async def test_second_approval_for_same_group_rejected(self, db_session, setup):
        service = SupervisionService(db_session)
        first = await accepted_request(db_session, setup)
        second = await send(db_session, setup, teacher_id='T2')
        await service.respond(second.id, TeacherDecision.ACCEPT, teacher_id='T2')

        await service.finalize(first.id, AdminDecision.APPROVE, admin_username='admin')
        with pytest.raises(InvalidStateTransitionError):
            await service.finalize(second.id, AdminDecision.APPROVE, admin_username='admin')
        assert await teacher_count(db_session, 'T2') == 0

    @pytest.mark.asyncio
    async def test_approval_closes_other_open_requests(self, db_session, make_teacher, setup):
        await make_teacher('T3', max_students=2)
        service = SupervisionService(db_session)
        first = await accepted_request(db_session, setup)
        accepted = await send(db_session, setup, teacher_id='T2')
        await service.respond(accepted.id, TeacherDecision.ACCEPT, teacher_id='T2')
        pending = await send(db_session, setup, teacher_id='T3')

        await service.finalize(first.id, AdminDecision.APPROVE, admin_username='admin')

        accepted = await service.get_request(accepted.id)
        assert accepted.status == RequestStatus.ADMIN_REJECTED
        assert accepted.finalized_date is not None
        pending = await service.get_request(pending.id)
        assert pending.status == RequestStatus.REJECTED
        assert pending.response_date is not None
        assert (await service.get_request(first.id)).status == RequestStatus.APPROVED
        assert await service.list_requests(group_id=setup['group'].id, status=RequestStatus.PENDING) == []

    @pytest.mark.asyncio
    async def test_failed_approval_leaves_other_requests_open(self, db_session, setup):
        service = SupervisionService(db_session)
        first = await accepted_request(db_session, setup)
        other = await send(db_session, setup, teacher_id='T2')
        setup['teacher'].current_students_count = 2
        await db_session.commit()

        with pytest.raises(CapacityExceededError):
            await service.finalize(first.id, AdminDecision.APPROVE, admin_username='admin')
        assert (await service.get_request(other.id)).status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_list_requests_filters(self, db_session, setup):
        service = SupervisionService(db_session)
        await send(db_session, setup)
        await send(db_session, setup, teacher_id='T2')

        assert len(await service.list_requests(group_id=setup['group'].id)) == 2
        assert len(await service.list_requests(teacher_id='T2')) == 1
        assert await service.list_requests(status=RequestStatus.APPROVED) == []
