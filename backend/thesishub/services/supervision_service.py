"""
Supervision Request Workflow
============================

    pending --teacher accept--> accepted --admin approve--> approved
       |                            |
       +--teacher reject--> rejected +--admin reject--> admin_rejected

Teacher capacity is checked when the teacher accepts and again, atomically,
when the admin approves: the counter increment is a conditional UPDATE that
only succeeds while current_students_count < max_students, and it commits
together with the request and group changes or not at all.
"""

import enum
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.exceptions import (
    CapacityExceededError, DomainConflictError, GroupNotFoundError,
    InvalidStateTransitionError, NotAuthorizedError, NotGroupAdminError,
    ProposalNotFoundError, RequestNotFoundError, TeacherNotFoundError, ValidationError,
)
from thesishub.core.logging_config import logger
from thesishub.models import (
    Teacher, TeacherStatus, StudentGroup, GroupStatus, Proposal,
    SupervisionRequest, RequestStatus, SenderType,
)
from thesishub.models.base import utcnow
from thesishub.services.collaboration_service import notify_group
from thesishub.services.entity_store import EntityStore

OPEN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.ACCEPTED)


async def close_open_requests(store: EntityStore, group_id: str, reason: str,
                              keep_id: Optional[str] = None) -> int:
    """
    Close every open request of a group except ``keep_id``. Pending ones
    become rejected, accepted ones admin_rejected. Runs inside the caller's
    transaction; call it before changing any loaded request in the session.
    """
    now = utcnow()
    closed = 0
    for request in await store.filter(SupervisionRequest, group_id=group_id):
        if request.id == keep_id or request.status not in OPEN_REQUEST_STATUSES:
            continue
        if request.status == RequestStatus.PENDING:
            request.status = RequestStatus.REJECTED
            request.response_date = now
            request.response_message = reason
        else:
            request.status = RequestStatus.ADMIN_REJECTED
            request.finalized_date = now
            request.admin_message = reason
        closed += 1
    if closed:
        await store.flush()
        logger.log_workflow_event("group", group_id, "requests_closed", count=closed)
    return closed


class TeacherDecision(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class AdminDecision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class SupervisionService:
    """Service for the student -> teacher -> admin supervision workflow"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    # =====================================================
    # LOOKUPS
    # =====================================================

    async def get_request(self, request_id: str) -> SupervisionRequest:
        request = await self.store.find_by_id(SupervisionRequest, request_id)
        if not request:
            raise RequestNotFoundError(request_id)
        return request

    async def _get_teacher(self, teacher_id: str) -> Teacher:
        teacher = await self.store.find_one(Teacher, teacher_id=teacher_id)
        if not teacher:
            raise TeacherNotFoundError(teacher_id)
        return teacher

    async def _get_group(self, group_id: str) -> StudentGroup:
        group = await self.store.find_by_id(StudentGroup, group_id)
        if not group:
            raise GroupNotFoundError(group_id)
        return group

    def _require_unsupervised(self, group: StudentGroup, action: str) -> None:
        if group.status == GroupStatus.DISSOLVED or group.status == GroupStatus.COMPLETED:
            raise InvalidStateTransitionError("group", group.status.value, action)
        if group.supervisor_id or group.status == GroupStatus.SUPERVISED:
            raise InvalidStateTransitionError("group", GroupStatus.SUPERVISED.value, action)

    async def list_requests(
        self,
        group_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
    ) -> List[SupervisionRequest]:
        criteria = {}
        if group_id:
            criteria["group_id"] = group_id
        if teacher_id:
            criteria["teacher_id"] = teacher_id
        if status:
            criteria["status"] = status
        requests = await self.store.filter(SupervisionRequest, **criteria)
        return sorted(requests, key=lambda r: r.requested_date, reverse=True)

    # =====================================================
    # STUDENT: SEND
    # =====================================================

    async def send_request(
        self,
        group_id: str,
        teacher_id: str,
        proposal_id: str,
        message: Optional[str] = None,
        requester_id: Optional[str] = None,
    ) -> SupervisionRequest:
        group = await self._get_group(group_id)
        if requester_id is not None and not group.has_member(requester_id):
            raise NotAuthorizedError("Only group members can request supervision")
        if requester_id is not None and group.leader_student_id != requester_id:
            raise NotGroupAdminError(group_id, requester_id)
        self._require_unsupervised(group, "request supervision for")

        teacher = await self._get_teacher(teacher_id)
        if teacher.status != TeacherStatus.ACTIVE:
            raise ValidationError("This teacher is not accepting supervision requests", field="teacher_id")

        proposal = await self.store.find_by_id(Proposal, proposal_id)
        if not proposal:
            raise ProposalNotFoundError(proposal_id)
        if proposal.group_id != group_id:
            raise ValidationError("Proposal does not belong to this group", field="proposal_id")

        existing = await self.store.filter(SupervisionRequest, group_id=group_id, teacher_id=teacher_id)
        if any(r.status in OPEN_REQUEST_STATUSES for r in existing):
            raise DomainConflictError(
                "A supervision request to this teacher is already in progress",
                code="DUPLICATE_REQUEST",
                details={"group_id": group_id, "teacher_id": teacher_id},
            )

        async with self.store.transaction("Request"):
            request = await self.store.create(SupervisionRequest, {
                "group_id": group_id,
                "teacher_id": teacher_id,
                "proposal_id": proposal_id,
                "requested_by": requester_id,
                "message": message,
                "status": RequestStatus.PENDING,
            })

        logger.log_workflow_event("request", request.id, "sent", group=group_id, teacher=teacher_id)
        return request

    # =====================================================
    # TEACHER: RESPOND
    # =====================================================

    async def respond(
        self,
        request_id: str,
        decision: TeacherDecision,
        teacher_id: Optional[str] = None,
        response_message: Optional[str] = None,
    ) -> SupervisionRequest:
        decision = TeacherDecision(decision)
        request = await self.get_request(request_id)
        if teacher_id is not None and request.teacher_id != teacher_id:
            raise NotAuthorizedError("This request is addressed to another teacher")
        if request.status != RequestStatus.PENDING:
            raise InvalidStateTransitionError("supervision request", request.status.value, decision.value)

        teacher = await self._get_teacher(request.teacher_id)
        if decision == TeacherDecision.ACCEPT:
            if teacher.current_students_count + 1 > teacher.max_students:
                raise CapacityExceededError(
                    f"Teacher {teacher.teacher_id} has no free supervision slots",
                    limit=teacher.max_students,
                )
            group = await self._get_group(request.group_id)
            self._require_unsupervised(group, "accept supervision of")
            new_status = RequestStatus.ACCEPTED
            note = f"{teacher.full_name} accepted your supervision request; awaiting admin approval."
        else:
            new_status = RequestStatus.REJECTED
            note = f"{teacher.full_name} declined your supervision request."
        if response_message:
            note = f"{note} Message: {response_message}"

        async with self.store.transaction("Request", request_id):
            request.status = new_status
            request.response_date = utcnow()
            request.response_message = response_message
            await notify_group(self.store, request.group_id, note,
                               sender_id=teacher.teacher_id, sender_type=SenderType.TEACHER)

        logger.log_workflow_event("request", request_id, new_status.value, teacher=request.teacher_id)
        return request

    # =====================================================
    # ADMIN: FINALIZE
    # =====================================================

    async def finalize(
        self,
        request_id: str,
        decision: AdminDecision,
        admin_username: Optional[str] = None,
        admin_message: Optional[str] = None,
    ) -> SupervisionRequest:
        decision = AdminDecision(decision)
        request = await self.get_request(request_id)
        if request.status != RequestStatus.ACCEPTED:
            raise InvalidStateTransitionError("supervision request", request.status.value, decision.value)

        if decision == AdminDecision.REJECT:
            async with self.store.transaction("Request", request_id):
                self._stamp(request, RequestStatus.ADMIN_REJECTED, admin_username, admin_message)
                note = "The administrator did not approve your supervision request."
                if admin_message:
                    note = f"{note} Message: {admin_message}"
                await notify_group(self.store, request.group_id, note, sender_id=admin_username or "admin",
                                   sender_type=SenderType.ADMIN)
            logger.log_workflow_event("request", request_id, "admin_rejected", admin=admin_username)
            return request

        group = await self._get_group(request.group_id)
        self._require_unsupervised(group, "approve supervision of")
        teacher = await self._get_teacher(request.teacher_id)

        async with self.store.transaction("Group", group.id):
            result = await self.db.execute(
                update(Teacher)
                .where(
                    Teacher.teacher_id == teacher.teacher_id,
                    Teacher.current_students_count < Teacher.max_students,
                )
                .values(
                    current_students_count=Teacher.current_students_count + 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != 1:
                raise CapacityExceededError(
                    f"Teacher {teacher.teacher_id} has no free supervision slots",
                    limit=teacher.max_students,
                )

            await close_open_requests(
                self.store, group.id, f"Group is now supervised by {teacher.full_name}", keep_id=request_id,
            )
            self._stamp(request, RequestStatus.APPROVED, admin_username, admin_message)
            group.supervisor_id = teacher.teacher_id
            group.status = GroupStatus.SUPERVISED
            group.touch()
            await notify_group(
                self.store, group.id,
                f"Supervision approved: {teacher.full_name} is now your supervisor.",
                sender_id=admin_username or "admin", sender_type=SenderType.ADMIN,
            )

        logger.log_workflow_event(
            "request", request_id, "approved",
            group=group.id, teacher=teacher.teacher_id, admin=admin_username,
        )
        return request

    @staticmethod
    def _stamp(request: SupervisionRequest, status: RequestStatus,
               admin_username: Optional[str], admin_message: Optional[str]) -> None:
        request.status = status
        request.finalized_by = admin_username
        request.finalized_date = utcnow()
        request.admin_message = admin_message
