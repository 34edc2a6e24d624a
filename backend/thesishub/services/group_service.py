"""
Group Lifecycle Service
=======================

Group creation, invitations, membership changes and dissolution.

Rules:
- a student belongs to at most one group (also enforced by the unique index
  on group_members.student_id)
- members + pending invitations never exceed MAX_GROUP_MEMBERS
- only the leader invites, removes members, transfers leadership or dissolves
- every mutation touches the group row so its version is bumped; a stale
  writer gets ConcurrentModificationError
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.config import settings
from thesishub.core.exceptions import (
    AlreadyInGroupError, AlreadyResolvedError, CapacityExceededError,
    GroupNotFoundError, InvalidStateTransitionError, InvitationNotFoundError,
    NotAuthorizedError, NotGroupAdminError, StudentNotFoundError, ValidationError,
)
from thesishub.core.logging_config import logger
from thesishub.models import (
    Student, StudentStatus, Teacher, StudentGroup, GroupMember, GroupInvitation,
    GroupStatus, MemberRole, ProjectType, InvitationStatus,
)
from thesishub.models.base import utcnow
from thesishub.services.entity_store import EntityStore
from thesishub.services.supervision_service import close_open_requests

CLOSED_GROUP_STATUSES = (GroupStatus.DISSOLVED, GroupStatus.COMPLETED)


class GroupService:
    """Service for group formation and membership"""

    def __init__(self, db: AsyncSession, max_members: Optional[int] = None):
        self.db = db
        self.store = EntityStore(db)
        self.max_members = max_members or settings.MAX_GROUP_MEMBERS

    # =====================================================
    # LOOKUPS
    # =====================================================

    async def get_student(self, student_id: str) -> Student:
        student = await self.store.find_one(Student, student_id=student_id)
        if not student:
            raise StudentNotFoundError(student_id)
        return student

    async def get_group(self, group_id: str) -> StudentGroup:
        group = await self.store.find_by_id(StudentGroup, group_id)
        if not group:
            raise GroupNotFoundError(group_id)
        return group

    async def get_invitation(self, invitation_id: str) -> GroupInvitation:
        invitation = await self.store.find_by_id(GroupInvitation, invitation_id)
        if not invitation:
            raise InvitationNotFoundError(invitation_id)
        return invitation

    async def list_groups(self, status: Optional[GroupStatus] = None) -> List[StudentGroup]:
        if status:
            return await self.store.filter(StudentGroup, status=status)
        return await self.store.list(StudentGroup)

    async def get_student_group(self, student_id: str) -> Optional[StudentGroup]:
        student = await self.get_student(student_id)
        if not student.group_id:
            return None
        return await self.store.find_by_id(StudentGroup, student.group_id)

    async def pending_invitations(self, group_id: str) -> List[GroupInvitation]:
        return await self.store.filter(
            GroupInvitation, group_id=group_id, status=InvitationStatus.PENDING
        )

    async def list_invitations(
        self,
        student_id: str,
        direction: str = "received",
        status: Optional[InvitationStatus] = None,
    ) -> List[GroupInvitation]:
        """Invitations sent by or addressed to a student"""
        if direction not in ("received", "sent"):
            raise ValidationError("direction must be 'received' or 'sent'", field="direction")
        key = "to_student_id" if direction == "received" else "from_student_id"
        criteria = {key: student_id}
        if status:
            criteria["status"] = status
        return await self.store.filter(GroupInvitation, **criteria)

    async def available_students(self, requester_id: str) -> List[Student]:
        """Active students without a group, excluding the requester"""
        students = await self.store.filter(Student, status=StudentStatus.ACTIVE)
        return [s for s in students if not s.group_id and s.student_id != requester_id]

    # =====================================================
    # GUARDS
    # =====================================================

    def _require_leader(self, group: StudentGroup, student_id: str) -> None:
        if group.leader_student_id != student_id:
            raise NotGroupAdminError(group.id, student_id)

    def _require_open(self, group: StudentGroup, action: str) -> None:
        if group.status in CLOSED_GROUP_STATUSES:
            raise InvalidStateTransitionError("group", group.status.value, action)

    def _find_member(self, group: StudentGroup, student_id: str) -> Optional[GroupMember]:
        for member in group.members:
            if member.student_id == student_id:
                return member
        return None

    def _refresh_formation_status(self, group: StudentGroup) -> None:
        if group.status == GroupStatus.FORMING and len(group.members) >= 2:
            group.status = GroupStatus.ACTIVE
        elif group.status == GroupStatus.ACTIVE and len(group.members) < 2:
            group.status = GroupStatus.FORMING

    # =====================================================
    # CREATE / INVITE
    # =====================================================

    async def create_group(
        self,
        owner_student_id: str,
        group_name: str,
        project_title: Optional[str] = None,
        project_description: Optional[str] = None,
        project_type: ProjectType = ProjectType.THESIS,
    ) -> StudentGroup:
        """Create a group with the owner as its leader"""
        if not group_name or not group_name.strip():
            raise ValidationError("Group name is required", field="group_name")

        owner = await self.get_student(owner_student_id)
        if owner.group_id:
            raise AlreadyInGroupError(owner_student_id)

        try:
            async with self.store.transaction("Group"):
                group = await self.store.create(StudentGroup, {
                    "group_name": group_name.strip(),
                    "leader_student_id": owner_student_id,
                    "project_title": project_title,
                    "project_description": project_description,
                    "project_type": project_type,
                    "status": GroupStatus.FORMING,
                    "members": [GroupMember(student_id=owner_student_id, role=MemberRole.LEADER)],
                })
                owner.group_id = group.id
                owner.is_group_admin = True
                await self.store.flush()
        except IntegrityError as e:
            raise AlreadyInGroupError(owner_student_id) from e

        logger.log_workflow_event("group", group.id, "created", leader=owner_student_id)
        return group

    async def invite_student(
        self,
        group_id: str,
        from_student_id: str,
        to_student_id: str,
        message: Optional[str] = None,
    ) -> GroupInvitation:
        group = await self.get_group(group_id)
        self._require_leader(group, from_student_id)
        self._require_open(group, "invite into")

        if from_student_id == to_student_id:
            raise ValidationError("You cannot invite yourself", field="to_student_id")

        invitee = await self.get_student(to_student_id)
        if invitee.group_id:
            raise AlreadyInGroupError(to_student_id)

        pending = await self.pending_invitations(group_id)
        if any(inv.to_student_id == to_student_id for inv in pending):
            raise ValidationError("An invitation to this student is already pending", field="to_student_id")

        if len(group.members) + len(pending) >= self.max_members:
            raise CapacityExceededError(
                f"Group is full: {len(group.members)} members and {len(pending)} pending invitations",
                limit=self.max_members,
            )

        async with self.store.transaction("Group", group_id):
            invitation = await self.store.create(GroupInvitation, {
                "group_id": group_id,
                "from_student_id": from_student_id,
                "to_student_id": to_student_id,
                "message": message,
                "status": InvitationStatus.PENDING,
            })
            # Counts toward capacity: serialise with other writers
            group.touch()
            await self.store.flush()

        logger.log_workflow_event("invitation", invitation.id, "sent", to=to_student_id, group=group_id)
        return invitation

    # =====================================================
    # RESPOND / CANCEL
    # =====================================================

    async def respond_to_invitation(
        self,
        invitation_id: str,
        accept: bool,
        responder_id: Optional[str] = None,
    ) -> GroupInvitation:
        invitation = await self.get_invitation(invitation_id)
        if not invitation.is_pending:
            raise AlreadyResolvedError(invitation_id, invitation.status.value)
        if responder_id is not None and responder_id != invitation.to_student_id:
            raise NotAuthorizedError("Only the invited student can respond to this invitation")

        if not accept:
            async with self.store.transaction("Invitation", invitation_id):
                invitation.status = InvitationStatus.DECLINED
                invitation.responded_at = utcnow()
                await self.store.flush()
            logger.log_workflow_event("invitation", invitation_id, "declined")
            return invitation

        group = await self.get_group(invitation.group_id)
        self._require_open(group, "join")
        student = await self.get_student(invitation.to_student_id)
        if student.group_id:
            raise AlreadyInGroupError(student.student_id)
        if len(group.members) >= self.max_members:
            raise CapacityExceededError("Group already has the maximum number of members", limit=self.max_members)

        others = await self.store.filter(
            GroupInvitation, to_student_id=student.student_id, status=InvitationStatus.PENDING
        )

        try:
            async with self.store.transaction("Group", group.id):
                group.members.append(GroupMember(student_id=student.student_id, role=MemberRole.MEMBER))
                self._refresh_formation_status(group)
                group.touch()

                student.group_id = group.id
                student.is_group_admin = False

                now = utcnow()
                invitation.status = InvitationStatus.ACCEPTED
                invitation.responded_at = now
                for other in others:
                    if other.id != invitation.id:
                        other.status = InvitationStatus.CANCELLED
                        other.responded_at = now
                await self.store.flush()
        except IntegrityError as e:
            raise AlreadyInGroupError(student.student_id) from e

        logger.log_workflow_event(
            "invitation", invitation_id, "accepted",
            group=group.id, members=len(group.members),
        )
        return invitation

    async def cancel_invitation(self, invitation_id: str, requester_id: str) -> GroupInvitation:
        invitation = await self.get_invitation(invitation_id)
        if invitation.from_student_id != requester_id:
            raise NotAuthorizedError("Only the sender can cancel this invitation")
        if not invitation.is_pending:
            raise AlreadyResolvedError(invitation_id, invitation.status.value)

        async with self.store.transaction("Invitation", invitation_id):
            invitation.status = InvitationStatus.CANCELLED
            invitation.responded_at = utcnow()
            await self.store.flush()

        logger.log_workflow_event("invitation", invitation_id, "cancelled")
        return invitation

    # =====================================================
    # MEMBERSHIP CHANGES
    # =====================================================

    async def _detach_member(self, group: StudentGroup, student_id: str) -> None:
        member = self._find_member(group, student_id)
        group.members.remove(member)
        student = await self.store.find_one(Student, student_id=student_id)
        if student:
            student.group_id = None
            student.is_group_admin = False

    async def remove_member(self, group_id: str, requester_id: str, target_student_id: str) -> StudentGroup:
        group = await self.get_group(group_id)
        self._require_leader(group, requester_id)
        self._require_open(group, "remove a member from")

        if target_student_id == group.leader_student_id:
            raise ValidationError(
                "The leader cannot be removed; transfer leadership or dissolve the group",
                field="student_id",
            )
        if not self._find_member(group, target_student_id):
            raise ValidationError("Student is not a member of this group", field="student_id")

        async with self.store.transaction("Group", group_id):
            await self._detach_member(group, target_student_id)
            self._refresh_formation_status(group)
            group.touch()
            await self.store.flush()

        logger.log_workflow_event("group", group_id, "member_removed", student=target_student_id)
        return group

    async def leave_group(self, group_id: str, student_id: str) -> StudentGroup:
        group = await self.get_group(group_id)
        self._require_open(group, "leave")
        if not self._find_member(group, student_id):
            raise ValidationError("You are not a member of this group", field="student_id")
        if student_id == group.leader_student_id:
            raise ValidationError(
                "The leader cannot leave; transfer leadership or dissolve the group",
                field="student_id",
            )

        async with self.store.transaction("Group", group_id):
            await self._detach_member(group, student_id)
            self._refresh_formation_status(group)
            group.touch()
            await self.store.flush()

        logger.log_workflow_event("group", group_id, "member_left", student=student_id)
        return group

    async def transfer_leadership(self, group_id: str, requester_id: str, new_leader_id: str) -> StudentGroup:
        group = await self.get_group(group_id)
        self._require_leader(group, requester_id)
        self._require_open(group, "transfer leadership of")

        new_leader = self._find_member(group, new_leader_id)
        if not new_leader:
            raise ValidationError("New leader must be a member of the group", field="new_leader_id")
        if new_leader_id == requester_id:
            raise ValidationError("You are already the leader", field="new_leader_id")

        old_student = await self.get_student(requester_id)
        new_student = await self.get_student(new_leader_id)

        async with self.store.transaction("Group", group_id):
            self._find_member(group, requester_id).role = MemberRole.MEMBER
            new_leader.role = MemberRole.LEADER
            group.leader_student_id = new_leader_id
            group.touch()
            old_student.is_group_admin = False
            new_student.is_group_admin = True
            await self.store.flush()

        logger.log_workflow_event("group", group_id, "leadership_transferred", leader=new_leader_id)
        return group

    async def dissolve_group(self, group_id: str, requester_id: Optional[str] = None, by_admin: bool = False) -> StudentGroup:
        """
        Dissolve a group: members become groupless, pending invitations and
        open supervision requests are closed and a held supervisor slot is
        released.
        """
        group = await self.get_group(group_id)
        if not by_admin:
            self._require_leader(group, requester_id)
        if group.status == GroupStatus.DISSOLVED:
            raise InvalidStateTransitionError("group", group.status.value, "dissolve")

        pending = await self.pending_invitations(group_id)

        async with self.store.transaction("Group", group_id):
            await close_open_requests(self.store, group_id, "Group was dissolved")
            for student_id in list(group.member_ids):
                await self._detach_member(group, student_id)

            now = utcnow()
            for invitation in pending:
                invitation.status = InvitationStatus.CANCELLED
                invitation.responded_at = now

            if group.supervisor_id:
                await self.db.execute(
                    update(Teacher)
                    .where(Teacher.teacher_id == group.supervisor_id, Teacher.current_students_count > 0)
                    .values(
                        current_students_count=Teacher.current_students_count - 1,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session="fetch")
                )

            group.status = GroupStatus.DISSOLVED
            group.touch()
            await self.store.flush()

        logger.log_workflow_event(
            "group", group_id, "dissolved",
            by="admin" if by_admin else requester_id,
        )
        return group
