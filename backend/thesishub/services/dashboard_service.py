"""
Dashboard Service
Admin reporting (counts, full dump, guarded clear-all) and the per-role
home dashboards for students and teachers.
"""

from typing import Any, Dict, List

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.exceptions import StudentNotFoundError, TeacherNotFoundError
from thesishub.core.logging_config import logger
from thesishub.core.security import create_clear_all_token, verify_clear_all_token
from thesishub.models import (
    Student, Teacher, StudentGroup, GroupMember, GroupInvitation, InvitationStatus,
    Proposal, SupervisionRequest, RequestStatus, Meeting, MeetingStatus, Task, TaskStatus,
    WeeklyProgress, ProgressStatus,
)
from thesishub.models.base import utcnow
from thesishub.services.auth_service import AuthService
from thesishub.services.collaboration_service import CollaborationService
from thesishub.services.entity_store import CLEARABLE_ENTITIES, EntityStore


class DashboardService:
    """Service for admin and per-role dashboards"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    # =====================================================
    # ADMIN
    # =====================================================

    async def get_counts(self) -> Dict[str, int]:
        return {name: await self.store.count(name) for name in CLEARABLE_ENTITIES}

    async def get_all(self) -> Dict[str, List[Any]]:
        return {name: await self.store.list(name) for name in CLEARABLE_ENTITIES}

    def request_clear_all(self, admin_username: str) -> str:
        """First step of clear-all: a short-lived confirmation token"""
        logger.warning(f"Clear-all requested by {admin_username}")
        return create_clear_all_token(admin_username)

    async def clear_all(self, admin_username: str, confirm_token: str) -> Dict[str, int]:
        """Second step: wipe every entity except admins, in one transaction"""
        verify_clear_all_token(confirm_token, admin_username)
        return await self.wipe()

    async def wipe(self) -> Dict[str, int]:
        deleted: Dict[str, int] = {}
        async with self.store.transaction("Database"):
            # Child rows first: SQLite does not enforce ON DELETE CASCADE by default
            await self.db.execute(delete(GroupMember))
            for name in CLEARABLE_ENTITIES:
                deleted[name] = await self.store.delete_all(name)
        logger.warning(f"All data cleared: {sum(deleted.values())} records removed")
        return deleted

    async def add_teacher(self, data: Dict[str, Any]) -> Teacher:
        return await AuthService(self.db).register_teacher(data)

    # =====================================================
    # PER-ROLE DASHBOARDS
    # =====================================================

    async def _upcoming_meetings(self, **criteria: Any) -> List[Meeting]:
        now = utcnow()
        meetings = await self.store.filter(Meeting, status=MeetingStatus.SCHEDULED, **criteria)
        return sorted((m for m in meetings if m.meeting_date >= now), key=lambda m: m.meeting_date)

    async def student_dashboard(self, student_id: str) -> Dict[str, Any]:
        student = await self.store.find_one(Student, student_id=student_id)
        if not student:
            raise StudentNotFoundError(student_id)

        invitations = await self.store.filter(
            GroupInvitation, to_student_id=student_id, status=InvitationStatus.PENDING
        )
        dashboard: Dict[str, Any] = {
            "student": student,
            "group": None,
            "proposal": None,
            "supervisor": None,
            "pending_invitations": invitations,
            "supervision_requests": [],
            "upcoming_meetings": [],
            "open_tasks": 0,
            "unread_messages": 0,
        }
        if not student.group_id:
            dashboard["unread_messages"] = await CollaborationService(self.db).unread_count(student_id)
            return dashboard

        group = await self.store.find_by_id(StudentGroup, student.group_id)
        dashboard["group"] = group
        if group is None:
            return dashboard

        dashboard["proposal"] = await self.store.find_one(Proposal, group_id=group.id)
        if group.supervisor_id:
            dashboard["supervisor"] = await self.store.find_one(Teacher, teacher_id=group.supervisor_id)
        dashboard["supervision_requests"] = await self.store.filter(SupervisionRequest, group_id=group.id)
        dashboard["upcoming_meetings"] = await self._upcoming_meetings(group_id=group.id)

        tasks = await self.store.filter(Task, group_id=group.id)
        dashboard["open_tasks"] = len([
            t for t in tasks
            if t.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS) and student_id in (t.assigned_to or [])
        ])
        dashboard["unread_messages"] = await CollaborationService(self.db).unread_count(student_id, group.id)
        return dashboard

    async def teacher_dashboard(self, teacher_id: str) -> Dict[str, Any]:
        teacher = await self.store.find_one(Teacher, teacher_id=teacher_id)
        if not teacher:
            raise TeacherNotFoundError(teacher_id)

        groups = await self.store.filter(StudentGroup, supervisor_id=teacher_id)
        pending = await self.store.filter(SupervisionRequest, teacher_id=teacher_id, status=RequestStatus.PENDING)

        awaiting_review = []
        for group in groups:
            awaiting_review.extend(
                await self.store.filter(WeeklyProgress, group_id=group.id, status=ProgressStatus.SUBMITTED)
            )

        return {
            "teacher": teacher,
            "supervised_groups": groups,
            "pending_requests": pending,
            "available_slots": max(teacher.max_students - teacher.current_students_count, 0),
            "upcoming_meetings": await self._upcoming_meetings(supervisor_id=teacher_id),
            "progress_awaiting_review": awaiting_review,
        }
