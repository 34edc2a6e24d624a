# Re-export all models for convenient imports
from thesishub.models.student import Student, StudentStatus
from thesishub.models.teacher import Teacher, TeacherStatus
from thesishub.models.admin import Admin
from thesishub.models.group import (
    StudentGroup, GroupMember, GroupInvitation,
    GroupStatus, MemberRole, ProjectType, InvitationStatus,
)
from thesishub.models.proposal import Proposal, ProposalStatus
from thesishub.models.supervision_request import (
    SupervisionRequest, RequestStatus, TERMINAL_REQUEST_STATUSES,
)
from thesishub.models.collaboration import (
    Message, Meeting, Task, SharedFile, WeeklyProgress,
    SenderType, ReceiverType, MessageType, MeetingStatus,
    TaskPriority, TaskStatus, ProgressStatus,
)

__all__ = [
    # Accounts
    "Student",
    "StudentStatus",
    "Teacher",
    "TeacherStatus",
    "Admin",
    # Groups
    "StudentGroup",
    "GroupMember",
    "GroupInvitation",
    "GroupStatus",
    "MemberRole",
    "ProjectType",
    "InvitationStatus",
    # Supervision
    "Proposal",
    "ProposalStatus",
    "SupervisionRequest",
    "RequestStatus",
    "TERMINAL_REQUEST_STATUSES",
    # Collaboration
    "Message",
    "Meeting",
    "Task",
    "SharedFile",
    "WeeklyProgress",
    "SenderType",
    "ReceiverType",
    "MessageType",
    "MeetingStatus",
    "TaskPriority",
    "TaskStatus",
    "ProgressStatus",
]
