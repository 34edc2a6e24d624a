from sqlalchemy import Column, String, DateTime, Text, Index
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column, utcnow


class RequestStatus(str, enum.Enum):
    """
    pending -> accepted | rejected          (teacher)
    accepted -> approved | admin_rejected   (admin)
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ADMIN_REJECTED = "admin_rejected"
    APPROVED = "approved"


TERMINAL_REQUEST_STATUSES = frozenset({
    RequestStatus.REJECTED,
    RequestStatus.ADMIN_REJECTED,
    RequestStatus.APPROVED,
})


class SupervisionRequest(RecordMixin, Base):
    """A group's ask for one teacher to supervise it"""
    __tablename__ = "supervision_requests"

    __table_args__ = (
        Index('ix_supervision_requests_group_id', 'group_id'),
        Index('ix_supervision_requests_teacher_id', 'teacher_id'),
        Index('ix_supervision_requests_status', 'status'),
    )

    group_id = Column(String(36), nullable=False)
    teacher_id = Column(String(50), nullable=False)
    proposal_id = Column(String(36), nullable=False)
    requested_by = Column(String(50), nullable=True)  # Student.student_id
    message = Column(Text, nullable=True)
    status = enum_column(RequestStatus, RequestStatus.PENDING)

    requested_date = Column(DateTime, default=utcnow, nullable=False)
    response_date = Column(DateTime, nullable=True)
    response_message = Column(Text, nullable=True)

    finalized_by = Column(String(100), nullable=True)  # Admin.username
    finalized_date = Column(DateTime, nullable=True)
    admin_message = Column(Text, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES

    def __repr__(self):
        return f"<SupervisionRequest {self.group_id} -> {self.teacher_id} ({self.status})>"
