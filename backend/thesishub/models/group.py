"""Student groups, their members and invitations"""
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column, generate_uuid, utcnow


class GroupStatus(str, enum.Enum):
    FORMING = "forming"
    ACTIVE = "active"
    SUPERVISED = "supervised"
    COMPLETED = "completed"
    DISSOLVED = "dissolved"


class MemberRole(str, enum.Enum):
    LEADER = "leader"
    MEMBER = "member"


class ProjectType(str, enum.Enum):
    THESIS = "thesis"
    PROJECT = "project"
    RESEARCH = "research"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class StudentGroup(RecordMixin, Base):
    """
    A group of up to three students working on one thesis/project.

    `version` is the optimistic-lock counter: every lifecycle mutation touches
    the row, so two writers holding the same version cannot both commit.
    """
    __tablename__ = "student_groups"

    __table_args__ = (
        Index('ix_student_groups_leader', 'leader_student_id'),
        Index('ix_student_groups_supervisor', 'supervisor_id'),
        Index('ix_student_groups_status', 'status'),
    )

    group_name = Column(String(255), nullable=False)
    leader_student_id = Column(String(50), nullable=False)
    supervisor_id = Column(String(50), nullable=True)  # Teacher.teacher_id

    project_title = Column(String(500), nullable=True)
    project_description = Column(Text, nullable=True)
    project_type = enum_column(ProjectType, ProjectType.THESIS)
    status = enum_column(GroupStatus, GroupStatus.FORMING)

    version = Column(Integer, nullable=False)

    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMember.joined_at",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def member_ids(self):
        return [m.student_id for m in self.members]

    def has_member(self, student_id: str) -> bool:
        return student_id in self.member_ids

    def touch(self) -> None:
        """Force an UPDATE of this row so the version check runs"""
        self.updated_at = utcnow()

    def __repr__(self):
        return f"<StudentGroup {self.group_name}>"


class GroupMember(Base):
    """Membership row; the unique student_id index keeps one group per student"""
    __tablename__ = "group_members"

    __table_args__ = (
        Index('ix_group_members_group_id', 'group_id'),
        Index('ix_group_members_student_id', 'student_id', unique=True),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    group_id = Column(String(36), ForeignKey("student_groups.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(50), nullable=False)
    role = enum_column(MemberRole, MemberRole.MEMBER)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    group = relationship("StudentGroup", back_populates="members")

    def __repr__(self):
        return f"<GroupMember {self.student_id} in {self.group_id}>"


class GroupInvitation(RecordMixin, Base):
    """Leader's invitation for another student to join the group"""
    __tablename__ = "group_invitations"

    __table_args__ = (
        Index('ix_group_invitations_from', 'from_student_id'),
        Index('ix_group_invitations_to', 'to_student_id'),
        Index('ix_group_invitations_group_status', 'group_id', 'status'),
    )

    group_id = Column(String(36), nullable=False)
    from_student_id = Column(String(50), nullable=False)
    to_student_id = Column(String(50), nullable=False)
    message = Column(Text, nullable=True)
    status = enum_column(InvitationStatus, InvitationStatus.PENDING)

    sent_date = Column(DateTime, default=utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def __repr__(self):
        return f"<GroupInvitation {self.from_student_id} -> {self.to_student_id}>"
