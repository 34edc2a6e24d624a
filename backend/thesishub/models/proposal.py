from sqlalchemy import Column, String, DateTime, Text, JSON, Index
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column
from thesishub.models.group import ProjectType


class ProposalStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Proposal(RecordMixin, Base):
    """A group's thesis/project proposal (one per group)"""
    __tablename__ = "proposals"

    __table_args__ = (
        Index('ix_proposals_group_id', 'group_id'),
        Index('ix_proposals_status', 'status'),
        Index('ix_proposals_field', 'field'),
    )

    group_id = Column(String(36), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    full_proposal = Column(Text, nullable=True)  # long form, may be AI-generated
    field = Column(String(255), nullable=True)
    keywords = Column(JSON, default=list, nullable=False)
    project_type = enum_column(ProjectType, ProjectType.THESIS)
    status = enum_column(ProposalStatus, ProposalStatus.DRAFT)

    submission_date = Column(DateTime, nullable=True)
    review_date = Column(DateTime, nullable=True)
    supervisor_comments = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Proposal {self.title}>"
