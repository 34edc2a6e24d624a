from sqlalchemy import Column, String, Integer, Text, JSON, Index
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column


class TeacherStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class Teacher(RecordMixin, Base):
    """Potential supervisor with a fixed number of supervision slots"""
    __tablename__ = "teachers"

    __table_args__ = (
        Index('ix_teachers_department', 'department'),
        Index('ix_teachers_research_field', 'research_field'),
    )

    teacher_id = Column(String(50), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    department = Column(String(255), nullable=True)
    research_field = Column(String(255), nullable=True)
    publications = Column(JSON, default=list, nullable=False)  # [{"title", "year", "journal"}]
    accepted_topics = Column(JSON, default=list, nullable=False)
    acceptance_criteria = Column(Text, nullable=True)
    profile_photo = Column(String(500), nullable=True)

    max_students = Column(Integer, default=10, nullable=False)
    current_students_count = Column(Integer, default=0, nullable=False)

    status = enum_column(TeacherStatus, TeacherStatus.ACTIVE)

    @property
    def has_capacity(self) -> bool:
        return (self.current_students_count or 0) < (self.max_students or 0)

    def __repr__(self):
        return f"<Teacher {self.teacher_id}>"
