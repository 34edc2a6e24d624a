from sqlalchemy import Column, String, Boolean, Integer, Float, JSON, Index
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column


class StudentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"


class Student(RecordMixin, Base):
    """Registered student; belongs to at most one group via group_id"""
    __tablename__ = "students"

    __table_args__ = (
        Index('ix_students_department', 'department'),
        Index('ix_students_group_id', 'group_id'),
    )

    student_id = Column(String(50), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    department = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)
    semester = Column(Integer, nullable=True)
    gpa = Column(Float, nullable=True)
    skills = Column(JSON, default=list, nullable=False)
    interests = Column(JSON, default=list, nullable=False)
    profile_photo = Column(String(500), nullable=True)

    # Weak reference to StudentGroup.id
    group_id = Column(String(36), nullable=True)
    is_group_admin = Column(Boolean, default=False, nullable=False)

    status = enum_column(StudentStatus, StudentStatus.ACTIVE)

    def __repr__(self):
        return f"<Student {self.student_id}>"
