"""Group-scoped collaboration records: chat, meetings, task board, files, progress"""
from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean, JSON, Index, UniqueConstraint
import enum

from thesishub.core.database import Base
from thesishub.models.base import RecordMixin, enum_column, utcnow


class SenderType(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"
    SYSTEM = "system"


class ReceiverType(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    GROUP = "group"
    ADMIN = "admin"


class MessageType(str, enum.Enum):
    TEXT = "text"
    FILE = "file"
    NOTIFICATION = "notification"


class MeetingStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProgressStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    APPROVED = "approved"


class Message(RecordMixin, Base):
    __tablename__ = "messages"

    __table_args__ = (
        Index('ix_messages_sender', 'sender_id', 'sender_type'),
        Index('ix_messages_receiver', 'receiver_id', 'receiver_type'),
        Index('ix_messages_group_id', 'group_id'),
    )

    group_id = Column(String(36), nullable=True)
    sender_id = Column(String(100), nullable=False)
    sender_type = enum_column(SenderType, SenderType.STUDENT)
    receiver_id = Column(String(100), nullable=False)
    receiver_type = enum_column(ReceiverType, ReceiverType.GROUP)
    content = Column(Text, nullable=False)
    message_type = enum_column(MessageType, MessageType.TEXT)
    file_url = Column(String(1000), nullable=True)
    file_name = Column(String(255), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)


class Meeting(RecordMixin, Base):
    __tablename__ = "meetings"

    __table_args__ = (
        Index('ix_meetings_group_id', 'group_id'),
        Index('ix_meetings_supervisor_id', 'supervisor_id'),
        Index('ix_meetings_meeting_date', 'meeting_date'),
    )

    group_id = Column(String(36), nullable=False)
    supervisor_id = Column(String(50), nullable=False)
    meeting_date = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    agenda = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = enum_column(MeetingStatus, MeetingStatus.SCHEDULED)


class Task(RecordMixin, Base):
    __tablename__ = "tasks"

    __table_args__ = (
        Index('ix_tasks_group_id', 'group_id'),
        Index('ix_tasks_status', 'status'),
        Index('ix_tasks_due_date', 'due_date'),
    )

    group_id = Column(String(36), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to = Column(JSON, default=list, nullable=False)  # student ids
    due_date = Column(DateTime, nullable=True)
    priority = enum_column(TaskPriority, TaskPriority.MEDIUM)
    status = enum_column(TaskStatus, TaskStatus.PENDING)
    created_by = Column(String(100), nullable=False)


class SharedFile(RecordMixin, Base):
    __tablename__ = "shared_files"

    __table_args__ = (
        Index('ix_shared_files_group_id', 'group_id'),
        Index('ix_shared_files_uploaded_by', 'uploaded_by'),
    )

    group_id = Column(String(36), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    uploaded_by = Column(String(100), nullable=False)
    uploader_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)


class WeeklyProgress(RecordMixin, Base):
    __tablename__ = "weekly_progress"

    __table_args__ = (
        UniqueConstraint('group_id', 'week_number', name='uq_weekly_progress_group_week'),
        Index('ix_weekly_progress_group_id', 'group_id'),
    )

    group_id = Column(String(36), nullable=False)
    week_number = Column(Integer, nullable=False)
    work_done = Column(Text, nullable=False)
    challenges = Column(Text, nullable=True)
    next_week_plan = Column(Text, nullable=True)
    supervisor_comments = Column(Text, nullable=True)
    submitted_date = Column(DateTime, default=utcnow, nullable=False)
    status = enum_column(ProgressStatus, ProgressStatus.SUBMITTED)
