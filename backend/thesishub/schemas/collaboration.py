"""Pydantic schemas for group collaboration records"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Tuple, Type
from datetime import datetime

from thesishub.models import (
    SenderType, ReceiverType, MessageType, MeetingStatus,
    TaskPriority, TaskStatus, ProgressStatus,
)


# ==================== Messages ====================

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    receiver_id: Optional[str] = None
    receiver_type: Optional[ReceiverType] = None
    message_type: Optional[MessageType] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None


class MessageUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    is_read: Optional[bool] = None


class MessageResponse(BaseModel):
    id: str
    group_id: Optional[str] = None
    sender_id: str
    sender_type: SenderType
    receiver_id: str
    receiver_type: ReceiverType
    content: str
    message_type: MessageType
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    is_read: bool
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Meetings ====================

class MeetingCreate(BaseModel):
    meeting_date: datetime
    duration: int = Field(..., gt=0, le=600, description="Duration in minutes")
    agenda: Optional[str] = None


class MeetingUpdate(BaseModel):
    meeting_date: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0, le=600)
    agenda: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[MeetingStatus] = None


class MeetingResponse(BaseModel):
    id: str
    group_id: str
    supervisor_id: str
    meeting_date: datetime
    duration: int
    agenda: Optional[str] = None
    notes: Optional[str] = None
    status: MeetingStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Tasks ====================

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    assigned_to: List[str] = []
    due_date: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    assigned_to: Optional[List[str]] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None


class TaskResponse(BaseModel):
    id: str
    group_id: str
    title: str
    description: Optional[str] = None
    assigned_to: List[str] = []
    due_date: Optional[datetime] = None
    priority: TaskPriority
    status: TaskStatus
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Shared Files ====================

class FileCreate(BaseModel):
    """Metadata for a file stored elsewhere; only the URL is kept"""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_type: Optional[str] = Field(None, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class FileUpdate(BaseModel):
    file_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class FileResponse(BaseModel):
    id: str
    group_id: str
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: str
    uploader_name: str
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Weekly Progress ====================

class ProgressCreate(BaseModel):
    week_number: int = Field(..., ge=1, le=104)
    work_done: str = Field(..., min_length=1)
    challenges: Optional[str] = None
    next_week_plan: Optional[str] = None


class ProgressUpdate(BaseModel):
    work_done: Optional[str] = Field(None, min_length=1)
    challenges: Optional[str] = None
    next_week_plan: Optional[str] = None
    supervisor_comments: Optional[str] = None
    status: Optional[ProgressStatus] = None


class ProgressResponse(BaseModel):
    id: str
    group_id: str
    week_number: int
    work_done: str
    challenges: Optional[str] = None
    next_week_plan: Optional[str] = None
    supervisor_comments: Optional[str] = None
    submitted_date: datetime
    status: ProgressStatus

    model_config = ConfigDict(from_attributes=True)


# URL segment -> (create, update, response)
COLLABORATION_SCHEMAS: Dict[str, Tuple[Type[BaseModel], Type[BaseModel], Type[BaseModel]]] = {
    "messages": (MessageCreate, MessageUpdate, MessageResponse),
    "meetings": (MeetingCreate, MeetingUpdate, MeetingResponse),
    "tasks": (TaskCreate, TaskUpdate, TaskResponse),
    "files": (FileCreate, FileUpdate, FileResponse),
    "progress": (ProgressCreate, ProgressUpdate, ProgressResponse),
}
