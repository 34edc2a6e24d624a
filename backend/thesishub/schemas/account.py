"""Pydantic schemas for student, teacher and admin accounts"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Any, Optional, List
from datetime import datetime

from thesishub.models import StudentStatus, TeacherStatus


# ==================== Student Schemas ====================

class StudentRegister(BaseModel):
    """Student self-registration"""
    student_id: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    department: Optional[str] = Field(None, max_length=255)
    year: Optional[int] = Field(None, ge=1, le=10)
    semester: Optional[int] = Field(None, ge=1, le=20)
    gpa: Optional[float] = Field(None, ge=0, le=10)
    skills: List[str] = []
    interests: List[str] = []
    profile_photo: Optional[str] = None


class StudentLogin(BaseModel):
    student_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class StudentUpdate(BaseModel):
    """Profile fields a student may change on their own account"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    year: Optional[int] = Field(None, ge=1, le=10)
    semester: Optional[int] = Field(None, ge=1, le=20)
    gpa: Optional[float] = Field(None, ge=0, le=10)
    skills: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    profile_photo: Optional[str] = None


class StudentResponse(BaseModel):
    """Student details (never includes the password hash)"""
    id: str
    student_id: str
    full_name: str
    email: str
    department: Optional[str] = None
    year: Optional[int] = None
    semester: Optional[int] = None
    gpa: Optional[float] = None
    skills: List[str] = []
    interests: List[str] = []
    profile_photo: Optional[str] = None
    group_id: Optional[str] = None
    is_group_admin: bool = False
    status: StudentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Teacher Schemas ====================

class Publication(BaseModel):
    title: str
    year: Optional[int] = None
    journal: Optional[str] = None


class TeacherRegister(BaseModel):
    """Teacher registration (self-service or by an admin)"""
    teacher_id: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    department: Optional[str] = Field(None, max_length=255)
    research_field: Optional[str] = Field(None, max_length=255)
    publications: List[Publication] = []
    accepted_topics: List[str] = []
    acceptance_criteria: Optional[str] = None
    profile_photo: Optional[str] = None
    max_students: Optional[int] = Field(None, ge=0, le=100)


class TeacherLogin(BaseModel):
    teacher_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TeacherUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    research_field: Optional[str] = Field(None, max_length=255)
    publications: Optional[List[Publication]] = None
    accepted_topics: Optional[List[str]] = None
    acceptance_criteria: Optional[str] = None
    profile_photo: Optional[str] = None
    max_students: Optional[int] = Field(None, ge=0, le=100)
    status: Optional[TeacherStatus] = None


class TeacherResponse(BaseModel):
    id: str
    teacher_id: str
    full_name: str
    email: str
    department: Optional[str] = None
    research_field: Optional[str] = None
    publications: List[Any] = []
    accepted_topics: List[str] = []
    acceptance_criteria: Optional[str] = None
    profile_photo: Optional[str] = None
    max_students: int
    current_students_count: int
    status: TeacherStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Admin Schemas ====================

class AdminLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AdminCreate(BaseModel):
    """New admin account, created by an existing admin"""
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    email: Optional[EmailStr] = None
    role: str = Field("admin", pattern="^(admin|superuser)$")


class AdminResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
