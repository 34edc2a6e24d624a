"""Authenticated caller and the group-scoped access rules shared by services"""
from dataclasses import dataclass
import enum

from thesishub.core.exceptions import NotAuthorizedError


class Role(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """
    The caller behind a bearer token.

    `subject` is the human key: Student.student_id, Teacher.teacher_id or
    Admin.username depending on `role`.
    """
    role: Role
    subject: str
    display_name: str = ""

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def ensure_group_access(group, principal: Principal) -> None:
    """Members, the supervisor and admins may see and write group records"""
    if principal.is_admin:
        return
    if principal.is_student and group.has_member(principal.subject):
        return
    if principal.is_teacher and group.supervisor_id == principal.subject:
        return
    raise NotAuthorizedError("You do not have access to this group")
