"""
Custom Exceptions for ThesisHub
===============================

Domain errors (capacity, state machine, group rules) are kept apart from
infrastructure errors so the API layer can render a specific message instead
of a generic failure. Each class carries the HTTP status it maps to.

Usage:
    from thesishub.core.exceptions import CapacityExceededError

    if group_is_full:
        raise CapacityExceededError("Group already has 3 members or pending invitations")
"""

from typing import Optional, Any, Dict


class ThesisHubError(Exception):
    """Base exception for all ThesisHub errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(ThesisHubError):
    """Unknown account or credential mismatch"""

    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(ThesisHubError):
    """Caller's role may not perform this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class NotAuthorizedError(AuthorizationError):
    """Caller is not the owner of the record being acted on"""

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message)


class NotGroupAdminError(AuthorizationError):
    """Only the group leader may perform this action"""

    def __init__(self, group_id: str, student_id: str):
        super().__init__(
            "Only the group leader can perform this action",
            code="NOT_GROUP_ADMIN",
        )
        self.details = {"group_id": group_id, "student_id": student_id}


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(ThesisHubError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, student_id: str):
        super().__init__("Student", student_id)


class TeacherNotFoundError(ResourceNotFoundError):
    def __init__(self, teacher_id: str):
        super().__init__("Teacher", teacher_id)


class GroupNotFoundError(ResourceNotFoundError):
    def __init__(self, group_id: str):
        super().__init__("Group", group_id)


class InvitationNotFoundError(ResourceNotFoundError):
    def __init__(self, invitation_id: str):
        super().__init__("Invitation", invitation_id)


class ProposalNotFoundError(ResourceNotFoundError):
    def __init__(self, proposal_id: str):
        super().__init__("Proposal", proposal_id)


class RequestNotFoundError(ResourceNotFoundError):
    """Supervision request not found"""

    def __init__(self, request_id: str):
        super().__init__("Request", request_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(ThesisHubError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateRecordError(ValidationError):
    """A unique key (student_id, email, username...) is already taken"""

    def __init__(self, resource_type: str, field: str, value: str):
        super().__init__(f"{resource_type} with this {field} already exists", field=field)
        self.code = "DUPLICATE_RECORD"
        self.details["value"] = value


# ============================================
# Domain Conflicts (409-type)
# ============================================

class DomainConflictError(ThesisHubError):
    """Operation conflicts with the current state of the workflow"""

    status_code = 409


class CapacityExceededError(DomainConflictError):
    """Group or teacher capacity would be exceeded"""

    def __init__(self, message: str, limit: Optional[int] = None):
        super().__init__(message, code="CAPACITY_EXCEEDED")
        if limit is not None:
            self.details["limit"] = limit


class InvalidStateTransitionError(DomainConflictError):
    """Requested transition is not allowed from the record's current status"""

    def __init__(self, resource_type: str, current: str, attempted: str):
        super().__init__(
            f"Cannot {attempted} a {resource_type} that is '{current}'",
            code="INVALID_STATE_TRANSITION",
            details={"resource_type": resource_type, "current_status": current, "attempted": attempted}
        )


class AlreadyInGroupError(DomainConflictError):
    """Student already belongs to a group"""

    def __init__(self, student_id: str):
        super().__init__(
            f"Student '{student_id}' already belongs to a group",
            code="ALREADY_IN_GROUP",
            details={"student_id": student_id}
        )


class AlreadyResolvedError(DomainConflictError):
    """Invitation is no longer pending"""

    def __init__(self, invitation_id: str, status: str):
        super().__init__(
            f"Invitation has already been {status}",
            code="ALREADY_RESOLVED",
            details={"invitation_id": invitation_id, "status": status}
        )


class ConcurrentModificationError(DomainConflictError):
    """Another request changed the record first; the caller should reload"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} '{resource_id}' was modified concurrently, please retry",
            code="CONCURRENT_MODIFICATION",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# AI Errors
# ============================================

class AIServiceError(ThesisHubError):
    """AI proposal service failed"""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, code="AI_SERVICE_ERROR")


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: ThesisHubError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "message": error.message,
        "error": error.to_dict()
    }
