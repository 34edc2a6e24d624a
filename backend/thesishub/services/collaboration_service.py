"""
Collaboration Service
Group-scoped messages, meetings, tasks, shared files and weekly progress
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.exceptions import (
    DuplicateRecordError, GroupNotFoundError, NotAuthorizedError,
    ResourceNotFoundError, ValidationError,
)
from thesishub.core.logging_config import logger
from thesishub.models import (
    StudentGroup, Message, Meeting, Task, SharedFile, WeeklyProgress,
    SenderType, ReceiverType, MessageType,
)
from thesishub.models.base import as_naive_utc
from thesishub.services.access import Principal, ensure_group_access
from thesishub.services.entity_store import EntityStore

# URL segment -> model
COLLABORATION_MODELS: Dict[str, Type] = {
    "messages": Message,
    "meetings": Meeting,
    "tasks": Task,
    "files": SharedFile,
    "progress": WeeklyProgress,
}

# Fields a caller may never set directly
PROTECTED_FIELDS = {"id", "group_id", "created_at", "updated_at"}

# Fields only the supervising teacher (or an admin) may change
SUPERVISOR_ONLY_FIELDS = {
    WeeklyProgress: {"supervisor_comments", "status"},
    Meeting: {"notes", "status"},
}


def _resource_name(model: Type) -> str:
    return {SharedFile: "File", WeeklyProgress: "Progress"}.get(model, model.__name__)


async def notify_group(
    store: EntityStore,
    group_id: str,
    content: str,
    sender_id: str = "system",
    sender_type: SenderType = SenderType.SYSTEM,
) -> Message:
    """Post a notification message to a group; caller owns the transaction"""
    return await store.create(Message, {
        "group_id": group_id,
        "sender_id": sender_id,
        "sender_type": sender_type,
        "receiver_id": group_id,
        "receiver_type": ReceiverType.GROUP,
        "content": content,
        "message_type": MessageType.NOTIFICATION,
    })


def _check_assignees(group: StudentGroup, assigned_to: Optional[List[str]]) -> None:
    unknown = [sid for sid in assigned_to or [] if not group.has_member(sid)]
    if unknown:
        raise ValidationError(
            f"Tasks can only be assigned to group members: {', '.join(unknown)}",
            field="assigned_to",
        )

class CollaborationService:
    """CRUD for the records a group and its supervisor share"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    @staticmethod
    def model_for(kind: str) -> Type:
        try:
            return COLLABORATION_MODELS[kind]
        except KeyError:
            raise ValidationError(f"Unknown collaboration record type '{kind}'", field="kind")

    async def _get_group(self, group_id: str) -> StudentGroup:
        group = await self.store.find_by_id(StudentGroup, group_id)
        if not group:
            raise GroupNotFoundError(group_id)
        return group

    async def _get_record(self, model: Type, record_id: str):
        record = await self.store.find_by_id(model, record_id)
        if not record:
            raise ResourceNotFoundError(_resource_name(model), record_id)
        return record

    @staticmethod
    def _clean(fields: Dict[str, Any]) -> Dict[str, Any]:
        return {
            k: as_naive_utc(v) if isinstance(v, datetime) else v
            for k, v in fields.items()
            if k not in PROTECTED_FIELDS
        }

    async def list_records(self, kind: str, group_id: str, principal: Principal) -> List[Any]:
        model = self.model_for(kind)
        group = await self._get_group(group_id)
        ensure_group_access(group, principal)
        records = await self.store.filter(model, group_id=group_id)
        if model is WeeklyProgress:
            records.sort(key=lambda r: r.week_number)
        return records

    def _defaults_for(self, model: Type, group: StudentGroup, principal: Principal,
                      fields: Dict[str, Any]) -> Dict[str, Any]:
        if model is Message:
            fields.update(
                sender_id=principal.subject,
                sender_type=SenderType(principal.role.value),
            )
            fields.setdefault("receiver_id", group.id)
            fields.setdefault("receiver_type", ReceiverType.GROUP)
            if fields.get("file_url"):
                fields.setdefault("message_type", MessageType.FILE)
        elif model is Meeting:
            fields["supervisor_id"] = group.supervisor_id
            if not group.supervisor_id:
                raise ValidationError("Meetings require a supervised group", field="supervisor_id")
        elif model is Task:
            fields["created_by"] = principal.subject
            _check_assignees(group, fields.get("assigned_to"))
        elif model is SharedFile:
            fields["uploaded_by"] = principal.subject
            fields.setdefault("uploader_name", principal.display_name or principal.subject)
        elif model is WeeklyProgress:
            if not principal.is_student:
                raise NotAuthorizedError("Only group members can submit weekly progress")
            for field in SUPERVISOR_ONLY_FIELDS[WeeklyProgress]:
                fields.pop(field, None)
        return fields

    async def create_record(self, kind: str, group_id: str, fields: Dict[str, Any],
                            principal: Principal) -> Any:
        model = self.model_for(kind)
        group = await self._get_group(group_id)
        ensure_group_access(group, principal)

        fields = self._clean(fields)
        fields = self._defaults_for(model, group, principal, fields)
        fields["group_id"] = group_id

        try:
            async with self.store.transaction(_resource_name(model)):
                record = await self.store.create(model, fields)
        except IntegrityError as e:
            if model is WeeklyProgress:
                raise DuplicateRecordError("Progress report", "week_number", str(fields.get("week_number"))) from e
            raise

        logger.log_workflow_event(kind, record.id, "created", group=group_id, by=principal.subject)
        return record

    async def update_record(self, kind: str, record_id: str, fields: Dict[str, Any],
                            principal: Principal) -> Any:
        model = self.model_for(kind)
        record = await self._get_record(model, record_id)
        group = await self._get_group(record.group_id)
        ensure_group_access(group, principal)

        fields = self._clean(fields)
        restricted = SUPERVISOR_ONLY_FIELDS.get(model, set()) & set(fields)
        if restricted and principal.is_student:
            raise NotAuthorizedError(f"Only the supervisor can change: {', '.join(sorted(restricted))}")
        if model is Message and not principal.is_admin and record.sender_id != principal.subject:
            # Recipients may only mark messages as read
            if set(fields) - {"is_read"}:
                raise NotAuthorizedError("Only the sender can edit this message")
        if model is Task and "assigned_to" in fields:
            _check_assignees(group, fields["assigned_to"])

        async with self.store.transaction(_resource_name(model), record_id):
            record = await self.store.update(model, record_id, fields)
        return record

    async def delete_record(self, kind: str, record_id: str, principal: Principal) -> bool:
        model = self.model_for(kind)
        record = await self._get_record(model, record_id)
        group = await self._get_group(record.group_id)
        ensure_group_access(group, principal)

        owner = getattr(record, "sender_id", None) or getattr(record, "uploaded_by", None) \
            or getattr(record, "created_by", None)
        if owner and not principal.is_admin and owner != principal.subject \
                and group.supervisor_id != principal.subject:
            raise NotAuthorizedError("You can only delete records you created")

        async with self.store.transaction(_resource_name(model), record_id):
            deleted = await self.store.delete(model, record_id)
        logger.log_workflow_event(kind, record_id, "deleted", by=principal.subject)
        return deleted

    async def unread_count(self, receiver_id: str, group_id: Optional[str] = None) -> int:
        """Unread messages addressed to a user directly or to their group"""
        unread = {m.id: m for m in await self.store.filter(Message, receiver_id=receiver_id, is_read=False)}
        if group_id:
            for message in await self.store.filter(Message, group_id=group_id, is_read=False):
                unread[message.id] = message
        return len([m for m in unread.values() if m.sender_id != receiver_id])
