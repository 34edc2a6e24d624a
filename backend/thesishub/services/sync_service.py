"""
Sync Service
============

Bulk import of a JSON blob exported from the old browser-only deployment
(one array per entity). Existing data (admins excepted) is replaced; the
whole import is a single transaction.

Legacy shapes handled here:
- groups with `member_ids` instead of `members`, or `assigned_teacher_id`
- plaintext passwords (hashed on the way in)
- `_id` / `group_id` identifiers, ISO date strings, `created_date`
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Enum as SQLEnum, DateTime, delete, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.core.config import settings
from thesishub.core.exceptions import ValidationError
from thesishub.core.logging_config import logger
from thesishub.core.security import get_password_hash, is_password_hash
from thesishub.models import (
    Student, Teacher, StudentGroup, GroupMember, MemberRole, GroupInvitation,
    Proposal, SupervisionRequest, Message, Meeting, Task, SharedFile, WeeklyProgress,
)
from thesishub.models.base import generate_uuid
from thesishub.services.entity_store import CLEARABLE_ENTITIES, EntityStore

# Payload key -> model, in import order; aliases use the dashboard names
IMPORT_ORDER = [
    ("students", Student),
    ("teachers", Teacher),
    ("groups", StudentGroup),
    ("proposals", Proposal),
    ("messages", Message),
    ("meetings", Meeting),
    ("tasks", Task),
    ("files", SharedFile),
    ("progress", WeeklyProgress),
    ("requests", SupervisionRequest),
    ("invitations", GroupInvitation),
]
KEY_ALIASES = {"progress": "progressReports", "requests": "supervisionRequests"}

LEADER_ROLES = {"leader", "admin", "owner"}


def parse_datetime(value: Any, field: str = "date") -> Optional[datetime]:
    """
    ISO-8601 string (with optional Z) or epoch milliseconds -> naive UTC.

    Anything unparseable (including out-of-range epochs) is a ValidationError.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        else:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        raise ValidationError(f"Invalid date for {field}: {value!r}", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_count(value: Any, where: str, field: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{where}: {field} must be a whole number", field=field)
    if count < 0:
        raise ValidationError(f"{where}: {field} cannot be negative", field=field)
    return count


class SyncService:
    """Service for bulk import and sync status"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EntityStore(db)

    async def status(self) -> Dict[str, int]:
        return {
            "students": await self.store.count(Student),
            "teachers": await self.store.count(Teacher),
            "groups": await self.store.count(StudentGroup),
            "proposals": await self.store.count(Proposal),
            "requests": await self.store.count(SupervisionRequest),
        }

    # =====================================================
    # NORMALISATION
    # =====================================================

    def _coerce_columns(self, model, raw: Dict[str, Any], where: str) -> Dict[str, Any]:
        """Keep known columns, parse dates and map status strings to enums"""
        columns = inspect(model).columns
        data: Dict[str, Any] = {}
        for key, value in raw.items():
            if key not in columns or value is None:
                continue
            column_type = columns[key].type
            try:
                if isinstance(column_type, SQLEnum) and column_type.enum_class is not None:
                    value = column_type.enum_class(value)
                elif isinstance(column_type, DateTime):
                    value = parse_datetime(value, f"{where}.{key}")
            except ValueError:
                raise ValidationError(f"{where}: invalid value '{value}' for {key}", field=key)
            data[key] = value

        record_id = raw.get("id") or raw.get("_id")
        if record_id:
            data["id"] = str(record_id)
        if "created_at" not in data and raw.get("created_date"):
            data["created_at"] = parse_datetime(raw["created_date"], f"{where}.created_date")
        if "updated_at" not in data and raw.get("updated_date"):
            data["updated_at"] = parse_datetime(raw["updated_date"], f"{where}.updated_date")
        return data

    def _password_hash(self, raw: Dict[str, Any], where: str) -> str:
        value = raw.get("password_hash") or raw.get("password")
        if not value:
            raise ValidationError(f"{where}: a password is required", field="password")
        return value if is_password_hash(value) else get_password_hash(value)

    def _normalize_student(self, raw: Dict[str, Any], where: str) -> Dict[str, Any]:
        data = self._coerce_columns(Student, raw, where)
        data["password_hash"] = self._password_hash(raw, where)
        for key in ("skills", "interests"):
            if not isinstance(data.get(key), list):
                data[key] = []
        return data

    def _normalize_teacher(self, raw: Dict[str, Any], where: str) -> Dict[str, Any]:
        data = self._coerce_columns(Teacher, raw, where)
        data["password_hash"] = self._password_hash(raw, where)
        raw_max = raw.get("max_students")
        max_students = _as_count(settings.DEFAULT_MAX_STUDENTS if raw_max is None else raw_max, where, "max_students")
        current = _as_count(
            raw.get("current_students_count") or raw.get("current_students") or 0, where, "current_students_count"
        )
        if current > max_students:
            raise ValidationError(
                f"{where}: current_students_count {current} exceeds max_students {max_students}",
                field="current_students_count",
            )
        data["max_students"] = max_students
        data["current_students_count"] = current
        for key in ("publications", "accepted_topics"):
            if not isinstance(data.get(key), list):
                data[key] = []
        return data

    def _normalize_group(self, raw: Dict[str, Any], where: str) -> Dict[str, Any]:
        data = self._coerce_columns(StudentGroup, raw, where)
        data["id"] = str(raw.get("group_id") or raw.get("id") or raw.get("_id") or generate_uuid())
        data.pop("version", None)

        if isinstance(raw.get("members"), list):
            members = [
                m if isinstance(m, dict) else {"student_id": m}
                for m in raw["members"]
            ]
        else:
            members = [{"student_id": sid} for sid in raw.get("member_ids") or []]
        members = [m for m in members if m.get("student_id")]
        if len(members) > settings.MAX_GROUP_MEMBERS:
            raise ValidationError(
                f"{where}: {len(members)} members, at most {settings.MAX_GROUP_MEMBERS} allowed",
                field="members",
            )

        leader = raw.get("leader_student_id") or raw.get("created_by")
        if not leader:
            leader = next((m["student_id"] for m in members if m.get("role") in LEADER_ROLES), None)
        if not leader and members:
            leader = members[0]["student_id"]
        if not leader:
            raise ValidationError(f"{where}: group has no members", field="members")

        data["leader_student_id"] = leader
        data["members"] = [
            GroupMember(
                student_id=m["student_id"],
                role=MemberRole.LEADER if m["student_id"] == leader else MemberRole.MEMBER,
                **({"joined_at": parse_datetime(m["joined_at"], f"{where}.members.joined_at")} if m.get("joined_at") else {}),
            )
            for m in members
        ]
        if not data.get("supervisor_id") and raw.get("assigned_teacher_id"):
            data["supervisor_id"] = raw["assigned_teacher_id"]
        return data

    def _normalize(self, key: str, model, raw: Dict[str, Any], index: int) -> Dict[str, Any]:
        where = f"{key}[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{where}: expected an object", field=key)
        if model is Student:
            return self._normalize_student(raw, where)
        if model is Teacher:
            return self._normalize_teacher(raw, where)
        if model is StudentGroup:
            return self._normalize_group(raw, where)
        return self._coerce_columns(model, raw, where)

    # =====================================================
    # IMPORT
    # =====================================================

    def _records_for(self, payload: Dict[str, Any], key: str) -> List[Any]:
        records = payload.get(key)
        if records is None:
            records = payload.get(KEY_ALIASES.get(key, key))
        if records is None:
            return []
        if not isinstance(records, list):
            raise ValidationError(f"'{key}' must be an array", field=key)
        return records

    async def import_data(self, payload: Dict[str, Any]) -> Dict[str, int]:
        """Replace all data with the payload; returns imported counts per key"""
        prepared = []
        for key, model in IMPORT_ORDER:
            records = self._records_for(payload, key)
            prepared.append((key, model, [self._normalize(key, model, raw, i) for i, raw in enumerate(records)]))

        imported: Dict[str, int] = {}
        try:
            async with self.store.transaction("Import"):
                await self.db.execute(delete(GroupMember))
                for name in CLEARABLE_ENTITIES:
                    await self.store.delete_all(name)

                groups: List[StudentGroup] = []
                for key, model, rows in prepared:
                    for row in rows:
                        record = model(**row)
                        self.db.add(record)
                        if model is StudentGroup:
                            groups.append(record)
                    await self.store.flush()
                    imported[key] = len(rows)

                await self._link_members(groups)
        except IntegrityError as e:
            logger.warning(f"Import rejected: {e.orig}")
            raise ValidationError(f"Import data is inconsistent: {e.orig}") from e

        logger.info(f"Imported frontend data: {imported}")
        return imported

    async def _link_members(self, groups: List[StudentGroup]) -> None:
        """Point each member's group_id at their group and flag leaders"""
        for group in groups:
            for member in group.members:
                student = await self.store.find_one(Student, student_id=member.student_id)
                if student is None:
                    continue
                student.group_id = group.id
                student.is_group_admin = member.role == MemberRole.LEADER
        await self.store.flush()
