"""
Entity Store
============

Generic CRUD over every ThesisHub record type. The store never commits on
its own: workflow services group several calls into one `transaction()` so a
multi-write operation (e.g. approving a supervision request) is applied as a
single unit or not at all.

Uniqueness of human keys (student_id, email, ...) is *not* checked here;
registration flows pre-check it.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Type, Union

from sqlalchemy import select, func, delete as sa_delete, inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from thesishub.core.database import Base
from thesishub.core.exceptions import ValidationError, ConcurrentModificationError
from thesishub.core.logging_config import logger
from thesishub.models import (
    Student, Teacher, Admin, StudentGroup, GroupInvitation, Proposal,
    SupervisionRequest, Message, Meeting, Task, SharedFile, WeeklyProgress,
)
from thesishub.models.base import utcnow

# Public entity names (as used by the dashboard and the sync endpoint)
ENTITY_MODELS: Dict[str, Type[Base]] = {
    "students": Student,
    "teachers": Teacher,
    "groups": StudentGroup,
    "proposals": Proposal,
    "messages": Message,
    "meetings": Meeting,
    "tasks": Task,
    "files": SharedFile,
    "progressReports": WeeklyProgress,
    "invitations": GroupInvitation,
    "supervisionRequests": SupervisionRequest,
    "admins": Admin,
}

# Everything the admin "clear all" wipes: all entities except Admin
CLEARABLE_ENTITIES = [name for name in ENTITY_MODELS if name != "admins"]

EntityType = Union[str, Type[Base]]


def resolve_model(entity: EntityType) -> Type[Base]:
    """Accept either a public entity name or a model class"""
    if isinstance(entity, str):
        try:
            return ENTITY_MODELS[entity]
        except KeyError:
            raise ValidationError(f"Unknown entity type '{entity}'", field="entity")
    return entity


class EntityStore:
    """CRUD persistence shared by all services"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._wrote = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(self, entity: EntityType) -> List[Any]:
        model = resolve_model(entity)
        result = await self.db.execute(
            select(model)
            .order_by(model.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def filter(self, entity: EntityType, **criteria: Any) -> List[Any]:
        """Exact-match AND over the given fields"""
        model = resolve_model(entity)
        columns = inspect(model).columns.keys()
        stmt = select(model)
        for field, value in criteria.items():
            if field not in columns:
                raise ValidationError(f"Cannot filter {model.__name__} by '{field}'", field=field)
            stmt = stmt.where(getattr(model, field) == value)
        result = await self.db.execute(
            stmt.order_by(model.created_at).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_one(self, entity: EntityType, **criteria: Any) -> Optional[Any]:
        records = await self.filter(entity, **criteria)
        return records[0] if records else None

    async def find_by_id(self, entity: EntityType, record_id: str) -> Optional[Any]:
        model = resolve_model(entity)
        result = await self.db.execute(
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count(self, entity: EntityType) -> int:
        model = resolve_model(entity)
        return await self.db.scalar(select(func.count()).select_from(model)) or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check_fields(self, model: Type[Base], fields: Dict[str, Any]) -> None:
        allowed = set(inspect(model).attrs.keys())
        unknown = [f for f in fields if f not in allowed]
        if unknown:
            raise ValidationError(
                f"Unknown field(s) for {model.__name__}: {', '.join(sorted(unknown))}",
                field=unknown[0],
            )

    async def create(self, entity: EntityType, fields: Dict[str, Any]) -> Any:
        """Insert a record; id and timestamps are assigned by the store"""
        model = resolve_model(entity)
        self._check_fields(model, fields)
        record = model(**fields)
        self.db.add(record)
        await self.flush()
        return record

    async def update(self, entity: EntityType, record_id: str, fields: Dict[str, Any]) -> Optional[Any]:
        """Merge partial fields into an existing record"""
        model = resolve_model(entity)
        if "id" in fields:
            raise ValidationError("Record id cannot be changed", field="id")
        self._check_fields(model, fields)

        record = await self.find_by_id(model, record_id)
        if record is None:
            return None
        for field, value in fields.items():
            setattr(record, field, value)
        record.updated_at = utcnow()
        await self.flush()
        return record

    async def delete(self, entity: EntityType, record_id: str) -> bool:
        model = resolve_model(entity)
        record = await self.find_by_id(model, record_id)
        if record is None:
            return False
        await self.db.delete(record)
        await self.flush()
        return True

    async def delete_all(self, entity: EntityType) -> int:
        model = resolve_model(entity)
        result = await self.db.execute(sa_delete(model))
        self._wrote = True
        return result.rowcount or 0

    async def flush(self) -> None:
        self._wrote = True
        await self.db.flush()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, resource_type: str = "Record", resource_id: str = "") -> AsyncIterator["EntityStore"]:
        """
        Commit everything written inside the block at once.

        A stale optimistic-lock version becomes ConcurrentModificationError;
        any other failure rolls the whole block back and propagates.
        """
        try:
            yield self
            await self.db.commit()
            self._wrote = False
        except StaleDataError as e:
            await self._rollback()
            logger.warning(f"Concurrent modification of {resource_type} {resource_id}: {e}")
            raise ConcurrentModificationError(resource_type, resource_id) from e
        except Exception:
            await self._rollback()
            raise

    async def _rollback(self) -> None:
        # Nothing written: keep loaded objects usable instead of expiring them
        if self._wrote or self.db.new or self.db.dirty or self.db.deleted:
            await self.db.rollback()
        self._wrote = False
