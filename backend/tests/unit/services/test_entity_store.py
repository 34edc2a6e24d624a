"""
Unit Tests for EntityStore
"""
import pytest
from sqlalchemy.orm.exc import StaleDataError

from thesishub.core.exceptions import ConcurrentModificationError, ValidationError
from thesishub.core.security import get_password_hash
from thesishub.models import Student, Task, TaskStatus
from thesishub.services.entity_store import CLEARABLE_ENTITIES, ENTITY_MODELS, EntityStore, resolve_model


def task_fields(**overrides):
    fields = {
        'group_id': 'g-1',
        'title': 'Write literature review',
        'created_by': 'S001',
    }
    fields.update(overrides)
    return fields


class TestResolveModel:

    def test_by_name_and_class(self):
        assert resolve_model('tasks') is Task
        assert resolve_model(Task) is Task

    def test_unknown_name(self):
        with pytest.raises(ValidationError):
            resolve_model('spaceships')

    def test_admins_are_never_cleared(self):
        assert 'admins' in ENTITY_MODELS
        assert 'admins' not in CLEARABLE_ENTITIES


class TestEntityStoreCrud:

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            task = await store.create('tasks', task_fields())

        assert task.id
        assert task.created_at is not None
        assert task.updated_at is not None

        fetched = await store.find_by_id(Task, task.id)
        assert fetched.title == 'Write literature review'
        assert fetched.status == TaskStatus.PENDING
        assert fetched.assigned_to == []

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_field(self, db_session):
        store = EntityStore(db_session)
        with pytest.raises(ValidationError) as exc:
            await store.create(Task, task_fields(colour='blue'))
        assert exc.value.details['field'] == 'colour'

    @pytest.mark.asyncio
    async def test_update_merges_fields_and_bumps_updated_at(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            task = await store.create(Task, task_fields())
        created_updated_at = task.updated_at

        async with store.transaction():
            updated = await store.update(Task, task.id, {'status': TaskStatus.COMPLETED})

        assert updated.status == TaskStatus.COMPLETED
        assert updated.title == 'Write literature review'
        assert updated.updated_at >= created_updated_at

    @pytest.mark.asyncio
    async def test_update_cannot_change_id(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            task = await store.create(Task, task_fields())
        with pytest.raises(ValidationError):
            await store.update(Task, task.id, {'id': 'other'})

    @pytest.mark.asyncio
    async def test_update_and_delete_missing_record(self, db_session):
        store = EntityStore(db_session)
        assert await store.update(Task, 'missing', {'title': 'x'}) is None
        assert await store.delete(Task, 'missing') is False

    @pytest.mark.asyncio
    async def test_filter_is_exact_match_and(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            await store.create(Task, task_fields(title='a'))
            await store.create(Task, task_fields(title='b', status=TaskStatus.COMPLETED))
            await store.create(Task, task_fields(title='c', group_id='g-2'))

        pending = await store.filter(Task, group_id='g-1', status=TaskStatus.PENDING)
        assert [t.title for t in pending] == ['a']
        assert await store.count('tasks') == 3

    @pytest.mark.asyncio
    async def test_filter_rejects_unknown_column(self, db_session):
        with pytest.raises(ValidationError):
            await EntityStore(db_session).filter(Task, owner='x')

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            first = await store.create(Task, task_fields())
            await store.create(Task, task_fields())

        async with store.transaction():
            assert await store.delete(Task, first.id) is True
        assert await store.count(Task) == 1

        async with store.transaction():
            assert await store.delete_all('tasks') == 1
        assert await store.list(Task) == []


class TestTransaction:

    @pytest.mark.asyncio
    async def test_failure_rolls_back_everything_written(self, db_session):
        store = EntityStore(db_session)
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.create(Task, task_fields())
                raise RuntimeError('boom')

        assert await store.count(Task) == 0

    @pytest.mark.asyncio
    async def test_stale_version_becomes_concurrent_modification(self, db_session):
        store = EntityStore(db_session)
        with pytest.raises(ConcurrentModificationError):
            async with store.transaction('Group', 'g-1'):
                raise StaleDataError('version mismatch')

    @pytest.mark.asyncio
    async def test_read_only_failure_keeps_objects_loaded(self, db_session):
        store = EntityStore(db_session)
        async with store.transaction():
            student = await store.create(Student, {
                'student_id': 'S100',
                'full_name': 'Ada Lovelace',
                'email': 'ada@example.com',
                'password_hash': get_password_hash('secret123'),
            })

        with pytest.raises(ValidationError):
            async with store.transaction():
                raise ValidationError('nothing written')

        # Still usable without a refresh
        assert student.full_name == 'Ada Lovelace'
