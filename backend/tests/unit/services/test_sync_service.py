"""
Unit Tests for the legacy data import
"""
import pytest

from thesishub.core.exceptions import ValidationError
from thesishub.core.security import get_password_hash, verify_password
from thesishub.models import (
    Admin, GroupStatus, MemberRole, RequestStatus, Student, StudentGroup, SupervisionRequest, Teacher,
)
from thesishub.services.entity_store import EntityStore
from thesishub.services.sync_service import SyncService, parse_datetime


def legacy_payload():
    return {
        'students': [
            {'student_id': 'S1', 'full_name': 'Ana Silva', 'email': 'ana@example.com', 'password': 'secret123'},
            {'student_id': 'S2', 'full_name': 'Ben Okafor', 'email': 'ben@example.com', 'password': 'secret123'},
        ],
        'teachers': [
            {'teacher_id': 'T1', 'full_name': 'Dr. Ito', 'email': 'ito@example.com', 'password': 'secret123',
             'max_students': 3, 'current_students': 1, 'accepted_topics': ['robotics']},
        ],
        'groups': [
            {'group_id': 'G1', 'group_name': 'Robots', 'member_ids': ['S1', 'S2'],
             'assigned_teacher_id': 'T1', 'status': 'supervised', 'created_date': '2024-02-01T10:00:00Z'},
        ],
        'proposals': [
            {'_id': 'P1', 'group_id': 'G1', 'title': 'Swarm robotics', 'description': 'Coordination'},
        ],
        'supervisionRequests': [
            {'id': 'R1', 'group_id': 'G1', 'teacher_id': 'T1', 'proposal_id': 'P1', 'status': 'approved',
             'requested_date': 1706781600000},
        ],
    }


class TestParseDatetime:

    def test_iso_with_z(self):
        parsed = parse_datetime('2024-02-01T10:00:00Z')
        assert parsed.tzinfo is None
        assert (parsed.year, parsed.hour) == (2024, 10)

    def test_epoch_millis(self):
        assert parse_datetime(0).year == 1970

    def test_empty(self):
        assert parse_datetime('') is None
        assert parse_datetime(None) is None

    def test_garbage_is_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            parse_datetime('not a date', 'students[0].created_date')
        assert exc.value.details['field'] == 'students[0].created_date'

    def test_out_of_range_epoch_is_validation_error(self):
        with pytest.raises(ValidationError):
            parse_datetime(10 ** 20)


class TestImport:

    @pytest.mark.asyncio
    async def test_import_maps_legacy_shapes(self, db_session):
        imported = await SyncService(db_session).import_data(legacy_payload())

        assert imported['students'] == 2
        assert imported['groups'] == 1
        assert imported['requests'] == 1

        store = EntityStore(db_session)
        group = await store.find_by_id(StudentGroup, 'G1')
        assert sorted(group.member_ids) == ['S1', 'S2']
        assert group.leader_student_id == 'S1'
        assert {m.student_id: m.role for m in group.members} == {'S1': MemberRole.LEADER, 'S2': MemberRole.MEMBER}
        assert group.supervisor_id == 'T1'
        assert group.status == GroupStatus.SUPERVISED
        assert group.created_at.year == 2024

        leader = await store.find_one(Student, student_id='S1')
        assert leader.group_id == 'G1'
        assert leader.is_group_admin is True
        assert verify_password('secret123', leader.password_hash)

        teacher = await store.find_one(Teacher, teacher_id='T1')
        assert teacher.current_students_count == 1

        request = await store.find_by_id(SupervisionRequest, 'R1')
        assert request.status == RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_import_replaces_existing_data_but_keeps_admins(self, db_session, admin_user, make_student):
        await make_student('OLD')
        await SyncService(db_session).import_data(legacy_payload())

        store = EntityStore(db_session)
        assert await store.find_one(Student, student_id='OLD') is None
        assert await store.count(Admin) == 1

    @pytest.mark.asyncio
    async def test_existing_hash_is_kept(self, db_session):
        payload = legacy_payload()
        hashed = get_password_hash('already-hashed')
        payload['students'][0] = {**payload['students'][0], 'password': None, 'password_hash': hashed}
        await SyncService(db_session).import_data(payload)

        student = await EntityStore(db_session).find_one(Student, student_id='S1')
        assert student.password_hash == hashed

    @pytest.mark.asyncio
    async def test_missing_password_rejected_before_any_change(self, db_session, make_student):
        await make_student('KEEP')
        payload = legacy_payload()
        del payload['students'][1]['password']

        with pytest.raises(ValidationError):
            await SyncService(db_session).import_data(payload)
        assert await EntityStore(db_session).find_one(Student, student_id='KEEP') is not None

    @pytest.mark.asyncio
    async def test_bad_enum_value_rejected(self, db_session):
        payload = legacy_payload()
        payload['groups'][0]['status'] = 'on_fire'
        with pytest.raises(ValidationError):
            await SyncService(db_session).import_data(payload)

    @pytest.mark.asyncio
    async def test_section_must_be_a_list(self, db_session):
        with pytest.raises(ValidationError):
            await SyncService(db_session).import_data({'students': {'S1': {}}})

    @pytest.mark.asyncio
    async def test_status_counts(self, db_session):
        service = SyncService(db_session)
        await service.import_data(legacy_payload())
        assert await service.status() == {
            'students': 2, 'teachers': 1, 'groups': 1, 'proposals': 1, 'requests': 1,
        }

    @pytest.mark.asyncio
    async def test_malformed_legacy_date_rejected(self, db_session, make_student):
        await make_student('KEEP')
        payload = legacy_payload()
        payload['students'][0]['created_date'] = 'not a date'

        with pytest.raises(ValidationError):
            await SyncService(db_session).import_data(payload)
        assert await EntityStore(db_session).find_one(Student, student_id='KEEP') is not None

    @pytest.mark.asyncio
    async def test_oversized_group_rejected_before_any_change(self, db_session, make_student):
        await make_student('KEEP')
        payload = legacy_payload()
        payload['students'] += [
            {'student_id': f'S{i}', 'full_name': f'Student {i}', 'email': f's{i}@example.com', 'password': 'secret123'}
            for i in range(3, 6)
        ]
        payload['groups'][0]['member_ids'] = ['S1', 'S2', 'S3', 'S4', 'S5']

        with pytest.raises(ValidationError) as exc:
            await SyncService(db_session).import_data(payload)
        assert exc.value.details['field'] == 'members'
        assert await EntityStore(db_session).find_one(Student, student_id='KEEP') is not None
        assert await EntityStore(db_session).count(StudentGroup) == 0

    @pytest.mark.asyncio
    async def test_teacher_over_capacity_rejected(self, db_session):
        payload = legacy_payload()
        payload['teachers'][0].update(max_students=1, current_students=4)

        with pytest.raises(ValidationError) as exc:
            await SyncService(db_session).import_data(payload)
        assert exc.value.details['field'] == 'current_students_count'
        assert await EntityStore(db_session).count(Teacher) == 0

    @pytest.mark.asyncio
    async def test_teacher_counts_coerced_to_int(self, db_session):
        payload = legacy_payload()
        payload['teachers'][0].update(max_students='4', current_students='2')
        await SyncService(db_session).import_data(payload)

        teacher = await EntityStore(db_session).find_one(Teacher, teacher_id='T1')
        assert (teacher.max_students, teacher.current_students_count) == (4, 2)
