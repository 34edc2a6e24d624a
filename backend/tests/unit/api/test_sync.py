"""
API Tests for the legacy data sync endpoints
"""
import pytest
from httpx import AsyncClient

from tests.conftest import student_headers

PAYLOAD = {
    'students': [
        {'student_id': 'S1', 'full_name': 'Ana', 'email': 'ana@example.com', 'password': 'secret123'},
    ],
    'teachers': [
        {'teacher_id': 'T1', 'full_name': 'Dr. Ito', 'email': 'ito@example.com', 'password': 'secret123'},
    ],
    'groups': [
        {'group_id': 'G1', 'group_name': 'Solo', 'member_ids': ['S1']},
    ],
}


class TestSyncEndpoints:

    @pytest.mark.asyncio
    async def test_import_then_status(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/sync/frontend-data', headers=admin_headers, json=PAYLOAD)
        assert response.status_code == 200
        assert response.json()['imported']['students'] == 1

        status = (await client.get('/api/sync/status', headers=admin_headers)).json()['backendData']
        assert status == {'students': 1, 'teachers': 1, 'groups': 1, 'proposals': 0, 'requests': 0}

        # Imported plaintext passwords work for login
        login = await client.post('/api/students/login', json={'student_id': 'S1', 'password': 'secret123'})
        assert login.status_code == 200
        assert login.json()['student']['group_id'] == 'G1'

    @pytest.mark.asyncio
    async def test_invalid_import_is_400(self, client: AsyncClient, admin_headers):
        bad = {'students': [{'student_id': 'S1', 'full_name': 'No Password', 'email': 'np@example.com'}]}
        response = await client.post('/api/sync/frontend-data', headers=admin_headers, json=bad)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_only(self, client: AsyncClient, make_student):
        student = await make_student('S1')
        response = await client.post('/api/sync/frontend-data', headers=student_headers(student), json=PAYLOAD)
        assert response.status_code == 403
