"""
Integration Tests for the full thesis supervision flow
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()

PASSWORD = 'securePassword123!'


async def register_and_login_student(client: AsyncClient, student_id: str):
    response = await client.post('/api/students', json={
        'student_id': student_id,
        'full_name': fake.name(),
        'email': fake.unique.email(),
        'password': PASSWORD,
        'department': 'Computer Science',
    })
    assert response.status_code == 201

    response = await client.post('/api/students/login', json={'student_id': student_id, 'password': PASSWORD})
    assert response.status_code == 200
    return {'Authorization': f"Bearer {response.json()['token']}"}


class TestAuthenticationFlow:
    """Self-service registration followed by login"""

    @pytest.mark.asyncio
    async def test_register_login_profile(self, client: AsyncClient):
        headers = await register_and_login_student(client, 'S100')
        response = await client.get('/api/students/me', headers=headers)
        assert response.status_code == 200
        assert response.json()['student']['student_id'] == 'S100'

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, client: AsyncClient):
        await register_and_login_student(client, 'S101')
        response = await client.post('/api/students/login', json={'student_id': 'S101', 'password': 'nope123'})
        assert response.status_code == 401


class TestSupervisionFlow:
    """Group formation through to a supervised workspace"""

    @pytest.mark.asyncio
    async def test_complete_flow(self, client: AsyncClient, admin_headers):
        leader = await register_and_login_student(client, 'S1')
        member = await register_and_login_student(client, 'S2')

        response = await client.post('/api/teachers', json={
            'teacher_id': 'T1',
            'full_name': 'Dr. ' + fake.last_name(),
            'email': fake.unique.email(),
            'password': PASSWORD,
            'research_field': 'Machine Learning',
            'accepted_topics': ['machine learning'],
            'max_students': 4,
        })
        assert response.status_code == 201
        login = await client.post('/api/teachers/login', json={'teacher_id': 'T1', 'password': PASSWORD})
        teacher = {'Authorization': f"Bearer {login.json()['token']}"}

        # Group formation
        group = (await client.post('/api/groups', headers=leader, json={'group_name': 'Team Alpha'})).json()['group']
        invitation = (await client.post(f"/api/groups/{group['id']}/invitations", headers=leader,
                                        json={'to_student_id': 'S2'})).json()['invitation']

        pending = (await client.get('/api/invitations', headers=member)).json()
        assert [i['id'] for i in pending['invitations']] == [invitation['id']]

        response = await client.post(f"/api/invitations/{invitation['id']}/respond", headers=member,
                                     json={'accept': True})
        assert response.json()['invitation']['status'] == 'accepted'

        # Proposal
        proposal = (await client.post('/api/proposals', headers=leader, json={
            'group_id': group['id'],
            'title': 'Federated learning on phones',
            'description': 'Privacy-preserving training',
            'field': 'Machine Learning',
        })).json()['proposal']
        await client.post(f"/api/proposals/{proposal['id']}/submit", headers=member)

        # Supervision request, teacher acceptance, admin approval
        request = (await client.post('/api/requests', headers=leader, json={
            'group_id': group['id'], 'teacher_id': 'T1', 'proposal_id': proposal['id'],
        })).json()['request']
        await client.post(f"/api/requests/{request['id']}/respond", headers=teacher, json={'decision': 'accept'})
        response = await client.post(f"/api/requests/{request['id']}/finalize", headers=admin_headers,
                                     json={'decision': 'approve'})
        assert response.json()['request']['status'] == 'approved'

        group = (await client.get(f"/api/groups/{group['id']}", headers=member)).json()['group']
        assert group['supervisor_id'] == 'T1'
        assert group['member_count'] == 2

        # Supervised workspace
        response = await client.post(f"/api/groups/{group['id']}/meetings", headers=teacher, json={
            'meeting_date': '2030-01-15T10:00:00Z', 'duration': 45, 'agenda': 'Scope review',
        })
        assert response.status_code == 201

        progress = (await client.post(f"/api/groups/{group['id']}/progress", headers=member, json={
            'week_number': 1, 'work_done': 'Literature survey',
        })).json()['progress']
        response = await client.patch(f"/api/progress/{progress['id']}", headers=teacher,
                                      json={'status': 'reviewed', 'supervisor_comments': 'Good start'})
        assert response.json()['progress']['status'] == 'reviewed'

        dashboard = (await client.get('/api/dashboard/me', headers=teacher)).json()['dashboard']
        assert [g['id'] for g in dashboard['supervised_groups']] == [group['id']]
        assert dashboard['available_slots'] == 3
