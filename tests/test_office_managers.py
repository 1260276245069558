"""
Tests for office manager team views
"""
import pytest
from datetime import datetime
from unittest.mock import Mock, patch

from database.connection import get_db_session
from services.team_service import TeamService, NotOnTeam

NOW = datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def team(company, mobile_user_factory):
    """Two reps and a canvasser under 'morgan', one rep under someone else"""
    members = {
        'jordan': mobile_user_factory(username='jordanlee', salesRep='JORDAN_LEE', officeManager='morgan',
                                      companyId=company['id'], email='jordan@example.com'),
        'sam': mobile_user_factory(username='sampatel', salesRep='SAM_PATEL', officeManager='morgan',
                                   companyId=company['id']),
        'riley': mobile_user_factory(username='rileychen', role='canvasser', canvasser='RILEY_CHEN',
                                     officeManager='morgan', companyId=company['id']),
        'outsider': mobile_user_factory(username='outsider', salesRep='OUTSIDE_REP', officeManager='alex',
                                        companyId=company['id']),
    }
    mobile_user_factory(username='inactive', salesRep='GONE_REP', officeManager='morgan',
                        companyId=company['id'], isActive=False)
    return members


@pytest.mark.integration
class TestTeamService:
    """Tests for TeamService against the database"""

    def test_team_groups_by_role(self, company, team):
        """Test active members are split into sales reps and canvassers"""
        with get_db_session() as session:
            result = TeamService(session, 'morgan', company['id']).get_team()

        assert result['totalMembers'] == 3
        assert {m['username'] for m in result['salesReps']} == {'jordanlee', 'sampatel'}
        assert [m['username'] for m in result['canvassers']] == ['rileychen']

    def test_team_leads(self, company, team, sample_crm_leads):
        """Test leads match on sales rep or canvasser"""
        with get_db_session() as session:
            leads = TeamService(session, 'morgan', company['id']).team_leads(sample_crm_leads)
        assert [lead['id'] for lead in leads] == ['lead-1', 'lead-2']

    def test_team_leads_ignore_other_roles(self, company, team, mobile_user_factory):
        """Test a project manager's sales rep value does not pull leads into the team"""
        mobile_user_factory(username='pmcasey', role='project_manager', salesRep='PM_REP',
                            canvasser='PM_CANVASS', officeManager='morgan', companyId=company['id'])
        leads = [
            {'id': 'lead-pm', 'salesRep': 'PM_REP', 'canvasser': None},
            {'id': 'lead-pm-canvass', 'salesRep': None, 'canvasser': 'PM_CANVASS'},
            {'id': 'lead-rep', 'salesRep': 'JORDAN_LEE', 'canvasser': None},
        ]

        with get_db_session() as session:
            team_leads = TeamService(session, 'morgan', company['id']).team_leads(leads)

        assert [lead['id'] for lead in team_leads] == ['lead-rep']

    def test_appointments_sorted(self, sample_crm_leads):
        """Test appointments are soonest first and unscheduled leads dropped"""
        scheduled = TeamService.appointments(sample_crm_leads)
        assert [lead['id'] for lead in scheduled] == ['lead-2', 'lead-1']

    def test_activity(self, company, team, sample_crm_leads):
        """Test activity is newest first with assignee details"""
        with get_db_session() as session:
            activity = TeamService(session, 'morgan', company['id']).activity(sample_crm_leads, now=NOW)

        assert [entry['leadId'] for entry in activity] == ['lead-2', 'lead-1']
        jordan_entry = activity[1]
        assert jordan_entry['assignedTo'] == 'JORDAN_LEE'
        assert jordan_entry['assigneeRole'] == 'sales_rep'
        assert jordan_entry['assigneeEmail'] == 'jordan@example.com'
        assert jordan_entry['address'] == '410 Elm St'
        assert jordan_entry['appointmentDate'] == '2026-03-10T15:00:00Z'

    def test_activity_window(self, company, team, sample_crm_leads):
        """Test leads untouched for 30 days are left out"""
        with get_db_session() as session:
            activity = TeamService(session, 'morgan', company['id']).activity(
                sample_crm_leads, now=datetime(2026, 4, 2)
            )
        assert [entry['leadId'] for entry in activity] == ['lead-2']

    def test_get_member_not_on_team(self, company, team):
        """Test members of another team are not visible"""
        with get_db_session() as session:
            with pytest.raises(NotOnTeam):
                TeamService(session, 'morgan', company['id']).get_member(team['outsider']['id'])

    def test_reassign_to_team_member(self, company, team):
        """Test reassignment writes the CRM field for the assignee type"""
        crm = Mock()
        with get_db_session() as session:
            TeamService(session, 'morgan', company['id']).reassign_lead(crm, 'lead-1', 'RILEY_CHEN', 'canvasser')
        crm.update_lead.assert_called_once_with('lead-1', {'canvasser': 'RILEY_CHEN'})

    def test_reassign_outside_team(self, company, team):
        """Test assignees outside the team are refused before any CRM call"""
        crm = Mock()
        with get_db_session() as session:
            with pytest.raises(NotOnTeam):
                TeamService(session, 'morgan', company['id']).reassign_lead(crm, 'lead-1', 'OUTSIDE_REP', 'sales_rep')
        crm.update_lead.assert_not_called()


@pytest.mark.unit
class TestPerformance:
    """Tests for member performance figures"""

    def test_performance(self, sample_crm_leads):
        """Test totals, appointment rate and status breakdown"""
        performance = TeamService.performance(sample_crm_leads, now=datetime(2026, 3, 8))

        assert performance['totalLeads'] == 3
        assert performance['leadsWithAppointments'] == 2
        assert performance['appointmentRate'] == 66.7
        assert performance['statusBreakdown'] == {'NEW': 1, 'QUOTED': 1, 'WON': 1}
        assert [lead['id'] for lead in performance['recentActivity']] == ['lead-2', 'lead-1']

    def test_performance_no_leads(self):
        """Test an empty member has a zero rate"""
        assert TeamService.performance([])['appointmentRate'] == 0


@pytest.mark.integration
class TestOfficeManagerRoutes:
    """Tests for /api/office-managers/*"""

    @pytest.fixture
    def manager_headers(self, make_token, company):
        token = make_token(role='office_manager', company_id=company['id'], username='morgan')
        return {'Authorization': f'Bearer {token}'}

    def test_team(self, client, company, team, manager_headers):
        """Test the team endpoint wraps the grouped members"""
        response = client.get(f"/api/office-managers/team?username=morgan&companyId={company['id']}",
                              headers=manager_headers)
        assert response.status_code == 200
        assert response.get_json()['team']['totalMembers'] == 3

    def test_cannot_view_other_team(self, client, company, team, manager_headers):
        """Test office managers only see their own team"""
        response = client.get(f"/api/office-managers/team?username=alex&companyId={company['id']}",
                              headers=manager_headers)
        assert response.status_code == 403

    @patch('services.crm_proxy.get_crm_client')
    def test_team_leads(self, mock_get_client, client, company, team, manager_headers, sample_crm_leads):
        """Test team leads are filtered from the CRM list"""
        mock_get_client.return_value.get_leads_full.return_value = sample_crm_leads

        response = client.get(f"/api/office-managers/team-leads?username=morgan&companyId={company['id']}",
                              headers=manager_headers)

        data = response.get_json()
        assert data['total'] == 2
        mock_get_client.return_value.get_leads_full.assert_called_once_with(limit=500)

    @patch('services.crm_proxy.get_crm_client')
    def test_team_activity_without_members(self, mock_get_client, client, company, manager_headers):
        """Test an empty team skips the CRM entirely"""
        response = client.get(f"/api/office-managers/team-activity?username=morgan&companyId={company['id']}",
                              headers=manager_headers)
        assert response.get_json() == {'success': True, 'activity': [], 'teamMemberCount': 0}
        mock_get_client.assert_not_called()

    @patch('services.crm_proxy.get_crm_client')
    def test_team_member(self, mock_get_client, client, company, team, manager_headers, sample_crm_leads):
        """Test member detail includes their leads and performance"""
        mock_get_client.return_value.get_leads_full.return_value = sample_crm_leads

        response = client.get(
            f"/api/office-managers/team-member?username=morgan&companyId={company['id']}"
            f"&memberId={team['sam']['id']}",
            headers=manager_headers
        )

        data = response.get_json()
        assert data['member']['username'] == 'sampatel'
        assert [lead['id'] for lead in data['leads']] == ['lead-2']
        assert data['performance']['totalLeads'] == 1

    def test_team_member_not_found(self, client, company, team, manager_headers):
        """Test other teams' members are a 404"""
        response = client.get(
            f"/api/office-managers/team-member?username=morgan&companyId={company['id']}"
            f"&memberId={team['outsider']['id']}",
            headers=manager_headers
        )
        assert response.status_code == 404

    @patch('services.crm_proxy.get_crm_client')
    def test_reassign(self, mock_get_client, client, company, team, manager_headers):
        """Test reassigning to a team member updates the CRM"""
        response = client.post('/api/office-managers/reassign-lead', headers=manager_headers, json={
            'username': 'morgan', 'companyId': company['id'], 'leadId': 'lead-1',
            'newAssignee': 'SAM_PATEL', 'assigneeType': 'sales_rep'
        })

        assert response.status_code == 200
        mock_get_client.return_value.update_lead.assert_called_once_with('lead-1', {'salesRep': 'SAM_PATEL'})

    @patch('services.crm_proxy.get_crm_client')
    def test_reassign_outside_team(self, mock_get_client, client, company, team, manager_headers):
        """Test reassigning outside the team is forbidden"""
        response = client.post('/api/office-managers/reassign-lead', headers=manager_headers, json={
            'username': 'morgan', 'companyId': company['id'], 'leadId': 'lead-1',
            'newAssignee': 'OUTSIDE_REP', 'assigneeType': 'sales_rep'
        })
        assert response.status_code == 403
        mock_get_client.return_value.update_lead.assert_not_called()

    def test_reassign_bad_type(self, client, company, manager_headers):
        """Test an unknown assignee type is a 400"""
        response = client.post('/api/office-managers/reassign-lead', headers=manager_headers, json={
            'username': 'morgan', 'companyId': company['id'], 'leadId': 'lead-1',
            'newAssignee': 'SAM_PATEL', 'assigneeType': 'project_manager'
        })
        assert response.status_code == 400
