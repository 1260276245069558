"""
Tests for lead routes and the Twenty CRM proxy routes (notes, tasks, files, people)
"""
import pytest
from io import BytesIO
from unittest.mock import Mock, patch

from database.connection import get_db_session
from services.lead_repository import LeadRepository
from services.twenty_client import TwentyAPIError


@pytest.fixture
def mirrored_lead(company):
    """A local lead that mirrors a CRM record"""
    with get_db_session() as session:
        lead, _ = LeadRepository(session, company['id']).upsert_from_remote(
            company['id'], 'twenty-lead-1', {'name': 'Dana Whitfield', 'city': 'Denver'},
            defaults={'source': 'twenty_crm', 'status': 'new'}
        )
        return lead.to_dict()


@pytest.fixture
def rep_headers(make_token, company):
    """Sales rep belonging to the fixture company"""
    token = make_token(role='sales_rep', company_id=company['id'], username='jordanlee')
    return {'Authorization': f'Bearer {token}'}


@pytest.mark.integration
class TestLocalLeads:
    """Tests for /api/leads"""

    def test_create_and_list(self, client, company, rep_headers):
        """Test a created lead appears in the company list with defaults"""
        response = client.post('/api/leads', headers=rep_headers, json={
            'companyId': company['id'], 'name': 'Ray Okafor', 'email': 'ray@example.com', 'zipCode': '80010'
        })
        assert response.status_code == 201
        lead = response.get_json()['lead']
        assert lead['status'] == 'new'
        assert lead['source'] == 'website'
        assert lead['zipCode'] == '80010'

        response = client.get(f"/api/leads?company_id={company['id']}", headers=rep_headers)
        assert [l['name'] for l in response.get_json()['leads']] == ['Ray Okafor']

    def test_list_requires_company(self, client, auth_headers):
        """Test listing without a company is a 400"""
        response = client.get('/api/leads', headers=auth_headers)
        assert response.status_code == 400

    def test_other_company_forbidden(self, client, make_token, company):
        """Test users cannot read another company's leads"""
        token = make_token(role='sales_rep', company_id='some-other-company')
        response = client.get(f"/api/leads?companyId={company['id']}",
                              headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 403

    def test_requires_login(self, client, company):
        """Test anonymous callers are rejected"""
        response = client.get(f"/api/leads?companyId={company['id']}")
        assert response.status_code == 401

    @patch('services.crm_proxy.client_for_company_model')
    def test_update_pushes_to_crm(self, mock_factory, client, mirrored_lead, rep_headers):
        """Test editing a mirrored lead pushes the change to Twenty"""
        crm = mock_factory.return_value

        response = client.patch('/api/leads', headers=rep_headers, json={
            'id': mirrored_lead['id'], 'email': 'dana@new.com', 'status': 'contacted'
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['lead']['email'] == 'dana@new.com'
        assert data['lead']['status'] == 'contacted'
        assert data['crmSynced'] is True
        crm.update_lead.assert_called_once_with('twenty-lead-1', {'email': {'primaryEmail': 'dana@new.com'}})

    @patch('services.crm_proxy.client_for_company_model')
    def test_update_survives_crm_failure(self, mock_factory, client, mirrored_lead, rep_headers):
        """Test a failed CRM push still saves locally"""
        mock_factory.return_value.update_lead.side_effect = TwentyAPIError('down', status_code=503)

        response = client.patch('/api/leads', headers=rep_headers, json={
            'id': mirrored_lead['id'], 'name': 'Dana W'
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['crmSynced'] is False
        assert data['lead']['name'] == 'Dana W'

    def test_update_unknown_lead(self, client, auth_headers):
        """Test updating a missing lead is a 404"""
        response = client.patch('/api/leads', headers=auth_headers, json={'id': 'missing', 'name': 'x'})
        assert response.status_code == 404

    def test_delete(self, client, mirrored_lead, rep_headers, company):
        """Test deleting removes the lead"""
        response = client.delete(f"/api/leads?id={mirrored_lead['id']}", headers=rep_headers)
        assert response.status_code == 200

        response = client.get(f"/api/leads?companyId={company['id']}", headers=rep_headers)
        assert response.get_json()['leads'] == []


@pytest.mark.integration
class TestRemoteLeads:
    """Tests for the live CRM lead routes"""

    @patch('services.crm_proxy.get_crm_client')
    def test_remote_list(self, mock_get_client, client, company, rep_headers, sample_crm_leads):
        """Test the CRM list is returned with a total"""
        mock_get_client.return_value.get_leads_full.return_value = sample_crm_leads

        response = client.get(f"/api/leads/remote?companyId={company['id']}&limit=50", headers=rep_headers)

        assert response.status_code == 200
        assert response.get_json()['total'] == 3
        mock_get_client.return_value.get_leads_full.assert_called_once_with(limit=50)

    @patch('services.crm_proxy.get_crm_client')
    def test_crm_error_is_502(self, mock_get_client, client, company, rep_headers):
        """Test CRM failures map to 502 with details"""
        mock_get_client.return_value.get_lead.side_effect = TwentyAPIError('GraphQL errors: boom')

        response = client.get(f"/api/leads/lead-1/twenty?companyId={company['id']}", headers=rep_headers)

        assert response.status_code == 502
        data = response.get_json()
        assert data['error'] == 'Failed to fetch lead from Twenty CRM'
        assert 'boom' in data['details']

    def test_unconfigured_company(self, client, auth_headers):
        """Test a company without CRM credentials is a 400"""
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            bare = CompanyRepository(session).create_company({'name': 'Bare Roofing'})

        response = client.get(f"/api/leads/remote?companyId={bare['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Twenty CRM not configured for this company'

    def test_unknown_company(self, client, auth_headers):
        """Test an unknown company is a 404"""
        response = client.get('/api/leads/remote?companyId=missing', headers=auth_headers)
        assert response.status_code == 404

    @patch('services.crm_proxy.get_crm_client')
    def test_twenty_update_reshapes_fields(self, mock_get_client, client, company, rep_headers):
        """Test edits are converted to LeadUpdateInput"""
        crm = mock_get_client.return_value
        crm.update_lead.return_value = {'id': 'lead-1'}

        response = client.patch('/api/leads/lead-1/twenty/update', headers=rep_headers, json={
            'companyId': company['id'], 'updates': {'phone': '3035550101', 'estValue': 9000}
        })

        assert response.status_code == 200
        crm.update_lead.assert_called_once_with('lead-1', {
            'phone': {'primaryPhoneNumber': '3035550101', 'additionalPhones': None},
            'estValue': {'amountMicros': 9000000000, 'currencyCode': 'USD'},
        })

    def test_twenty_update_without_changes(self, client, company, rep_headers):
        """Test an empty update is rejected"""
        response = client.patch('/api/leads/lead-1/twenty/update', headers=rep_headers,
                                json={'companyId': company['id'], 'updates': {}})
        assert response.status_code == 400

    @patch('services.crm_proxy.get_crm_client')
    def test_enums(self, mock_get_client, client, company, rep_headers):
        """Test enum values come back as value/label options"""
        mock_get_client.return_value.get_lead_field_enums.return_value = {'source': ['GOOGLE_ADS']}

        response = client.get(f"/api/leads/enums?companyId={company['id']}", headers=rep_headers)

        assert response.get_json()['enums'] == {'source': [{'value': 'GOOGLE_ADS', 'label': 'Google Ads'}]}


@pytest.mark.integration
class TestCrmProxyRoutes:
    """Tests for notes, tasks, files and people routes"""

    @patch('services.crm_proxy.get_crm_client')
    def test_create_note(self, mock_get_client, client, company, rep_headers):
        """Test creating a note returns 201"""
        mock_get_client.return_value.create_note_for_lead.return_value = {'id': 'note-1', 'body': 'Hi'}

        response = client.post('/api/notes', headers=rep_headers, json={
            'companyId': company['id'], 'leadId': 'lead-1', 'noteBody': 'Hi'
        })

        assert response.status_code == 201
        mock_get_client.return_value.create_note_for_lead.assert_called_once_with('lead-1', None, 'Hi')

    def test_create_note_requires_body(self, client, company, rep_headers):
        """Test a note without a body is rejected"""
        response = client.post('/api/notes', headers=rep_headers,
                               json={'companyId': company['id'], 'leadId': 'lead-1'})
        assert response.status_code == 400

    @patch('services.crm_proxy.get_crm_client')
    def test_delete_note(self, mock_get_client, client, company, rep_headers):
        """Test deleting a note echoes its id"""
        mock_get_client.return_value.delete_note.return_value = 'note-1'
        response = client.delete(f"/api/notes/note-1?companyId={company['id']}", headers=rep_headers)
        assert response.get_json() == {'success': True, 'deletedId': 'note-1'}

    @patch('services.crm_proxy.get_crm_client')
    def test_all_tasks_filtered_by_sales_rep(self, mock_get_client, client, company, rep_headers):
        """Test /api/tasks/all narrows to one sales rep"""
        mock_get_client.return_value.get_all_tasks.return_value = [
            {'id': 't1', 'leadSalesRep': 'JORDAN_LEE'},
            {'id': 't2', 'leadSalesRep': 'SAM_PATEL'},
        ]

        response = client.get(f"/api/tasks/all?companyId={company['id']}&salesRep=JORDAN_LEE",
                              headers=rep_headers)

        assert [t['id'] for t in response.get_json()['tasks']] == ['t1']

    @patch('services.crm_proxy.get_crm_client')
    def test_pm_tasks(self, mock_get_client, client, company, rep_headers):
        """Test project manager tasks are install or PM tasks on their leads"""
        mock_get_client.return_value.get_all_tasks.return_value = [
            {'id': 't1', 'leadProjectManager': 'CASEY_M', 'install': 'YES'},
            {'id': 't2', 'leadProjectManager': 'casey_m', 'pmTask': 'YES'},
            {'id': 't3', 'leadProjectManager': 'CASEY_M', 'install': 'NO'},
            {'id': 't4', 'leadProjectManager': 'OTHER', 'install': 'YES'},
        ]

        response = client.get(f"/api/tasks/pm?companyId={company['id']}&projectManager=CASEY_M",
                              headers=rep_headers)

        assert [t['id'] for t in response.get_json()['tasks']] == ['t1', 't2']

    @patch('services.crm_proxy.get_crm_client')
    def test_upload_file(self, mock_get_client, client, company, rep_headers):
        """Test multipart uploads are validated and forwarded"""
        mock_get_client.return_value.upload_attachment.return_value = {'id': 'att-1'}

        response = client.post('/api/files', headers=rep_headers, content_type='multipart/form-data', data={
            'companyId': company['id'],
            'leadId': 'lead-1',
            'file': (BytesIO(b'jpegbytes'), 'roof photo.jpg', 'image/jpeg'),
        })

        assert response.status_code == 201
        args = mock_get_client.return_value.upload_attachment.call_args.args
        assert args[:3] == ('lead-1', 'roof_photo.jpg', b'jpegbytes')

    def test_upload_rejects_executables(self, client, company, rep_headers):
        """Test disallowed file types are a 400"""
        response = client.post('/api/files', headers=rep_headers, content_type='multipart/form-data', data={
            'companyId': company['id'],
            'leadId': 'lead-1',
            'file': (BytesIO(b'MZ'), 'setup.exe'),
        })
        assert response.status_code == 400

    @patch('services.crm_proxy.get_crm_client')
    def test_sales_reps(self, mock_get_client, client, company, rep_headers):
        """Test sales reps are the raw enum values"""
        mock_get_client.return_value.get_enum_values.return_value = ['JORDAN_LEE', 'SAM_PATEL']

        response = client.get(f"/api/sales-reps?companyId={company['id']}", headers=rep_headers)

        assert response.get_json() == {'success': True, 'salesReps': ['JORDAN_LEE', 'SAM_PATEL']}
        mock_get_client.return_value.get_enum_values.assert_called_once_with('LeadSalesRepEnum')
