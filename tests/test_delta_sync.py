"""
Tests for the delta sync service
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from database.connection import get_db_session
from database.models import Lead, SyncState
from services.delta_sync import DeltaSyncService, SYNC_JOB_ID
from services.lead_repository import LeadRepository
from services.exceptions import CompanyNotFound
from services.twenty_client import TwentyAPIError


def _iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%S.000Z')


def _remote_lead(lead_id, updated_at, name='Dana Whitfield'):
    return {
        'id': lead_id,
        'name': name,
        'email': f'{lead_id}@example.com',
        'phone': '3035550101',
        'city': 'Denver',
        'createdAt': _iso(updated_at - timedelta(days=1)),
        'updatedAt': _iso(updated_at),
    }


@pytest.fixture
def crm():
    """Mock TwentyClient returned for every company"""
    return Mock()


@pytest.fixture
def service(app, crm):
    return DeltaSyncService(lookback_days=30, fetch_limit=250, client_factory=lambda company: crm)


def _leads(company_id):
    with get_db_session() as session:
        return session.query(Lead).filter(Lead.company_id == company_id).order_by(Lead.twenty_id).all()


@pytest.mark.integration
class TestDeltaSync:
    """Tests for perform_delta_sync"""

    def test_first_run_uses_lookback_window(self, service, crm, company):
        """Test only leads updated within the lookback window are synced"""
        now = datetime.utcnow()
        crm.get_leads.return_value = [
            _remote_lead('lead-recent', now - timedelta(days=1)),
            _remote_lead('lead-stale', now - timedelta(days=60)),
        ]

        result = service.perform_delta_sync(company['id'])

        assert result == {'leadsUpdated': 1, 'notesUpdated': 0, 'errors': []}
        crm.get_leads.assert_called_once_with(limit=250)
        leads = _leads(company['id'])
        assert [lead.twenty_id for lead in leads] == ['lead-recent']
        assert leads[0].sync_status == 'synced'
        assert leads[0].email == 'lead-recent@example.com'

    def test_second_run_skips_unchanged(self, service, crm, company):
        """Test leads not updated since the last run are skipped"""
        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow() - timedelta(minutes=5))]
        assert service.perform_delta_sync(company['id'])['leadsUpdated'] == 1

        assert service.perform_delta_sync(company['id'])['leadsUpdated'] == 0

    def test_updates_existing_lead(self, service, crm, company):
        """Test a changed CRM lead overwrites the mirrored row"""
        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow() - timedelta(hours=2))]
        service.perform_delta_sync(company['id'])

        with get_db_session() as session:
            state = session.query(SyncState).filter(SyncState.company_id == company['id']).one()
            state.last_synced_at = datetime.utcnow() - timedelta(hours=1)

        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow(), name='Dana W')]
        result = service.perform_delta_sync(company['id'])

        assert result['leadsUpdated'] == 1
        leads = _leads(company['id'])
        assert len(leads) == 1
        assert leads[0].name == 'Dana W'

    def test_new_row_is_marked_as_crm_lead(self, service, crm, company):
        """Test a lead first mirrored by delta sync is recorded as coming from the CRM"""
        before = datetime.utcnow()
        crm.get_leads.return_value = [_remote_lead('lead-new', before - timedelta(hours=1))]

        service.perform_delta_sync(company['id'])

        lead = _leads(company['id'])[0]
        assert lead.source == 'twenty_crm'
        assert lead.status == 'new'
        assert lead.sync_status == 'synced'
        assert lead.last_synced_at >= before
        assert lead.to_dict()['source'] == 'twenty_crm'

    def test_resync_keeps_local_source(self, service, crm, company):
        """Test an existing row keeps the source set locally"""
        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow() - timedelta(hours=2))]
        service.perform_delta_sync(company['id'])

        with get_db_session() as session:
            session.query(Lead).filter(Lead.twenty_id == 'lead-1').one().source = 'referral'
            state = session.query(SyncState).filter(SyncState.company_id == company['id']).one()
            state.last_synced_at = datetime.utcnow() - timedelta(hours=1)

        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow())]
        service.perform_delta_sync(company['id'])

        assert _leads(company['id'])[0].source == 'referral'

    def test_concurrent_insert_becomes_update(self, service, crm, company):
        """Test a row inserted by another process after the lookup is updated, not duplicated"""
        with get_db_session() as session:
            session.add(Lead(company_id=company['id'], twenty_id='lead-race', name='Old Name', source='twenty_crm'))

        original_lookup = LeadRepository.get_by_twenty_id
        lookups = []

        def stale_first_lookup(repo, company_id, twenty_id):
            lookups.append(twenty_id)
            if len(lookups) == 1:
                return None
            return original_lookup(repo, company_id, twenty_id)

        crm.get_leads.return_value = [_remote_lead('lead-race', datetime.utcnow(), name='New Name')]
        with patch.object(LeadRepository, 'get_by_twenty_id', autospec=True, side_effect=stale_first_lookup):
            result = service.perform_delta_sync(company['id'])

        assert result == {'leadsUpdated': 1, 'notesUpdated': 0, 'errors': []}
        leads = _leads(company['id'])
        assert len(leads) == 1
        assert leads[0].name == 'New Name'

    def test_fetch_failure_is_reported(self, service, crm, company):
        """Test a CRM failure is returned in errors rather than raised"""
        crm.get_leads.side_effect = TwentyAPIError('Twenty CRM API error (401): Unauthorized', status_code=401)

        result = service.perform_delta_sync(company['id'])

        assert result['leadsUpdated'] == 0
        assert len(result['errors']) == 1
        assert 'Unauthorized' in result['errors'][0]

    def test_bad_lead_does_not_stop_sync(self, service, crm, company):
        """Test one failing lead is collected and the rest still sync"""
        now = datetime.utcnow()
        broken = _remote_lead('ignored', now)
        del broken['id']
        crm.get_leads.return_value = [broken, _remote_lead('lead-ok', now)]

        result = service.perform_delta_sync(company['id'])

        assert result['leadsUpdated'] == 1
        assert len(result['errors']) == 1
        assert [lead.twenty_id for lead in _leads(company['id'])] == ['lead-ok']

    def test_concurrent_run_is_skipped(self, service, crm, company):
        """Test a second sync for the same company returns an empty result"""
        assert service._begin(company['id']) is True
        try:
            result = service.perform_delta_sync(company['id'])
        finally:
            service._end(company['id'])

        assert result == {'leadsUpdated': 0, 'notesUpdated': 0, 'errors': []}
        crm.get_leads.assert_not_called()

    def test_unknown_company(self, service):
        """Test an unknown company raises CompanyNotFound"""
        with pytest.raises(CompanyNotFound):
            service.perform_delta_sync('00000000-0000-0000-0000-000000000000')
        assert service.is_syncing('00000000-0000-0000-0000-000000000000') is False

    def test_sync_status(self, service, crm, company):
        """Test status reports the last run time and result"""
        assert service.get_sync_status(company['id'])['lastSyncTime'] is None

        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow())]
        service.perform_delta_sync(company['id'])

        status = service.get_sync_status(company['id'])
        assert status['isSyncing'] is False
        assert status['lastSyncTime'] is not None
        assert status['lastResult']['leadsUpdated'] == 1


@pytest.mark.integration
class TestFullSync:
    """Tests for full_sync and sync_all_companies"""

    def test_full_sync_ignores_timestamps(self, service, crm, company):
        """Test every CRM lead is upserted with twenty_crm as source"""
        crm.get_leads.return_value = [
            _remote_lead('lead-1', datetime.utcnow()),
            _remote_lead('lead-2', datetime.utcnow() - timedelta(days=400)),
        ]

        result = service.full_sync(company['id'])

        assert result == {'message': 'Sync completed successfully', 'synced': 2, 'total': 2}
        leads = _leads(company['id'])
        assert {lead.source for lead in leads} == {'twenty_crm'}
        assert {lead.status for lead in leads} == {'new'}

    def test_full_sync_empty_crm(self, service, crm, company):
        """Test an empty CRM reports nothing to sync"""
        crm.get_leads.return_value = []
        assert service.full_sync(company['id']) == {'message': 'No leads found in Twenty CRM', 'synced': 0}

    def test_full_sync_keeps_local_status(self, service, crm, company):
        """Test re-syncing does not reset a status set locally"""
        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow())]
        service.full_sync(company['id'])
        with get_db_session() as session:
            session.query(Lead).filter(Lead.twenty_id == 'lead-1').one().status = 'quoted'

        service.full_sync(company['id'])

        assert _leads(company['id'])[0].status == 'quoted'

    def test_sync_all_companies_skips_unconfigured(self, service, crm, company):
        """Test only companies with CRM credentials are synced"""
        from services.company_repository import CompanyRepository

        with get_db_session() as session:
            CompanyRepository(session).create_company({'name': 'No CRM Roofing'})

        crm.get_leads.return_value = [_remote_lead('lead-1', datetime.utcnow())]
        results = service.sync_all_companies()

        assert list(results) == [company['id']]
        assert results[company['id']]['leadsUpdated'] == 1


@pytest.mark.unit
class TestPolling:
    """Tests for start_polling and stop_polling"""

    def test_start_polling_registers_job(self):
        """Test polling adds an immediate job and starts the scheduler"""
        service = DeltaSyncService(session_factory=Mock())
        scheduler = Mock(running=False)

        service.start_polling(interval_minutes=5, scheduler=scheduler)

        scheduler.add_job.assert_called_once_with(
            SYNC_JOB_ID, service.sync_all_companies, interval_seconds=300, run_immediately=True
        )
        scheduler.start.assert_called_once()

    def test_stop_polling_removes_job(self):
        """Test polling can be stopped"""
        service = DeltaSyncService(session_factory=Mock())
        scheduler = Mock()
        service.stop_polling(scheduler=scheduler)
        scheduler.remove_job.assert_called_once_with(SYNC_JOB_ID)
