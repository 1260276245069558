"""
Tests for the background job scheduler
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from services.scheduler import BackgroundScheduler, delta_sync_job, init_scheduler


@pytest.mark.unit
class TestBackgroundScheduler:
    """Tests for job registration and execution"""

    def test_run_immediately_job_is_due(self):
        """Test run_immediately jobs run on the first tick"""
        scheduler = BackgroundScheduler()
        job = Mock(return_value={'ok': True})
        scheduler.add_job('sync', job, interval_seconds=300, run_immediately=True)

        assert scheduler.run_pending() == 1
        job.assert_called_once_with()

        status = scheduler.get_job_status()['sync']
        assert status['run_count'] == 1
        assert status['last_error'] is None

    def test_job_waits_for_interval(self):
        """Test a job is not due again until its interval passes"""
        scheduler = BackgroundScheduler()
        job = Mock()
        scheduler.add_job('sync', job, interval_seconds=300)
        now = datetime.utcnow()

        assert scheduler.run_pending(now) == 0
        assert scheduler.run_pending(now + timedelta(seconds=301)) == 1
        assert scheduler.run_pending(now + timedelta(seconds=302)) == 0
        assert job.call_count == 1

    def test_failing_job_is_recorded(self):
        """Test job errors are recorded and the job is rescheduled"""
        scheduler = BackgroundScheduler()
        scheduler.add_job('sync', Mock(side_effect=RuntimeError('CRM down')),
                          interval_seconds=60, run_immediately=True)

        assert scheduler.run_job_now('sync') is False
        status = scheduler.get_job_status()['sync']
        assert status['last_error'] == 'CRM down'
        assert status['next_run'] is not None

    def test_disabled_job_not_run(self):
        """Test disabled jobs are skipped until re-enabled"""
        scheduler = BackgroundScheduler()
        job = Mock()
        scheduler.add_job('sync', job, interval_seconds=60, run_immediately=True)
        scheduler.disable_job('sync')

        assert scheduler.run_pending() == 0
        scheduler.enable_job('sync')
        assert scheduler.run_pending() == 1

    def test_kwargs_passed_to_job(self):
        """Test job kwargs are forwarded"""
        scheduler = BackgroundScheduler()
        job = Mock()
        scheduler.add_job('sync', job, interval_seconds=60, run_immediately=True, kwargs={'company_id': 'c1'})
        scheduler.run_pending()
        job.assert_called_once_with(company_id='c1')

    def test_unknown_job(self):
        """Test running or removing an unknown job is harmless"""
        scheduler = BackgroundScheduler()
        assert scheduler.run_job_now('missing') is False
        scheduler.remove_job('missing')
        assert scheduler.has_job('missing') is False

    def test_start_and_stop(self):
        """Test the loop thread starts and stops"""
        scheduler = BackgroundScheduler(tick_seconds=0.01)
        scheduler.start()
        assert scheduler.running is True
        scheduler.stop()
        assert scheduler.running is False


@pytest.mark.unit
class TestSyncJobs:
    """Tests for the delta sync job wiring"""

    @patch('database.connection.is_db_configured', return_value=False)
    def test_delta_sync_job_without_database(self, mock_configured):
        """Test the job is a no-op without a database"""
        assert delta_sync_job() == {}

    @patch('services.delta_sync.get_delta_sync_service')
    @patch('database.connection.is_db_configured', return_value=True)
    def test_delta_sync_job_syncs_all_companies(self, mock_configured, mock_get_service):
        """Test the job delegates to sync_all_companies"""
        mock_get_service.return_value.sync_all_companies.return_value = {'c1': {'leadsUpdated': 2}}
        assert delta_sync_job() == {'c1': {'leadsUpdated': 2}}

    @patch('services.scheduler.get_scheduler')
    @patch('services.delta_sync.get_delta_sync_service')
    def test_init_scheduler_uses_interval(self, mock_get_service, mock_get_scheduler):
        """Test the sync job interval comes from SYNC_INTERVAL_MINUTES"""
        scheduler = mock_get_scheduler.return_value

        init_scheduler({'SYNC_INTERVAL_MINUTES': 15})

        args, kwargs = scheduler.add_job.call_args
        assert args[0] == 'twenty_delta_sync'
        assert kwargs['interval_seconds'] == 900
        assert kwargs['run_immediately'] is True
        scheduler.start.assert_called_once()
