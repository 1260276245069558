"""
Delta Sync Service - Pulls changed leads from Twenty CRM into the local mirror.

Each run fetches the company's leads, keeps those whose updatedAt is newer than
the company's last sync time, and upserts them by (company_id, twenty_id).
Failures on individual leads are collected and returned rather than raised.

The per-company lock only covers this process. Run the scheduler in one
process (SCHEDULER_ENABLED=false elsewhere); a lead inserted concurrently by
another process is retried as an update.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.utils.encryption import EncryptionError
from database.connection import get_db_session
from database.models import Company, SyncState
from services.company_repository import CompanyRepository
from services.crm_proxy import client_for_company_model
from services.exceptions import CompanyNotFound, CRMNotConfigured
from services.lead_repository import LeadRepository
from services.lead_transform import lead_row_from_node, parse_timestamp
from services.twenty_client import TwentyAPIError

logger = logging.getLogger(__name__)

SYNC_JOB_ID = 'twenty_delta_sync'

# Columns a lead mirrored from the CRM gets when its row is first created
REMOTE_LEAD_DEFAULTS = {'source': 'twenty_crm', 'status': 'new'}

# Global service instance
_service = None


def _empty_result(errors=None):
    return {'leadsUpdated': 0, 'notesUpdated': 0, 'errors': errors or []}


class DeltaSyncService:
    """Timestamp-filtered lead sync, one run at a time per company."""

    def __init__(self, session_factory=None, lookback_days: int = 30, fetch_limit: int = 1000,
                 client_factory=client_for_company_model):
        # Callable returning a context-managed session (commit/rollback/close)
        self.session_factory = session_factory or get_db_session
        self.lookback_days = lookback_days
        self.fetch_limit = fetch_limit
        self.client_factory = client_factory
        self._lock = threading.Lock()
        self._syncing = set()

    # ------------------------------------------------------------------
    # Concurrency guard
    # ------------------------------------------------------------------

    def _begin(self, company_id: str) -> bool:
        with self._lock:
            if company_id in self._syncing:
                return False
            self._syncing.add(company_id)
            return True

    def _end(self, company_id: str) -> None:
        with self._lock:
            self._syncing.discard(company_id)

    def is_syncing(self, company_id: str) -> bool:
        with self._lock:
            return company_id in self._syncing

    # ------------------------------------------------------------------
    # Sync state
    # ------------------------------------------------------------------

    def get_last_sync_time(self, company_id: str, session=None) -> datetime:
        """Last recorded sync, or now minus the lookback window."""
        if session is None:
            with self.session_factory() as db:
                return self.get_last_sync_time(company_id, session=db)

        state = session.query(SyncState).filter(SyncState.company_id == company_id).first()
        if state and state.last_synced_at:
            return state.last_synced_at
        return datetime.utcnow() - timedelta(days=self.lookback_days)

    def _record_sync(self, company_id: str, synced_at: datetime, result: Dict) -> None:
        with self.session_factory() as session:
            state = session.query(SyncState).filter(SyncState.company_id == company_id).first()
            if not state:
                state = SyncState(company_id=company_id)
                session.add(state)
            state.last_synced_at = synced_at
            state.last_result = result
            state.updated_at = datetime.utcnow()

    def get_sync_status(self, company_id: str) -> Dict:
        with self.session_factory() as session:
            state = session.query(SyncState).filter(SyncState.company_id == company_id).first()
            return {
                'companyId': company_id,
                'isSyncing': self.is_syncing(company_id),
                'lastSyncTime': state.last_synced_at.isoformat() if state and state.last_synced_at else None,
                'lastResult': (state.last_result if state else None) or {},
            }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _fetch_remote_leads(self, company_id: str) -> List[Dict]:
        with self.session_factory() as session:
            company = session.query(Company).filter(Company.id == company_id).first()
            if not company:
                raise CompanyNotFound(company_id)
            client = self.client_factory(company)
        return client.get_leads(limit=self.fetch_limit)

    def _upsert(self, company_id: str, lead: Dict, synced_at: datetime) -> bool:
        fields = lead_row_from_node(lead)
        fields['sync_status'] = 'synced'
        fields['last_synced_at'] = synced_at

        try:
            with self.session_factory() as session:
                _, created = LeadRepository(session, company_id).upsert_from_remote(
                    company_id, lead['id'], fields, defaults=REMOTE_LEAD_DEFAULTS
                )
            return created
        except IntegrityError:
            # Row appeared between lookup and insert
            logger.info(f"Lead {lead['id']} was inserted concurrently, retrying as update")

        with self.session_factory() as session:
            LeadRepository(session, company_id).upsert_from_remote(
                company_id, lead['id'], fields, defaults=REMOTE_LEAD_DEFAULTS
            )
        return False

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------

    def perform_delta_sync(self, company_id: str) -> Dict:
        """
        Sync leads changed since the last run

        Returns:
            {'leadsUpdated', 'notesUpdated', 'errors'}

        Raises:
            CompanyNotFound: No such company
        """
        if not self._begin(company_id):
            logger.info(f"Sync already in progress for company {company_id}, skipping")
            return _empty_result()

        try:
            started_at = datetime.utcnow()
            last_sync = self.get_last_sync_time(company_id)
            result = _empty_result()

            try:
                leads = self._fetch_remote_leads(company_id)
            except (TwentyAPIError, CRMNotConfigured, EncryptionError) as e:
                logger.error(f"Delta sync fetch failed for company {company_id}: {e}")
                result['errors'].append(str(e))
                leads = []

            changed = []
            for lead in leads:
                updated_at = parse_timestamp(lead.get('updatedAt'))
                if updated_at and updated_at > last_sync:
                    changed.append(lead)

            logger.info(
                f"Delta sync for company {company_id}: {len(changed)} of {len(leads)} leads "
                f"changed since {last_sync.isoformat()}"
            )

            for lead in changed:
                try:
                    self._upsert(company_id, lead, started_at)
                    result['leadsUpdated'] += 1
                except Exception as e:
                    logger.error(f"Failed to sync lead {lead.get('id')}: {e}")
                    result['errors'].append(f"Lead {lead.get('id')}: {e}")

            self._record_sync(company_id, started_at, result)
            return result
        finally:
            self._end(company_id)

    def force_sync(self, company_id: str) -> Dict:
        """Run a delta sync now, outside the polling schedule."""
        logger.info(f"Forced delta sync for company {company_id}")
        return self.perform_delta_sync(company_id)

    def full_sync(self, company_id: str) -> Dict:
        """
        Upsert every lead the CRM returns, regardless of timestamps

        Raises:
            CompanyNotFound, CRMNotConfigured, TwentyAPIError, EncryptionError
        """
        started_at = datetime.utcnow()
        leads = self._fetch_remote_leads(company_id)

        if not leads:
            return {'message': 'No leads found in Twenty CRM', 'synced': 0}

        synced = 0
        errors = []
        for lead in leads:
            try:
                self._upsert(company_id, lead, started_at)
                synced += 1
            except Exception as e:
                logger.error(f"Failed to sync lead {lead.get('id')}: {e}")
                errors.append(f"Lead {lead.get('id')}: {e}")

        self._record_sync(company_id, started_at, {'leadsUpdated': synced, 'notesUpdated': 0, 'errors': errors})

        response = {'message': 'Sync completed successfully', 'synced': synced, 'total': len(leads)}
        if errors:
            response['errors'] = errors
        return response

    def sync_all_companies(self) -> Dict[str, Dict]:
        """Delta sync every active company that has CRM credentials."""
        with self.session_factory() as session:
            company_ids = [company.id for company in CompanyRepository(session).list_syncable()]

        results = {}
        for company_id in company_ids:
            try:
                results[company_id] = self.perform_delta_sync(company_id)
            except CompanyNotFound:
                # Deleted between listing and syncing
                continue

        total = sum(r['leadsUpdated'] for r in results.values())
        logger.info(f"Delta sync finished for {len(results)} companies, {total} leads updated")
        return results

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start_polling(self, interval_minutes: int = 5, scheduler=None):
        """Sync all companies now, then every interval_minutes."""
        from services.scheduler import get_scheduler

        scheduler = scheduler or get_scheduler()
        scheduler.add_job(
            SYNC_JOB_ID,
            self.sync_all_companies,
            interval_seconds=interval_minutes * 60,
            run_immediately=True
        )
        if not scheduler.running:
            scheduler.start()
        logger.info(f"Delta sync polling every {interval_minutes} minutes")
        return scheduler

    def stop_polling(self, scheduler=None):
        from services.scheduler import get_scheduler

        scheduler = scheduler or get_scheduler()
        scheduler.remove_job(SYNC_JOB_ID)
        logger.info("Delta sync polling stopped")


def get_delta_sync_service(config: Optional[Dict] = None) -> DeltaSyncService:
    """Get or create the global delta sync service."""
    global _service
    if _service is None:
        config = config or {}
        _service = DeltaSyncService(
            lookback_days=config.get('SYNC_LOOKBACK_DAYS', 30),
            fetch_limit=config.get('SYNC_FETCH_LIMIT', 1000)
        )
    return _service


def reset_delta_sync_service():
    """Drop the global instance (used by tests and app re-creation)."""
    global _service
    _service = None
