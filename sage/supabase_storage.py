"""
Supabase-backed storage for Sage.
Each Sage table maps 1:1 to a Postgres table of the same name.
"""
import logging
import time
from datetime import datetime

from supabase import create_client, Client

from .config import SUPABASE_URL, SUPABASE_SERVICE_KEY
from .storage import Storage

logger = logging.getLogger(__name__)

# Postgres constraint violations are never retried
NON_RETRYABLE_CODES = {'23505', '23503', '23514'}
TRANSIENT_MARKERS = ('timeout', 'ECONNRESET', 'ENOTFOUND', 'endpoint is disabled', 'Connection reset')


def _is_transient(error):
    code = str(getattr(error, 'code', '') or '')
    if code in NON_RETRYABLE_CODES:
        return False
    if code == 'XX000':
        return True
    message = str(error)
    return any(marker in message for marker in TRANSIENT_MARKERS)


def with_retry(operation, max_retries=3, base_delay=1.0, sleep=time.sleep):
    """Run operation(), retrying transient failures with exponential backoff."""
    for attempt in range(1, max_retries + 1):
        try:
            return operation()
        except Exception as e:
            if attempt >= max_retries or not _is_transient(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("Database operation failed (attempt %d/%d), retrying in %.1fs: %s",
                           attempt, max_retries, delay, e)
            sleep(delay)


def _to_wire(record):
    out = {}
    for key, value in record.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, list):
            value = [_to_wire(v) if isinstance(v, dict) else v for v in value]
        elif isinstance(value, dict):
            value = _to_wire(value)
        out[key] = value
    return out


class SupabaseStorage(Storage):
    """Storage over Supabase tables (service key, full access)."""

    def __init__(self, client: Client = None, max_retries=3, base_delay=1.0):
        self._client = client
        self.max_retries = max_retries
        self.base_delay = base_delay

    @property
    def client(self) -> Client:
        if self._client is None:
            if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
                raise RuntimeError("Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_SERVICE_KEY in .env")
            self._client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        return self._client

    def _run(self, build_query):
        result = with_retry(lambda: build_query().execute(),
                            max_retries=self.max_retries, base_delay=self.base_delay)
        return result.data or []

    def _insert(self, table, record):
        payload = _to_wire({k: v for k, v in record.items() if not (k == "id" and v is None)})
        rows = self._run(lambda: self.client.table(table).insert(payload))
        if not rows:
            raise RuntimeError(f"Insert into {table} returned no rows")
        return rows[0]

    def _get(self, table, record_id):
        rows = self._run(lambda: self.client.table(table).select('*').eq('id', record_id))
        return rows[0] if rows else None

    def _select(self, table, filters=None, in_filter=None):
        def build():
            query = self.client.table(table).select('*')
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if in_filter:
                query = query.in_(in_filter[0], list(in_filter[1]))
            return query
        return self._run(build)

    def _update(self, table, record_id, updates):
        payload = _to_wire(updates)
        rows = self._run(lambda: self.client.table(table).update(payload).eq('id', record_id))
        return rows[0] if rows else None

    def _delete(self, table, record_id):
        rows = self._run(lambda: self.client.table(table).delete().eq('id', record_id))
        return bool(rows)
