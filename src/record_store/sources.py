"""
Record Sources

Read-only access to tenant-scoped business records. The feature extractor
depends only on the RecordSource protocol; concrete sources here serve
in-memory collections and JSON exports held in cloud or local storage.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import pandas as pd

from src.feature_engineering.extraction.periods import parse_date

logger = logging.getLogger(__name__)

ENTITY_DATE_FIELDS = {
    'invoices': 'issue_date',
    'transactions': 'date',
}


class RecordSource(Protocol):
    """Interface the persistent store must satisfy."""

    def fetch_invoices(self, tenant_id: str, start: pd.Timestamp, end: pd.Timestamp) -> List[Dict[str, Any]]:
        ...

    def fetch_transactions(self, tenant_id: str, start: pd.Timestamp, end: pd.Timestamp) -> List[Dict[str, Any]]:
        ...

    def fetch_projects(self, tenant_id: str, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    def fetch_customers(self, tenant_id: str) -> List[Dict[str, Any]]:
        ...


def filter_by_date_range(records: List[Dict[str, Any]], date_field: str,
                         start: Optional[pd.Timestamp], end: Optional[pd.Timestamp]) -> List[Dict[str, Any]]:
    """
    Keep records whose date lies in [start, end].

    Records with missing or unparsable dates are passed through so the
    extractor can count and skip them.
    """
    selected = []
    for record in records:
        ts = parse_date(record.get(date_field))
        if ts is not None:
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue
        selected.append(record)
    return selected


class InMemoryRecordSource:
    """
    Record source over a nested mapping:
    ``{tenant_id: {'invoices': [...], 'transactions': [...], 'projects': [...], 'customers': [...]}}``
    """

    def __init__(self, records: Dict[str, Dict[str, List[Dict[str, Any]]]] = None):
        self.records = records or {}

    def _entities(self, tenant_id: str, entity: str) -> List[Dict[str, Any]]:
        return list(self.records.get(tenant_id, {}).get(entity, []))

    def fetch_invoices(self, tenant_id, start, end):
        return filter_by_date_range(self._entities(tenant_id, 'invoices'), 'issue_date', start, end)

    def fetch_transactions(self, tenant_id, start, end):
        return filter_by_date_range(self._entities(tenant_id, 'transactions'), 'date', start, end)

    def fetch_projects(self, tenant_id, project_id=None):
        projects = self._entities(tenant_id, 'projects')
        if project_id is not None:
            projects = [p for p in projects if p.get('id') == project_id]
        return projects

    def fetch_customers(self, tenant_id):
        return self._entities(tenant_id, 'customers')


class StorageRecordSource(InMemoryRecordSource):
    """
    Record source reading ``<tenant_id>/<entity>.json`` exports through a
    StorageHandler. Documents are loaded lazily, once per tenant and entity.
    """

    def __init__(self, storage):
        super().__init__()
        self.storage = storage

    def _entities(self, tenant_id, entity):
        tenant_records = self.records.setdefault(tenant_id, {})
        if entity not in tenant_records:
            key = f"{tenant_id}/{entity}.json"
            if not self.storage.exists(key):
                logger.warning(f"No {entity} export found for tenant {tenant_id} ({key})")
                tenant_records[entity] = []
            else:
                payload = self.storage.download_json(key)
                if not isinstance(payload, list):
                    logger.warning(f"Ignoring {key}: expected a list of {entity}, "
                                   f"got {type(payload).__name__}")
                    payload = []
                tenant_records[entity] = payload
                logger.info(f"Loaded {len(payload)} {entity} for tenant {tenant_id} "
                            f"({self.storage.get_last_mode()})")
        return list(tenant_records[entity])
