"""Record stores: the find/submit collaborator injected into every operation."""

from crm_records.store.base import RecordStore, StoreOperationError, SubmitMode
from crm_records.store.memory_store import InMemoryRecordStore
from crm_records.store.registry import StoreRegistry
from crm_records.store.salesforce_store import SalesforceStore

__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "SalesforceStore",
    "StoreOperationError",
    "StoreRegistry",
    "SubmitMode",
]
