"""Registry for discovering and instantiating record stores."""

from typing import Type

from crm_records.config import StoreSettings
from crm_records.store.base import RecordStore
from crm_records.store.memory_store import InMemoryRecordStore
from crm_records.store.salesforce_store import SalesforceStore


class StoreRegistry:
    """Provides record store backends by name."""

    _stores: dict[str, Type[RecordStore]] = {
        "memory": InMemoryRecordStore,
        "salesforce": SalesforceStore,
    }

    @classmethod
    def get(cls, name: str, **kwargs) -> RecordStore:
        """Get a store instance by name. kwargs passed to the store's __init__."""
        store_cls = cls._stores.get(name.lower())
        if not store_cls:
            raise ValueError(f"Unknown store: {name}. Available: {list(cls._stores.keys())}")
        return store_cls(**kwargs)

    @classmethod
    def available_stores(cls) -> list[str]:
        """Return list of available store names."""
        return list(cls._stores.keys())

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> RecordStore:
        """Build the store selected by `settings`."""
        if settings.store.lower() == "salesforce":
            return cls.get(
                "salesforce",
                instance_url=settings.instance_url,
                access_token=settings.access_token,
                api_version=settings.api_version,
                timeout=settings.timeout,
            )
        return cls.get(settings.store)
