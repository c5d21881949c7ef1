"""Pytest fixtures for crm-records tests."""

from datetime import date

import pytest

from crm_records.models import Account, Opportunity
from crm_records.store import InMemoryRecordStore, SubmitMode


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def today() -> date:
    """Fixed call date so date defaults are deterministic."""
    return date(2026, 10, 17)


@pytest.fixture
def acme(store: InMemoryRecordStore) -> Account:
    """Persisted account named Acme."""
    account = Account(name="Acme", description="seeded")
    store.submit("Account", [account], SubmitMode.CREATE)
    return account


@pytest.fixture
def acme_opportunity(store: InMemoryRecordStore, acme: Account) -> Opportunity:
    """Persisted opportunity 'Renewal' under Acme."""
    opp = Opportunity(
        name="Renewal",
        stage_name="Negotiation",
        close_date=date(2026, 12, 1),
        amount=500.0,
        account_id=acme.id,
    )
    store.submit("Opportunity", [opp], SubmitMode.CREATE)
    return opp
