"""Single-record examples for each object type."""

import logging
from typing import Optional

from crm_records.models.record import Account, Case, Lead, model_for
from crm_records.reconcile import find_one
from crm_records.store.base import RecordStore, SubmitMode

logger = logging.getLogger(__name__)

NEW_LEAD_STATUS = "Open - Not Contacted"


def create_account(store: RecordStore, name: str, industry: Optional[str] = None) -> Account:
    account = Account(name=name, industry=industry)
    store.submit("Account", [account], SubmitMode.CREATE)
    return account


def rename_account(store: RecordStore, old_name: str, new_name: str) -> Optional[Account]:
    """Rename the account found by `old_name`. Returns None if there is none."""
    account = find_one(store, "Account", {"Name": old_name})
    if account is None:
        logger.info("No account named %r", old_name)
        return None
    account.name = new_name
    store.submit("Account", [account], SubmitMode.UPDATE)
    return account


def create_lead(store: RecordStore, first_name: str, last_name: str, company: str) -> Lead:
    lead = Lead(first_name=first_name, last_name=last_name, company=company, status=NEW_LEAD_STATUS)
    store.submit("Lead", [lead], SubmitMode.CREATE)
    return lead


def escalate_cases(store: RecordStore, account_id: str) -> list[Case]:
    """Set Priority=High on the account's New cases in one update."""
    cases = store.find("Case", {"AccountId": account_id, "Status": "New"})
    for case in cases:
        case.priority = "High"
    if cases:
        store.submit("Case", cases, SubmitMode.UPDATE)
    logger.info("Escalated %d case(s) for account %s", len(cases), account_id)
    return cases


def delete_by_name(store: RecordStore, entity_type: str, name: str) -> int:
    """Delete every record whose natural key equals `name`. Returns how many were deleted."""
    model = model_for(entity_type)
    records = store.find(model.entity_type, {model.key_field(): name})
    if records:
        store.submit(model.entity_type, records, SubmitMode.DELETE)
    return len(records)
