"""Find-or-create reconciliation and batch upsert operations.

Each operation does its lookups first, mutates records in memory, and
finishes with a single submit. Store failures propagate as
StoreOperationError; a lookup that finds nothing is the "create" branch.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from crm_records.dates import add_months
from crm_records.models.record import Account, Contact, CrmRecord, Opportunity, model_for
from crm_records.store.base import RecordStore, SubmitMode

logger = logging.getLogger(__name__)

CREATED_MARKER = "Created by reconciliation"
UPDATED_MARKER = "Updated by reconciliation"

DEFAULT_STAGE = "Qualification"
DEFAULT_AMOUNT = 10000.0
DEFAULT_CLOSE_MONTHS = 3

NEW_OPPORTUNITY_STAGE = "Prospecting"


def find_one(store: RecordStore, entity_type: str, filters: dict) -> Optional[CrmRecord]:
    """First record matching `filters`, or None. Duplicates on the key are not detected."""
    matches = store.find(entity_type, filters, limit=1)
    return matches[0] if matches else None


def reconcile_account(store: RecordStore, name: str) -> Account:
    """
    Find the account named `name` and mark it updated, or create it marked created.
    Returns the persisted account (id always set).
    """
    account = find_one(store, "Account", {"Name": name})
    if account is not None:
        account.description = UPDATED_MARKER
        store.submit("Account", [account], SubmitMode.UPDATE)
        logger.info("Updated account %r (%s)", name, account.id)
    else:
        account = Account(name=name, description=CREATED_MARKER)
        store.submit("Account", [account], SubmitMode.CREATE)
        logger.info("Created account %r (%s)", name, account.id)
    return account


def link_contacts(
    store: RecordStore,
    contacts: Sequence[Contact],
    *,
    dedupe: bool = True,
) -> list[Contact]:
    """
    Reconcile each contact's parent account by `account_name`, set AccountId,
    then upsert all contacts in one call.

    With dedupe (default) each distinct account name is reconciled once per batch.
    With dedupe=False every contact triggers its own reconciliation, so a repeated
    name is looked up (and re-marked) again.
    """
    contacts = list(contacts)
    unkeyed = [i for i, c in enumerate(contacts) if not c.account_name]
    if unkeyed:
        raise ValueError(f"Contacts at positions {unkeyed} have no account_name")

    resolved: dict[str, str] = {}
    for contact in contacts:
        key = contact.account_name
        if dedupe and key in resolved:
            contact.account_id = resolved[key]
            continue
        account = reconcile_account(store, key)
        resolved[key] = account.id
        contact.account_id = account.id

    store.submit("Contact", contacts, SubmitMode.UPSERT)
    logger.info(
        "Linked %d contact(s) to %d account(s)", len(contacts), len(set(resolved.values()))
    )
    return contacts


def apply_opportunity_defaults(
    store: RecordStore,
    opportunities: Sequence[Opportunity],
    *,
    today: Optional[date] = None,
) -> list[Opportunity]:
    """Overwrite stage, close date and amount on every opportunity, new or existing, then upsert."""
    today = today or date.today()
    close_date = add_months(today, DEFAULT_CLOSE_MONTHS)
    opportunities = list(opportunities)
    for opp in opportunities:
        opp.stage_name = DEFAULT_STAGE
        opp.close_date = close_date
        opp.amount = DEFAULT_AMOUNT

    store.submit("Opportunity", opportunities, SubmitMode.UPSERT)
    logger.info("Applied defaults to %d opportunity(ies)", len(opportunities))
    return opportunities


def upsert_opportunities_by_name(
    store: RecordStore,
    account_name: str,
    opportunity_names: Sequence[str],
    *,
    today: Optional[date] = None,
    dedupe: bool = True,
) -> list[Opportunity]:
    """
    Ensure one opportunity per name under the named account.

    The account is created bare if missing. Existing opportunities (same Name and
    AccountId) are queued unchanged; missing ones are built as Prospecting, closing
    today. Everything queued goes out in one upsert.

    Names repeated within one call are queued once with dedupe (default). With
    dedupe=False each repeat is queued separately; since nothing is written until
    the end, a repeated new name produces that many new opportunities.
    """
    today = today or date.today()
    account = find_one(store, "Account", {"Name": account_name})
    if account is None:
        account = Account(name=account_name)
        store.submit("Account", [account], SubmitMode.CREATE)
        logger.info("Created account %r (%s)", account_name, account.id)

    queued: list[Opportunity] = []
    seen: set[str] = set()
    for name in opportunity_names:
        if dedupe and name in seen:
            continue
        seen.add(name)
        existing = find_one(store, "Opportunity", {"Name": name, "AccountId": account.id})
        if existing is not None:
            queued.append(existing)
        else:
            queued.append(
                Opportunity(
                    name=name,
                    stage_name=NEW_OPPORTUNITY_STAGE,
                    close_date=today,
                    account_id=account.id,
                )
            )

    store.submit("Opportunity", queued, SubmitMode.UPSERT)
    logger.info("Upserted %d opportunity(ies) under %r", len(queued), account_name)
    return queued


def create_then_delete(
    store: RecordStore,
    entity_type: str,
    labels: int | Sequence[str],
    *,
    parent_id: Optional[str] = None,
) -> None:
    """
    Insert records in one call, then delete the same records in a second call.
    `labels` is either a count (records are named "<Type> 1".."<Type> N") or the keys to use.
    """
    model = model_for(entity_type)
    if isinstance(labels, int) and not isinstance(labels, bool):
        if labels < 0:
            raise ValueError("count must be non-negative")
        labels = [f"{model.entity_type} {i}" for i in range(1, labels + 1)]

    records = [model.stub(label, parent_id) for label in labels]
    store.submit(model.entity_type, records, SubmitMode.CREATE)
    store.submit(model.entity_type, records, SubmitMode.DELETE)
    logger.info("Created and deleted %d %s record(s)", len(records), model.entity_type)
