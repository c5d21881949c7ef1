"""Unit tests for find-or-create reconciliation and batch upserts."""

from datetime import date

import pytest

from crm_records.models import Account, Contact, Opportunity
from crm_records.reconcile import (
    CREATED_MARKER,
    DEFAULT_AMOUNT,
    DEFAULT_STAGE,
    NEW_OPPORTUNITY_STAGE,
    UPDATED_MARKER,
    apply_opportunity_defaults,
    create_then_delete,
    link_contacts,
    reconcile_account,
    upsert_opportunities_by_name,
)
from crm_records.store import InMemoryRecordStore, StoreOperationError, SubmitMode


def _account_writes(store: InMemoryRecordStore) -> list[SubmitMode]:
    return [mode for entity_type, mode, _ in store.write_log if entity_type == "Account"]


class TestReconcileAccount:
    """Tests for reconcile_account."""

    def test_creates_when_missing(self, store: InMemoryRecordStore) -> None:
        """A new account gets an id and the created marker."""
        account = reconcile_account(store, "Acme")
        assert account.id is not None
        assert account.description == CREATED_MARKER
        assert store.find("Account", {"Name": "Acme"})[0].description == CREATED_MARKER

    def test_second_call_keeps_id_and_marks_updated(self, store: InMemoryRecordStore) -> None:
        """Same id, updated marker, still one record."""
        first = reconcile_account(store, "Acme")
        second = reconcile_account(store, "Acme")
        assert second.id == first.id
        assert second.description == UPDATED_MARKER
        assert store.count("Account") == 1
        assert _account_writes(store) == [SubmitMode.CREATE, SubmitMode.UPDATE]

    def test_updates_existing_account(self, store: InMemoryRecordStore, acme: Account) -> None:
        """A pre-existing account is found by exact name."""
        account = reconcile_account(store, "Acme")
        assert account.id == acme.id
        assert account.description == UPDATED_MARKER

    def test_name_match_is_case_sensitive(self, store: InMemoryRecordStore, acme: Account) -> None:
        """'ACME' is a different key from 'Acme'."""
        account = reconcile_account(store, "ACME")
        assert account.id != acme.id
        assert store.count("Account") == 2


class TestLinkContacts:
    """Tests for link_contacts."""

    def _contacts(self) -> list[Contact]:
        return [
            Contact(last_name="Doe", account_name="Acme"),
            Contact(last_name="Roe", account_name="Acme"),
            Contact(last_name="Poe", account_name="Globex"),
        ]

    def test_every_contact_gets_parent(self, store: InMemoryRecordStore) -> None:
        """All contacts are linked and persisted; one account per distinct name."""
        contacts = link_contacts(store, self._contacts())
        assert all(c.account_id for c in contacts)
        assert all(c.id for c in contacts)
        assert len({c.account_id for c in contacts}) == 2
        assert contacts[0].account_id == contacts[1].account_id
        assert store.count("Account") == 2
        assert store.count("Contact") == 3

    def test_dedupe_reconciles_each_name_once(self, store: InMemoryRecordStore) -> None:
        """Two distinct names means two account writes."""
        link_contacts(store, self._contacts())
        assert _account_writes(store) == [SubmitMode.CREATE, SubmitMode.CREATE]

    def test_without_dedupe_reconciles_per_contact(self, store: InMemoryRecordStore) -> None:
        """Each contact triggers its own reconciliation; the repeat finds the new account."""
        contacts = link_contacts(store, self._contacts(), dedupe=False)
        assert _account_writes(store) == [SubmitMode.CREATE, SubmitMode.UPDATE, SubmitMode.CREATE]
        assert len({c.account_id for c in contacts}) == 2
        assert store.count("Account") == 2

    def test_contacts_submitted_in_one_upsert(self, store: InMemoryRecordStore) -> None:
        """Contacts are written in a single call."""
        link_contacts(store, self._contacts())
        contact_writes = [w for w in store.write_log if w[0] == "Contact"]
        assert len(contact_writes) == 1
        assert contact_writes[0][1] == SubmitMode.UPSERT

    def test_existing_contact_is_updated(self, store: InMemoryRecordStore, acme: Account) -> None:
        """Contacts that already have ids are updated, not duplicated."""
        existing = Contact(last_name="Doe")
        store.submit("Contact", [existing], SubmitMode.CREATE)
        existing.account_name = "Acme"
        link_contacts(store, [existing])
        assert store.count("Contact") == 1
        assert store.find("Contact", {"Id": existing.id})[0].account_id == acme.id

    def test_missing_account_name_raises_before_writes(self, store: InMemoryRecordStore) -> None:
        """Unkeyed contacts are refused up front."""
        contacts = [Contact(last_name="Doe", account_name="Acme"), Contact(last_name="Roe")]
        with pytest.raises(ValueError, match=r"positions \[1\]"):
            link_contacts(store, contacts)
        assert store.write_log == []

    def test_account_rejection_mid_batch_persists_no_contacts(self, store: InMemoryRecordStore) -> None:
        """If a parent cannot be created, no contact is written, not even ones already linked."""
        store.add_rule(lambda t, r: "Blocked name" if t == "Account" and r.name == "Globex" else None)
        contacts = self._contacts()
        with pytest.raises(StoreOperationError) as exc_info:
            link_contacts(store, contacts)
        assert exc_info.value.entity_type == "Account"
        assert store.count("Contact") == 0
        assert all(c.id is None for c in contacts)
        assert contacts[2].account_id is None
        assert [w[0] for w in store.write_log] == ["Account"]

    def test_store_rejection_propagates(self) -> None:
        """A rejected contact batch fails the call and persists no contacts."""
        store = InMemoryRecordStore(
            rules=[lambda t, r: "Email required" if t == "Contact" and not r.email else None]
        )
        with pytest.raises(StoreOperationError) as exc_info:
            link_contacts(store, [Contact(last_name="Doe", account_name="Acme")])
        assert exc_info.value.payload[0]["message"] == "Email required"
        assert store.count("Contact") == 0


class TestApplyOpportunityDefaults:
    """Tests for apply_opportunity_defaults."""

    def test_defaults_applied_to_new_and_existing(
        self, store: InMemoryRecordStore, acme: Account, acme_opportunity: Opportunity, today: date
    ) -> None:
        """Stage, amount and close date are overwritten on every record."""
        new_opp = Opportunity(name="Expansion", account_id=acme.id, stage_name="Closed Won", amount=1.0)
        opps = apply_opportunity_defaults(store, [acme_opportunity, new_opp], today=today)

        assert len(opps) == 2
        for opp in store.find("Opportunity", {"AccountId": acme.id}):
            assert opp.stage_name == DEFAULT_STAGE
            assert opp.amount == DEFAULT_AMOUNT
            assert opp.close_date == date(2027, 1, 17)
        assert new_opp.id is not None
        assert store.count("Opportunity") == 2

    def test_close_date_clamped_at_month_end(self, store: InMemoryRecordStore) -> None:
        """Nov 30 + 3 months is Feb 28."""
        opp = Opportunity(name="Deal")
        apply_opportunity_defaults(store, [opp], today=date(2026, 11, 30))
        assert opp.close_date == date(2027, 2, 28)

    def test_single_upsert_call(self, store: InMemoryRecordStore, today: date) -> None:
        """All records go out together."""
        apply_opportunity_defaults(store, [Opportunity(name="A"), Opportunity(name="B")], today=today)
        assert [(t, m) for t, m, _ in store.write_log] == [("Opportunity", SubmitMode.UPSERT)]


class TestUpsertOpportunitiesByName:
    """Tests for upsert_opportunities_by_name."""

    def test_creates_bare_account_and_new_opportunities(self, store: InMemoryRecordStore, today: date) -> None:
        """Missing account is created with only its name; new opps get Prospecting/today."""
        queued = upsert_opportunities_by_name(store, "Initech", ["Pilot", "Rollout"], today=today)

        account = store.find("Account", {"Name": "Initech"})[0]
        assert account.description is None
        assert [o.name for o in queued] == ["Pilot", "Rollout"]
        for opp in queued:
            assert opp.id is not None
            assert opp.account_id == account.id
            assert opp.stage_name == NEW_OPPORTUNITY_STAGE
            assert opp.close_date == today

    def test_repeat_call_creates_no_duplicates(self, store: InMemoryRecordStore, today: date) -> None:
        """Calling twice with the same names keeps the count constant."""
        first = upsert_opportunities_by_name(store, "Initech", ["Pilot", "Rollout"], today=today)
        second = upsert_opportunities_by_name(store, "Initech", ["Pilot", "Rollout"], today=today)
        assert store.count("Opportunity") == 2
        assert [o.id for o in second] == [o.id for o in first]
        assert store.count("Account") == 1

    def test_existing_opportunity_queued_unmodified(
        self, store: InMemoryRecordStore, acme: Account, acme_opportunity: Opportunity, today: date
    ) -> None:
        """A match keeps its own stage and close date."""
        queued = upsert_opportunities_by_name(store, "Acme", ["Renewal"], today=today)
        assert queued[0].id == acme_opportunity.id
        assert queued[0].stage_name == "Negotiation"
        assert queued[0].close_date == date(2026, 12, 1)
        assert store.find("Account", {"Name": "Acme"})[0].description == "seeded"

    def test_match_requires_same_account(
        self, store: InMemoryRecordStore, acme_opportunity: Opportunity, today: date
    ) -> None:
        """Same name under another account is a different opportunity."""
        queued = upsert_opportunities_by_name(store, "Globex", ["Renewal"], today=today)
        assert queued[0].id != acme_opportunity.id
        assert store.count("Opportunity") == 2

    def test_repeated_name_deduped_by_default(self, store: InMemoryRecordStore, today: date) -> None:
        """['Big Deal', 'Big Deal'] queues one record."""
        queued = upsert_opportunities_by_name(store, "Fresh Co", ["Big Deal", "Big Deal"], today=today)
        assert len(queued) == 1
        assert store.count("Opportunity") == 1

    def test_repeated_name_without_dedupe_creates_both(self, store: InMemoryRecordStore, today: date) -> None:
        """Without dedupe both queued records are new, since neither exists at lookup time."""
        queued = upsert_opportunities_by_name(
            store, "Fresh Co", ["Big Deal", "Big Deal"], today=today, dedupe=False
        )
        assert [o.name for o in queued] == ["Big Deal", "Big Deal"]
        assert queued[0].id != queued[1].id
        assert store.count("Opportunity") == 2


class TestCreateThenDelete:
    """Tests for create_then_delete."""

    def test_count_leaves_no_records(self, store: InMemoryRecordStore) -> None:
        """Created records are all deleted again."""
        assert create_then_delete(store, "Account", 3) is None
        assert store.count("Account") == 0
        (_, create_mode, created), (_, delete_mode, deleted) = store.write_log
        assert create_mode == SubmitMode.CREATE
        assert delete_mode == SubmitMode.DELETE
        assert len(created) == 3
        assert created == deleted

    def test_labels_with_parent(self, store: InMemoryRecordStore, acme: Account) -> None:
        """Labelled children linked to a parent are written then removed."""
        create_then_delete(store, "Contact", ["Doe", "Roe"], parent_id=acme.id)
        assert store.count("Contact") == 0
        assert store.count("Account") == 1
        assert len(store.write_log[-1][2]) == 2

    def test_exercises_validation_rules(self) -> None:
        """Store rules fire on the create path."""
        store = InMemoryRecordStore(rules=[lambda t, r: "blocked" if t == "Case" else None])
        with pytest.raises(StoreOperationError):
            create_then_delete(store, "Case", ["Broken"])
        assert store.count("Case") == 0

    def test_lead_with_parent_raises(self, store: InMemoryRecordStore) -> None:
        """Leads cannot be linked to a parent."""
        with pytest.raises(ValueError, match="no parent link"):
            create_then_delete(store, "Lead", 1, parent_id="001A")

    def test_negative_count_raises(self, store: InMemoryRecordStore) -> None:
        """Counts must be non-negative."""
        with pytest.raises(ValueError, match="non-negative"):
            create_then_delete(store, "Account", -1)
