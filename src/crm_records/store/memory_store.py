"""In-memory record store for tests and dry runs."""

import itertools
from datetime import date
from typing import Any, Callable, Optional

from crm_records.models.record import CrmRecord, model_for
from crm_records.store.base import RecordStore, StoreOperationError, SubmitMode

# (entity_type, record) -> error message, or None to accept
ValidationRule = Callable[[str, CrmRecord], Optional[str]]


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store with platform-shaped ids and all-or-nothing submits.
    Every write is appended to `write_log` as (entity_type, mode, ids).
    """

    name = "memory"

    ID_PREFIXES = {
        "Account": "001",
        "Contact": "003",
        "Opportunity": "006",
        "Lead": "00Q",
        "Case": "500",
    }

    def __init__(self, rules: Optional[list[ValidationRule]] = None):
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._counter = itertools.count(1)
        self._rules: list[ValidationRule] = list(rules or [])
        self.write_log: list[tuple[str, SubmitMode, list[str]]] = []

    def add_rule(self, rule: ValidationRule) -> None:
        """Register a validation rule checked on create/update/upsert."""
        self._rules.append(rule)

    def count(self, entity_type: str) -> int:
        return len(self._tables.get(model_for(entity_type).entity_type, {}))

    def _next_id(self, entity_type: str) -> str:
        prefix = self.ID_PREFIXES.get(entity_type, "a00")
        return f"{prefix}{next(self._counter):015d}"

    def find(
        self,
        entity_type: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[CrmRecord]:
        model = model_for(entity_type)
        wanted = {k: _normalize(v) for k, v in (filters or {}).items()}
        results: list[CrmRecord] = []
        for row in self._tables.get(model.entity_type, {}).values():
            if limit is not None and len(results) >= limit:
                break
            if all(row.get(k) == v for k, v in wanted.items()):
                results.append(model.from_fields(dict(row)))
        return results

    def _write(self, entity_type: str, records: list[CrmRecord], mode: SubmitMode) -> list[str]:
        table = self._tables.get(entity_type, {})
        errors = []
        for index, record in enumerate(records):
            if record.id and record.id not in table:
                errors.append({
                    "index": index,
                    "statusCode": "ENTITY_IS_DELETED" if mode == SubmitMode.DELETE else "INVALID_CROSS_REFERENCE_KEY",
                    "message": f"No {entity_type} with id {record.id}",
                })
                continue
            if mode == SubmitMode.DELETE:
                continue
            for rule in self._rules:
                message = rule(entity_type, record)
                if message:
                    errors.append({
                        "index": index,
                        "statusCode": "FIELD_CUSTOM_VALIDATION_EXCEPTION",
                        "message": message,
                    })
        if errors:
            raise StoreOperationError(
                f"{mode.value} {entity_type} rejected",
                entity_type=entity_type,
                mode=mode,
                payload=errors,
            )

        # all checks passed: apply to a copy, then swap it in
        staged = {k: dict(v) for k, v in table.items()}
        ids: list[str] = []
        for record in records:
            if mode == SubmitMode.DELETE:
                staged.pop(record.id, None)
                ids.append(record.id)
            elif record.id:
                staged[record.id].update(record.to_fields())
                ids.append(record.id)
            else:
                new_id = self._next_id(entity_type)
                staged[new_id] = {"Id": new_id, **record.to_fields()}
                ids.append(new_id)
        self._tables[entity_type] = staged
        self.write_log.append((entity_type, mode, ids))
        return ids


def _normalize(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value
