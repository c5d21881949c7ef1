"""Abstract record store: the two primitives every operation is built on."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Optional

from crm_records.models.record import CrmRecord, model_for

logger = logging.getLogger(__name__)


class SubmitMode(str, Enum):
    """Persistence mode for a submit call."""

    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


class StoreOperationError(Exception):
    """A store call failed. `payload` is the store's own diagnostic, unmodified."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: Optional[str] = None,
        mode: Optional[SubmitMode] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.entity_type = entity_type
        self.mode = mode
        self.payload = payload


class RecordStore(ABC):
    """
    Standard interface for a remote record store.
    Implementations provide find (exact-match filter query) and _write (one atomic call);
    submit validates arguments and writes assigned ids back onto the caller's records.
    """

    name: str = "base"

    @abstractmethod
    def find(
        self,
        entity_type: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[CrmRecord]:
        """
        Return records of `entity_type` whose fields equal every filter value.
        Filter keys are platform field names; matching is exact and case-sensitive.
        """
        pass

    @abstractmethod
    def _write(self, entity_type: str, records: list[CrmRecord], mode: SubmitMode) -> list[str]:
        """
        Persist all records in one all-or-nothing call. Returns ids in input order.
        """
        pass

    def submit(
        self,
        entity_type: str,
        records: Iterable[CrmRecord],
        mode: SubmitMode | str,
    ) -> list[CrmRecord]:
        """
        Create, update, upsert or delete `records` as one call.
        On create/upsert the assigned ids are set on the given instances, which are returned.
        """
        mode = SubmitMode(mode)
        model = model_for(entity_type)
        records = list(records)
        if not records:
            return records
        _check_submit_args(model, records, mode)

        logger.debug("%s %d %s record(s) via %s", mode.value, len(records), model.entity_type, self.name)
        ids = self._write(model.entity_type, records, mode)
        if len(ids) != len(records):
            raise StoreOperationError(
                f"{mode.value} {model.entity_type} returned {len(ids)} result(s) for {len(records)} record(s)",
                entity_type=model.entity_type,
                mode=mode,
                payload=ids,
            )
        if mode in (SubmitMode.CREATE, SubmitMode.UPSERT):
            for record, record_id in zip(records, ids):
                record.id = record_id
        return records

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name}>"


def _check_submit_args(model: type[CrmRecord], records: list[CrmRecord], mode: SubmitMode) -> None:
    for record in records:
        if not isinstance(record, model):
            raise ValueError(
                f"Expected {model.entity_type} records, got {type(record).__name__}"
            )
        if mode in (SubmitMode.UPDATE, SubmitMode.DELETE) and not record.id:
            raise ValueError(f"{mode.value} requires every record to have an id")
        if mode == SubmitMode.CREATE and record.id:
            raise ValueError(f"create given a record that already has id {record.id}")
