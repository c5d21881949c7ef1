"""Salesforce REST store.

Reads go through the SOQL query endpoint; writes go through the sObject
Collections API with allOrNone=true, so every submit is one atomic call:

- create: POST   /composite/sobjects
- update: PATCH  /composite/sobjects
- upsert: PATCH  /composite/sobjects/{type}/Id
- delete: DELETE /composite/sobjects?ids=...
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import httpx

from crm_records.models.record import CrmRecord, model_for
from crm_records.store.base import RecordStore, StoreOperationError, SubmitMode

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "v59.0"

# sObject Collections limit per request
MAX_BATCH_SIZE = 200

_FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

# Escape sequences SOQL requires inside quoted string literals
_SOQL_ESCAPES = str.maketrans({
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
})


def soql_literal(value: Any) -> str:
    """Render a Python value as a SOQL literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        number = Decimal(repr(value)) if isinstance(value, float) else value
        if not number.is_finite():
            raise ValueError(f"Cannot use {value!r} in SOQL")
        # SOQL has no exponent notation
        return format(number, "f")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return "'" + str(value).translate(_SOQL_ESCAPES) + "'"


def build_soql(
    entity_type: str,
    fields: list[str],
    filters: Optional[dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> str:
    """Build a SELECT with exact-match AND filters."""
    for name in [*fields, *(filters or {})]:
        if not _FIELD_NAME_RE.match(name):
            raise ValueError(f"Invalid field name: {name!r}")
    soql = f"SELECT {', '.join(fields)} FROM {entity_type}"
    if filters:
        clauses = [f"{name} = {soql_literal(value)}" for name, value in filters.items()]
        soql += " WHERE " + " AND ".join(clauses)
    if limit is not None:
        soql += f" LIMIT {int(limit)}"
    return soql


class SalesforceStore(RecordStore):
    """Record store backed by a Salesforce org's REST API."""

    name = "salesforce"

    def __init__(
        self,
        instance_url: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            instance_url: Org base URL, e.g. https://example.my.salesforce.com
            access_token: OAuth bearer token
            api_version: REST API version segment, e.g. v59.0
            timeout: Request timeout in seconds
            client: Optional httpx client (tests inject one with a mock transport)
        """
        if not instance_url or not access_token:
            raise ValueError("SalesforceStore requires instance_url and access_token")
        self.instance_url = instance_url.rstrip("/")
        self.api_version = api_version
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def data_path(self) -> str:
        return f"/services/data/{self.api_version}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        entity_type: Optional[str] = None,
        mode: Optional[SubmitMode] = None,
        **kwargs: Any,
    ) -> Any:
        url = path if path.startswith("http") else self.instance_url + path
        try:
            resp = self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.RequestError as e:
            raise StoreOperationError(
                f"{method} {path} failed: {e}",
                entity_type=entity_type,
                mode=mode,
            ) from e

        if resp.status_code >= 400:
            raise StoreOperationError(
                f"{method} {path} returned {resp.status_code}",
                entity_type=entity_type,
                mode=mode,
                payload=_body(resp),
            )
        return _body(resp)

    def find(
        self,
        entity_type: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[CrmRecord]:
        model = model_for(entity_type)
        if limit is not None and limit <= 0:
            return []
        soql = build_soql(model.entity_type, model.query_fields(), filters, limit)
        logger.debug("SOQL: %s", soql)

        rows: list[dict] = []
        payload = self._request(
            "GET", f"{self.data_path}/query", params={"q": soql}, entity_type=model.entity_type
        )
        while True:
            rows.extend(payload.get("records", []))
            next_url = payload.get("nextRecordsUrl")
            if payload.get("done", True) or not next_url:
                break
            payload = self._request("GET", next_url, entity_type=model.entity_type)

        if limit is not None:
            rows = rows[:limit]
        return [model.from_fields(row) for row in rows]

    def _write(self, entity_type: str, records: list[CrmRecord], mode: SubmitMode) -> list[str]:
        if len(records) > MAX_BATCH_SIZE:
            raise ValueError(
                f"Batch of {len(records)} exceeds the {MAX_BATCH_SIZE}-record limit for one atomic call"
            )
        base = f"{self.data_path}/composite/sobjects"

        if mode == SubmitMode.DELETE:
            results = self._request(
                "DELETE",
                base,
                params={"ids": ",".join(r.id for r in records), "allOrNone": "true"},
                entity_type=entity_type,
                mode=mode,
            )
        else:
            body = {
                "allOrNone": True,
                "records": [_collection_record(entity_type, r, mode) for r in records],
            }
            if mode == SubmitMode.CREATE:
                results = self._request("POST", base, json=body, entity_type=entity_type, mode=mode)
            elif mode == SubmitMode.UPDATE:
                results = self._request("PATCH", base, json=body, entity_type=entity_type, mode=mode)
            else:
                results = self._request(
                    "PATCH", f"{base}/{entity_type}/Id", json=body, entity_type=entity_type, mode=mode
                )

        results = results or []
        failed = [r for r in results if not r.get("success")]
        if failed:
            raise StoreOperationError(
                f"{mode.value} {entity_type} rejected",
                entity_type=entity_type,
                mode=mode,
                payload=results,
            )
        if len(results) != len(records):
            raise StoreOperationError(
                f"{mode.value} {entity_type} returned {len(results)} result(s) for {len(records)} record(s)",
                entity_type=entity_type,
                mode=mode,
                payload=results,
            )
        return [r.get("id") or rec.id for r, rec in zip(results, records)]


def _collection_record(entity_type: str, record: CrmRecord, mode: SubmitMode) -> dict[str, Any]:
    data: dict[str, Any] = {"attributes": {"type": entity_type}, **record.to_fields()}
    if record.id:
        data["id" if mode == SubmitMode.UPDATE else "Id"] = record.id
    return data


def _body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
