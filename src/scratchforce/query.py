"""SOQL query boundary: records with string-typed field lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .transport import Transport

logger = logging.getLogger(__name__)


class Record(Mapping[str, Any]):
    """One query result row.

    Behaves as a read-only mapping of field name to raw JSON value;
    :meth:`string_field` gives the string view used by the workflows.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = dict(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Record({self._data!r})"

    @property
    def attributes(self) -> dict[str, Any]:
        attrs = self._data.get("attributes")
        return attrs if isinstance(attrs, dict) else {}

    @property
    def sobject_type(self) -> str:
        return str(self.attributes.get("type", ""))

    def string_field(self, name: str) -> str:
        """Field value as a string; missing or null fields return ``""``."""
        value = self._data.get(name)
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return value
        return str(value)


@dataclass(frozen=True, slots=True)
class QueryResult:
    total_size: int
    done: bool
    records: list[Record] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


def query(transport: Transport, soql: str) -> QueryResult:
    """Run a SOQL query, following ``nextRecordsUrl`` until done."""
    payload = transport.request("GET", "query", params={"q": soql}) or {}
    records = [Record(r) for r in payload.get("records", [])]
    total = int(payload.get("totalSize", len(records)))
    done = bool(payload.get("done", True))

    while not done and payload.get("nextRecordsUrl"):
        logger.debug("Fetching next query page: %s", payload["nextRecordsUrl"])
        payload = transport.request("GET", payload["nextRecordsUrl"]) or {}
        records.extend(Record(r) for r in payload.get("records", []))
        done = bool(payload.get("done", True))

    return QueryResult(total_size=total, done=done, records=records)
