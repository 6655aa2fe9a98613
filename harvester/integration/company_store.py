"""Company storage collaborator.

The pipeline upserts through the narrow ``CompanyRepository`` protocol:
look a company up by exact name, insert a new row, or update fields of an
existing row. Rows are plain dicts with the keys ``id``, ``name``,
``address``, ``coordinates``, ``services``, ``prices``, ``contact``,
``created_at`` and ``updated_at``.

``InMemoryCompanyRepository`` keeps rows in process memory; it is used when
no relational store is wired in and by the test suite.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol
from uuid import uuid4


class CompanyRepository(Protocol):
    async def find_by_name(self, name: str) -> dict[str, Any] | None: ...

    async def insert(self, record: dict[str, Any]) -> str: ...

    async def update(self, record_id: str, fields: dict[str, Any]) -> None: ...


class InMemoryCompanyRepository:
    """Dict-backed ``CompanyRepository``."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def find_by_name(self, name: str) -> dict[str, Any] | None:
        for row in self._rows.values():
            if row["name"] == name:
                return copy.deepcopy(row)
        return None

    async def insert(self, record: dict[str, Any]) -> str:
        record_id = str(uuid4())
        self._rows[record_id] = {**copy.deepcopy(record), "id": record_id}
        return record_id

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        if record_id not in self._rows:
            raise KeyError(f"Company '{record_id}' not found")
        self._rows[record_id].update(copy.deepcopy(fields))

    def all(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._rows.values()]

    def __len__(self) -> int:
        return len(self._rows)
