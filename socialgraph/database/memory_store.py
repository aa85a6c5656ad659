"""Thread-safe in-process entity store (tests and single-instance deployments)."""
import copy
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from socialgraph.core.errors import AlreadyExists
from socialgraph.database.base import EntityStore, Row, Filters, UNIQUE_KEYS

logger = logging.getLogger(__name__)


class MemoryEntityStore(EntityStore):
    def __init__(self):
        super().__init__()
        # Reentrant so a transaction can hold it across its own writes
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[str, Row]] = {}

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        # Single writer: other threads observe the unit only once it commits or rolls back
        with self._lock:
            with super().transaction() as store:
                yield store

    @staticmethod
    def _matches(row: Row, filters: Filters) -> bool:
        return all(row.get(key) == value for key, value in filters.items())

    def _table(self, table: str) -> Dict[str, Row]:
        return self._tables.setdefault(table, {})

    def _insert(self, table: str, row: Row) -> Row:
        with self._lock:
            rows = self._table(table)
            if row["id"] in rows:
                raise AlreadyExists(f"Duplicate id in {table}")
            unique = UNIQUE_KEYS.get(table)
            if unique:
                key = {column: row.get(column) for column in unique}
                if any(self._matches(existing, key) for existing in rows.values()):
                    raise AlreadyExists(f"Duplicate {', '.join(unique)} in {table}")
            rows[row["id"]] = copy.deepcopy(row)
            return copy.deepcopy(row)

    def _select(
        self,
        table: str,
        filters: Filters,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._table(table).values() if self._matches(r, filters)]
        if order_by:
            if desc:
                # Ties stay newest-inserted first
                rows.reverse()
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=desc)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def _update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        with self._lock:
            updated = []
            for row in self._table(table).values():
                if self._matches(row, filters):
                    row.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(row))
            return updated

    def _delete(self, table: str, filters: Filters) -> List[Row]:
        with self._lock:
            rows = self._table(table)
            doomed = [row_id for row_id, row in rows.items() if self._matches(row, filters)]
            return [rows.pop(row_id) for row_id in doomed]

    def _count(self, table: str, filters: Filters) -> int:
        with self._lock:
            return sum(1 for r in self._table(table).values() if self._matches(r, filters))

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()
            logger.debug("Memory store cleared")
