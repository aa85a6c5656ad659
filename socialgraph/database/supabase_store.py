"""Entity store backed by Supabase (PostgREST) tables."""
import logging
from typing import Any, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from socialgraph.core.errors import AlreadyExists
from socialgraph.database.base import EntityStore, Row, Filters

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _filter_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class SupabaseEntityStore(EntityStore):
    def __init__(self, supabase: Client):
        super().__init__()
        self.supabase = supabase

    def _filtered(self, query, filters: Filters):
        for column, value in filters.items():
            query = query.eq(column, _filter_value(value))
        return query

    def _insert(self, table: str, row: Row) -> Row:
        try:
            result = self.supabase.table(table).insert(row).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.debug(f"Unique violation inserting into {table}: {e.message}")
                raise AlreadyExists(f"Duplicate row in {table}")
            raise
        if not result.data:
            raise RuntimeError(f"Insert into {table} returned no data")
        return result.data[0]

    def _select(
        self,
        table: str,
        filters: Filters,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        query = self._filtered(self.supabase.table(table).select("*"), filters)
        if order_by:
            query = query.order(order_by, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        result = query.execute()
        return result.data or []

    def _update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        result = self._filtered(self.supabase.table(table).update(values), filters).execute()
        return result.data or []

    def _delete(self, table: str, filters: Filters) -> List[Row]:
        result = self._filtered(self.supabase.table(table).delete(), filters).execute()
        return result.data or []

    def _count(self, table: str, filters: Filters) -> int:
        result = self._filtered(self.supabase.table(table).select("id", count="exact"), filters).execute()
        return result.count or 0
