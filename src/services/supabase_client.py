"""Supabase client wrapper with async context manager support."""

import os
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def _apply_filters(query, filters: Optional[dict[str, Any]] = None, exclude: Optional[dict[str, Any]] = None):
    for column, value in (filters or {}).items():
        if value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    for column, value in (exclude or {}).items():
        query = query.neq(column, value)
    return query


# Generic operations. Every table access in the services goes through these.
async def fetch_by_id(table: str, row_id: str, id_column: str = "id") -> Optional[dict]:
    """Read one row by primary key."""
    async with SupabaseClient() as client:
        try:
            result = client.table(table).select("*").eq(id_column, row_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to get {table} row {row_id}: {e}")
    return result.data[0] if result.data else None


async def fetch_where(
    table: str,
    filters: Optional[dict[str, Any]] = None,
    exclude: Optional[dict[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> list[dict]:
    """Read rows matching equality filters (None matches NULL)."""
    async with SupabaseClient() as client:
        try:
            query = _apply_filters(client.table(table).select("*"), filters, exclude)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit:
                query = query.limit(limit)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to query {table}: {e}")
    return result.data if result.data else []


async def insert_row(table: str, data: dict) -> dict:
    """Insert one row and return it as stored."""
    async with SupabaseClient() as client:
        try:
            result = client.table(table).insert(data).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to create {table} row: {e}")
    if result.data and len(result.data) > 0:
        return result.data[0]
    raise SupabaseError(f"Failed to create {table} row: no data returned")


async def insert_rows(table: str, rows: list[dict]) -> list[dict]:
    """Bulk insert."""
    if not rows:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table(table).insert(rows).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to create {table} rows: {e}")
    return result.data if result.data else []


async def update_by_id(table: str, row_id: str, updates: dict, id_column: str = "id") -> dict:
    """Update one row by primary key and return it."""
    async with SupabaseClient() as client:
        try:
            result = client.table(table).update(updates).eq(id_column, row_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update {table} row {row_id}: {e}")
    if result.data and len(result.data) > 0:
        return result.data[0]
    raise SupabaseError(f"Failed to update {table} row {row_id}: no data returned")


async def delete_where(table: str, filters: dict[str, Any]) -> int:
    """Delete matching rows. Refuses an empty filter."""
    if not filters:
        raise SupabaseError(f"Refusing to delete from {table} without a filter")
    async with SupabaseClient() as client:
        try:
            result = _apply_filters(client.table(table).delete(), filters).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete from {table}: {e}")
    return len(result.data) if result.data else 0


async def count_rows(
    table: str,
    filters: Optional[dict[str, Any]] = None,
    exclude: Optional[dict[str, Any]] = None,
) -> int:
    """Count rows matching the filters."""
    async with SupabaseClient() as client:
        try:
            query = _apply_filters(client.table(table).select("id", count="exact"), filters, exclude)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to count {table}: {e}")
    if result.count is not None:
        return result.count
    return len(result.data) if result.data else 0


# Buyers table operations
async def get_buyer_row(buyer_id: str) -> Optional[dict]:
    return await fetch_by_id("buyers", buyer_id)


async def update_buyer_row(buyer_id: str, updates: dict) -> dict:
    return await update_by_id("buyers", buyer_id, updates)


# Conversation items table operations
async def insert_conversation_row(row: dict) -> dict:
    return await insert_row("conversation_items", row)


async def update_conversation_row(item_id: str, updates: dict) -> dict:
    return await update_by_id("conversation_items", item_id, updates)


async def get_conversation_rows(buyer_id: str) -> list[dict]:
    return await fetch_where("conversation_items", {"buyer_id": buyer_id}, order_by="created_at")
