"""Supabase client wrapper with async context manager support."""

import asyncio
import os
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from rentsync.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

APARTMENTS_TABLE = "apartments"
USERS_TABLE = "users"
NOTIFICATIONS_TABLE = "notifications"
IMPORT_SESSIONS_TABLE = "import_sessions"

# Keeps `in.(...)` filters well under request-URL limits
ID_FILTER_CHUNK_SIZE = 100

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
        """Enter async context."""
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


async def _execute(query) -> Any:
    """Run a blocking postgrest query off the event loop so callers can time out."""
    return await asyncio.to_thread(query.execute)


def _first(result) -> Optional[dict]:
    return result.data[0] if result.data and len(result.data) > 0 else None


def _chunks(ids: list[str]) -> list[list[str]]:
    return [ids[i:i + ID_FILTER_CHUNK_SIZE] for i in range(0, len(ids), ID_FILTER_CHUNK_SIZE)]


# Apartments table operations
async def get_apartment_by_external_id(external_id: str) -> Optional[dict]:
    """Get apartment by source external ID."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(APARTMENTS_TABLE).select("*").eq("external_id", external_id)
            )
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get apartment {external_id}: {e}")


async def create_apartment(apartment_data: dict) -> dict:
    """Create a new apartment."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(client.table(APARTMENTS_TABLE).insert(apartment_data))
            row = _first(result)
            if row:
                return row
            raise SupabaseError("Failed to create apartment: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create apartment: {e}")


async def update_apartment(apartment_id: str, updates: dict) -> dict:
    """Update an apartment."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(APARTMENTS_TABLE).update(updates).eq("id", apartment_id)
            )
            row = _first(result)
            if row:
                return row
            raise SupabaseError(f"Failed to update apartment: {apartment_id}")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to update apartment: {e}")


async def get_stale_apartments(seen_before: str) -> list[dict]:
    """Active apartments not scraped since `seen_before`."""
    async with SupabaseClient() as client:
        try:
            query = (
                client.table(APARTMENTS_TABLE)
                .select("id, external_id, last_scraped")
                .eq("is_active", True)
                .lt("last_scraped", seen_before)
            )
            result = await _execute(query)
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to get stale apartments: {e}")


async def deactivate_apartments(apartment_ids: list[str], updated_at: str) -> None:
    """Soft-delete apartments by flipping is_active."""
    async with SupabaseClient() as client:
        try:
            for chunk in _chunks(apartment_ids):
                await _execute(
                    client.table(APARTMENTS_TABLE)
                    .update({"is_active": False, "updated_at": updated_at})
                    .in_("id", chunk)
                )
        except Exception as e:
            raise SupabaseError(f"Failed to deactivate apartments: {e}")


async def get_apartments_by_ids(apartment_ids: list[str]) -> list[dict]:
    """Get apartments by ID."""
    async with SupabaseClient() as client:
        try:
            rows = []
            for chunk in _chunks(apartment_ids):
                result = await _execute(
                    client.table(APARTMENTS_TABLE).select("*").in_("id", chunk)
                )
                rows.extend(result.data or [])
            return rows
        except Exception as e:
            raise SupabaseError(f"Failed to get apartments: {e}")


async def get_active_apartment_prices() -> list[int]:
    """Prices (cents) of all active apartments."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(APARTMENTS_TABLE).select("price").eq("is_active", True)
            )
            return [row["price"] for row in (result.data or []) if row.get("price") is not None]
        except Exception as e:
            raise SupabaseError(f"Failed to get active apartment prices: {e}")


# Users table operations
async def get_verified_users() -> list[dict]:
    """Get users with a verified phone number."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(USERS_TABLE).select("*").eq("is_verified", True)
            )
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to get verified users: {e}")


# Notifications table operations
async def create_notification(notification_data: dict) -> dict:
    """Record a notification delivery outcome."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(client.table(NOTIFICATIONS_TABLE).insert(notification_data))
            row = _first(result)
            if row:
                return row
            raise SupabaseError("Failed to create notification: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create notification: {e}")


# Import sessions table operations
async def create_import_session(session_data: dict) -> dict:
    """Create a new import session."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(client.table(IMPORT_SESSIONS_TABLE).insert(session_data))
            row = _first(result)
            if row:
                return row
            raise SupabaseError("Failed to create import session: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create import session: {e}")


async def get_import_session(session_id: str) -> Optional[dict]:
    """Get import session by ID."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(IMPORT_SESSIONS_TABLE).select("*").eq("id", session_id)
            )
            return _first(result)
        except Exception as e:
            raise SupabaseError(f"Failed to get import session: {e}")


async def update_import_session(session_id: str, updates: dict) -> dict:
    """Update an import session."""
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(IMPORT_SESSIONS_TABLE).update(updates).eq("id", session_id)
            )
            row = _first(result)
            if row:
                return row
            raise SupabaseError(f"Failed to update import session: {session_id}")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to update import session: {e}")
