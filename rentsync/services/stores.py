"""Persistence interfaces consumed by the pipeline, and their Supabase implementation."""

from typing import Optional, Protocol
from datetime import datetime, timezone
from pydantic import ValidationError

from rentsync.models.import_session import ImportSession
from rentsync.models.listing import PersistedApartment
from rentsync.models.notification import Notification
from rentsync.models.recipient import Recipient
from rentsync.services import supabase_client
from rentsync.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApartmentStore(Protocol):
    """Apartment records; the reconciliation engine is the only writer."""

    async def get_by_external_id(self, external_id: str) -> Optional[PersistedApartment]: ...

    async def create(self, row: dict) -> PersistedApartment: ...

    async def update(self, apartment_id: str, updates: dict) -> PersistedApartment: ...

    async def find_stale(self, exclude_external_ids: list[str], seen_before: datetime) -> list[PersistedApartment]: ...

    async def deactivate(self, apartment_ids: list[str]) -> None: ...

    async def get_by_ids(self, apartment_ids: list[str]) -> list[PersistedApartment]: ...

    async def active_prices(self) -> list[int]: ...


class RecipientStore(Protocol):
    async def verified_recipients(self) -> list[Recipient]: ...


class NotificationStore(Protocol):
    async def record_notification(self, notification: Notification) -> None: ...


class ImportSessionStore(Protocol):
    async def create_session(self, data: dict) -> ImportSession: ...

    async def get_session(self, session_id: str) -> Optional[ImportSession]: ...

    async def update_session(self, session_id: str, updates: dict) -> ImportSession: ...


class SupabaseStore:
    """All pipeline stores backed by Supabase tables."""

    async def get_by_external_id(self, external_id: str) -> Optional[PersistedApartment]:
        row = await supabase_client.get_apartment_by_external_id(external_id)
        return PersistedApartment.model_validate(row) if row else None

    async def create(self, row: dict) -> PersistedApartment:
        return PersistedApartment.model_validate(await supabase_client.create_apartment(row))

    async def update(self, apartment_id: str, updates: dict) -> PersistedApartment:
        return PersistedApartment.model_validate(
            await supabase_client.update_apartment(apartment_id, updates)
        )

    async def find_stale(self, exclude_external_ids: list[str], seen_before: datetime) -> list[PersistedApartment]:
        rows = await supabase_client.get_stale_apartments(seen_before.isoformat())
        excluded = set(exclude_external_ids)
        # Partial rows: only the columns needed to deactivate
        return [
            PersistedApartment.model_construct(
                id=row["id"],
                external_id=row["external_id"],
                last_scraped=row.get("last_scraped"),
                is_active=True,
            )
            for row in rows
            if row["external_id"] not in excluded
        ]

    async def deactivate(self, apartment_ids: list[str]) -> None:
        await supabase_client.deactivate_apartments(apartment_ids, utc_now().isoformat())

    async def get_by_ids(self, apartment_ids: list[str]) -> list[PersistedApartment]:
        rows = await supabase_client.get_apartments_by_ids(apartment_ids)
        return [PersistedApartment.model_validate(row) for row in rows]

    async def active_prices(self) -> list[int]:
        return await supabase_client.get_active_apartment_prices()

    async def verified_recipients(self) -> list[Recipient]:
        recipients = []
        for row in await supabase_client.get_verified_users():
            try:
                recipients.append(Recipient.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed recipient row",
                    user_id=row.get("id"),
                    error_count=e.error_count()
                )
        return recipients

    async def record_notification(self, notification: Notification) -> None:
        await supabase_client.create_notification(notification.model_dump(mode="json"))

    async def create_session(self, data: dict) -> ImportSession:
        return ImportSession.model_validate(await supabase_client.create_import_session(data))

    async def get_session(self, session_id: str) -> Optional[ImportSession]:
        row = await supabase_client.get_import_session(session_id)
        return ImportSession.model_validate(row) if row else None

    async def update_session(self, session_id: str, updates: dict) -> ImportSession:
        return ImportSession.model_validate(
            await supabase_client.update_import_session(session_id, updates)
        )
