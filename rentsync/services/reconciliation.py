"""Reconciliation engine - upsert validated listings into the apartment store.

For every incoming record the engine creates a new apartment, rewrites an
existing one whose tracked fields changed, or only refreshes its
`last_scraped` heartbeat. A failure on one record is recorded in the
SyncResult and the batch continues. Optionally, after the whole batch,
active apartments missing from it and unseen for the grace window are
deactivated.
"""

import asyncio
from typing import Any, Callable, Optional, Sequence
from datetime import date, datetime, timedelta

from rentsync.models.listing import AMENITY_FLAGS, HEALTH_FLAGS, ListingRecord, PersistedApartment, coerce_date
from rentsync.models.sync_result import SyncError, SyncResult
from rentsync.services.import_parser import percent
from rentsync.services.stores import ApartmentStore, utc_now
from rentsync.utils.config import PipelineConfig
from rentsync.utils.ids import generate_record_id
from rentsync.utils.logging import get_structured_logger, get_correlation_id, log_timing

logger = get_structured_logger(__name__)

# images, features and url are deliberately not tracked
SIGNIFICANT_FIELDS = (
    "price", "broker_fee", "security_deposit", "is_no_fee",
    "title", "address", "neighborhood",
    "bedrooms", "bathrooms", "sqft",
    "available_from", "available_to",
    *AMENITY_FLAGS,
    *HEALTH_FLAGS,
    "contact_name", "contact_phone", "contact_email",
    "description",
)

DATE_FIELDS = frozenset({"available_from", "available_to"})

SUMMARY_ERROR_SAMPLE = 3


def _as_date(value: Any) -> Optional[date]:
    value = coerce_date(value)
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def changed_field(existing: PersistedApartment, incoming: ListingRecord) -> Optional[str]:
    """Name of the first tracked field that differs, or None."""
    for field in SIGNIFICANT_FIELDS:
        existing_value = getattr(existing, field)
        incoming_value = getattr(incoming, field)

        if field in DATE_FIELDS:
            existing_value = _as_date(existing_value)
            incoming_value = _as_date(incoming_value)

        if existing_value != incoming_value:
            return field
    return None


def has_significant_changes(existing: PersistedApartment, incoming: ListingRecord) -> bool:
    """True when any tracked field differs between the stored and incoming listing."""
    field = changed_field(existing, incoming)
    if field is None:
        return False
    logger.debug(
        "Significant field changed",
        external_id=incoming.external_id,
        field=field,
        old_value=str(getattr(existing, field)),
        new_value=str(getattr(incoming, field))
    )
    return True


class ReconciliationEngine:
    """Sole writer of create/update/deactivate transitions for apartments."""

    def __init__(
        self,
        store: ApartmentStore,
        grace_days: int = PipelineConfig.STALE_GRACE_DAYS,
        record_timeout: Optional[float] = PipelineConfig.SYNC_RECORD_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.grace_days = grace_days
        self.record_timeout = record_timeout
        self.clock = clock

    async def sync_apartments(
        self,
        records: Sequence[ListingRecord],
        session_id: str,
        mark_others_inactive: bool = False,
    ) -> SyncResult:
        """Reconcile a validated batch against the store."""
        correlation_id = get_correlation_id()
        result = SyncResult(total_processed=len(records))

        logger.info(
            "Starting apartment sync",
            correlation_id=correlation_id,
            session_id=session_id,
            record_count=len(records),
            mark_others_inactive=mark_others_inactive
        )

        with log_timing("sync_apartments", logger=logger, session_id=session_id):
            for record in records:
                try:
                    await asyncio.wait_for(self._sync_single(record, result), timeout=self.record_timeout)
                except asyncio.TimeoutError:
                    self._record_error(result, record, f"Timed out after {self.record_timeout}s", session_id)
                except Exception as e:
                    self._record_error(result, record, str(e) or type(e).__name__, session_id)

            # Needs the complete set of processed IDs, so strictly after the upserts
            if mark_others_inactive:
                result.removed_apartments = await self.mark_inactive_apartments(
                    [record.external_id for record in records]
                )

        stats = result.stats
        logger.info(
            "Apartment sync completed",
            correlation_id=correlation_id,
            session_id=session_id,
            new_count=stats.new_count,
            updated_count=stats.updated_count,
            removed_count=stats.removed_count,
            error_count=stats.error_count
        )
        return result

    def _record_error(self, result: SyncResult, record: ListingRecord, message: str, session_id: str) -> None:
        logger.error(
            "Error syncing apartment",
            correlation_id=get_correlation_id(),
            session_id=session_id,
            external_id=record.external_id,
            error=message,
            exc_info=True
        )
        result.errors.append(SyncError(external_id=record.external_id, error=message))

    async def _sync_single(self, record: ListingRecord, result: SyncResult) -> None:
        existing = await self.store.get_by_external_id(record.external_id)
        now = self.clock().isoformat()

        if existing is None:
            created = await self.store.create({
                **record.to_row(),
                "id": generate_record_id(),
                "is_active": True,
                "is_archived": False,
                "last_scraped": now,
                "created_at": now,
                "updated_at": now,
            })
            result.new_apartments.append(created.id)
            logger.debug("Created new apartment", external_id=record.external_id, apartment_id=created.id)
            return

        if has_significant_changes(existing, record):
            updated = await self.store.update(existing.id, {
                **record.to_row(),
                "is_active": True,
                "is_archived": False,
                "last_scraped": now,
                "updated_at": now,
            })
            result.updated_apartments.append(updated.id)
            logger.debug("Updated apartment", external_id=record.external_id, apartment_id=updated.id)
            return

        # Heartbeat only; also revives a listing that had been deactivated
        await self.store.update(existing.id, {"last_scraped": now, "is_active": True})
        logger.debug(
            "No changes for apartment, refreshed last_scraped",
            external_id=record.external_id,
            apartment_id=existing.id,
            reactivated=not existing.is_active
        )

    async def mark_inactive_apartments(self, batch_external_ids: Sequence[str]) -> list[str]:
        """Deactivate active apartments absent from the batch and unseen for the grace window."""
        if not batch_external_ids:
            return []

        seen_before = self.clock() - timedelta(days=self.grace_days)
        stale = await self.store.find_stale(list(dict.fromkeys(batch_external_ids)), seen_before)
        apartment_ids = [apartment.id for apartment in stale]

        if apartment_ids:
            await self.store.deactivate(apartment_ids)
            logger.info(
                "Marked apartments as inactive",
                correlation_id=get_correlation_id(),
                count=len(apartment_ids),
                grace_days=self.grace_days
            )

        return apartment_ids


def generate_sync_summary(result: SyncResult, source: str) -> str:
    """Human-readable reconciliation report for operators."""
    stats = result.stats
    success_rate = percent(stats.new_count + stats.updated_count, stats.total_processed)

    lines = [
        f"Database Sync Summary ({source}):",
        f"- Total processed: {stats.total_processed}",
        f"- New apartments: {stats.new_count}",
        f"- Updated apartments: {stats.updated_count}",
        f"- Removed/inactive: {stats.removed_count}",
        f"- Errors: {stats.error_count}",
        f"- Success rate: {success_rate}%",
    ]
    if result.errors:
        lines.append("")
        lines.append("First few errors:")
        lines.extend(f"{e.external_id}: {e.error}" for e in result.errors[:SUMMARY_ERROR_SAMPLE])
    return "\n".join(lines)
