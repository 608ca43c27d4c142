"""Import session tracking - one audit record per pipeline run."""

from typing import Any, Optional, Sequence
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from rentsync.models.import_session import ImportSession, ImportSessionStatus, ImportStatus, ImportType
from rentsync.services.stores import ImportSessionStore, utc_now
from rentsync.utils.errors import SessionStateError
from rentsync.utils.ids import generate_record_id
from rentsync.utils.logging import get_correlation_id, get_structured_logger

logger = get_structured_logger(__name__)


class ListingPriceStats(BaseModel):
    """Active-market price snapshot taken when a session completes (cents)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_listings: int = 0
    average_price: int = 0
    median_price: int = 0
    lowest_price: int = 0
    highest_price: int = 0


def summarize_prices(prices: Sequence[int]) -> ListingPriceStats:
    if not prices:
        return ListingPriceStats()

    ordered = sorted(prices)
    average = sum(ordered) / len(ordered)
    return ListingPriceStats(
        total_listings=len(ordered),
        average_price=int(average + 0.5),
        # Upper median for even counts
        median_price=ordered[len(ordered) // 2],
        lowest_price=ordered[0],
        highest_price=ordered[-1],
    )


class ImportSessionTracker:
    """
    Owns the import_sessions lifecycle.

    A session is created in `processing` and moves exactly once to
    `completed` or `failed`. Any further transition is refused with
    SessionStateError.
    """

    def __init__(self, store: ImportSessionStore):
        self.store = store

    async def start(
        self,
        import_type: ImportType,
        filename: Optional[str] = None,
        source: Optional[str] = None,
        mark_others_inactive: bool = False,
    ) -> str:
        now = utc_now().isoformat()
        label = filename or source or import_type.value
        session = await self.store.create_session({
            "id": generate_record_id(),
            "filename": filename,
            "source": source or import_type.value,
            "import_type": import_type.value,
            "import_status": ImportStatus.PROCESSING.value,
            "import_errors": [],
            "summary": f"Importing {label}...",
            "stats": {},
            "details": {},
            "mark_others_inactive": mark_others_inactive,
            "created_at": now,
            "updated_at": now,
        })

        logger.info(
            "Import session started",
            correlation_id=get_correlation_id(),
            session_id=session.id,
            import_type=import_type.value,
            upload_filename=filename,
            source=source
        )
        return session.id

    async def complete(
        self,
        session_id: str,
        errors: list[dict[str, Any]],
        summary: str,
        stats: dict[str, Any],
        details: Optional[dict[str, Any]] = None,
    ) -> ImportSession:
        return await self._finish(session_id, ImportStatus.COMPLETED, {
            "import_errors": errors,
            "summary": summary,
            "stats": stats,
            "details": details or {},
        })

    async def fail(
        self,
        session_id: str,
        errors: list[dict[str, Any]],
        summary: str,
        details: Optional[dict[str, Any]] = None,
    ) -> ImportSession:
        updates: dict[str, Any] = {"import_errors": errors, "summary": summary}
        if details is not None:
            updates["details"] = details
        return await self._finish(session_id, ImportStatus.FAILED, updates)

    async def _finish(self, session_id: str, status: ImportStatus, updates: dict[str, Any]) -> ImportSession:
        session = await self.store.get_session(session_id)
        if session is None:
            raise SessionStateError(f"Import session not found: {session_id}")
        if session.import_status != ImportStatus.PROCESSING:
            raise SessionStateError(
                f"Import session {session_id} is already {session.import_status.value}, "
                f"cannot mark it {status.value}"
            )

        updated = await self.store.update_session(session_id, {
            **updates,
            "import_status": status.value,
            "updated_at": utc_now().isoformat(),
        })

        log = logger.info if status == ImportStatus.COMPLETED else logger.warning
        log(
            f"Import session {status.value}",
            correlation_id=get_correlation_id(),
            session_id=session_id,
            error_count=len(updates.get("import_errors", []))
        )
        return updated

    async def get_status(self, session_id: str) -> Optional[ImportSessionStatus]:
        session = await self.store.get_session(session_id)
        if session is None:
            return None
        return ImportSessionStatus.from_session(session)
