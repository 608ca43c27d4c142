"""Import pipeline - parse, reconcile, notify and record one import run."""

import os
from typing import Any, Callable, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rentsync.models.import_result import ImportValidationResult
from rentsync.models.import_session import ImportStatus, ImportType
from rentsync.models.notification import DispatchResult
from rentsync.models.sync_result import SyncResult
from rentsync.services.import_parser import generate_import_summary, parse_csv, parse_json, parse_records
from rentsync.services.import_sessions import ImportSessionTracker, ListingPriceStats, summarize_prices
from rentsync.services.notification_dispatcher import NotificationDispatcher
from rentsync.services.reconciliation import ReconciliationEngine, generate_sync_summary
from rentsync.services.sms_client import MessageSender, TwilioSmsSender
from rentsync.utils.config import PipelineConfig
from rentsync.utils.errors import ImportFormatError
from rentsync.utils.logging import correlation_context, get_correlation_id, get_structured_logger, session_context

logger = get_structured_logger(__name__)


class PipelineResult(BaseModel):
    """Structured outcome returned to callers of every import entry point."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    status: ImportStatus
    import_result: ImportValidationResult
    sync_result: SyncResult = Field(default_factory=SyncResult)
    dispatch: DispatchResult = Field(default_factory=DispatchResult)
    price_stats: Optional[ListingPriceStats] = None
    summary: str


def detect_import_type(filename: str) -> ImportType:
    """Map an upload filename to its import type, rejecting anything else."""
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in PipelineConfig.IMPORT_ALLOWED_EXTENSIONS:
        raise ImportFormatError("Only CSV and JSON files are allowed")
    return ImportType.CSV if extension == ".csv" else ImportType.JSON


class ImportPipeline:
    """Wires parser, reconciliation engine, dispatcher and session tracker."""

    def __init__(
        self,
        store,
        sender: Optional[MessageSender] = None,
        engine: Optional[ReconciliationEngine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        tracker: Optional[ImportSessionTracker] = None,
    ):
        self.store = store
        self.engine = engine or ReconciliationEngine(store)
        self.dispatcher = dispatcher or NotificationDispatcher(store, sender or TwilioSmsSender())
        self.tracker = tracker or ImportSessionTracker(store)

    async def import_file(
        self,
        content: Union[bytes, str],
        filename: str,
        mark_inactive: bool = False,
    ) -> PipelineResult:
        """Import an uploaded CSV or JSON file."""
        raw = content.encode("utf-8") if isinstance(content, str) else content
        if len(raw) > PipelineConfig.IMPORT_MAX_FILE_BYTES:
            raise ImportFormatError(
                f"File too large: {len(raw)} bytes (limit {PipelineConfig.IMPORT_MAX_FILE_BYTES})"
            )
        import_type = detect_import_type(filename)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ImportFormatError(f"File is not valid UTF-8 text: {e}")

        parse = parse_csv if import_type == ImportType.CSV else parse_json

        with correlation_context(get_correlation_id()):
            session_id = await self.tracker.start(
                import_type,
                filename=filename,
                source=import_type.value,
                mark_others_inactive=mark_inactive,
            )
            with session_context(session_id):
                return await self._run(
                    session_id,
                    label=filename,
                    import_type=import_type,
                    parse=lambda: parse(text),
                    mark_inactive=mark_inactive,
                    extra_details={"filename": filename, "fileType": import_type.value},
                )

    async def import_records(
        self,
        apartments: Any,
        source: str = "api",
        mark_inactive: bool = False,
        import_type: ImportType = ImportType.API,
    ) -> PipelineResult:
        """Import raw listing objects handed over directly (batch endpoint, scrapes)."""
        if not isinstance(apartments, list):
            raise ImportFormatError("apartments must be an array of listing objects")

        with correlation_context(get_correlation_id()):
            session_id = await self.tracker.start(
                import_type,
                source=source,
                mark_others_inactive=mark_inactive,
            )
            with session_context(session_id):
                return await self._run(
                    session_id,
                    label=source,
                    import_type=import_type,
                    parse=lambda: parse_records(apartments),
                    mark_inactive=mark_inactive,
                    extra_details={"source": source},
                )

    async def _run(
        self,
        session_id: str,
        label: str,
        import_type: ImportType,
        parse: Callable[[], ImportValidationResult],
        mark_inactive: bool,
        extra_details: dict[str, Any],
    ) -> PipelineResult:
        try:
            import_result = parse()
        except ImportFormatError as e:
            await self.tracker.fail(session_id, [{"error": str(e)}], f"Import failed for {label}: {e}")
            raise
        except Exception as e:
            await self._mark_failed(session_id, label, e)
            raise

        import_summary = generate_import_summary(import_result, label, import_type.value)
        import_errors = [e.model_dump(mode="json") for e in import_result.errors]

        if not import_result.valid:
            summary = f"Import failed: No valid records found in {label}"
            await self.tracker.fail(
                session_id,
                import_errors,
                summary,
                details={"importSummary": import_summary, "errors": import_errors},
            )
            logger.warning(
                "Import produced no valid records",
                session_id=session_id,
                label=label,
                error_count=len(import_errors)
            )
            return PipelineResult(
                session_id=session_id,
                status=ImportStatus.FAILED,
                import_result=import_result,
                summary=summary,
            )

        try:
            sync_result = await self.engine.sync_apartments(import_result.valid, session_id, mark_inactive)
            dispatch = await self._dispatch(sync_result, session_id)
            price_stats = await self._price_snapshot(session_id)

            sync_summary = generate_sync_summary(sync_result, label)
            summary = f"{import_summary}\n\n{sync_summary}"
            sync_errors = [e.model_dump(mode="json", by_alias=True) for e in sync_result.errors]

            await self.tracker.complete(
                session_id,
                errors=import_errors + sync_errors,
                summary=summary,
                stats={
                    **sync_result.stats.model_dump(mode="json", by_alias=True),
                    **(price_stats.model_dump(mode="json", by_alias=True) if price_stats else {}),
                },
                details={
                    **extra_details,
                    "importSummary": import_summary,
                    "syncSummary": sync_summary,
                    "importResult": import_result.model_dump(mode="json", by_alias=True),
                    "syncResult": sync_result.model_dump(mode="json", by_alias=True),
                    "markOthersInactive": mark_inactive,
                    "listings": sync_result.new_apartments + sync_result.updated_apartments,
                },
            )
        except Exception as e:
            await self._mark_failed(session_id, label, e)
            raise

        logger.info(
            "Import completed",
            session_id=session_id,
            label=label,
            new_count=sync_result.stats.new_count,
            updated_count=sync_result.stats.updated_count,
            notified=dispatch.sent
        )
        return PipelineResult(
            session_id=session_id,
            status=ImportStatus.COMPLETED,
            import_result=import_result,
            sync_result=sync_result,
            dispatch=dispatch,
            price_stats=price_stats,
            summary=summary,
        )

    async def _dispatch(self, sync_result: SyncResult, session_id: str) -> DispatchResult:
        # Alerts are best effort; the import itself already succeeded
        try:
            return await self.dispatcher.dispatch(sync_result.new_apartments, session_id)
        except Exception as e:
            logger.error("Failed to send alerts", session_id=session_id, error=str(e), exc_info=True)
            return DispatchResult()

    async def _price_snapshot(self, session_id: str) -> Optional[ListingPriceStats]:
        try:
            return summarize_prices(await self.store.active_prices())
        except Exception as e:
            logger.error("Failed to read active listing prices", session_id=session_id, error=str(e), exc_info=True)
            return None

    async def _mark_failed(self, session_id: str, label: str, error: Exception) -> None:
        message = str(error) or type(error).__name__
        try:
            await self.tracker.fail(session_id, [{"error": message}], f"Import failed for {label}: {message}")
        except Exception as e:
            logger.error(
                "Could not mark import session failed",
                session_id=session_id,
                error=str(e),
                original_error=message
            )
