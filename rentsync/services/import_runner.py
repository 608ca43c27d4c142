"""Run guard serializing scheduled and manual imports."""

import asyncio
from typing import Any, Optional, Union

from rentsync.models.import_session import ImportType
from rentsync.services.import_pipeline import ImportPipeline, PipelineResult
from rentsync.services.stores import SupabaseStore
from rentsync.utils.errors import ImportInProgressError
from rentsync.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)


class ImportRunner:
    """
    Lets at most one import run at a time.

    A scheduled run that finds another run in flight is skipped; a manual
    run in the same situation is refused with ImportInProgressError.
    """

    def __init__(self, pipeline: ImportPipeline):
        self.pipeline = pipeline
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def _claim_manual(self) -> None:
        if self._lock.locked():
            logger.warning("Manual import refused, another run is in progress")
            raise ImportInProgressError()

    async def run_upload(self, content: Union[bytes, str], filename: str, mark_inactive: bool = False) -> PipelineResult:
        self._claim_manual()
        async with self._lock:
            with correlation_context():
                return await self.pipeline.import_file(content, filename, mark_inactive)

    async def run_batch(self, apartments: Any, source: str = "api", mark_inactive: bool = False) -> PipelineResult:
        self._claim_manual()
        async with self._lock:
            with correlation_context():
                return await self.pipeline.import_records(apartments, source, mark_inactive)

    async def run_scheduled(self, apartments: Any, source: str, mark_inactive: bool = True) -> Optional[PipelineResult]:
        """Import a scrape result set; returns None when skipped."""
        if self._lock.locked():
            logger.warning("Scheduled import skipped, previous run still in progress", source=source)
            return None

        async with self._lock:
            with correlation_context():
                return await self.pipeline.import_records(
                    apartments, source, mark_inactive, import_type=ImportType.SCRAPE
                )


# Global runner instance (singleton pattern)
_runner: Optional[ImportRunner] = None


def get_import_runner() -> ImportRunner:
    """Get or create the process-wide import runner."""
    global _runner

    if _runner is None:
        _runner = ImportRunner(ImportPipeline(SupabaseStore()))

    return _runner
