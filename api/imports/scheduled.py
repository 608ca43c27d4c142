"""Scheduled scrape import endpoint (can be called via Vercel cron)."""

import json
import logging
from rentsync.models.import_session import ImportStatus
from rentsync.services.import_runner import get_import_runner
from rentsync.utils.errors import ImportFormatError
from rentsync.utils.logging_config import LoggingConfig
from rentsync.utils.http import json_response, parse_flag, parse_json_body, run_async

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()

DEFAULT_SCRAPE_SOURCE = "scrape"


def handler(request):
    """
    Import one scrape result set.

    Expects `{apartments, source}` in the body. Stale listings are retired
    unless `markInactive=false` is passed in the query or body. A call that
    lands while another import is running is skipped, not queued.
    """
    try:
        try:
            body = parse_json_body(request)
        except json.JSONDecodeError as e:
            return json_response(400, {"error": "Invalid JSON body", "message": str(e)})

        apartments = body.get("apartments") if isinstance(body, dict) else None
        if not isinstance(apartments, list):
            return json_response(400, {"error": "Apartments array is required"})

        query_params = request.get("query", {}) or {}
        source = body.get("source") or query_params.get("source") or DEFAULT_SCRAPE_SOURCE
        mark_inactive = parse_flag(body.get("markInactive", query_params.get("markInactive", True)))

        result = run_async(get_import_runner().run_scheduled(apartments, source, mark_inactive))
        if result is None:
            return json_response(200, {"ok": True, "skipped": True, "source": source})

        payload = result.model_dump(mode="json", by_alias=True)
        if result.status == ImportStatus.FAILED:
            return json_response(400, {"ok": False, "skipped": False, "error": "No valid apartments found", **payload})

        return json_response(200, {"ok": True, "skipped": False, **payload})

    except ImportFormatError as e:
        return json_response(400, {"error": "Invalid scrape payload", "message": str(e)})
    except Exception as e:
        logger.error(f"Error running scheduled import: {e}", exc_info=True)
        return json_response(500, {"error": "Scheduled import failed", "message": str(e)})
