"""Import session status endpoint (polled by the operator UI)."""

import logging
from rentsync.services.import_sessions import ImportSessionTracker
from rentsync.services.stores import SupabaseStore
from rentsync.utils.logging_config import LoggingConfig
from rentsync.utils.http import json_response, run_async

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


def handler(request):
    """Return the read model of the session named by `query.id`."""
    try:
        query_params = request.get("query", {}) or {}
        session_id = query_params.get("id")
        if not session_id:
            return json_response(400, {"error": "Session id is required"})

        status = run_async(ImportSessionTracker(SupabaseStore()).get_status(session_id))
        if status is None:
            return json_response(404, {"error": "Import session not found"})

        return json_response(200, status.model_dump(mode="json", by_alias=True))

    except Exception as e:
        logger.error(f"Error getting import status: {e}", exc_info=True)
        return json_response(500, {"error": "Failed to get import status", "message": str(e)})
