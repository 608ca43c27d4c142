"""Programmatic batch import endpoint."""

import json
import logging
from rentsync.models.import_session import ImportStatus
from rentsync.services.import_runner import get_import_runner
from rentsync.utils.errors import ImportFormatError, ImportInProgressError
from rentsync.utils.logging_config import LoggingConfig
from rentsync.utils.http import json_response, parse_flag, parse_json_body, run_async

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


def handler(request):
    """Import a JSON body of `{apartments, source, markInactive}`."""
    try:
        try:
            body = parse_json_body(request)
        except json.JSONDecodeError as e:
            return json_response(400, {"error": "Invalid JSON body", "message": str(e)})

        apartments = body.get("apartments") if isinstance(body, dict) else None
        if not isinstance(apartments, list):
            return json_response(400, {"error": "Apartments array is required"})

        source = body.get("source") or "api"
        mark_inactive = parse_flag(body.get("markInactive", False))

        result = run_async(get_import_runner().run_batch(apartments, source, mark_inactive))
        payload = result.model_dump(mode="json", by_alias=True)

        if result.status == ImportStatus.FAILED:
            return json_response(400, {"error": "No valid apartments found", **payload})

        return json_response(200, payload)

    except ImportInProgressError as e:
        return json_response(409, {"error": str(e)})
    except ImportFormatError as e:
        return json_response(400, {"error": "Invalid batch", "message": str(e)})
    except Exception as e:
        logger.error(f"Error importing listing batch: {e}", exc_info=True)
        return json_response(500, {"error": "Batch import failed", "message": str(e)})
