"""Listing file upload endpoint (CSV or JSON)."""

import logging
from rentsync.models.import_session import ImportStatus
from rentsync.services.import_runner import get_import_runner
from rentsync.utils.errors import ImportFormatError, ImportInProgressError
from rentsync.utils.logging_config import LoggingConfig
from rentsync.utils.http import json_response, parse_flag, run_async

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


def handler(request):
    """
    Import an uploaded listings file.

    Expects the multipart form pre-parsed by the platform: `files.file`
    with `filename` and `content`, and an optional `form.markInactive`.
    """
    try:
        upload = (request.get("files") or {}).get("file")
        if not upload or not upload.get("filename"):
            return json_response(400, {"error": "No file uploaded"})

        form = request.get("form") or {}
        mark_inactive = parse_flag(form.get("markInactive", "false"))

        result = run_async(get_import_runner().run_upload(
            upload.get("content") or b"",
            upload["filename"],
            mark_inactive
        ))
        body = result.model_dump(mode="json", by_alias=True)

        if result.status == ImportStatus.FAILED:
            return json_response(400, {"error": "No valid records found in file", **body})

        return json_response(201, body)

    except ImportInProgressError as e:
        return json_response(409, {"error": str(e)})
    except ImportFormatError as e:
        return json_response(400, {"error": "Invalid import file", "message": str(e)})
    except Exception as e:
        logger.error(f"Error importing listings file: {e}", exc_info=True)
        return json_response(500, {"error": "Import failed", "message": str(e)})
