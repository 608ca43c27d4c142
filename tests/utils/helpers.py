"""Test helper functions."""

import json
from typing import Any, Dict, Optional
from unittest.mock import MagicMock


def create_upload_request(
    content: Any,
    filename: str = "listings.csv",
    mark_inactive: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a pre-parsed multipart upload request for testing."""
    form = {} if mark_inactive is None else {"markInactive": mark_inactive}
    return {
        "method": "POST",
        "path": "/api/imports/upload",
        "headers": {"content-type": "multipart/form-data"},
        "files": {"file": {"filename": filename, "content": content}},
        "form": form,
        "query": {},
    }


def create_json_request(body: Any, path: str = "/api/imports/batch") -> Dict[str, Any]:
    """Create a Vercel JSON request object for testing."""
    return {
        "method": "POST",
        "path": path,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(body),
        "query": {},
    }


def mock_supabase_table(rows: list) -> tuple[MagicMock, MagicMock]:
    """
    Supabase client mock whose query builder chains back to itself.

    Returns (client, query) so tests can assert on the filters applied.
    """
    query = MagicMock()
    for method in ("select", "insert", "update", "eq", "lt", "in_"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=rows)

    client = MagicMock()
    client.table.return_value = query
    return client, query


def response_body(response: Dict[str, Any]) -> Any:
    return json.loads(response["body"])
