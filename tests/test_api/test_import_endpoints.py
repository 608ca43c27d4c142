"""Tests for the import API handlers."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from api.imports import batch, status, upload
from rentsync.services.import_pipeline import ImportPipeline
from rentsync.services.import_runner import ImportRunner
from rentsync.utils.errors import ImportInProgressError
from tests.utils.assertions import assert_valid_response
from tests.utils.factories import create_raw_listing, listings_to_csv
from tests.utils.fakes import FakeSender, InMemoryStore
from tests.utils.helpers import create_json_request, create_upload_request, response_body


@pytest.fixture
def memory_runner():
    store = InMemoryStore()
    runner = ImportRunner(ImportPipeline(store, sender=FakeSender()))
    return runner, store


@pytest.mark.unit
def test_upload_success_returns_201(memory_runner):
    runner, store = memory_runner
    csv_text = listings_to_csv([create_raw_listing("se-1"), create_raw_listing("se-2")])

    with patch("api.imports.upload.get_import_runner", return_value=runner):
        response = upload.handler(create_upload_request(csv_text.encode("utf-8"), "daily.csv", "true"))

    assert_valid_response(response, 201)
    body = response_body(response)
    assert body["status"] == "completed"
    assert body["syncResult"]["stats"]["newCount"] == 2
    assert body["importResult"]["errors"] == []
    assert store.sessions[body["sessionId"]]["mark_others_inactive"] is True


@pytest.mark.unit
def test_upload_without_valid_records_returns_400(memory_runner):
    runner, _ = memory_runner
    csv_text = listings_to_csv([{"externalId": "se-1", "price": "free"}])

    with patch("api.imports.upload.get_import_runner", return_value=runner):
        response = upload.handler(create_upload_request(csv_text, "daily.csv"))

    assert_valid_response(response, 400)
    body = response_body(response)
    assert body["error"] == "No valid records found in file"
    assert body["importResult"]["errors"][0]["row"] == 1


@pytest.mark.unit
def test_upload_missing_file_returns_400():
    response = upload.handler({"files": {}, "form": {}})
    assert_valid_response(response, 400)


@pytest.mark.unit
def test_upload_wrong_type_returns_400(memory_runner):
    runner, _ = memory_runner
    with patch("api.imports.upload.get_import_runner", return_value=runner):
        response = upload.handler(create_upload_request(b"data", "listings.pdf"))

    assert_valid_response(response, 400)
    assert response_body(response)["message"] == "Only CSV and JSON files are allowed"


@pytest.mark.unit
def test_upload_while_running_returns_409():
    runner = MagicMock()
    runner.run_upload = AsyncMock(side_effect=ImportInProgressError())

    with patch("api.imports.upload.get_import_runner", return_value=runner):
        response = upload.handler(create_upload_request(b"externalId\n1", "daily.csv"))

    assert_valid_response(response, 409)


@pytest.mark.unit
def test_upload_unexpected_error_returns_500():
    runner = MagicMock()
    runner.run_upload = AsyncMock(side_effect=RuntimeError("database down"))

    with patch("api.imports.upload.get_import_runner", return_value=runner):
        response = upload.handler(create_upload_request(b"externalId\n1", "daily.csv"))

    assert_valid_response(response, 500)
    assert response_body(response)["message"] == "database down"


@pytest.mark.unit
def test_batch_success_returns_200(memory_runner):
    runner, store = memory_runner
    request = create_json_request({
        "apartments": [create_raw_listing("se-1", isNoFee="true")],
        "source": "partner-feed",
        "markInactive": False,
    })

    with patch("api.imports.batch.get_import_runner", return_value=runner):
        response = batch.handler(request)

    assert_valid_response(response, 200)
    body = response_body(response)
    assert body["syncResult"]["stats"]["newCount"] == 1
    assert store.sessions[body["sessionId"]]["source"] == "partner-feed"


@pytest.mark.unit
@pytest.mark.parametrize("body", [{}, {"apartments": "nope"}, ["se-1"]])
def test_batch_requires_apartments_array(body):
    response = batch.handler(create_json_request(body))
    assert_valid_response(response, 400)
    assert response_body(response)["error"] == "Apartments array is required"


@pytest.mark.unit
def test_batch_invalid_json_returns_400():
    response = batch.handler({"body": "{not json"})
    assert_valid_response(response, 400)


@pytest.mark.unit
def test_status_returns_read_model():
    store = InMemoryStore()
    store.sessions["session-1"] = {
        "id": "session-1",
        "filename": "daily.csv",
        "import_status": "completed",
        "summary": "done",
    }

    with patch("api.imports.status.SupabaseStore", return_value=store):
        response = status.handler({"query": {"id": "session-1"}})

    assert_valid_response(response, 200)
    body = response_body(response)
    assert body["id"] == "session-1"
    assert body["importStatus"] == "completed"


@pytest.mark.unit
def test_status_unknown_session_returns_404():
    with patch("api.imports.status.SupabaseStore", return_value=InMemoryStore()):
        response = status.handler({"query": {"id": "missing"}})

    assert_valid_response(response, 404)


@pytest.mark.unit
def test_status_requires_id():
    assert_valid_response(status.handler({"query": {}}), 400)
