"""Tests for CSV/JSON import parsing."""

import json
import pytest
from rentsync.services.import_parser import (
    generate_import_summary,
    parse_csv,
    parse_json,
    parse_records,
    percent,
)
from rentsync.utils.errors import ImportFormatError
from tests.utils.factories import create_raw_listing, listings_to_csv


@pytest.mark.unit
def test_csv_error_isolation_reports_data_row_number():
    """A bad fifth record yields nine valid rows and one error on row 5."""
    rows = [create_raw_listing(f"se-{i}") for i in range(1, 11)]
    rows[4]["externalId"] = ""

    result = parse_csv(listings_to_csv(rows))

    assert len(result.valid) == 9
    assert len(result.errors) == 1
    assert result.errors[0].row == 5
    assert "externalId" in result.errors[0].error
    assert [r.external_id for r in result.valid] == [f"se-{i}" for i in range(1, 11) if i != 5]


@pytest.mark.unit
def test_csv_ignores_unknown_columns_and_bom():
    """Unknown columns are dropped and a UTF-8 BOM does not corrupt the header."""
    text = "\ufeff" + listings_to_csv([create_raw_listing("se-1", internalNotes="call landlord")])

    result = parse_csv(text)

    assert len(result.valid) == 1
    assert result.valid[0].external_id == "se-1"


@pytest.mark.unit
def test_csv_without_header_is_a_format_error():
    """An empty file has no header row to map columns from."""
    with pytest.raises(ImportFormatError):
        parse_csv("")


@pytest.mark.unit
def test_json_accepts_single_object_and_array():
    """JSON input may be one listing object or an array of them."""
    single = parse_json(json.dumps(create_raw_listing("se-1")))
    many = parse_json(json.dumps([create_raw_listing("se-1"), create_raw_listing("se-2")]))

    assert single.total_rows == 1
    assert [r.external_id for r in many.valid] == ["se-1", "se-2"]


@pytest.mark.unit
def test_malformed_json_is_fatal():
    """A syntax error in the top-level payload aborts the whole import."""
    with pytest.raises(ImportFormatError) as exc_info:
        parse_json('[{"externalId": "se-1",')
    assert "Invalid JSON format" in str(exc_info.value)


@pytest.mark.unit
def test_duplicate_external_id_keeps_first_occurrence():
    """A repeated externalId in one batch is rejected as a row error."""
    result = parse_records([
        create_raw_listing("dup-1", price="2000"),
        create_raw_listing("dup-1", price="2100"),
    ])

    assert len(result.valid) == 1
    assert result.valid[0].price == 200000
    assert result.errors[0].row == 2
    assert result.errors[0].error == "Duplicate externalId 'dup-1' (first seen in row 1)"


@pytest.mark.unit
def test_import_summary_format():
    """The operator summary lists counts, success rate and the first errors."""
    rows = [create_raw_listing(f"se-{i}") for i in range(1, 4)]
    rows[1]["price"] = "free"
    result = parse_csv(listings_to_csv(rows))

    summary = generate_import_summary(result, "daily.csv", "csv")

    assert summary.startswith("Import Summary for daily.csv:\n- Format: CSV\n- Total records: 3")
    assert "- Successfully parsed: 2" in summary
    assert "- Errors: 1" in summary
    assert "- Success rate: 67%" in summary
    assert "First few errors:\nRow 2: Validation failed: price" in summary


@pytest.mark.unit
def test_percent_rounds_half_up_and_handles_zero():
    assert percent(1, 2) == 50
    assert percent(1, 8) == 13
    assert percent(0, 0) == 0


@pytest.mark.unit
def test_infinite_price_fails_only_its_row():
    rows = [create_raw_listing("se-1"), create_raw_listing("se-2", price="1e999")]

    result = parse_csv(listings_to_csv(rows))

    assert [r.external_id for r in result.valid] == ["se-1"]
    assert result.errors[0].row == 2
    assert "price" in result.errors[0].error


@pytest.mark.unit
def test_json_infinity_fails_only_its_record():
    result = parse_json(json.dumps([create_raw_listing("se-1"), create_raw_listing("se-2", price=float("inf"))]))

    assert [r.external_id for r in result.valid] == ["se-1"]
    assert result.errors[0].row == 2
