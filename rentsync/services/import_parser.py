"""Import parser - run normalize/validate over whole CSV or JSON payloads."""

import csv
import io
import json
import math
from typing import Any, Iterable

from rentsync.models.import_result import ImportRowError, ImportValidationResult
from rentsync.services.field_normalizer import FIELD_ALIASES
from rentsync.services.record_validator import validate_raw_listing
from rentsync.utils.errors import ImportFormatError
from rentsync.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)

SUMMARY_ERROR_SAMPLE = 3


def percent(part: int, whole: int) -> int:
    """Percentage rounded half up; 0 when there is nothing to divide."""
    if whole <= 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def _raw_external_id(item: Any) -> Any:
    if not isinstance(item, dict):
        return None
    for key in FIELD_ALIASES["external_id"]:
        value = item.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return None


def _parse_outcome(result: ImportValidationResult) -> dict:
    return {"valid_count": len(result.valid), "error_count": len(result.errors)}


def parse_records(items: Iterable[Any]) -> ImportValidationResult:
    """
    Validate already-decoded records one by one.

    A failing record becomes an ImportRowError and never stops the rest.
    A repeated externalId within the batch is rejected in favour of its
    first occurrence.
    """
    result = ImportValidationResult()
    first_seen: dict[str, int] = {}

    for row, item in enumerate(items, start=1):
        outcome = validate_raw_listing(item)
        if not outcome.ok:
            result.errors.append(ImportRowError(row=row, data=item, error=outcome.error))
            continue

        external_id = outcome.record.external_id
        if external_id in first_seen:
            result.errors.append(ImportRowError(
                row=row,
                data=item,
                error=f"Duplicate externalId '{external_id}' (first seen in row {first_seen[external_id]})"
            ))
            continue

        first_seen[external_id] = row
        result.valid.append(outcome.record)

    if result.errors:
        logger.info(
            "Records rejected during import parsing",
            total_rows=result.total_rows,
            valid_count=len(result.valid),
            error_count=len(result.errors),
            first_error_row=result.errors[0].row,
            first_error_external_id=_raw_external_id(result.errors[0].data)
        )

    return result


@timed("parse_csv", outcome=_parse_outcome)
def parse_csv(text: str) -> ImportValidationResult:
    """Parse CSV text with a header row; row numbers exclude the header."""
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text, newline=""))
    try:
        if not reader.fieldnames:
            raise ImportFormatError("Invalid CSV format: missing header row")
        # Cells beyond the header land under a None key
        rows = ({k: v for k, v in row.items() if k is not None} for row in reader)
        return parse_records(rows)
    except csv.Error as e:
        raise ImportFormatError(f"Invalid CSV format: {e}")


@timed("parse_json", outcome=_parse_outcome)
def parse_json(text: str) -> ImportValidationResult:
    """Parse a JSON object or array of objects."""
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportFormatError(f"Invalid JSON format: {e}")

    items = data if isinstance(data, list) else [data]
    return parse_records(items)


def generate_import_summary(result: ImportValidationResult, filename: str, import_type: str) -> str:
    """Human-readable parsing report for operators."""
    total_rows = result.total_rows
    success_rate = percent(len(result.valid), total_rows)

    lines = [
        f"Import Summary for {filename}:",
        f"- Format: {import_type.upper()}",
        f"- Total records: {total_rows}",
        f"- Successfully parsed: {len(result.valid)}",
        f"- Errors: {len(result.errors)}",
        f"- Success rate: {success_rate}%",
    ]
    if result.errors:
        lines.append("")
        lines.append("First few errors:")
        lines.extend(f"Row {e.row}: {e.error}" for e in result.errors[:SUMMARY_ERROR_SAMPLE])
    return "\n".join(lines)
