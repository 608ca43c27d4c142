"""Import parsing results."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rentsync.models.listing import ListingRecord


class ImportRowError(BaseModel):
    """One rejected input record."""
    row: int = Field(..., ge=1, description="1-based record number (CSV header excluded)")
    data: Any = Field(default=None, description="Raw record as received")
    error: str


class RecordResult(BaseModel):
    """Outcome of normalizing and validating one raw record."""
    record: Optional[ListingRecord] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, record: ListingRecord) -> "RecordResult":
        return cls(record=record)

    @classmethod
    def failure(cls, error: str) -> "RecordResult":
        return cls(error=error)


class ImportValidationResult(BaseModel):
    """Valid records in input order plus per-record errors."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    valid: list[ListingRecord] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.errors)
