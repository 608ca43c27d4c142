"""Reconciliation run results."""

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class SyncError(BaseModel):
    """A record that could not be reconciled."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    external_id: str
    error: str


class SyncStats(BaseModel):
    """Counts derived from a SyncResult."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_processed: int = 0
    new_count: int = 0
    updated_count: int = 0
    removed_count: int = 0
    error_count: int = 0


class SyncResult(BaseModel):
    """Aggregate outcome of one reconciliation run; embedded in the import session."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_processed: int = 0
    new_apartments: list[str] = Field(default_factory=list)
    updated_apartments: list[str] = Field(default_factory=list)
    removed_apartments: list[str] = Field(default_factory=list)
    errors: list[SyncError] = Field(default_factory=list)

    @computed_field
    @property
    def stats(self) -> SyncStats:
        return SyncStats(
            total_processed=self.total_processed,
            new_count=len(self.new_apartments),
            updated_count=len(self.updated_apartments),
            removed_count=len(self.removed_apartments),
            error_count=len(self.errors),
        )
