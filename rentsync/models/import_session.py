"""Import session models - persisted audit record of one pipeline run."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ImportStatus(str, Enum):
    """Pipeline run status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportType(str, Enum):
    """How the records reached the pipeline."""
    CSV = "csv"
    JSON = "json"
    API = "api"
    SCRAPE = "scrape"


class ImportSession(BaseModel):
    """Stored import session row."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Session ID (text)")
    filename: Optional[str] = None
    source: Optional[str] = Field(None, description="Upload type or batch source label")
    import_type: ImportType = ImportType.API
    import_status: ImportStatus = ImportStatus.PROCESSING
    import_errors: list[dict[str, Any]] = Field(default_factory=list)
    summary: Optional[str] = None
    stats: dict[str, Any] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)
    mark_others_inactive: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportSessionStatus(BaseModel):
    """Read model polled by the operator UI."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    filename: Optional[str] = None
    import_status: ImportStatus
    import_errors: list[dict[str, Any]] = Field(default_factory=list)
    summary: Optional[str] = None
    stats: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: ImportSession) -> "ImportSessionStatus":
        return cls(
            id=session.id,
            filename=session.filename,
            import_status=session.import_status,
            import_errors=session.import_errors,
            summary=session.summary,
            stats=session.stats,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
