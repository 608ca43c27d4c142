"""Error handling utilities."""

from typing import Optional


class RentSyncError(Exception):
    """Base exception for the RentSync backend."""
    pass


class ValidationFailed(RentSyncError):
    """A listing record did not conform to the canonical schema."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(f"Validation failed: {', '.join(self.violations)}")


class ImportFormatError(RentSyncError):
    """The uploaded payload as a whole could not be read or parsed."""
    pass


class SupabaseError(RentSyncError):
    """Supabase operation error."""
    pass


class SessionStateError(RentSyncError):
    """Import session status transition not allowed."""
    pass


class ImportInProgressError(RentSyncError):
    """Another import run currently holds the run guard."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "An import run is already in progress")
