"""
Exceptions raised by the green score pipeline, plus the structured failure
object handed to presentation layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

STAGE_METADATA = "metadata"
STAGE_CSV      = "csv"


class GreenScoreError(Exception):
    """Base exception for the green score pipeline."""
    pass


class FetchError(GreenScoreError):
    """An HTTP GET failed after exhausting its retries (or on a client error)."""

    def __init__(
        self,
        message: str,
        url: str = "",
        attempts: int = 0,
        stage: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts
        self.stage = stage


class MalformedResponseError(GreenScoreError):
    """A metadata response had no resolvable data-file reference."""

    def __init__(self, message: str, dataset: str = "") -> None:
        super().__init__(message)
        self.dataset = dataset


class ComputationError(GreenScoreError):
    """An internal invariant was violated while computing metrics."""
    pass


@dataclass
class PipelineFailure:
    """User-facing description of a failed pipeline run."""

    kind:    str   # "api_unavailable" | "malformed_response" | "csv_fetch_failed" | "computation_error"
    error:   str
    message: str
    details: str

    @classmethod
    def from_exception(cls, exc: GreenScoreError) -> "PipelineFailure":
        if isinstance(exc, MalformedResponseError):
            return cls(
                kind="malformed_response",
                error="Invalid API response",
                message="Data format unexpected. Please try again later.",
                details=str(exc),
            )
        if isinstance(exc, ComputationError):
            return cls(
                kind="computation_error",
                error="Computation failed",
                message="Unable to compute the green energy outlook.",
                details=str(exc),
            )
        if isinstance(exc, FetchError) and exc.stage == STAGE_CSV:
            return cls(
                kind="csv_fetch_failed",
                error="CSV data fetch failed",
                message="Unable to fetch forecast data. Please try again later.",
                details=str(exc),
            )
        return cls(
            kind="api_unavailable",
            error="API request failed",
            message="Data sources temporarily unavailable. Please try again later.",
            details=str(exc),
        )

    @property
    def is_upstream(self) -> bool:
        return self.kind != "computation_error"

    def to_dict(self) -> dict:
        return {
            "kind":    self.kind,
            "error":   self.error,
            "message": self.message,
            "details": self.details,
        }
