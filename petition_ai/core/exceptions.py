"""Custom exception hierarchy."""

from typing import List, Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class PipelineError(AppError):
    """Base exception for evidence pipeline errors."""
    pass


class SchemaValidationFailure(PipelineError):
    """A completion's output did not conform to its output schema.

    The unit or stage that issued the completion fails; the caller decides
    whether to retry.
    """

    def __init__(
        self,
        message: str,
        schema_name: Optional[str] = None,
        raw_output: Optional[str] = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error=original_error)
        self.schema_name = schema_name
        self.raw_output = (raw_output or "")[:500]


class PredecessorMissing(PipelineError):
    """A cascade stage was invoked before its required upstream stage ran."""

    def __init__(self, stage: str, required_stage: str):
        self.stage = stage
        self.required_stage = required_stage
        self.hint = f"Run {required_stage} first"
        super().__init__(
            f"{required_stage} output is required before running {stage}. {self.hint}."
        )


class PartialExtractionFailure(PipelineError):
    """One or more fan-out extraction units failed.

    Recorded on the extraction run result; assembly proceeds with the
    remaining units.
    """

    def __init__(self, failed_criteria: List[str]):
        self.failed_criteria = list(failed_criteria)
        super().__init__(
            f"Extraction failed for criteria: {', '.join(self.failed_criteria)}"
        )


class CaseNotFoundError(PipelineError):
    """Raised when a case does not exist in the store."""
    pass


class UnknownCriterionError(PipelineError):
    """Raised when a criterion id is outside the fixed evaluation set."""
    pass


class VersionConflictError(DatabaseError):
    """Two writers tried to create the same analysis version for a case."""
    pass
