"""
Custom error classes for BDR Reporting Hub.
Structured error handling with error codes across all modules.

Hierarchy:
    ReportingError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── AnalysisError
        └── AnalysisStepError
"""


class ReportingError(Exception):
    """Base exception for all BDR Reporting Hub errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(ReportingError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Configuration file error."""

    def __init__(self, message: str, config_path: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"config_path": config_path},
        )


class SchemaValidationError(DataError):
    """Data doesn't match expected schema."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID", details={"field": field},
        )


class DataFetchError(DataError):
    """Failed to fetch or load a snapshot from storage."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Analysis Errors ---

class AnalysisError(ReportingError):
    """Report computation error."""
    pass


class AnalysisStepError(AnalysisError):
    """A specific analysis step failed."""

    def __init__(self, step_name: str, cause: Exception = None):
        msg = f"Analysis step '{step_name}' failed"
        if cause:
            msg += f": {cause}"
        super().__init__(
            msg, code="ANALYSIS_STEP_FAILED", details={"step": step_name},
        )
