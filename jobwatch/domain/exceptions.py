"""Custom exception hierarchy for the job monitor.

Following error taxonomy: retryable, non-retryable, configuration.
Per-job faults never escape the monitor; these types describe what a job or
an adapter raises before the monitor converts it into a terminal result.
"""


class JobMonitorError(Exception):
    """Base exception for all application errors."""

    pass


class RetryableError(JobMonitorError):
    """Errors that can be retried (network issues, temporary failures)."""

    pass


class NonRetryableError(JobMonitorError):
    """Errors that should not be retried (validation, auth, logic errors)."""

    pass


class RemoteJobError(RetryableError):
    """Remote job API call failed or returned an unexpected response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialize with optional HTTP status code of the failed call."""
        self.status_code = status_code
        super().__init__(message)


class JobInstanceIdError(NonRetryableError):
    """Job instance id could not be extracted from a Location URL."""

    pass


class ConfigurationError(NonRetryableError):
    """Configuration file is malformed or fails schema validation."""

    pass
