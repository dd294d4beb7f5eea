from __future__ import annotations

from typing import Optional


class AthenaCliError(Exception):
    """Base exception for athenacli."""

class ConfigError(AthenaCliError):
    pass

class StatementSourceError(ConfigError):
    pass

class AuthError(AthenaCliError):
    pass

class SubmissionError(AthenaCliError):
    pass

class PollError(AthenaCliError):
    pass

class ExecutionFailed(AthenaCliError):
    """The remote query finished FAILED or CANCELLED.

    `message` is the service's StateChangeReason, untouched.
    """

    def __init__(self, message: str, state: str = "FAILED", execution_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.state = state
        self.execution_id = execution_id

class FetchError(AthenaCliError):
    pass

class ExecutionTimeoutError(AthenaCliError):
    pass

class ExportError(AthenaCliError):
    pass
