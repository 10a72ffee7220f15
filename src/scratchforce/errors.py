"""Exception hierarchy for scratchforce.

Errors are small and carry structured fields (code, message, raw details)
so callers can log or re-surface them without parsing strings. None of them
hold httpx objects or credentials.
"""

from __future__ import annotations

from typing import Any


class ScratchforceError(Exception):
    """Base class for every error raised by this library."""


class AuthenticationError(ScratchforceError):
    """Session is missing or unauthenticated. Raised before any network I/O."""

    def __init__(self, message: str = "session is not authenticated") -> None:
        self.message = message
        super().__init__(message)


class TransportError(ScratchforceError):
    """HTTP or network failure talking to the remote API."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        *,
        error_code: str | None = None,
        response_body: str = "",
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.response_body = response_body
        super().__init__(f"Remote API error {status_code}: {message}")


class SessionExpiredError(TransportError):
    """The remote side rejected the bearer token (401)."""

    def __init__(self, message: str = "Session expired or invalid", **kwargs: Any) -> None:
        super().__init__(401, message, **kwargs)


class RemoteOperationError(ScratchforceError):
    """The remote side accepted the request but reported a failure."""

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: Any = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(message)


class ScriptExecutionError(RemoteOperationError):
    """Anonymous script failed to compile or raised at runtime."""

    def __init__(
        self,
        message: str,
        *,
        exception_message: str | None = None,
        exception_stack_trace: str | None = None,
        compile_problem: str | None = None,
    ) -> None:
        self.exception_message = exception_message
        self.exception_stack_trace = exception_stack_trace
        self.compile_problem = compile_problem
        super().__init__(
            message,
            details={
                "exceptionMessage": exception_message,
                "exceptionStackTrace": exception_stack_trace,
                "compileProblem": compile_problem,
            },
        )


class DeploymentError(RemoteOperationError):
    """Metadata deployment finished unsuccessfully.

    ``result`` is the full :class:`~scratchforce.metadata.deploy.DeploymentResult`.
    """

    def __init__(self, message: str, *, result: Any) -> None:
        self.result = result
        super().__init__(
            message,
            error_code=getattr(result, "error_status_code", None),
            details=getattr(result, "details", None),
        )


class AmbiguousResourceError(ScratchforceError):
    """A lookup that must be unique by name matched more than one record."""

    def __init__(self, name: str, count: int) -> None:
        self.name = name
        self.count = count
        super().__init__(f"More than one active environment named {name!r} ({count} matches)")


class PollTimeoutError(ScratchforceError):
    """A bounded wait expired before a terminal state was observed."""

    def __init__(self, message: str, *, attempts: int = 0, elapsed_seconds: float = 0.0) -> None:
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        super().__init__(message)


class ProvisioningTimeoutError(PollTimeoutError):
    """Environment did not become Active before the provisioning deadline."""

    def __init__(self, name: str, *, attempts: int = 0, elapsed_seconds: float = 0.0) -> None:
        self.name = name
        super().__init__(
            f"Giving up waiting for environment {name!r} after "
            f"{int(elapsed_seconds)}s ({attempts} checks)",
            attempts=attempts,
            elapsed_seconds=elapsed_seconds,
        )


class DeploymentTimeoutError(DeploymentError, PollTimeoutError):
    """Deployment did not finish within the poll bounds.

    Retryable, unlike a deployment the remote side reported as failed.
    ``result`` carries the synthesized timeout verdict.
    """

    def __init__(
        self,
        message: str,
        *,
        result: Any,
        attempts: int = 0,
        elapsed_seconds: float = 0.0,
    ) -> None:
        DeploymentError.__init__(self, message, result=result)
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds


class EnvironmentStatusError(ScratchforceError):
    """Environment reached the terminal ``Error`` status on the remote side."""

    def __init__(self, name: str, status: str, *, error_code: str | None = None) -> None:
        self.name = name
        self.status = status
        self.error_code = error_code
        detail = f" (code={error_code})" if error_code else ""
        super().__init__(f"Environment {name!r} entered status {status!r}{detail}")


class ConfigurationError(ScratchforceError, ValueError):
    """Client settings are invalid for the requested operation."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(f"invalid configuration: {'; '.join(problems)}")


class ScriptTemplateError(ScratchforceError):
    """Script template is invalid or was rendered with bad parameters."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Script template error: {reason}")
