"""Anonymous script execution via the tooling API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .errors import ScriptExecutionError
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExecuteAnonymousResult:
    compiled: bool
    success: bool
    compile_problem: str | None = None
    exception_message: str | None = None
    exception_stack_trace: str | None = None
    line: int = -1
    column: int = -1

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ExecuteAnonymousResult:
        return cls(
            compiled=bool(payload.get("compiled")),
            success=bool(payload.get("success")),
            compile_problem=payload.get("compileProblem"),
            exception_message=payload.get("exceptionMessage"),
            exception_stack_trace=payload.get("exceptionStackTrace"),
            line=_int_or(payload.get("line"), -1),
            column=_int_or(payload.get("column"), -1),
        )


def _int_or(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def execute_anonymous(transport: Transport, body: str) -> ExecuteAnonymousResult:
    """Run ``body`` as anonymous Apex in the transport's session.

    Raises:
        ScriptExecutionError: If the script does not compile or fails at
            runtime. Remote messages are preserved verbatim.
    """
    payload = transport.request(
        "GET",
        "tooling/executeAnonymous/",
        params={"anonymousBody": body},
    ) or {}
    result = ExecuteAnonymousResult.from_payload(payload)

    if not result.compiled:
        raise ScriptExecutionError(
            f"script failed to compile at line {result.line}, column "
            f"{result.column}: {result.compile_problem}",
            compile_problem=result.compile_problem,
        )
    if not result.success:
        raise ScriptExecutionError(
            f"script failed: {result.exception_message}",
            exception_message=result.exception_message,
            exception_stack_trace=result.exception_stack_trace,
        )

    logger.debug("Anonymous script executed on %s", transport.session.instance_url)
    return result
