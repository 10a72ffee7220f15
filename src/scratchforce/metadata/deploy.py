"""Metadata deployment: submit an archive, poll the job, judge the result.

The platform may report top-level success while individual components
carry problems. The verdict is success only when the job succeeded AND no
entry in ``details.allComponentMessages`` has a non-null ``problem``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from ..errors import DeploymentError, DeploymentTimeoutError
from ..polling import TIMEOUT_MESSAGE, JobStatus, Poller, PollPolicy, run_job
from ..settings import ClientSettings
from ..transport import Transport

logger = logging.getLogger(__name__)

DEPLOY_PATH = 'metadata/deployRequest'
DEPLOY_FAILED_MESSAGE = 'Deployment failed'


@dataclass(frozen=True, slots=True)
class DeployOptions:
    """``deployOptions`` descriptor sent alongside the archive."""

    test_level: str = 'NoTestRun'
    check_only: bool = False
    allow_missing_files: bool = False
    auto_update_package: bool = False
    ignore_warnings: bool = False
    perform_retrieve: bool = False
    purge_on_delete: bool = False
    rollback_on_error: bool = False
    single_package: bool = True
    run_tests: tuple[str, ...] | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            'deployOptions': {
                'allowMissingFiles': self.allow_missing_files,
                'autoUpdatePackage': self.auto_update_package,
                'checkOnly': self.check_only,
                'ignoreWarnings': self.ignore_warnings,
                'performRetrieve': self.perform_retrieve,
                'purgeOnDelete': self.purge_on_delete,
                'rollbackOnError': self.rollback_on_error,
                'runTests': list(self.run_tests) if self.run_tests is not None else None,
                'singlePackage': self.single_package,
                'testLevel': self.test_level,
            }
        }


@dataclass(frozen=True, slots=True)
class DeploymentResult:
    """Flattened, user-facing projection of a finished deployment."""

    success: bool
    job_id: str = ''
    status: str = ''
    error_status_code: str | None = None
    error_message: str | None = None
    details: Any = None
    problems: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data['problems'] = list(self.problems)
        return data


def parse_deploy_status(payload: dict[str, Any]) -> JobStatus:
    """Map a deployRequest response onto JobStatus."""
    result = payload.get('deployResult') or {}
    return JobStatus(
        id=str(payload.get('id') or result.get('id') or ''),
        done=bool(result.get('done')),
        success=bool(result.get('success')),
        status=str(result.get('status') or ''),
        error_code=result.get('errorStatusCode'),
        error_message=result.get('errorMessage'),
        details=result.get('details'),
    )


def component_problems(details: Any) -> list[str]:
    """Every non-null ``problem`` under ``details.allComponentMessages``, in order."""
    if not isinstance(details, dict):
        return []
    messages = details.get('allComponentMessages')
    if not isinstance(messages, list):
        return []
    problems: list[str] = []
    for message in messages:
        if isinstance(message, dict) and message.get('problem') is not None:
            problems.append(str(message['problem']))
    return problems


def deploy_poll_policy(settings: ClientSettings) -> PollPolicy:
    return PollPolicy(
        interval_seconds=settings.deploy_poll_interval_seconds,
        max_attempts=settings.deploy_max_attempts,
        timeout_seconds=settings.deploy_timeout_seconds,
    )


class MetadataDeployer:
    """Deploys metadata archives through one Session's transport."""

    def __init__(
        self,
        transport: Transport,
        *,
        poller: Poller | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or ClientSettings()
        self._poller = poller or Poller(deploy_poll_policy(self._settings))

    def submit(self, archive: bytes, options: DeployOptions) -> JobStatus:
        """POST the archive (expects 201) and return the initial status."""
        payload = self._transport.multipart(
            DEPLOY_PATH,
            {
                'json': (None, json.dumps(options.to_payload()), 'application/json'),
                'file': ('deploy.zip', archive, 'application/zip'),
            },
            expected_status=201,
        ) or {}
        status = parse_deploy_status(payload)
        logger.info(
            'Deployment submitted: id=%s status=%s',
            status.id,
            status.status or 'Pending',
            extra={'job_id': status.id},
        )
        return status

    def fetch_status(self, job_id: str) -> JobStatus:
        payload = self._transport.request(
            'GET',
            f'{DEPLOY_PATH}/{job_id}',
            params={'includeDetails': 'true'},
        ) or {}
        return parse_deploy_status(payload)

    def deploy(self, archive: bytes, options: DeployOptions | None = None) -> DeploymentResult:
        """Deploy ``archive`` and wait for the verdict.

        Returns the result on success.

        Raises:
            DeploymentTimeoutError: Job did not finish within the poll
                bounds. Also a PollTimeoutError.
            DeploymentError: Job failed or any component reported a
                problem. ``exc.result`` holds the full result.
            TransportError: Submit or a status fetch failed at HTTP level.
        """
        options = options or DeployOptions()
        final = run_job(
            lambda: self.submit(archive, options),
            self.fetch_status,
            self._poller,
        )

        if final.timed_out:
            result = DeploymentResult(
                success=False,
                job_id=final.id,
                status=final.status,
                error_message=TIMEOUT_MESSAGE,
                details=final.details,
            )
            raise DeploymentTimeoutError(
                TIMEOUT_MESSAGE,
                result=result,
                attempts=final.attempts,
                elapsed_seconds=final.elapsed_seconds,
            )

        if not final.success:
            result = DeploymentResult(
                success=False,
                job_id=final.id,
                status=final.status,
                error_status_code=final.error_code,
                error_message=final.error_message,
                details=final.details,
            )
            logger.warning(
                'Deployment %s failed: code=%s message=%s',
                final.id,
                final.error_code,
                final.error_message,
                extra={'job_id': final.id},
            )
            raise DeploymentError(DEPLOY_FAILED_MESSAGE, result=result)

        problems = component_problems(final.details)
        if problems:
            joined = ', '.join(problems)
            result = DeploymentResult(
                success=False,
                job_id=final.id,
                status=final.status,
                error_status_code=final.error_code,
                error_message=joined,
                details=final.details,
                problems=tuple(problems),
            )
            logger.warning(
                'Deployment %s reported %d component problems',
                final.id,
                len(problems),
                extra={'job_id': final.id},
            )
            raise DeploymentError(f'component problems: {joined}', result=result)

        logger.info('Deployment %s succeeded', final.id, extra={'job_id': final.id})
        return DeploymentResult(
            success=True,
            job_id=final.id,
            status=final.status,
            error_status_code=final.error_code,
            error_message=final.error_message,
            details=final.details,
        )
