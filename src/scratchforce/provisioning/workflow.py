"""Scratch environment provisioner: drives the state machine through each step.

Orchestrates the lifecycle of one environment:
  requested -> waiting_active -> authenticating -> applying_settings
  -> setting_credentials -> ready

Creation does not return a job handle, so readiness is detected by
re-querying the environment record by its natural key (name + username)
until it is Active, reports Error, or the deadline passes.

Two Sessions are involved and never mixed: the caller's dev hub Session
(insert, query, delete) and the new environment's own Session (settings
deploy, password, user profile), built from the one-time auth code.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from ..apex import execute_anonymous
from ..errors import (
    AmbiguousResourceError,
    ConfigurationError,
    EnvironmentStatusError,
    PollTimeoutError,
    ProvisioningTimeoutError,
    ScratchforceError,
)
from ..metadata.deploy import DeploymentResult, DeployOptions, MetadataDeployer
from ..metadata.settings import build_settings_archive
from ..observability.logging import workflow_id_ctx
from ..observability.redaction import SecretRedactor
from ..passwords import generate_password
from ..polling import Poller, PollPolicy
from ..query import query
from ..scripts import ScriptTemplateRegistry, create_default_registry, soql_literal
from ..session import Session, login_with_auth_code, require_authenticated
from ..settings import ClientSettings
from ..transport import Transport
from .models import (
    SCRATCH_ORG_SOBJECT,
    CreateScratchParams,
    EnvironmentStatus,
    ProvisionedEnvironment,
    ProvisioningResult,
    RemoveScratchResult,
    ScratchSettings,
)
from .state_machine import (
    InvalidStateTransition,
    ProvisioningState,
    advance_state,
    create_requested,
    transition_to_error,
    transition_to_partial,
    transition_to_timeout,
    validate_status_transition,
)

logger = logging.getLogger(__name__)

# Upper bound on environments removed by one teardown call.
TEARDOWN_LIMIT = 10

SessionFactory = Callable[[ProvisionedEnvironment], Session]
DeployerFactory = Callable[[Transport], MetadataDeployer]


def provisioning_poll_policy(settings: ClientSettings) -> PollPolicy:
    return PollPolicy(
        interval_seconds=settings.provision_poll_interval_seconds,
        timeout_seconds=settings.provision_timeout_seconds,
    )


class ScratchProvisioner:
    """Creates, inspects and removes scratch environments from a dev hub.

    All collaborators are injectable: ``poller`` (provisioning cadence),
    ``session_factory`` (auth into the new environment), ``deployer_factory``
    (settings deploy), ``rng`` (password generation) and ``now``. When a
    ``redactor`` is given, auth codes, access tokens and generated passwords
    are registered with it as soon as they are obtained.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        settings: ClientSettings | None = None,
        poller: Poller | None = None,
        scripts: ScriptTemplateRegistry | None = None,
        session_factory: SessionFactory | None = None,
        deployer_factory: DeployerFactory | None = None,
        rng: random.Random | None = None,
        now: Callable[[], datetime] | None = None,
        redactor: SecretRedactor | None = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or ClientSettings()
        self._poller = poller or Poller(provisioning_poll_policy(self._settings))
        self._scripts = scripts or create_default_registry()
        self._session_factory = session_factory or self._login_with_auth_code
        self._deployer_factory = deployer_factory or self._default_deployer
        self._rng = rng
        self._now = now or _utcnow
        self._redactor = redactor

    # ── Lifecycle ────────────────────────────────────────────────────

    def create(self, params: CreateScratchParams) -> ProvisioningResult:
        """Create an environment and make it ready for interactive use.

        Raises before the environment is Active (nothing usable exists):
            ConfigurationError, AuthenticationError, TransportError,
            ScriptExecutionError, AmbiguousResourceError,
            EnvironmentStatusError, ProvisioningTimeoutError.

        After it is Active, failures are returned instead: the result has
        ``success=False``, ``state='partially_provisioned'`` and keeps what
        was produced so far.
        """
        problems = self._settings.validate_for_provisioning()
        if problems:
            raise ConfigurationError(problems)
        require_authenticated(self._transport.session)

        token = workflow_id_ctx.set(f'scratch-{uuid.uuid4().hex[:12]}')
        try:
            return self._create(params)
        finally:
            workflow_id_ctx.reset(token)

    def _create(self, params: CreateScratchParams) -> ProvisioningResult:
        job = create_requested(environment_name=params.name, now=self._now())
        logger.info(
            'Requesting environment: name=%s edition=%s',
            params.name,
            params.edition or self._settings.default_edition,
            extra={'environment_name': params.name},
        )

        try:
            self.request_environment(params)
        except ScratchforceError as exc:
            job = transition_to_error(
                job, now=self._now(), error_code='create_request_failed', error_detail=str(exc),
            )
            self._log_terminal(job)
            raise

        job = advance_state(job, now=self._now())
        try:
            environment = self.wait_for_active(params.name, params.username)
        except ProvisioningTimeoutError as exc:
            job = transition_to_timeout(job, now=self._now(), error_detail=str(exc))
            self._log_terminal(job)
            raise
        except ScratchforceError as exc:
            job = transition_to_error(
                job, now=self._now(), error_code=_error_code_for(exc), error_detail=str(exc),
            )
            self._log_terminal(job)
            raise

        result = ProvisioningResult(success=True, state=job.state, environment=environment)

        job = advance_state(job, now=self._now())
        try:
            env_session = self.authenticate(environment)
        except ScratchforceError as exc:
            return self._partial(job, result, 'auth_code_login_failed', exc)

        job = advance_state(job, now=self._now())
        try:
            self.apply_settings(env_session, params.settings)
        except PollTimeoutError as exc:
            return self._partial(job, result, 'apply_settings_timeout', exc)
        except ScratchforceError as exc:
            return self._partial(job, result, 'apply_settings_failed', exc)

        job = advance_state(job, now=self._now())
        result = self.set_credentials(env_session, params, result)
        if not result.success:
            return self._partial(job, result, result.error_code or 'set_credentials_failed', result.error)

        job = advance_state(job, now=self._now())
        logger.info(
            'Environment ready: name=%s login_url=%s expires=%s',
            environment.name,
            environment.login_url,
            environment.expires_at,
            extra={'environment_name': environment.name},
        )
        return replace(result, success=True, state=job.state)

    def request_environment(self, params: CreateScratchParams) -> None:
        """Insert the environment request record in the dev hub."""
        body = self._scripts.render(
            'insert_scratch_org',
            name=params.name,
            edition=params.edition or self._settings.default_edition,
            username=params.username,
            admin_email=params.admin_email,
            client_id=self._settings.client_id,
            redirect_uri=self._settings.redirect_uri,
            duration_days=params.duration_days or self._settings.default_duration_days,
            features=params.features,
            description=params.description,
            namespace=params.namespace or None,
            release=params.release or None,
            language=self._settings.default_language,
            country_code=params.country_code,
        )
        execute_anonymous(self._transport, body)

    def wait_for_active(self, name: str, username: str) -> ProvisionedEnvironment:
        """Poll the environment record until it is Active.

        Zero matches means not visible yet and keeps polling. More than one
        match, an ``Error`` status, or an impossible status change abort
        immediately without further polling.
        """
        soql = (
            f'SELECT FIELDS(ALL) FROM {SCRATCH_ORG_SOBJECT} '
            f'WHERE OrgName = {soql_literal(name)} '
            f'AND Username = {soql_literal(username)} LIMIT 2'
        )
        last_status: list[EnvironmentStatus] = []

        def fetch() -> ProvisionedEnvironment | None:
            records = query(self._transport, soql).records
            if len(records) > 1:
                raise AmbiguousResourceError(name, len(records))
            if not records:
                logger.info(
                    'Environment %s not visible yet', name,
                    extra={'environment_name': name},
                )
                return None

            environment = ProvisionedEnvironment.from_record(records[0])
            if last_status:
                try:
                    validate_status_transition(last_status[-1], environment.status)
                except InvalidStateTransition as exc:
                    raise EnvironmentStatusError(
                        name, environment.status.value, error_code=environment.error_code or None,
                    ) from exc
            last_status.append(environment.status)

            if environment.status in (EnvironmentStatus.ERROR, EnvironmentStatus.DELETED):
                raise EnvironmentStatusError(
                    name, environment.status.value, error_code=environment.error_code or None,
                )
            return environment

        def on_pending(environment: ProvisionedEnvironment | None, attempts: int) -> None:
            if environment is not None:
                logger.info(
                    'Environment %s status %s after %d checks',
                    name,
                    environment.status.value,
                    attempts,
                    extra={'environment_name': name},
                )

        outcome = self._poller.poll(
            fetch,
            lambda env: env is not None and env.status is EnvironmentStatus.ACTIVE,
            on_pending=on_pending,
        )
        if outcome.timed_out or outcome.value is None:
            raise ProvisioningTimeoutError(
                name, attempts=outcome.attempts, elapsed_seconds=outcome.elapsed_seconds,
            )
        self._register_secret(outcome.value.auth_code)
        return outcome.value

    def authenticate(self, environment: ProvisionedEnvironment) -> Session:
        """New Session for ``environment``; the caller's Session is untouched."""
        session = require_authenticated(self._session_factory(environment))
        self._register_secret(session.access_token)
        return session

    def apply_settings(self, env_session: Session, settings: ScratchSettings) -> DeploymentResult:
        """Deploy the security and quote settings into the new environment.

        Not rolled back on failure: the environment stays Active.
        """
        require_authenticated(env_session)
        archive = build_settings_archive(
            api_version=self._settings.api_version,
            enable_audit_fields_inactive_owner=settings.enable_audit_fields_inactive_owner,
            ip_ranges=settings.ip_ranges,
        )
        deployer = self._deployer_factory(self._transport.for_session(env_session))
        return deployer.deploy(archive, DeployOptions(test_level='NoTestRun'))

    def set_credentials(
        self,
        env_session: Session,
        params: CreateScratchParams,
        result: ProvisioningResult,
    ) -> ProvisioningResult:
        """Set a generated password, then the user's country/phone/language.

        Runs in the new environment's security context. Returns ``result``
        extended with the password; on failure the returned result has
        ``success=False`` and still carries the password if it was set.
        """
        require_authenticated(env_session)
        env_transport = self._transport.for_session(env_session)
        password = generate_password(
            self._settings.password_length,
            self._settings.password_min_special,
            self._settings.password_min_numeric,
            self._settings.password_min_upper,
            self._rng,
        )
        self._register_secret(password)

        try:
            execute_anonymous(env_transport, self._scripts.render('set_password', password=password))
        except ScratchforceError as exc:
            logger.warning('Setting password failed: %s', exc)
            return replace(
                result,
                success=False,
                error_code='set_password_failed',
                error_detail=str(exc),
                error=exc,
            )
        result = result.with_password(password)

        try:
            execute_anonymous(
                env_transport,
                self._scripts.render(
                    'update_user_profile',
                    country_name=params.country_name,
                    phone=params.phone,
                    language=self._settings.default_language,
                ),
            )
        except ScratchforceError as exc:
            logger.warning('Setting user details failed: %s', exc)
            return replace(
                result,
                success=False,
                error_code='update_user_failed',
                error_detail=str(exc),
                error=exc,
            )
        return result

    # ── Inspection and teardown ──────────────────────────────────────

    def exists(self, name: str) -> tuple[bool, str]:
        """Return ``(True, expiration_date)`` if one Active environment has ``name``.

        Raises:
            AmbiguousResourceError: More than one Active match.
        """
        require_authenticated(self._transport.session)
        records = query(
            self._transport,
            f'SELECT FIELDS(ALL) FROM {SCRATCH_ORG_SOBJECT} '
            f"WHERE OrgName = {soql_literal(name)} AND Status = 'Active' LIMIT 2",
        ).records
        if len(records) > 1:
            raise AmbiguousResourceError(name, len(records))
        if not records:
            return False, ''
        return True, records[0].string_field('ExpirationDate')

    def list_environments(self) -> list[ProvisionedEnvironment]:
        """All Active environments visible to the dev hub."""
        require_authenticated(self._transport.session)
        records = query(
            self._transport,
            f"SELECT FIELDS(ALL) FROM {SCRATCH_ORG_SOBJECT} WHERE Status = 'Active' LIMIT 200",
        ).records
        return [ProvisionedEnvironment.from_record(r) for r in records]

    def teardown(self, name: str) -> RemoveScratchResult:
        """Delete Active environments named ``name``.

        Idempotent: when nothing matches, succeeds without issuing a delete.
        """
        require_authenticated(self._transport.session)
        records = query(
            self._transport,
            f'SELECT Id FROM {SCRATCH_ORG_SOBJECT} '
            f"WHERE OrgName = {soql_literal(name)} AND Status = 'Active' LIMIT {TEARDOWN_LIMIT}",
        ).records
        ids = tuple(r.string_field('Id') for r in records if r.string_field('Id'))
        if not ids:
            logger.info(
                'No active environment named %s, nothing to delete', name,
                extra={'environment_name': name},
            )
            return RemoveScratchResult(success=True)

        execute_anonymous(self._transport, self._scripts.render('delete_scratch_orgs', ids=list(ids)))
        logger.info(
            'Deleted %d environment(s) named %s', len(ids), name,
            extra={'environment_name': name},
        )
        return RemoveScratchResult(success=True, removed=ids)

    # ── Internals ────────────────────────────────────────────────────

    def _partial(
        self,
        job: ProvisioningState,
        result: ProvisioningResult,
        error_code: str,
        exc: Exception | None,
    ) -> ProvisioningResult:
        job = transition_to_partial(
            job, now=self._now(), error_code=error_code, error_detail=str(exc),
        )
        self._log_terminal(job)
        return replace(
            result,
            success=False,
            state=job.state,
            error_code=error_code,
            error_detail=str(exc),
            error=exc,
        )

    def _register_secret(self, value: str) -> None:
        if self._redactor is not None:
            self._redactor.register(value)

    def _log_terminal(self, job: ProvisioningState) -> None:
        logger.warning(
            'Provisioning %s ended in %s: %s (%s)',
            job.environment_name,
            job.state,
            job.last_error_code,
            job.last_error_detail,
            extra={'environment_name': job.environment_name, 'state': job.state},
        )

    def _login_with_auth_code(self, environment: ProvisionedEnvironment) -> Session:
        return login_with_auth_code(
            environment.login_url,
            environment.auth_code,
            client_id=self._settings.client_id,
            redirect_uri=self._settings.redirect_uri,
            http_client=self._transport.http_client,
            api_version=self._settings.api_version,
            timeout_seconds=self._settings.http_timeout_seconds,
        )

    def _default_deployer(self, transport: Transport) -> MetadataDeployer:
        return MetadataDeployer(transport, settings=self._settings)


def _error_code_for(exc: Exception) -> str:
    if isinstance(exc, AmbiguousResourceError):
        return 'ambiguous_environment'
    if isinstance(exc, EnvironmentStatusError):
        return 'environment_error_status'
    return 'status_check_failed'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
