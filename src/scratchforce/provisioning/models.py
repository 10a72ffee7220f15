"""Domain records for scratch environment provisioning."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from ..metadata.settings import IpRange
from ..query import Record

SCRATCH_ORG_SOBJECT = 'ScratchOrgInfo'


class EnvironmentStatus(str, Enum):
    """Remote environment status. The client only reads it."""

    PROVISIONING = 'Provisioning'
    ACTIVE = 'Active'
    ERROR = 'Error'
    DELETED = 'Deleted'

    @classmethod
    def from_remote(cls, value: str) -> EnvironmentStatus:
        """Map the platform's status picklist (``New`` means provisioning)."""
        normalized = (value or '').strip().lower()
        if normalized == 'active':
            return cls.ACTIVE
        if normalized == 'error':
            return cls.ERROR
        if normalized == 'deleted':
            return cls.DELETED
        return cls.PROVISIONING


@dataclass(frozen=True, slots=True)
class ScratchSettings:
    """Settings deployed into a new environment.

    ``ip_ranges`` of None means the default allow-all ranges.
    """

    enable_audit_fields_inactive_owner: bool = False
    ip_ranges: tuple[IpRange, ...] | None = None


@dataclass(frozen=True, slots=True)
class CreateScratchParams:
    """Caller inputs for creating one environment.

    ``username`` must be globally unique; together with ``name`` it is the
    natural key used to find the new record while it is provisioned.
    """

    name: str
    username: str
    admin_email: str
    features: str = ''
    phone: str = ''
    country_name: str = ''
    country_code: str = ''
    description: str = ''
    namespace: str = ''
    edition: str | None = None
    release: str | None = None
    duration_days: int | None = None
    settings: ScratchSettings = field(default_factory=ScratchSettings)


@dataclass(frozen=True, slots=True)
class ProvisionedEnvironment:
    """Projection of a ScratchOrgInfo record."""

    id: str
    name: str
    namespace: str = ''
    login_url: str = ''
    signup_username: str = ''
    auth_code: str = ''
    features: str = ''
    expires_at: str = ''
    status: EnvironmentStatus = EnvironmentStatus.PROVISIONING
    error_code: str = ''

    @classmethod
    def from_record(cls, record: Record) -> ProvisionedEnvironment:
        return cls(
            id=record.string_field('Id'),
            name=record.string_field('OrgName'),
            namespace=record.string_field('Namespace'),
            login_url=record.string_field('LoginUrl'),
            signup_username=record.string_field('SignupUsername'),
            auth_code=record.string_field('AuthCode'),
            features=record.string_field('Features'),
            expires_at=record.string_field('ExpirationDate'),
            status=EnvironmentStatus.from_remote(record.string_field('Status')),
            error_code=record.string_field('ErrorCode'),
        )

    def __repr__(self) -> str:
        return (
            f'ProvisionedEnvironment(id={self.id!r}, name={self.name!r}, '
            f'status={self.status.value!r}, login_url={self.login_url!r})'
        )


@dataclass(frozen=True, slots=True)
class ProvisioningResult:
    """Outcome of :meth:`ScratchProvisioner.create`.

    ``success`` is False for a partially provisioned environment: it exists
    and is Active, but a later step failed. Everything produced before the
    failure (credentials included) is still present.
    """

    success: bool
    state: str
    environment: ProvisionedEnvironment | None = None
    password: str = ''
    error_code: str | None = None
    error_detail: str | None = None
    error: Exception | None = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.environment.name if self.environment else ''

    @property
    def namespace(self) -> str:
        return self.environment.namespace if self.environment else ''

    @property
    def login_url(self) -> str:
        return self.environment.login_url if self.environment else ''

    @property
    def user(self) -> str:
        return self.environment.signup_username if self.environment else ''

    @property
    def auth_code(self) -> str:
        return self.environment.auth_code if self.environment else ''

    @property
    def features(self) -> str:
        return self.environment.features if self.environment else ''

    @property
    def expires_at(self) -> str:
        return self.environment.expires_at if self.environment else ''

    def with_password(self, password: str) -> ProvisioningResult:
        return replace(self, password=password)

    def __repr__(self) -> str:
        return (
            f'ProvisioningResult(success={self.success}, state={self.state!r}, '
            f'environment={self.environment!r}, password_set={bool(self.password)}, '
            f'error_code={self.error_code!r})'
        )


@dataclass(frozen=True, slots=True)
class RemoveScratchResult:
    success: bool
    removed: tuple[str, ...] = ()
