"""scratchforce: client for a Salesforce-style platform.

Sessions, SOQL queries, anonymous scripts, metadata deployment and the
scratch environment lifecycle, over a blocking ``httpx.Client``.
"""

from .apex import ExecuteAnonymousResult, execute_anonymous
from .errors import (
    AmbiguousResourceError,
    AuthenticationError,
    ConfigurationError,
    DeploymentError,
    DeploymentTimeoutError,
    EnvironmentStatusError,
    PollTimeoutError,
    ProvisioningTimeoutError,
    RemoteOperationError,
    ScratchforceError,
    ScriptExecutionError,
    ScriptTemplateError,
    SessionExpiredError,
    TransportError,
)
from .metadata import DeployOptions, DeploymentResult, MetadataDeployer
from .provisioning import (
    CreateScratchParams,
    ProvisionedEnvironment,
    ProvisioningResult,
    RemoveScratchResult,
    ScratchProvisioner,
    ScratchSettings,
)
from .query import QueryResult, Record, query
from .session import Session, login_with_auth_code
from .settings import ClientSettings
from .transport import Transport

__version__ = "0.1.0"

__all__ = [
    "AmbiguousResourceError",
    "AuthenticationError",
    "ClientSettings",
    "ConfigurationError",
    "CreateScratchParams",
    "DeployOptions",
    "DeploymentError",
    "DeploymentTimeoutError",
    "DeploymentResult",
    "EnvironmentStatusError",
    "ExecuteAnonymousResult",
    "MetadataDeployer",
    "PollTimeoutError",
    "ProvisionedEnvironment",
    "ProvisioningResult",
    "ProvisioningTimeoutError",
    "QueryResult",
    "Record",
    "RemoteOperationError",
    "RemoveScratchResult",
    "ScratchProvisioner",
    "ScratchSettings",
    "ScratchforceError",
    "ScriptExecutionError",
    "ScriptTemplateError",
    "Session",
    "SessionExpiredError",
    "Transport",
    "TransportError",
    "execute_anonymous",
    "login_with_auth_code",
    "query",
]
