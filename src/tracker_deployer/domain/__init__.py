"""Domain layer: environment states, value objects, errors and repository contract."""

from tracker_deployer.domain.environment import (
    STATE_CLASSES,
    ConfigureFailed,
    Configured,
    Configuring,
    Created,
    DestroyFailed,
    Destroyed,
    Destroying,
    Environment,
    EnvironmentConsumedError,
    FailureContext,
    ProvisionFailed,
    Provisioned,
    Provisioning,
    Released,
    ReleaseFailed,
    Releasing,
    RunFailed,
    Running,
    Starting,
)
from tracker_deployer.domain.errors import ErrorKind, Traceable, TraceId
from tracker_deployer.domain.state import AnyEnvironmentState, StateTypeError
from tracker_deployer.domain.values import (
    EnvironmentName,
    HetznerConfig,
    InstanceName,
    LxdConfig,
    ProfileName,
    Provider,
    SshCredentials,
    Username,
)

__all__ = [
    "STATE_CLASSES",
    "AnyEnvironmentState",
    "ConfigureFailed",
    "Configured",
    "Configuring",
    "Created",
    "DestroyFailed",
    "Destroyed",
    "Destroying",
    "Environment",
    "EnvironmentConsumedError",
    "EnvironmentName",
    "ErrorKind",
    "FailureContext",
    "HetznerConfig",
    "InstanceName",
    "LxdConfig",
    "ProfileName",
    "Provider",
    "ProvisionFailed",
    "Provisioned",
    "Provisioning",
    "Released",
    "ReleaseFailed",
    "Releasing",
    "RunFailed",
    "Running",
    "SshCredentials",
    "Starting",
    "StateTypeError",
    "TraceId",
    "Traceable",
    "Username",
]
