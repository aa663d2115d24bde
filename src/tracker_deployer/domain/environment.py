"""Environment aggregate and its lifecycle states.

Every lifecycle state is its own frozen model class. A class only defines the
transitions that are legal from that state, so there is no way to call
``configured()`` on a ``Created`` environment, and the fields a state needs
(for example the instance IP of ``Provisioned``) are required by its class.

Happy path::

    Created → Provisioning → Provisioned → Configuring → Configured
      → Releasing → Released → Starting → Running

A ``Created`` environment whose instance already exists moves straight to
``Provisioned`` with ``registered``.

Every state except ``Destroyed`` can start destroying. Each in-progress state
(``Provisioning``, ``Configuring``, ``Releasing``, ``Starting``,
``Destroying``) is the only source of its ``*Failed`` state, and each failed
state can retry its own verb.

Transitions consume their receiver: once an environment has been
transitioned, calling another transition on the same object raises
:class:`EnvironmentConsumedError`.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, IPvAnyAddress, PrivateAttr

from tracker_deployer.domain.errors import ErrorKind, TraceId
from tracker_deployer.domain.values import (
    EnvironmentName,
    InstanceName,
    Provider,
    ProviderConfig,
    SshCredentials,
    provider_of,
)

E = TypeVar("E", bound="Environment")


class EnvironmentConsumedError(RuntimeError):
    """Raised when a transition is attempted on an already transitioned value."""


# ==================== FAILURE CONTEXT ====================


class ProvisionStep(str, Enum):
    VALIDATE_SSH_KEYS = "ValidateSshKeys"
    RENDER_OPENTOFU_TEMPLATES = "RenderOpenTofuTemplates"
    OPENTOFU_APPLY = "OpenTofuApply"
    RENDER_ANSIBLE_TEMPLATES = "RenderAnsibleTemplates"
    WAIT_SSH_CONNECTIVITY = "WaitSshConnectivity"
    CLOUD_INIT_WAIT = "CloudInitWait"


class ConfigureStep(str, Enum):
    INSTALL_DOCKER = "InstallDocker"
    INSTALL_DOCKER_COMPOSE = "InstallDockerCompose"
    CONFIGURE_SECURITY_UPDATES = "ConfigureSecurityUpdates"
    CONFIGURE_FIREWALL = "ConfigureFirewall"


class ReleaseStep(str, Enum):
    RENDER_DOCKER_COMPOSE_TEMPLATES = "RenderDockerComposeTemplates"
    DEPLOY_COMPOSE_FILES_TO_REMOTE = "DeployComposeFilesToRemote"


class RegisterStep(str, Enum):
    VALIDATE_SSH_KEYS = "ValidateSshKeys"
    WAIT_SSH_CONNECTIVITY = "WaitSshConnectivity"
    RENDER_ANSIBLE_TEMPLATES = "RenderAnsibleTemplates"


class RunStep(str, Enum):
    START_SERVICES = "StartServices"


class DestroyStep(str, Enum):
    DESTROY_INFRASTRUCTURE = "DestroyInfrastructure"
    CLEANUP_BUILD_FILES = "CleanupBuildFiles"


class FailureContext(BaseModel):
    """What went wrong during a phase, kept on the ``*Failed`` state."""

    model_config = ConfigDict(frozen=True)

    trace_id: TraceId
    error_kind: ErrorKind
    summary: str
    failed_step: str
    failed_at: datetime
    execution_started_at: datetime
    trace_file: Path | None = None

    @property
    def execution_duration(self) -> timedelta:
        return self.failed_at - self.execution_started_at


# ==================== BASE AGGREGATE ====================


class Environment(BaseModel):
    """Fields every lifecycle state carries.

    ``name`` and ``created_at`` are set once by the create command and are
    copied unchanged through every transition.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_error_state: ClassVar[bool] = False
    is_in_progress: ClassVar[bool] = False

    name: EnvironmentName
    instance_name: InstanceName
    provider_config: ProviderConfig
    ssh_credentials: SshCredentials
    created_at: datetime

    _consumed: bool = PrivateAttr(default=False)

    @classmethod
    def state_name(cls) -> str:
        """Stable tag used as the top-level JSON key when persisted."""
        return cls.__name__

    @property
    def provider(self) -> Provider:
        return provider_of(self.provider_config)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def _into(self, target: type[E], **payload: Any) -> E:
        """Build ``target`` from this value, carrying every shared field."""
        if self._consumed:
            raise EnvironmentConsumedError(
                f"Environment '{self.name}' in state {self.state_name()} was already "
                "transitioned; use the value returned by that transition"
            )
        self._consumed = True
        data = {
            field: getattr(self, field)
            for field in type(self).model_fields
            if field in target.model_fields and field not in payload
        }
        data.update(payload)
        return target(**data)


class _Destroyable:
    """Mixin for every state that may be torn down."""

    def start_destroying(self, now: datetime) -> Destroying:
        return self._into(Destroying, destroy_started_at=now)  # type: ignore[attr-defined]


class _ProvisionStartable:
    def start_provisioning(self, now: datetime) -> Provisioning:
        return self._into(Provisioning, provision_started_at=now)  # type: ignore[attr-defined]


class _ConfigureStartable:
    def start_configuring(self, now: datetime) -> Configuring:
        return self._into(Configuring, configure_started_at=now)  # type: ignore[attr-defined]


class _ReleaseStartable:
    def start_releasing(self, now: datetime) -> Releasing:
        return self._into(Releasing, release_started_at=now)  # type: ignore[attr-defined]


class _RunStartable:
    def start_running(self, now: datetime) -> Starting:
        return self._into(Starting, run_started_at=now)  # type: ignore[attr-defined]


# ==================== PAYLOAD GROUPS ====================


class _WithInfrastructure(Environment):
    """Data produced by a successful provision."""

    instance_ip: IPvAnyAddress
    provisioned_at: datetime


class _WithConfiguration(_WithInfrastructure):
    configured_at: datetime


class _WithRelease(_WithConfiguration):
    released_at: datetime


class _TearingDown(Environment):
    """Historical instance data kept for audit while tearing down."""

    instance_ip: IPvAnyAddress | None = None


# ==================== STATES ====================


class Created(_ProvisionStartable, _Destroyable, Environment):
    """Initial state: definition persisted, no infrastructure yet."""

    def registered(self, instance_ip: Any, now: datetime) -> Provisioned:
        """Adopt an instance that already exists at ``instance_ip``."""
        return self._into(Provisioned, instance_ip=instance_ip, provisioned_at=now)


class Provisioning(_ProvisionStartable, _Destroyable, Environment):
    is_in_progress: ClassVar[bool] = True

    provision_started_at: datetime

    def provisioned(self, instance_ip: Any, now: datetime) -> Provisioned:
        return self._into(Provisioned, instance_ip=instance_ip, provisioned_at=now)

    def provision_failed(self, failure: FailureContext) -> ProvisionFailed:
        return self._into(ProvisionFailed, failure=failure)


class ProvisionFailed(_ProvisionStartable, _Destroyable, Environment):
    is_error_state: ClassVar[bool] = True

    provision_started_at: datetime
    failure: FailureContext


class Provisioned(_ConfigureStartable, _Destroyable, _WithInfrastructure):
    """Infrastructure exists and is reachable over SSH."""


class Configuring(_ConfigureStartable, _Destroyable, _WithInfrastructure):
    is_in_progress: ClassVar[bool] = True

    configure_started_at: datetime

    def configured(self, now: datetime) -> Configured:
        return self._into(Configured, configured_at=now)

    def configure_failed(self, failure: FailureContext) -> ConfigureFailed:
        return self._into(ConfigureFailed, failure=failure)


class ConfigureFailed(_ConfigureStartable, _Destroyable, _WithInfrastructure):
    is_error_state: ClassVar[bool] = True

    configure_started_at: datetime
    failure: FailureContext


class Configured(_ReleaseStartable, _Destroyable, _WithConfiguration):
    """System packages, Docker and firewall are in place."""


class Releasing(_ReleaseStartable, _Destroyable, _WithConfiguration):
    is_in_progress: ClassVar[bool] = True

    release_started_at: datetime

    def released(self, now: datetime) -> Released:
        return self._into(Released, released_at=now)

    def release_failed(self, failure: FailureContext) -> ReleaseFailed:
        return self._into(ReleaseFailed, failure=failure)


class ReleaseFailed(_ReleaseStartable, _Destroyable, _WithConfiguration):
    is_error_state: ClassVar[bool] = True

    release_started_at: datetime
    failure: FailureContext


class Released(_RunStartable, _Destroyable, _WithRelease):
    """Application files are deployed to the instance."""


class Starting(_RunStartable, _Destroyable, _WithRelease):
    is_in_progress: ClassVar[bool] = True

    run_started_at: datetime

    def running(self, now: datetime) -> Running:
        return self._into(Running, running_since=now)

    def run_failed(self, failure: FailureContext) -> RunFailed:
        return self._into(RunFailed, failure=failure)


class RunFailed(_RunStartable, _Destroyable, _WithRelease):
    is_error_state: ClassVar[bool] = True

    run_started_at: datetime
    failure: FailureContext


class Running(_Destroyable, _WithRelease):
    """Services are up."""

    running_since: datetime


class Destroying(_Destroyable, _TearingDown):
    is_in_progress: ClassVar[bool] = True

    destroy_started_at: datetime

    def destroyed(self, now: datetime) -> Destroyed:
        return self._into(Destroyed, destroyed_at=now)

    def destroy_failed(self, failure: FailureContext) -> DestroyFailed:
        return self._into(DestroyFailed, failure=failure)


class DestroyFailed(_Destroyable, _TearingDown):
    is_error_state: ClassVar[bool] = True

    destroy_started_at: datetime
    failure: FailureContext


class Destroyed(_TearingDown):
    """Terminal state: infrastructure torn down, data kept until purged."""

    destroyed_at: datetime


STATE_CLASSES: dict[str, type[Environment]] = {
    cls.state_name(): cls
    for cls in (
        Created,
        Provisioning,
        ProvisionFailed,
        Provisioned,
        Configuring,
        ConfigureFailed,
        Configured,
        Releasing,
        ReleaseFailed,
        Released,
        Starting,
        RunFailed,
        Running,
        Destroying,
        DestroyFailed,
        Destroyed,
    )
}


__all__ = [
    "EnvironmentConsumedError",
    "ProvisionStep",
    "ConfigureStep",
    "ReleaseStep",
    "RegisterStep",
    "RunStep",
    "DestroyStep",
    "FailureContext",
    "Environment",
    "Created",
    "Provisioning",
    "ProvisionFailed",
    "Provisioned",
    "Configuring",
    "ConfigureFailed",
    "Configured",
    "Releasing",
    "ReleaseFailed",
    "Released",
    "Starting",
    "RunFailed",
    "Running",
    "Destroying",
    "DestroyFailed",
    "Destroyed",
    "STATE_CLASSES",
]
