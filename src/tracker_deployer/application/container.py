"""Wires settings, repository, adapters and handlers together.

The CLI builds one :class:`Container` per invocation. Tests pass fakes for
any of the adapter slots and a fixed clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from tracker_deployer.adapters.ansible import AnsibleConfigurationEngine
from tracker_deployer.adapters.command import CommandRunner
from tracker_deployer.adapters.interfaces import (
    ConfigurationEngine,
    Provisioner,
    Renderer,
    SshClient,
    SshClientFactory,
)
from tracker_deployer.adapters.rendering import TemplateDirectoryRenderer
from tracker_deployer.adapters.ssh import OpenSshClient
from tracker_deployer.adapters.tofu import OpenTofuProvisioner
from tracker_deployer.application.handlers import (
    ConfigureCommandHandler,
    CreateCommandHandler,
    DestroyCommandHandler,
    ExistsCommandHandler,
    ListCommandHandler,
    ProvisionCommandHandler,
    PurgeCommandHandler,
    RegisterCommandHandler,
    ReleaseCommandHandler,
    RunCommandHandler,
    ShowCommandHandler,
    TestCommandHandler,
    ValidateCommandHandler,
)
from tracker_deployer.application.handlers.common import INVENTORY_FILE
from tracker_deployer.config.settings import DeployerSettings
from tracker_deployer.domain.clock import Clock, SystemClock
from tracker_deployer.domain.repository import EnvironmentRepository, TypedEnvironmentRepository
from tracker_deployer.domain.values import SshCredentials
from tracker_deployer.persistence.file_repository import FileEnvironmentRepository
from tracker_deployer.utils.logging import get_logger

TOFU_VARIABLES_FILE = "variables.auto.tfvars.json"
COMPOSE_VARIABLES_FILE = ".env"


@dataclass
class Container:
    """Per-invocation object graph.

    Any adapter left as ``None`` is built from settings on first use.
    """

    settings: DeployerSettings
    clock: Clock = field(default_factory=SystemClock)
    logger: structlog.stdlib.BoundLogger = field(default_factory=lambda: get_logger("tracker_deployer"))
    repository: EnvironmentRepository | None = None
    tofu_renderer: Renderer | None = None
    ansible_renderer: Renderer | None = None
    compose_renderer: Renderer | None = None
    provisioner: Provisioner | None = None
    configuration_engine: ConfigurationEngine | None = None
    ssh_client_factory: SshClientFactory | None = None

    def __post_init__(self) -> None:
        settings = self.settings
        templates = settings.resolved_templates_dir
        runner = CommandRunner(timeout=settings.command_timeout, logger=self.logger)

        if self.repository is None:
            self.repository = FileEnvironmentRepository(settings.data_dir, lock_timeout=settings.lock_timeout)
        if self.tofu_renderer is None:
            self.tofu_renderer = TemplateDirectoryRenderer(templates / "tofu", TOFU_VARIABLES_FILE, logger=self.logger)
        if self.ansible_renderer is None:
            self.ansible_renderer = TemplateDirectoryRenderer(templates / "ansible", INVENTORY_FILE, logger=self.logger)
        if self.compose_renderer is None:
            self.compose_renderer = TemplateDirectoryRenderer(
                templates / "docker-compose", COMPOSE_VARIABLES_FILE, logger=self.logger
            )
        if self.provisioner is None:
            self.provisioner = OpenTofuProvisioner(runner, binary=settings.tofu_binary, logger=self.logger)
        if self.configuration_engine is None:
            self.configuration_engine = AnsibleConfigurationEngine(
                runner, binary=settings.ansible_playbook_binary, logger=self.logger
            )
        if self.ssh_client_factory is None:

            def open_ssh(host: str, credentials: SshCredentials) -> SshClient:
                return OpenSshClient(
                    host,
                    credentials,
                    runner,
                    binary=settings.ssh_binary,
                    connect_timeout=settings.ssh_connect_timeout,
                    poll_interval=settings.ssh_poll_interval,
                    logger=self.logger,
                )

            self.ssh_client_factory = open_ssh

    @property
    def typed_repository(self) -> TypedEnvironmentRepository:
        if self.repository is None:
            raise RuntimeError("Container repository was not initialised")
        return TypedEnvironmentRepository(self.repository)

    def _base(self) -> dict[str, Any]:
        return {
            "repository": self.typed_repository,
            "clock": self.clock,
            "settings": self.settings,
            "logger": self.logger,
        }

    # ==================== HANDLERS ====================

    def create_handler(self) -> CreateCommandHandler:
        return CreateCommandHandler(**self._base())

    def provision_handler(self) -> ProvisionCommandHandler:
        return ProvisionCommandHandler(
            **self._base(),
            tofu_renderer=self.tofu_renderer,
            ansible_renderer=self.ansible_renderer,
            provisioner=self.provisioner,
            configuration_engine=self.configuration_engine,
            ssh_client_factory=self.ssh_client_factory,
        )

    def register_handler(self) -> RegisterCommandHandler:
        return RegisterCommandHandler(
            **self._base(),
            ansible_renderer=self.ansible_renderer,
            ssh_client_factory=self.ssh_client_factory,
        )

    def configure_handler(self) -> ConfigureCommandHandler:
        return ConfigureCommandHandler(**self._base(), configuration_engine=self.configuration_engine)

    def release_handler(self) -> ReleaseCommandHandler:
        return ReleaseCommandHandler(
            **self._base(),
            compose_renderer=self.compose_renderer,
            configuration_engine=self.configuration_engine,
        )

    def run_handler(self) -> RunCommandHandler:
        return RunCommandHandler(**self._base(), configuration_engine=self.configuration_engine)

    def test_handler(self) -> TestCommandHandler:
        return TestCommandHandler(**self._base(), ssh_client_factory=self.ssh_client_factory)

    def destroy_handler(self) -> DestroyCommandHandler:
        return DestroyCommandHandler(**self._base(), provisioner=self.provisioner)

    def purge_handler(self) -> PurgeCommandHandler:
        return PurgeCommandHandler(**self._base())

    def list_handler(self) -> ListCommandHandler:
        return ListCommandHandler(**self._base())

    def show_handler(self) -> ShowCommandHandler:
        return ShowCommandHandler(**self._base())

    def exists_handler(self) -> ExistsCommandHandler:
        return ExistsCommandHandler(**self._base())

    def validate_handler(self) -> ValidateCommandHandler:
        return ValidateCommandHandler(**self._base())
