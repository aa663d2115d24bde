"""Test command: read-only smoke checks against a provisioned instance.

The test command never changes the environment's state and never writes a
trace file; a failed check is reported to the caller only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tracker_deployer.adapters.interfaces import SshClientFactory
from tracker_deployer.application.errors import HandlerError
from tracker_deployer.application.handlers.common import CommandHandler
from tracker_deployer.domain.environment import (
    ConfigureFailed,
    Configured,
    Configuring,
    Provisioned,
    Released,
    ReleaseFailed,
    Releasing,
    RunFailed,
    Running,
    Starting,
)
from tracker_deployer.domain.errors import ErrorKind, Traceable, describe_error
from tracker_deployer.domain.values import EnvironmentName, SshKeyNotFoundError

# States that carry the instance IP of a live instance.
TESTABLE_STATES = (
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
)


@dataclass(frozen=True)
class RemoteCheck:
    name: str
    command: str
    expect: str | None = None
    requires_docker: bool = False


CHECKS = (
    RemoteCheck("cloud-init completed", "cloud-init status", expect="done"),
    RemoteCheck("docker installed", "docker --version", requires_docker=True),
    RemoteCheck("docker compose installed", "docker compose version", requires_docker=True),
    RemoteCheck("docker daemon running", "docker info --format '{{.ServerVersion}}'", requires_docker=True),
)


class RemoteCheckFailedError(HandlerError):
    """A smoke check did not pass."""

    def __init__(self, name: str, check: str, detail: str):
        self.name = name
        self.check = check
        super().__init__(f"Check '{check}' failed on environment '{name}': {detail}")

    def error_kind(self) -> ErrorKind:
        cause = self.trace_source()
        if isinstance(cause, Traceable):
            return cause.error_kind()
        return ErrorKind.COMMAND_EXECUTION

    def help(self) -> str:
        return (
            "Smoke Test Failed - Troubleshooting:\n"
            "1. Make sure 'configure' completed for this environment\n"
            "2. Inspect the instance manually over SSH\n"
            f"3. Check the current state with: tracker-deployer show {self.name}"
        )


@dataclass
class TestReport:
    __test__ = False

    environment: str
    instance_ip: str
    passed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class TestCommandHandler(CommandHandler):
    command = "test"
    __test__ = False

    def __init__(self, *args: Any, ssh_client_factory: SshClientFactory, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.ssh_client_factory = ssh_client_factory

    def execute(self, name: EnvironmentName) -> TestReport:
        log = self.logger.bind(environment=name)
        snapshot = self._load(name)
        environment = self._narrow(snapshot, *TESTABLE_STATES)

        report = TestReport(environment=name, instance_ip=str(environment.instance_ip))
        try:
            environment.ssh_credentials.ensure_keys_exist()
        except SshKeyNotFoundError as exc:
            raise RemoteCheckFailedError(name, "ssh keys present", str(exc)) from exc
        ssh = self.ssh_client_factory(report.instance_ip, environment.ssh_credentials)

        for check in CHECKS:
            if check.requires_docker and self.settings.skip_docker_install:
                report.skipped.append(check.name)
                continue
            try:
                output = ssh.execute(check.command)
            except Exception as exc:
                raise RemoteCheckFailedError(name, check.name, describe_error(exc)) from exc
            if check.expect is not None and check.expect not in output.stdout:
                raise RemoteCheckFailedError(
                    name, check.name, f"expected '{check.expect}' in output, got {output.stdout.strip()!r}"
                )
            report.passed.append(check.name)
            log.info("test.check_passed", check=check.name)

        log.info("test.completed", passed=len(report.passed), skipped=len(report.skipped))
        return report
