"""OpenSSH command-line client."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from tracker_deployer.adapters.command import CommandOutput, CommandRunner
from tracker_deployer.adapters.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    SshConnectivityError,
    SshTimeoutError,
)
from tracker_deployer.domain.values import SshCredentials
from tracker_deployer.utils.logging import get_logger


class OpenSshClient:
    """Executes commands on one host through the ``ssh`` binary."""

    def __init__(
        self,
        host: str,
        credentials: SshCredentials,
        runner: CommandRunner,
        *,
        binary: str = "ssh",
        connect_timeout: float = 5.0,
        poll_interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.host = host
        self.credentials = credentials
        self.runner = runner
        self.binary = binary
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._monotonic = monotonic
        self.logger = (logger or get_logger("adapters.ssh")).bind(host=host, port=credentials.port)

    def _args(self, command: str) -> list[str]:
        return [
            self.binary,
            "-i",
            str(self.credentials.private_key_path),
            "-p",
            str(self.credentials.port),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "BatchMode=yes",
            "-o",
            "LogLevel=ERROR",
            "-o",
            f"ConnectTimeout={int(self.connect_timeout)}",
            f"{self.credentials.username}@{self.host}",
            command,
        ]

    def execute(self, command: str) -> CommandOutput:
        try:
            return self.runner.run(self._args(command))
        except CommandExecutionError as exc:
            # ssh itself exits with 255 when the connection fails.
            if exc.exit_code == 255:
                raise SshConnectivityError(self.host, self.credentials.port, exc.stderr.strip() or "connection failed") from exc
            raise

    def wait_for_connectivity(self, timeout: float) -> None:
        """Poll until a trivial command succeeds or ``timeout`` elapses."""
        deadline = self._monotonic() + timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                self.runner.run(self._args("true"), timeout=self.connect_timeout + 5)
            except (CommandExecutionError, CommandTimeoutError) as exc:
                if self._monotonic() + self.poll_interval > deadline:
                    raise SshTimeoutError(self.host, self.credentials.port, timeout, attempts) from exc
                self.logger.debug("ssh.waiting", attempt=attempts)
                self._sleep(self.poll_interval)
                continue
            self.logger.info("ssh.connected", attempts=attempts)
            return


__all__ = ["OpenSshClient"]
