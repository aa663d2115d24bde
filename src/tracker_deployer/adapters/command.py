"""Subprocess execution shared by the tool adapters."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from tracker_deployer.adapters.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    ToolNotFoundError,
)
from tracker_deployer.utils.logging import get_logger


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str
    exit_code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Runs external programs and maps failures to adapter errors."""

    def __init__(self, timeout: float = 1800.0, logger: structlog.stdlib.BoundLogger | None = None):
        self.timeout = timeout
        self.logger = logger or get_logger("adapters.command")

    def run(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        check: bool = True,
    ) -> CommandOutput:
        """Run a command to completion.

        Args:
            args: Program and arguments
            cwd: Working directory
            env: Extra environment variables merged over ``os.environ``
            timeout: Seconds before the command is killed
            check: Raise CommandExecutionError on a non-zero exit status

        Returns:
            Captured output and exit status
        """
        run_env = os.environ.copy()
        if env:
            run_env.update(env)
        limit = timeout or self.timeout

        self.logger.debug("command.started", command=args, cwd=cwd)
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=limit,
                env=run_env,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(args[0]) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(args, limit) from exc

        output = CommandOutput(result.stdout or "", result.stderr or "", result.returncode)
        self.logger.debug("command.finished", command=args, exit_code=result.returncode)
        if check and not output.succeeded:
            raise CommandExecutionError(args, output.exit_code, output.stdout, output.stderr)
        return output


__all__ = ["CommandOutput", "CommandRunner"]
