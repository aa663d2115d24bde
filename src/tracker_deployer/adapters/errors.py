"""Errors raised by the external tool adapters.

Every adapter error is :class:`Traceable` so that it shows up with its
:class:`ErrorKind` in a failure's trace file.
"""

from __future__ import annotations

from pathlib import Path

from tracker_deployer.domain.errors import ErrorKind, Traceable


class AdapterError(Traceable, Exception):
    """Base class for adapter failures."""


class ToolNotFoundError(AdapterError):
    kind = ErrorKind.CONFIGURATION

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Executable '{program}' not found on PATH")


class CommandExecutionError(AdapterError):
    """An external command exited with a non-zero status."""

    kind = ErrorKind.COMMAND_EXECUTION

    def __init__(self, command: list[str], exit_code: int, stdout: str = "", stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no error output"
        super().__init__(f"'{' '.join(command)}' exited with code {exit_code}: {detail}")

    def trace_format(self) -> str:
        text = f"{type(self).__name__}: {self}"
        if self.stderr.strip():
            text += f"\n--- stderr ---\n{self.stderr.strip()}"
        return text


class CommandTimeoutError(AdapterError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, command: list[str], timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"'{' '.join(command)}' did not finish within {timeout:.0f}s")


class RenderError(AdapterError):
    kind = ErrorKind.TEMPLATE_RENDERING

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class ProvisionError(AdapterError):
    """OpenTofu could not create, inspect or destroy the infrastructure."""

    kind = ErrorKind.INFRASTRUCTURE_OPERATION


class SshConnectivityError(AdapterError):
    kind = ErrorKind.NETWORK_CONNECTIVITY

    def __init__(self, host: str, port: int, message: str):
        self.host = host
        self.port = port
        super().__init__(f"SSH to {host}:{port} failed: {message}")


class SshTimeoutError(AdapterError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, host: str, port: int, timeout: float, attempts: int):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.attempts = attempts
        super().__init__(
            f"SSH to {host}:{port} not available after {attempts} attempts in {timeout:.0f}s"
        )


__all__ = [
    "AdapterError",
    "ToolNotFoundError",
    "CommandExecutionError",
    "CommandTimeoutError",
    "RenderError",
    "ProvisionError",
    "SshConnectivityError",
    "SshTimeoutError",
]
