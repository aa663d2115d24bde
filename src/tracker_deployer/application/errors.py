"""Errors surfaced by the command handlers.

Every handler error carries :meth:`HandlerError.help`, a short troubleshooting
text printed by the CLI, and ``is_user_error``, which selects the exit code
(1 for expected failures the user can fix, 2 for infrastructure or internal
failures).
"""

from __future__ import annotations

from pathlib import Path

from tracker_deployer.domain.errors import ErrorKind, Traceable, TraceId


class HandlerError(Traceable, Exception):
    """Base class for handler failures."""

    is_user_error = False

    def help(self) -> str:
        return "Re-run with --log-level debug for more detail."


# ==================== USER ERRORS ====================


class InvalidDefinitionError(HandlerError):
    """The environment definition file is missing, malformed or invalid."""

    kind = ErrorKind.CONFIGURATION
    is_user_error = True

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)

    def help(self) -> str:
        return (
            "Invalid Environment Definition - Troubleshooting:\n"
            "1. Check the file is valid JSON\n"
            "2. Required sections: environment.name, ssh_credentials.private_key_path,\n"
            "   ssh_credentials.public_key_path\n"
            "3. Environment names use lowercase letters, digits and single dashes,\n"
            "   and must not start with a digit or dash (e.g. dev, staging, e2e-full)\n"
            "4. Validate without creating anything: tracker-deployer validate --env-file <file>"
        )


class EnvironmentAlreadyExistsError(HandlerError):
    kind = ErrorKind.CONFIGURATION
    is_user_error = True

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Environment '{name}' already exists")

    def help(self) -> str:
        return (
            f"Environment '{self.name}' already exists.\n"
            f"Inspect it with: tracker-deployer show {self.name}\n"
            f"Or remove it first: tracker-deployer destroy {self.name} && "
            f"tracker-deployer purge {self.name}"
        )


class NoSuchEnvironmentError(HandlerError):
    kind = ErrorKind.STATE_PERSISTENCE
    is_user_error = True

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Environment '{name}' not found")

    def help(self) -> str:
        return (
            "List existing environments with: tracker-deployer list\n"
            "Create one with: tracker-deployer create --env-file <file>"
        )


class WrongStateError(HandlerError):
    """The command cannot run from the environment's current state."""

    kind = ErrorKind.STATE_PERSISTENCE
    is_user_error = True

    def __init__(self, command: str, name: str, expected: str, actual: str, accepted: tuple[str, ...] = ()):
        self.command = command
        self.name = name
        self.expected = expected
        self.actual = actual
        self.accepted = accepted or (expected,)
        super().__init__(
            f"Cannot {command} environment '{name}': expected state {expected}, "
            f"but it is {actual}"
        )

    def help(self) -> str:
        return (
            f"'{self.command}' runs from: {', '.join(self.accepted)}.\n"
            f"Check the current state and the next available commands with: "
            f"tracker-deployer show {self.name}"
        )


class PurgeRefusedError(HandlerError):
    kind = ErrorKind.STATE_PERSISTENCE
    is_user_error = True

    def __init__(self, name: str, state: str):
        self.name = name
        self.state = state
        super().__init__(
            f"Refusing to purge environment '{name}' in state {state}: "
            "only Destroyed or Created environments can be purged"
        )

    def help(self) -> str:
        return (
            "Purging removes local data only and would orphan running infrastructure.\n"
            f"Destroy it first: tracker-deployer destroy {self.name}"
        )


class InvalidInstanceIpError(HandlerError):
    kind = ErrorKind.CONFIGURATION
    is_user_error = True

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid instance IP address: {value!r}")

    def help(self) -> str:
        return (
            "Pass the IPv4 or IPv6 address of the existing instance, e.g.\n"
            "  tracker-deployer register my-env --instance-ip 192.168.1.100"
        )


class EnvironmentLockedError(HandlerError):
    kind = ErrorKind.STATE_PERSISTENCE
    is_user_error = True

    def __init__(self, name: str, detail: str):
        self.name = name
        super().__init__(f"Environment '{name}' is busy: {detail}")

    def help(self) -> str:
        return (
            "Another command is operating on this environment. Wait for it to finish.\n"
            f"If no command is running, remove data/{self.name}/command.lock"
        )


# ==================== INTERNAL ERRORS ====================


class StateUnreadableError(HandlerError):
    kind = ErrorKind.STATE_PERSISTENCE

    def __init__(self, name: str, detail: str):
        self.name = name
        super().__init__(f"State of environment '{name}' cannot be read: {detail}")

    def help(self) -> str:
        return (
            f"The file data/{self.name}/environment.json is corrupt or was written by an\n"
            "incompatible version. Restore it from a backup or purge the environment."
        )


class PersistenceError(HandlerError):
    kind = ErrorKind.STATE_PERSISTENCE

    def help(self) -> str:
        return "Check free disk space and permissions on the data directory."


class StepFailedError(HandlerError):
    """A named step of a command failed; the adapter error is its cause."""

    def __init__(self, command: str, step: str, message: str):
        self.command = command
        self.step = step
        super().__init__(f"{command} failed at step {step}: {message}")

    def error_kind(self) -> ErrorKind:
        cause = self.trace_source()
        if isinstance(cause, Traceable):
            return cause.error_kind()
        if isinstance(cause, TimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(cause, OSError):
            return ErrorKind.FILE_SYSTEM
        return ErrorKind.COMMAND_EXECUTION


_KIND_HELP = {
    ErrorKind.TEMPLATE_RENDERING: (
        "Template Rendering Failed - Troubleshooting:\n"
        "1. Check that template source files exist in the templates directory\n"
        "2. Check file permissions on the templates and build directories"
    ),
    ErrorKind.INFRASTRUCTURE_OPERATION: (
        "OpenTofu Command Failed - Troubleshooting:\n"
        "1. Check OpenTofu is installed: tofu version\n"
        "2. Verify your infrastructure provider is running and accessible\n"
        "3. Check provider permissions and credentials\n"
        "4. Try manually: cd build/<env-name>/tofu && tofu init && tofu plan"
    ),
    ErrorKind.NETWORK_CONNECTIVITY: (
        "SSH Connectivity Failed - Troubleshooting:\n"
        "1. Verify the instance is running and has an IP address\n"
        "2. Check the SSH key pair in the environment definition\n"
        "3. Check firewall rules allow the SSH port"
    ),
    ErrorKind.COMMAND_EXECUTION: (
        "Command Execution Failed - Troubleshooting:\n"
        "1. Review the error chain in the trace file\n"
        "2. Check the required tools are installed (tofu, ansible-playbook, ssh)"
    ),
    ErrorKind.TIMEOUT: (
        "Operation Timed Out - Troubleshooting:\n"
        "1. The instance may still be booting; retry the same command\n"
        "2. Increase TRACKER_DEPLOYER_SSH_WAIT_TIMEOUT or TRACKER_DEPLOYER_COMMAND_TIMEOUT"
    ),
    ErrorKind.FILE_SYSTEM: "Check free disk space and permissions on the working directory.",
    ErrorKind.CONFIGURATION: "Check the environment definition and the deployer settings.",
    ErrorKind.STATE_PERSISTENCE: "Check permissions on the data directory.",
}


class CommandFailedError(HandlerError):
    """A command failed after its in-progress state was persisted.

    The environment has been moved to the matching ``*Failed`` state and a
    trace file has been written.
    """

    def __init__(
        self,
        command: str,
        name: str,
        trace_id: TraceId,
        error_kind: ErrorKind,
        summary: str,
        trace_file: Path | None,
        failed_state: str,
    ):
        self.command = command
        self.name = name
        self.trace_id = trace_id
        self.failed_error_kind = error_kind
        self.summary = summary
        self.trace_file = trace_file
        self.failed_state = failed_state
        super().__init__(f"{command} failed for environment '{name}' (trace {trace_id}): {summary}")

    def error_kind(self) -> ErrorKind:
        return self.failed_error_kind

    def help(self) -> str:
        lines = [_KIND_HELP[self.failed_error_kind]]
        if self.trace_file is not None:
            lines.append(f"Full error chain: {self.trace_file}")
        lines.append(
            f"The environment is now {self.failed_state}. Retry with "
            f"'tracker-deployer {self.command} {self.name}' or tear it down with "
            f"'tracker-deployer destroy {self.name}'."
        )
        return "\n".join(lines)


class RegisterFailedError(HandlerError):
    """Adopting an existing instance failed. The environment is still ``Created``."""

    def __init__(self, name: str, instance_ip: str, step: str, message: str):
        self.name = name
        self.instance_ip = instance_ip
        self.step = step
        super().__init__(
            f"Failed to register instance {instance_ip} for environment '{name}' at step {step}: {message}"
        )

    def error_kind(self) -> ErrorKind:
        cause = self.trace_source()
        if isinstance(cause, Traceable):
            return cause.error_kind()
        return ErrorKind.COMMAND_EXECUTION

    def help(self) -> str:
        return (
            f"{_KIND_HELP[self.error_kind()]}\n"
            f"The environment is still Created. Retry with "
            f"'tracker-deployer register {self.name} --instance-ip {self.instance_ip}'."
        )


__all__ = [
    "HandlerError",
    "InvalidDefinitionError",
    "EnvironmentAlreadyExistsError",
    "NoSuchEnvironmentError",
    "WrongStateError",
    "PurgeRefusedError",
    "InvalidInstanceIpError",
    "EnvironmentLockedError",
    "StateUnreadableError",
    "PersistenceError",
    "StepFailedError",
    "CommandFailedError",
    "RegisterFailedError",
]
