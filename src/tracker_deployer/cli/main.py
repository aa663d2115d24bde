"""
Tracker deployer command line interface.

One typer command per lifecycle verb. The global callback loads settings,
configures logging and builds the per-invocation :class:`Container`; each
command calls one handler and maps handler errors to exit codes
(1 for user errors, 2 for infrastructure and internal errors).
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from tracker_deployer import __version__
from tracker_deployer.application.config import EnvironmentCreationConfig
from tracker_deployer.application.container import Container
from tracker_deployer.application.errors import HandlerError
from tracker_deployer.cli.views import (
    render_details,
    render_error,
    render_list,
    render_test_report,
    render_validation,
)
from tracker_deployer.config.settings import DeployerSettings, load_settings
from tracker_deployer.domain.values import EnvironmentName, EnvironmentNameError
from tracker_deployer.utils.logging import configure_from_settings, get_logger

ContainerFactory = Callable[[DeployerSettings], Container]


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@dataclass
class CliState:
    settings: DeployerSettings
    container: Container


app = typer.Typer(
    name="tracker-deployer",
    help="Provision, configure and operate Torrust Tracker environments.",
    no_args_is_help=True,
)


# ==================== HELPERS ====================


def _stdout() -> Console:
    return Console()


def _stderr() -> Console:
    return Console(stderr=True)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.obj
    if not isinstance(state, CliState):
        raise RuntimeError("main_callback did not run")
    return state


def _environment_name(value: str) -> EnvironmentName:
    try:
        return EnvironmentName(value)
    except EnvironmentNameError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@contextmanager
def _handled(command: str) -> Iterator[None]:
    """Print handler errors with their troubleshooting text and exit."""
    try:
        yield
    except HandlerError as e:
        render_error(e, _stderr())
        raise typer.Exit(1 if e.is_user_error else 2)
    except Exception:
        get_logger("tracker_deployer.cli").exception("cli.unexpected_error", command=command)
        typer.echo(f"Error: {command} failed unexpectedly; see the log output above", err=True)
        raise typer.Exit(2)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tracker-deployer {__version__}")
        raise typer.Exit()


# ==================== GLOBAL OPTIONS ====================


@app.callback()
def main_callback(
    ctx: typer.Context,
    working_dir: Optional[Path] = typer.Option(
        None,
        "--working-dir",
        "-w",
        help="Directory holding data/, build/ and templates/ (default: current directory)",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="debug, info, warning, error or critical"
    ),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="Log output format (text|json)"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also append logs to this file"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored log output"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Deploy a Torrust Tracker, one lifecycle step at a time."""
    factory: ContainerFactory = ctx.obj if callable(ctx.obj) else Container

    try:
        settings = load_settings(
            working_dir=working_dir,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
        )
    except ValidationError as e:
        typer.echo(f"Invalid settings: {e}", err=True)
        raise typer.Exit(1)

    configure_from_settings(settings, color=not no_color)
    ctx.obj = CliState(settings=settings, container=factory(settings))


# ==================== LIFECYCLE COMMANDS ====================


@app.command("create")
def create(
    ctx: typer.Context,
    env_file: Path = typer.Option(..., "--env-file", "-f", help="Path to the environment definition (JSON)"),
) -> None:
    """Create a new environment from a definition file."""
    container = _state(ctx).container
    with _handled("create"):
        config = EnvironmentCreationConfig.from_file(env_file)
        environment = container.create_handler().execute(config)

    typer.echo(f"✓ Environment '{environment.name}' created")
    typer.echo(f"  Instance: {environment.instance_name}")
    typer.echo(f"  Next: tracker-deployer provision {environment.name}")


@app.command("provision")
def provision(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Create the VM and wait until it is reachable over SSH."""
    env_name = _environment_name(name)
    with _handled("provision"):
        environment = _state(ctx).container.provision_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' provisioned at {environment.instance_ip}")
    typer.echo(f"  Next: tracker-deployer configure {env_name}")


@app.command("register")
def register(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
    instance_ip: str = typer.Option(..., "--instance-ip", help="IP address of the existing instance"),
) -> None:
    """Adopt an existing instance instead of provisioning a new one."""
    env_name = _environment_name(name)
    with _handled("register"):
        environment = _state(ctx).container.register_handler().execute(env_name, instance_ip)

    typer.echo(f"✓ Environment '{env_name}' registered at {environment.instance_ip}")
    typer.echo(f"  Next: tracker-deployer configure {env_name}")


@app.command("configure")
def configure(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Install Docker and harden the provisioned instance."""
    env_name = _environment_name(name)
    with _handled("configure"):
        _state(ctx).container.configure_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' configured")
    typer.echo(f"  Next: tracker-deployer release {env_name}")


@app.command("release")
def release(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Render and upload the Docker Compose application files."""
    env_name = _environment_name(name)
    with _handled("release"):
        _state(ctx).container.release_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' released")
    typer.echo(f"  Next: tracker-deployer run {env_name}")


@app.command("run")
def run(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Start the tracker services on the instance."""
    env_name = _environment_name(name)
    with _handled("run"):
        environment = _state(ctx).container.run_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' running since {environment.running_since.isoformat()}")


@app.command("test")
def test(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
    output: OutputFormat = typer.Option(OutputFormat.TEXT, "--output", "-o", help="Output format (text|json)"),
) -> None:
    """Run smoke checks against the instance without changing state."""
    env_name = _environment_name(name)
    with _handled("test"):
        report = _state(ctx).container.test_handler().execute(env_name)

    if output == OutputFormat.JSON:
        _echo_json(
            {
                "environment": report.environment,
                "instance_ip": report.instance_ip,
                "passed": report.passed,
                "skipped": report.skipped,
            }
        )
    else:
        render_test_report(report, _stdout())


@app.command("destroy")
def destroy(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Tear down the infrastructure of an environment."""
    env_name = _environment_name(name)
    with _handled("destroy"):
        _state(ctx).container.destroy_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' destroyed")
    typer.echo(f"  Remove its local data with: tracker-deployer purge {env_name}")


@app.command("purge")
def purge(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
) -> None:
    """Delete the local data and build files of a destroyed environment."""
    env_name = _environment_name(name)
    if not force and not typer.confirm(f"Delete all local data of environment '{env_name}'?"):
        typer.echo("Aborted.")
        raise typer.Exit(1)

    with _handled("purge"):
        _state(ctx).container.purge_handler().execute(env_name)

    typer.echo(f"✓ Environment '{env_name}' purged")


# ==================== READ COMMANDS ====================


@app.command("list")
def list_environments(
    ctx: typer.Context,
    output: OutputFormat = typer.Option(OutputFormat.TEXT, "--output", "-o", help="Output format (text|json)"),
) -> None:
    """List all environments in the working directory."""
    with _handled("list"):
        result = _state(ctx).container.list_handler().execute()

    if output == OutputFormat.JSON:
        _echo_json(result.to_dict())
    else:
        render_list(result, _stdout())


@app.command("show")
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
    output: OutputFormat = typer.Option(OutputFormat.TEXT, "--output", "-o", help="Output format (text|json)"),
) -> None:
    """Show the state, timestamps and last failure of an environment."""
    env_name = _environment_name(name)
    with _handled("show"):
        details = _state(ctx).container.show_handler().execute(env_name)

    if output == OutputFormat.JSON:
        _echo_json(details.to_dict())
    else:
        render_details(details, _stdout())


@app.command("exists")
def exists(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name"),
) -> None:
    """Print true if the environment exists, false otherwise."""
    env_name = _environment_name(name)
    with _handled("exists"):
        found = _state(ctx).container.exists_handler().execute(env_name)

    typer.echo("true" if found else "false")


@app.command("validate")
def validate(
    ctx: typer.Context,
    env_file: Path = typer.Option(..., "--env-file", "-f", help="Path to the environment definition (JSON)"),
    output: OutputFormat = typer.Option(OutputFormat.TEXT, "--output", "-o", help="Output format (text|json)"),
) -> None:
    """Check a definition file without creating anything."""
    with _handled("validate"):
        report = _state(ctx).container.validate_handler().execute(env_file)

    if output == OutputFormat.JSON:
        _echo_json(report.to_dict())
    else:
        render_validation(report, _stdout())


def main() -> None:
    app(prog_name="tracker-deployer")


__all__ = ["CliState", "ContainerFactory", "OutputFormat", "app", "main"]
