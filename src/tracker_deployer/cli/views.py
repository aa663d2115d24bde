"""
Rich renderings of handler results for the text output format.

Provides:
- render_list: table of environments plus unreadable entries
- render_details: key/value panel for one environment
- render_validation: summary of a validated definition
- render_test_report: passed and skipped remote checks
- render_error: message and troubleshooting text for a handler error
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tracker_deployer.application.errors import CommandFailedError, HandlerError
from tracker_deployer.application.handlers import (
    EnvironmentDetails,
    ListResult,
    TestReport,
    ValidationReport,
)
from tracker_deployer.domain.values import provider_of

_STATE_STYLES = {
    "Running": "green",
    "Destroyed": "dim",
}


def _state_style(state: str) -> str:
    if state.endswith("Failed"):
        return "red"
    if state.endswith("ing") and state != "Running":
        return "yellow"
    return _STATE_STYLES.get(state, "cyan")


def render_list(result: ListResult, console: Console) -> None:
    if not result.environments and not result.failed_environments:
        console.print("No environments found.")
        return

    table = Table(title="Environments")
    table.add_column("Name", style="bold")
    table.add_column("State")
    table.add_column("Provider")
    table.add_column("Instance IP")
    table.add_column("Created")

    for summary in result.environments:
        table.add_row(
            summary.name,
            f"[{_state_style(summary.state)}]{summary.state}[/]",
            summary.provider,
            summary.instance_ip or "-",
            summary.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)

    if result.failed_environments:
        console.print(f"\n[red]{len(result.failed_environments)} environment(s) could not be read:[/]")
        for name, error in result.failed_environments:
            console.print(f"  - {name}: {error}", markup=False)


def render_details(details: EnvironmentDetails, console: Console) -> None:
    table = Table(title=f"Environment {details.name}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("State", f"[{_state_style(details.state)}]{details.state}[/]")
    table.add_row("Provider", details.provider)
    table.add_row("Instance", details.instance_name)
    table.add_row("Instance IP", details.instance_ip or "-")
    table.add_row("SSH", f"{details.ssh_username}@{details.instance_ip or '<pending>'}:{details.ssh_port}")
    table.add_row("Created", details.created_at.isoformat())
    for key, value in details.timestamps.items():
        table.add_row(key.replace("_", " ").capitalize(), value.isoformat())
    console.print(table)

    failure = details.failure
    if failure is not None:
        console.print(f"\n[red]Last failure[/] at step [bold]{failure.failed_step}[/] ({failure.error_kind.value})")
        console.print(f"  {failure.summary}", markup=False)
        console.print(f"  Trace: {failure.trace_id}")
        if failure.trace_file is not None:
            console.print(f"  Trace file: {failure.trace_file}", markup=False)

    if details.next_commands:
        console.print(f"\nNext: {', '.join(details.next_commands)}")


def render_validation(report: ValidationReport, console: Console) -> None:
    params = report.params
    console.print(f"[green]Definition is valid[/] for environment [bold]{params.name}[/]")
    console.print(f"  Instance: {params.instance_name}")
    console.print(f"  Provider: {provider_of(params.provider_config).display_name}")
    console.print(f"  SSH user: {params.ssh_credentials.username} (port {params.ssh_credentials.port})")
    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/] {escape(warning)}")


def render_test_report(report: TestReport, console: Console) -> None:
    console.print(f"[green]All checks passed[/] for environment [bold]{report.environment}[/] ({report.instance_ip})")
    for name in report.passed:
        console.print(f"  ✓ {name}")
    for name in report.skipped:
        console.print(f"  - {name} (skipped)")


def render_error(error: HandlerError, console: Console) -> None:
    console.print(f"[red]Error:[/] {escape(str(error))}", highlight=False)
    if isinstance(error, CommandFailedError):
        console.print(f"Trace ID: {error.trace_id}")
    console.print()
    console.print(error.help(), markup=False, highlight=False)


__all__ = [
    "render_details",
    "render_error",
    "render_list",
    "render_test_report",
    "render_validation",
]
