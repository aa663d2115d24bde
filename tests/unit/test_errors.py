"""Tests for error classification, trace ids and error chains."""

from __future__ import annotations

import uuid

import pytest

from tracker_deployer.adapters.errors import CommandExecutionError, ProvisionError, SshTimeoutError
from tracker_deployer.application.errors import StepFailedError
from tracker_deployer.domain.errors import (
    ErrorKind,
    Traceable,
    TraceId,
    classify,
    describe_error,
    iter_error_chain,
)


def _provision_failure() -> StepFailedError:
    """StepFailedError → ProvisionError → CommandExecutionError, as raised by the handlers."""
    try:
        try:
            try:
                raise CommandExecutionError(["tofu", "apply"], 1, stderr="Error: quota exceeded\n")
            except CommandExecutionError as exc:
                raise ProvisionError("OpenTofu failed to provision 'vm'") from exc
        except ProvisionError as exc:
            raise StepFailedError("provision", "OpenTofuApply", describe_error(exc)) from exc
    except StepFailedError as exc:
        return exc


class TestTraceId:
    def test_new_ids_are_unique(self) -> None:
        ids = {TraceId.new() for _ in range(1000)}
        assert len(ids) == 1000

    def test_canonical_uuid_text(self) -> None:
        trace_id = TraceId.new()
        assert str(uuid.UUID(trace_id)) == trace_id

    def test_rejects_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid trace id"):
            TraceId("not-a-uuid")


class TestErrorChain:
    """Walking an exception chain for trace files."""

    def test_chain_outermost_first(self) -> None:
        """Every level appears once with its kind."""
        links = list(iter_error_chain(_provision_failure()))

        assert [link.level for link in links] == [0, 1, 2]
        assert links[0].description.startswith("StepFailedError: provision failed at step OpenTofuApply")
        assert links[1].error_kind == ErrorKind.INFRASTRUCTURE_OPERATION
        assert links[2].error_kind == ErrorKind.COMMAND_EXECUTION
        assert "quota exceeded" in links[2].description

    def test_step_failure_takes_kind_of_cause(self) -> None:
        error = _provision_failure()
        assert error.error_kind() == ErrorKind.INFRASTRUCTURE_OPERATION
        assert classify(error) == ErrorKind.INFRASTRUCTURE_OPERATION

    def test_plain_exception_cause_is_followed(self) -> None:
        try:
            try:
                raise OSError("disk full")
            except OSError as exc:
                raise StepFailedError("destroy", "CleanupBuildFiles", str(exc)) from exc
        except StepFailedError as exc:
            error = exc

        links = list(iter_error_chain(error))
        assert links[1].description == "OSError: disk full"
        assert links[1].error_kind is None
        assert error.error_kind() == ErrorKind.FILE_SYSTEM

    def test_chain_to_dict(self) -> None:
        link = next(iter_error_chain(SshTimeoutError("10.0.0.1", 22, 60, 12)))
        assert link.to_dict() == {
            "level": 0,
            "description": "SshTimeoutError: SSH to 10.0.0.1:22 not available after 12 attempts in 60s",
            "error_kind": "Timeout",
        }

    def test_cycles_terminate(self) -> None:
        first = ValueError("first")
        second = ValueError("second")
        first.__cause__ = second
        second.__cause__ = first

        assert len(list(iter_error_chain(first))) == 2


class TestClassify:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (TimeoutError("slow"), ErrorKind.TIMEOUT),
            (PermissionError("denied"), ErrorKind.FILE_SYSTEM),
            (RuntimeError("odd"), ErrorKind.COMMAND_EXECUTION),
        ],
    )
    def test_untraceable_errors(self, error: Exception, kind: ErrorKind) -> None:
        assert classify(error) == kind

    def test_custom_traceable(self) -> None:
        class TemplateBroken(Traceable, Exception):
            kind = ErrorKind.TEMPLATE_RENDERING

        assert classify(TemplateBroken("x")) == ErrorKind.TEMPLATE_RENDERING
        assert describe_error(TemplateBroken("x")) == "TemplateBroken: x"

    def test_command_error_trace_format_includes_stderr(self) -> None:
        error = CommandExecutionError(["ansible-playbook", "x.yml"], 2, stderr="fatal: host unreachable\n")
        assert "--- stderr ---\nfatal: host unreachable" in error.trace_format()
        assert str(error) == "'ansible-playbook x.yml' exited with code 2: fatal: host unreachable"
