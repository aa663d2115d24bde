"""Tests for the typestate environment aggregate."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from ipaddress import IPv4Address
from typing import Any, Callable

import pytest
from pydantic import ValidationError

from tracker_deployer.domain.environment import (
    STATE_CLASSES,
    Configured,
    Created,
    Destroyed,
    Destroying,
    EnvironmentConsumedError,
    FailureContext,
    ProvisionFailed,
    Provisioned,
    Provisioning,
    Running,
)
from tracker_deployer.domain.errors import ErrorKind, TraceId
from tracker_deployer.domain.values import Provider

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(minutes=5)


def _failure(step: str = "OpenTofuApply") -> FailureContext:
    return FailureContext(
        trace_id=TraceId.new(),
        error_kind=ErrorKind.INFRASTRUCTURE_OPERATION,
        summary="boom",
        failed_step=step,
        failed_at=LATER,
        execution_started_at=NOW,
    )


class TestTransitions:
    """Transitions exist only on legal source states."""

    def test_happy_path_carries_identity(self, environment_in: Callable[..., Any]) -> None:
        """name, instance name and created_at survive every transition."""
        created = environment_in("Created")
        running = environment_in("Running")

        assert isinstance(running, Running)
        assert running.name == created.name
        assert running.instance_name == created.instance_name
        assert running.created_at == created.created_at
        assert running.provider is Provider.LXD

    def test_provisioned_requires_valid_ip(self, environment_in: Callable[..., Any]) -> None:
        provisioning = environment_in("Provisioning")

        with pytest.raises(ValidationError):
            provisioning.provisioned("not-an-ip", LATER)

    def test_provisioned_stores_ip_and_timestamp(self, environment_in: Callable[..., Any]) -> None:
        provisioned = environment_in("Provisioning").provisioned("10.0.0.5", LATER)

        assert isinstance(provisioned, Provisioned)
        assert provisioned.instance_ip == IPv4Address("10.0.0.5")
        assert provisioned.provisioned_at == LATER

    def test_registered_skips_provisioning(self, environment_in: Callable[..., Any]) -> None:
        """An existing instance moves Created straight to Provisioned."""
        created = environment_in("Created")

        provisioned = created.registered("192.168.1.100", LATER)

        assert isinstance(provisioned, Provisioned)
        assert provisioned.instance_ip == IPv4Address("192.168.1.100")
        assert provisioned.provisioned_at == LATER
        assert provisioned.created_at == created.created_at
        assert created.consumed

    def test_only_created_can_register(self, environment_in: Callable[..., Any]) -> None:
        assert not hasattr(environment_in("ProvisionFailed"), "registered")
        assert not hasattr(environment_in("Provisioned"), "registered")

    def test_created_has_no_configure_transition(self, environment_in: Callable[..., Any]) -> None:
        created = environment_in("Created")
        assert not hasattr(created, "start_configuring")
        assert not hasattr(created, "configured")

    def test_destroyed_is_terminal(self) -> None:
        assert not hasattr(Destroyed, "start_destroying")
        assert not hasattr(Destroyed, "start_provisioning")

    @pytest.mark.parametrize("state", [name for name in STATE_CLASSES if name != "Destroyed"])
    def test_every_other_state_can_start_destroying(
        self, environment_in: Callable[..., Any], state: str
    ) -> None:
        destroying = environment_in(state).start_destroying(LATER)

        assert isinstance(destroying, Destroying)
        assert destroying.destroy_started_at == LATER

    def test_destroying_keeps_instance_ip(self, environment_in: Callable[..., Any]) -> None:
        destroying = environment_in("Running").start_destroying(LATER)
        assert str(destroying.instance_ip) == "10.140.190.14"

    def test_destroying_created_has_no_ip(self, environment_in: Callable[..., Any]) -> None:
        assert environment_in("Created").start_destroying(LATER).instance_ip is None

    def test_failed_state_records_failure_and_can_retry(self, environment_in: Callable[..., Any]) -> None:
        """A failed provision keeps its context and may start provisioning again."""
        failure = _failure()
        failed = environment_in("Provisioning").provision_failed(failure)

        assert isinstance(failed, ProvisionFailed)
        assert failed.failure == failure
        assert failed.is_error_state
        retry = failed.start_provisioning(LATER)
        assert isinstance(retry, Provisioning)
        assert retry.provision_started_at == LATER

    def test_in_progress_flags(self) -> None:
        assert Provisioning.is_in_progress and not Provisioning.is_error_state
        assert not Configured.is_in_progress and not Configured.is_error_state

    def test_failure_duration(self) -> None:
        assert _failure().execution_duration == timedelta(minutes=5)


class TestConsumption:
    """A transitioned value cannot be transitioned again."""

    def test_second_transition_raises(self, environment_in: Callable[..., Any]) -> None:
        created = environment_in("Created")
        created.start_provisioning(NOW)

        assert created.consumed
        with pytest.raises(EnvironmentConsumedError, match="already transitioned"):
            created.start_destroying(NOW)

    def test_result_is_fresh(self, environment_in: Callable[..., Any]) -> None:
        provisioning = environment_in("Created").start_provisioning(NOW)
        assert not provisioning.consumed

    def test_consumed_flag_is_not_persisted(self, environment_in: Callable[..., Any]) -> None:
        created = environment_in("Created")
        created.start_provisioning(NOW)
        assert "_consumed" not in created.model_dump()


class TestValueSemantics:
    def test_states_are_frozen(self, environment_in: Callable[..., Any]) -> None:
        created = environment_in("Created")
        with pytest.raises(ValidationError):
            created.name = "other"  # type: ignore[misc]

    def test_equality_by_value(self, environment_in: Callable[..., Any]) -> None:
        assert environment_in("Created") == environment_in("Created")
        assert environment_in("Created") != environment_in("Created", name="other")

    def test_different_states_are_not_equal(self, environment_in: Callable[..., Any]) -> None:
        assert environment_in("Created") != environment_in("Provisioning")

    def test_unknown_fields_rejected(self, environment_in: Callable[..., Any]) -> None:
        data = environment_in("Created").model_dump()
        data["surprise"] = 1
        with pytest.raises(ValidationError):
            Created.model_validate(data)

    def test_state_names(self) -> None:
        assert len(STATE_CLASSES) == 16
        assert all(cls.state_name() == name for name, cls in STATE_CLASSES.items())
