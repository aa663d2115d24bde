"""Tests for the AnyEnvironmentState envelope."""

from __future__ import annotations

import json
from typing import Any, Callable

import pytest

from tracker_deployer.domain.environment import (
    STATE_CLASSES,
    Configured,
    Created,
    Provisioned,
    ProvisionFailed,
)
from tracker_deployer.domain.state import AnyEnvironmentState, StateDecodeError, StateTypeError
from tracker_deployer.domain.values import Provider


class TestRoundTrip:
    """Every state survives serialization unchanged."""

    @pytest.mark.parametrize("state", list(STATE_CLASSES))
    def test_round_trip_through_json(self, environment_in: Callable[..., Any], state: str) -> None:
        snapshot = AnyEnvironmentState(environment_in(state))

        text = json.dumps(snapshot.to_dict())
        restored = AnyEnvironmentState.from_dict(json.loads(text))

        assert restored == snapshot
        assert restored.state_name == state

    @pytest.mark.parametrize("state", list(STATE_CLASSES))
    def test_single_state_tag(self, environment_in: Callable[..., Any], state: str) -> None:
        data = AnyEnvironmentState(environment_in(state)).to_dict()
        assert list(data) == [state]
        assert data[state]["name"] == "e2e"


class TestAccessors:
    def test_created(self, environment_in: Callable[..., Any]) -> None:
        snapshot = AnyEnvironmentState(environment_in("Created"))

        assert snapshot.name == "e2e"
        assert snapshot.provider is Provider.LXD
        assert snapshot.instance_ip is None
        assert snapshot.failure is None
        assert not snapshot.is_error_state
        assert not snapshot.is_in_progress

    def test_failed(self, environment_in: Callable[..., Any]) -> None:
        snapshot = AnyEnvironmentState(environment_in("ConfigureFailed"))

        assert snapshot.is_error_state
        assert snapshot.failure is not None
        assert str(snapshot.instance_ip) == "10.140.190.14"

    def test_try_into_matching_class(self, environment_in: Callable[..., Any]) -> None:
        snapshot = AnyEnvironmentState(environment_in("Provisioned"))
        assert isinstance(snapshot.try_into(Provisioned), Provisioned)
        assert snapshot.is_state(Created, Provisioned)

    def test_try_into_other_class(self, environment_in: Callable[..., Any]) -> None:
        snapshot = AnyEnvironmentState(environment_in("Created"))

        with pytest.raises(StateTypeError) as exc_info:
            snapshot.try_into(Provisioned, ProvisionFailed)

        assert exc_info.value.actual == "Created"
        assert exc_info.value.expected == ("Provisioned", "ProvisionFailed")


class TestDecodeErrors:
    @pytest.mark.parametrize(
        "data",
        [
            [],
            {},
            {"Created": {}, "Provisioned": {}},
        ],
    )
    def test_bad_shape(self, data: Any) -> None:
        with pytest.raises(StateDecodeError, match="exactly one state tag"):
            AnyEnvironmentState.from_dict(data)

    def test_unknown_tag(self) -> None:
        with pytest.raises(StateDecodeError, match="unknown state tag 'Paused'"):
            AnyEnvironmentState.from_dict({"Paused": {}})

    def test_missing_required_field(self, environment_in: Callable[..., Any]) -> None:
        """A Configured payload without configured_at is rejected."""
        payload = environment_in("Configured").model_dump(mode="json")
        del payload["configured_at"]

        with pytest.raises(StateDecodeError, match="invalid Configured payload"):
            AnyEnvironmentState.from_dict({Configured.state_name(): payload})

    def test_payload_of_wrong_state(self, environment_in: Callable[..., Any]) -> None:
        """A Created payload cannot be decoded as Provisioned."""
        payload = environment_in("Created").model_dump(mode="json")

        with pytest.raises(StateDecodeError):
            AnyEnvironmentState.from_dict({"Provisioned": payload})
