"""Tests for the declarative lifecycle machine."""

from __future__ import annotations

import pytest
from transitions import MachineError

from tracker_deployer.domain.environment import STATE_CLASSES
from tracker_deployer.domain.lifecycle import (
    COMMAND_TRIGGERS,
    FAILED_STATES,
    IN_PROGRESS_STATES,
    TRANSITIONS,
    Lifecycle,
    next_commands,
)

ALL_TRIGGERS = sorted({transition["trigger"] for transition in TRANSITIONS})


class TestMachineMatchesStateClasses:
    """The transition table and the state classes describe the same graph."""

    @pytest.mark.parametrize("state", list(STATE_CLASSES))
    def test_triggers_match_methods(self, state: str) -> None:
        """A trigger is allowed from a state exactly when the class defines it."""
        state_cls = STATE_CLASSES[state]
        methods = [trigger for trigger in ALL_TRIGGERS if callable(getattr(state_cls, trigger, None))]

        assert Lifecycle(state).triggers() == methods

    def test_flags_match_classes(self) -> None:
        assert sorted(IN_PROGRESS_STATES) == sorted(
            name for name, cls in STATE_CLASSES.items() if cls.is_in_progress
        )
        assert sorted(FAILED_STATES) == sorted(
            name for name, cls in STATE_CLASSES.items() if cls.is_error_state
        )

    def test_failed_states_only_reached_from_in_progress(self) -> None:
        for transition in TRANSITIONS:
            if transition["dest"] in FAILED_STATES:
                assert transition["source"] in IN_PROGRESS_STATES


class TestLifecycle:
    def test_destination(self) -> None:
        assert Lifecycle("ProvisionFailed").destination("start_provisioning") == "Provisioning"
        assert Lifecycle("Running").destination("start_destroying") == "Destroying"
        assert Lifecycle("Created").destination("registered") == "Provisioned"

    def test_illegal_destination(self) -> None:
        with pytest.raises(MachineError):
            Lifecycle("Created").destination("start_configuring")

    def test_unknown_state(self) -> None:
        with pytest.raises(ValueError, match="Unknown environment state"):
            Lifecycle("Paused")

    @pytest.mark.parametrize(
        ("state", "command", "allowed"),
        [
            ("Created", "provision", True),
            ("Created", "configure", False),
            ("Provisioning", "provision", True),
            ("ConfigureFailed", "configure", True),
            ("ConfigureFailed", "release", False),
            ("Running", "destroy", True),
            ("Destroyed", "destroy", False),
            ("Created", "purge", False),
            ("Created", "register", True),
            ("ProvisionFailed", "register", False),
            ("Provisioned", "register", False),
        ],
    )
    def test_can_run(self, state: str, command: str, allowed: bool) -> None:
        assert Lifecycle(state).can_run(command) is allowed

    def test_every_command_has_a_trigger(self) -> None:
        assert set(COMMAND_TRIGGERS) == {"provision", "register", "configure", "release", "run", "destroy"}


class TestNextCommands:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            ("Created", ["provision", "register", "destroy", "purge"]),
            ("ProvisionFailed", ["provision", "destroy"]),
            ("Provisioned", ["configure", "test", "destroy"]),
            ("Configured", ["release", "test", "destroy"]),
            ("Released", ["run", "test", "destroy"]),
            ("Running", ["test", "destroy"]),
            ("DestroyFailed", ["destroy"]),
            ("Destroyed", ["purge"]),
        ],
    )
    def test_next_commands(self, state: str, expected: list[str]) -> None:
        assert next_commands(state) == expected
