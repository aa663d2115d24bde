"""Declarative view of the environment lifecycle graph.

The state classes in :mod:`tracker_deployer.domain.environment` are the
source of truth for what a value may do. This module declares the same graph
as a ``transitions`` machine so it can be queried by state *name*, which is
all read-only commands have (``show`` uses it for next-step hints).
"""

from __future__ import annotations

from typing import Any

from transitions import Machine, MachineError

from tracker_deployer.domain.environment import STATE_CLASSES

IN_PROGRESS_STATES = ("Provisioning", "Configuring", "Releasing", "Starting", "Destroying")
FAILED_STATES = ("ProvisionFailed", "ConfigureFailed", "ReleaseFailed", "RunFailed", "DestroyFailed")
DESTROYABLE_STATES = [name for name in STATE_CLASSES if name != "Destroyed"]


# ==================== TRANSITION TABLE ====================


TRANSITIONS: list[dict[str, Any]] = [
    {
        "trigger": "start_provisioning",
        "source": ["Created", "Provisioning", "ProvisionFailed"],
        "dest": "Provisioning",
    },
    {"trigger": "provisioned", "source": "Provisioning", "dest": "Provisioned"},
    {"trigger": "provision_failed", "source": "Provisioning", "dest": "ProvisionFailed"},
    {"trigger": "registered", "source": "Created", "dest": "Provisioned"},
    {
        "trigger": "start_configuring",
        "source": ["Provisioned", "Configuring", "ConfigureFailed"],
        "dest": "Configuring",
    },
    {"trigger": "configured", "source": "Configuring", "dest": "Configured"},
    {"trigger": "configure_failed", "source": "Configuring", "dest": "ConfigureFailed"},
    {
        "trigger": "start_releasing",
        "source": ["Configured", "Releasing", "ReleaseFailed"],
        "dest": "Releasing",
    },
    {"trigger": "released", "source": "Releasing", "dest": "Released"},
    {"trigger": "release_failed", "source": "Releasing", "dest": "ReleaseFailed"},
    {
        "trigger": "start_running",
        "source": ["Released", "Starting", "RunFailed"],
        "dest": "Starting",
    },
    {"trigger": "running", "source": "Starting", "dest": "Running"},
    {"trigger": "run_failed", "source": "Starting", "dest": "RunFailed"},
    {"trigger": "start_destroying", "source": DESTROYABLE_STATES, "dest": "Destroying"},
    {"trigger": "destroyed", "source": "Destroying", "dest": "Destroyed"},
    {"trigger": "destroy_failed", "source": "Destroying", "dest": "DestroyFailed"},
]

# Trigger that starts each user-facing phase.
COMMAND_TRIGGERS = {
    "provision": "start_provisioning",
    "register": "registered",
    "configure": "start_configuring",
    "release": "start_releasing",
    "run": "start_running",
    "destroy": "start_destroying",
}

_INSTANCE_STATES = {
    "Provisioned",
    "Configuring",
    "ConfigureFailed",
    "Configured",
    "Releasing",
    "ReleaseFailed",
    "Released",
    "Starting",
    "RunFailed",
    "Running",
}


class Lifecycle:
    """State machine positioned at one environment state.

    Example:
        >>> lifecycle = Lifecycle("Created")
        >>> lifecycle.next_commands()
        ['provision', 'register', 'destroy', 'purge']
    """

    def __init__(self, state: str):
        if state not in STATE_CLASSES:
            raise ValueError(f"Unknown environment state: {state}")
        self.state: str = state
        self._machine = Machine(
            model=self,
            states=list(STATE_CLASSES),
            transitions=TRANSITIONS,
            initial=state,
            auto_transitions=False,
            send_event=False,
        )

    def triggers(self) -> list[str]:
        """Transition names available from the current state."""
        return sorted(self._machine.get_triggers(self.state))

    def can_run(self, command: str) -> bool:
        trigger = COMMAND_TRIGGERS.get(command)
        return trigger is not None and trigger in self._machine.get_triggers(self.state)

    def destination(self, trigger: str) -> str:
        """State reached by firing ``trigger`` from the current state."""
        transitions = self._machine.get_transitions(trigger=trigger, source=self.state)
        if not transitions:
            raise MachineError(f"'{trigger}' is not allowed from state {self.state}")
        return transitions[0].dest

    def next_commands(self) -> list[str]:
        """CLI verbs that make sense from the current state, in lifecycle order."""
        commands = [command for command in COMMAND_TRIGGERS if self.can_run(command)]
        if self.state in _INSTANCE_STATES:
            commands.insert(len(commands) - 1, "test")
        if self.state in ("Created", "Destroyed"):
            commands.append("purge")
        return commands


def next_commands(state: str) -> list[str]:
    return Lifecycle(state).next_commands()


__all__ = [
    "IN_PROGRESS_STATES",
    "FAILED_STATES",
    "TRANSITIONS",
    "COMMAND_TRIGGERS",
    "Lifecycle",
    "next_commands",
]
