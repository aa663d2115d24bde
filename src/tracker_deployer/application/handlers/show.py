"""Show command: details of one environment, including its last failure."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tracker_deployer.application.handlers.common import CommandHandler
from tracker_deployer.domain.environment import FailureContext
from tracker_deployer.domain.lifecycle import next_commands
from tracker_deployer.domain.values import EnvironmentName


@dataclass(frozen=True)
class EnvironmentDetails:
    name: str
    state: str
    provider: str
    instance_name: str
    instance_ip: str | None
    ssh_username: str
    ssh_port: int
    created_at: datetime
    timestamps: dict[str, datetime] = field(default_factory=dict)
    failure: FailureContext | None = None
    next_commands: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "provider": self.provider,
            "instance_name": self.instance_name,
            "instance_ip": self.instance_ip,
            "ssh_username": self.ssh_username,
            "ssh_port": self.ssh_port,
            "created_at": self.created_at.isoformat(),
            "timestamps": {key: value.isoformat() for key, value in self.timestamps.items()},
            "failure": self.failure.model_dump(mode="json") if self.failure else None,
            "next_commands": self.next_commands,
        }


class ShowCommandHandler(CommandHandler):
    command = "show"

    def execute(self, name: EnvironmentName) -> EnvironmentDetails:
        snapshot = self._load(name)
        environment = snapshot.environment

        # Phase timestamps, in the order the state class declares them.
        timestamps = {
            field_name: getattr(environment, field_name)
            for field_name in type(environment).model_fields
            if field_name != "created_at" and isinstance(getattr(environment, field_name), datetime)
        }
        ip = snapshot.instance_ip
        return EnvironmentDetails(
            name=snapshot.name,
            state=snapshot.state_name,
            provider=snapshot.provider.display_name,
            instance_name=environment.instance_name,
            instance_ip=str(ip) if ip is not None else None,
            ssh_username=environment.ssh_credentials.username,
            ssh_port=environment.ssh_credentials.port,
            created_at=snapshot.created_at,
            timestamps=timestamps,
            failure=snapshot.failure,
            next_commands=next_commands(snapshot.state_name),
        )
