"""List command: every environment in the data directory."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tracker_deployer.application.errors import PersistenceError
from tracker_deployer.application.handlers.common import CommandHandler
from tracker_deployer.domain.repository import EnvironmentList, RepositoryError
from tracker_deployer.domain.state import AnyEnvironmentState


@dataclass(frozen=True)
class EnvironmentSummary:
    name: str
    state: str
    provider: str
    created_at: datetime
    instance_ip: str | None

    @classmethod
    def from_snapshot(cls, snapshot: AnyEnvironmentState) -> EnvironmentSummary:
        ip = snapshot.instance_ip
        return cls(
            name=snapshot.name,
            state=snapshot.state_name,
            provider=snapshot.provider.value,
            created_at=snapshot.created_at,
            instance_ip=str(ip) if ip is not None else None,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "state": self.state,
            "provider": self.provider,
            "created_at": self.created_at.isoformat(),
            "instance_ip": self.instance_ip,
        }


@dataclass(frozen=True)
class ListResult:
    environments: list[EnvironmentSummary]
    failed_environments: list[tuple[str, str]]

    @classmethod
    def from_list(cls, result: EnvironmentList) -> ListResult:
        return cls(
            environments=[EnvironmentSummary.from_snapshot(s) for s in result.environments],
            failed_environments=list(result.failed_environments),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "environments": [summary.to_dict() for summary in self.environments],
            "failed_environments": [
                {"name": name, "error": error} for name, error in self.failed_environments
            ],
        }


class ListCommandHandler(CommandHandler):
    command = "list"

    def execute(self) -> ListResult:
        try:
            result = self.repository.list()
        except RepositoryError as exc:
            raise PersistenceError(str(exc)) from exc
        self.logger.debug(
            "list.completed",
            count=len(result.environments),
            failed=len(result.failed_environments),
        )
        return ListResult.from_list(result)
