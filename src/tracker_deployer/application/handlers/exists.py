"""Exists command: whether an environment with a given name is persisted."""

from __future__ import annotations

from tracker_deployer.application.handlers.common import CommandHandler
from tracker_deployer.domain.values import EnvironmentName


class ExistsCommandHandler(CommandHandler):
    command = "exists"

    def execute(self, name: EnvironmentName) -> bool:
        return self.repository.exists(name)
