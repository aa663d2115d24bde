"""Full environment lifecycle through the container, with fake adapters."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from tracker_deployer.adapters.errors import CommandExecutionError
from tracker_deployer.application.config import EnvironmentCreationConfig
from tracker_deployer.application.container import Container
from tracker_deployer.application.errors import CommandFailedError, WrongStateError
from tracker_deployer.domain.values import EnvironmentName

pytestmark = pytest.mark.integration

E2E = EnvironmentName("e2e")


def _state_tag(state_file: Callable[..., Path]) -> str:
    (tag,) = json.loads(state_file().read_text())
    return tag


class TestLifecycleFlow:
    def test_happy_path(
        self,
        container: Container,
        write_definition: Callable[..., Path],
        state_file: Callable[..., Path],
        configuration_engine: Any,
    ) -> None:
        """create -> provision -> configure -> release -> run -> test -> destroy -> purge."""
        container.create_handler().execute(EnvironmentCreationConfig.from_file(write_definition()))
        assert _state_tag(state_file) == "Created"
        assert container.show_handler().execute(E2E).next_commands == ["provision", "register", "destroy", "purge"]

        steps = [
            (container.provision_handler, "Provisioned"),
            (container.configure_handler, "Configured"),
            (container.release_handler, "Released"),
            (container.run_handler, "Running"),
        ]
        for handler, state in steps:
            handler().execute(E2E)
            assert _state_tag(state_file) == state

        report = container.test_handler().execute(E2E)
        assert len(report.passed) == 4
        assert _state_tag(state_file) == "Running"

        assert configuration_engine.playbooks == [
            "wait-cloud-init",
            "install-docker",
            "install-docker-compose",
            "configure-security-updates",
            "configure-firewall",
            "deploy-compose-files",
            "run-compose-services",
        ]

        container.destroy_handler().execute(E2E)
        assert _state_tag(state_file) == "Destroyed"
        assert container.show_handler().execute(E2E).next_commands == ["purge"]

        container.purge_handler().execute(E2E)
        assert not container.exists_handler().execute(E2E)
        assert container.list_handler().execute().environments == []

    def test_identity_preserved_across_lifecycle(
        self, container: Container, write_definition: Callable[..., Path]
    ) -> None:
        created = container.create_handler().execute(EnvironmentCreationConfig.from_file(write_definition()))
        container.provision_handler().execute(E2E)
        running_state = container.configure_handler().execute(E2E)

        assert running_state.name == created.name
        assert running_state.created_at == created.created_at
        assert running_state.ssh_credentials == created.ssh_credentials

    def test_failure_recovery(
        self,
        container: Container,
        write_definition: Callable[..., Path],
        state_file: Callable[..., Path],
        configuration_engine: Any,
    ) -> None:
        """A failed configure blocks release until configure succeeds on retry."""
        container.create_handler().execute(EnvironmentCreationConfig.from_file(write_definition()))
        container.provision_handler().execute(E2E)
        configuration_engine.failures["install-docker"] = CommandExecutionError(
            ["ansible-playbook", "install-docker.yml"], 2, stderr="apt lock held\n"
        )

        with pytest.raises(CommandFailedError) as exc_info:
            container.configure_handler().execute(E2E)

        assert _state_tag(state_file) == "ConfigureFailed"
        assert exc_info.value.trace_file is not None and exc_info.value.trace_file.is_file()
        details = container.show_handler().execute(E2E)
        assert details.failure is not None
        assert details.failure.failed_step == "InstallDocker"
        assert details.next_commands == ["configure", "test", "destroy"]

        with pytest.raises(WrongStateError):
            container.release_handler().execute(E2E)

        del configuration_engine.failures["install-docker"]
        container.configure_handler().execute(E2E)
        container.release_handler().execute(E2E)
        assert _state_tag(state_file) == "Released"

    def test_independent_environments(
        self, container: Container, write_definition: Callable[..., Path]
    ) -> None:
        for name in ("alpha", "beta"):
            container.create_handler().execute(EnvironmentCreationConfig.from_file(write_definition(name=name)))
        container.provision_handler().execute(EnvironmentName("alpha"))

        result = container.list_handler().execute()

        assert {s.name: s.state for s in result.environments} == {"alpha": "Provisioned", "beta": "Created"}
