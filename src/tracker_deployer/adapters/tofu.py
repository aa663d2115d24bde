"""OpenTofu-backed provisioner."""

from __future__ import annotations

import ipaddress
import json
from typing import Any

import structlog

from tracker_deployer.adapters.command import CommandRunner
from tracker_deployer.adapters.errors import AdapterError, ProvisionError
from tracker_deployer.adapters.interfaces import InstanceInfo, ProvisionProfile
from tracker_deployer.utils.logging import get_logger

TOFU_STATE_FILE = "terraform.tfstate"


def parse_instance_info(output: str) -> InstanceInfo:
    """Parse ``tofu output -json`` into :class:`InstanceInfo`.

    Expects an ``instance_info`` output whose value has ``name``,
    ``ip_address``, ``status`` and ``image`` keys.
    """
    try:
        outputs = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ProvisionError(f"Failed to parse OpenTofu output as JSON: {exc}") from exc

    value: Any = (outputs.get("instance_info") or {}).get("value") if isinstance(outputs, dict) else None
    if not isinstance(value, dict):
        raise ProvisionError("instance_info section not found in OpenTofu outputs")

    for key in ("name", "ip_address"):
        if not isinstance(value.get(key), str):
            raise ProvisionError(f"{key} field missing or not a string in OpenTofu outputs")
    try:
        ipaddress.ip_address(value["ip_address"])
    except ValueError as exc:
        raise ProvisionError(f"ip_address field is not a valid IP address: {value['ip_address']}") from exc

    return InstanceInfo(
        name=value["name"],
        ip_address=value["ip_address"],
        status=str(value.get("status", "unknown")),
        image=value.get("image"),
    )


class OpenTofuProvisioner:
    """Runs ``tofu init/apply/output/destroy`` in the rendered tofu directory."""

    def __init__(
        self,
        runner: CommandRunner,
        binary: str = "tofu",
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.runner = runner
        self.binary = binary
        self.logger = logger or get_logger("adapters.tofu")

    def apply(self, profile: ProvisionProfile) -> InstanceInfo:
        try:
            self.runner.run([self.binary, "init", "-input=false"], cwd=profile.workdir)
            self.runner.run([self.binary, "apply", "-auto-approve", "-input=false"], cwd=profile.workdir)
            output = self.runner.run([self.binary, "output", "-json"], cwd=profile.workdir)
        except AdapterError as exc:
            raise ProvisionError(f"OpenTofu failed to provision '{profile.instance_name}'") from exc

        info = parse_instance_info(output.stdout)
        self.logger.info("tofu.applied", instance=info.name, ip_address=info.ip_address)
        return info

    def destroy(self, profile: ProvisionProfile) -> bool:
        if not (profile.workdir / TOFU_STATE_FILE).is_file():
            self.logger.info("tofu.no_state", workdir=profile.workdir)
            return False
        try:
            self.runner.run([self.binary, "destroy", "-auto-approve", "-input=false"], cwd=profile.workdir)
        except AdapterError as exc:
            raise ProvisionError(f"OpenTofu failed to destroy '{profile.instance_name}'") from exc
        self.logger.info("tofu.destroyed", instance=profile.instance_name)
        return True


__all__ = ["OpenTofuProvisioner", "parse_instance_info", "TOFU_STATE_FILE"]
