"""Template-directory renderer.

A template set is a directory of static files. Rendering copies it into the
environment's build directory and writes the per-environment variables file
next to it, in the format its extension names:

- ``*.json``: JSON object (OpenTofu ``*.auto.tfvars.json``)
- ``*.yml`` / ``*.yaml``: YAML document (Ansible inventory)
- ``.env``: ``KEY=value`` lines (Docker Compose)
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from tracker_deployer.adapters.errors import RenderError
from tracker_deployer.utils.logging import get_logger


def _dump_env(variables: Mapping[str, Any]) -> str:
    lines = []
    for key, value in variables.items():
        if isinstance(value, (dict, list)):
            raise RenderError(f".env variables must be scalars, '{key}' is {type(value).__name__}")
        text = "" if value is None else str(value)
        lines.append(f"{key}={text}")
    return "\n".join(lines) + "\n"


class TemplateDirectoryRenderer:
    """Renderer that copies a template directory and writes a variables file."""

    def __init__(
        self,
        source_dir: Path,
        variables_file: str,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.source_dir = source_dir
        self.variables_file = variables_file
        self.logger = logger or get_logger("adapters.rendering")

    def _serialize(self, config: Mapping[str, Any]) -> str:
        suffix = Path(self.variables_file).suffix
        if self.variables_file == ".env":
            return _dump_env(config)
        if suffix == ".json":
            return json.dumps(dict(config), indent=2, default=str) + "\n"
        if suffix in (".yml", ".yaml"):
            return yaml.safe_dump(dict(config), sort_keys=False, default_flow_style=False)
        raise RenderError(f"Unsupported variables file type: {self.variables_file}")

    def render(self, config: Mapping[str, Any], target_dir: Path) -> None:
        if not self.source_dir.is_dir():
            raise RenderError(f"Template directory not found: {self.source_dir}", self.source_dir)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copytree(self.source_dir, target_dir, dirs_exist_ok=True)
            content = self._serialize(config)
            (target_dir / self.variables_file).write_text(content, encoding="utf-8")
        except OSError as exc:
            raise RenderError(f"Failed to render templates into {target_dir}: {exc}", target_dir) from exc
        except yaml.YAMLError as exc:
            raise RenderError(f"Failed to serialize {self.variables_file}: {exc}", target_dir) from exc
        self.logger.debug("templates.rendered", source=self.source_dir, target=target_dir)


__all__ = ["TemplateDirectoryRenderer"]
