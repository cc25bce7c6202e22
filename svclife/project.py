from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import yaml

from .errors import ProjectError
from .hooks import register_command_hooks
from .models import ProjectConfig, ServiceConfig

DEFAULT_DESCRIPTOR = "svclife.yaml"


@dataclass
class ProjectDescriptor:
    """Lazy loader for the project descriptor file."""

    path: Path
    _cache: Optional[ProjectConfig] = None

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectDescriptor":
        path = Path(path)
        if path.is_dir():
            path = path / DEFAULT_DESCRIPTOR
        return cls(path=path)

    def load(self) -> ProjectConfig:
        if self._cache is not None:
            return self._cache

        try:
            raw_text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ProjectError(f"Cannot read project descriptor {self.path}: {exc}") from exc

        try:
            raw_data = json.loads(raw_text)
        except json.JSONDecodeError:
            try:
                raw_data = yaml.safe_load(raw_text)
            except yaml.YAMLError as exc:
                raise ProjectError(f"Project descriptor {self.path} is not valid YAML: {exc}") from exc

        project = ProjectConfig.from_dict(raw_data, self.path.parent)
        for service in project.services.values():
            register_command_hooks(service)
        self._cache = project
        return project

    def iter_services(self) -> Iterable[ServiceConfig]:
        return self.load().services.values()

    def get(self, service_name: str) -> ServiceConfig:
        try:
            return self.load().services[service_name]
        except KeyError as exc:
            raise ProjectError(f"Unknown service: {service_name}") from exc

    def __len__(self) -> int:
        return len(self.load().services)

    def __contains__(self, service_name: str) -> bool:
        return service_name in self.load().services
