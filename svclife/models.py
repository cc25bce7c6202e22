from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import CancellationError, ProjectError
from .events import EventDispatcher


class ServiceLanguage(str, Enum):
    NONE = ""
    DOCKER = "docker"
    DOTNET = "dotnet"
    CSHARP = "csharp"
    FSHARP = "fsharp"
    PYTHON = "python"
    JAVASCRIPT = "js"
    TYPESCRIPT = "ts"
    JAVA = "java"
    SWA = "swa"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ServiceLanguage":
        key = (value or "").strip().lower()
        key = _LANGUAGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            valid = ", ".join(member.value for member in cls if member.value)
            raise ProjectError(f"Unsupported language '{value}' (valid: {valid})") from exc


_LANGUAGE_ALIASES = {
    "py": "python",
    "javascript": "js",
    "typescript": "ts",
    "none": "",
}


class HostKind(str, Enum):
    APP_SERVICE = "appservice"
    CONTAINER_APP = "containerapp"
    AZURE_FUNCTION = "function"
    STATIC_WEB_APP = "staticwebapp"
    AKS = "aks"
    DOTNET_CONTAINER_APP = "containerapp-dotnet"
    SPRING_APP = "springapp"
    AI_ENDPOINT = "ai.endpoint"

    @classmethod
    def parse(cls, value: Optional[str]) -> "HostKind":
        key = (value or "").strip().lower()
        try:
            return cls(key)
        except ValueError as exc:
            valid = ", ".join(member.value for member in cls)
            raise ProjectError(f"Unsupported host '{value}' (valid: {valid})") from exc

    @property
    def requires_container(self) -> bool:
        return self in (HostKind.CONTAINER_APP, HostKind.AKS)

    @property
    def requires_container_environment(self) -> bool:
        return self is HostKind.DOTNET_CONTAINER_APP


@dataclass
class ServiceConfig:
    """One deployable unit declared in the project descriptor."""

    name: str
    language: ServiceLanguage
    host: HostKind
    relative_path: str = "."
    image: str = ""
    resource_group_name: str = ""
    self_provisioning: bool = False
    hooks: Dict[str, List[str]] = field(default_factory=dict)
    project: Optional["ProjectConfig"] = field(default=None, repr=False, compare=False)
    events: EventDispatcher = field(default_factory=EventDispatcher, repr=False, compare=False)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ServiceConfig":
        if not isinstance(data, dict):
            raise ProjectError(f"Service '{name}' must be a mapping")
        if not data.get("host"):
            raise ProjectError(f"Service '{name}' must declare a host")
        return cls(
            name=name,
            language=ServiceLanguage.parse(data.get("language")),
            host=HostKind.parse(data["host"]),
            relative_path=data.get("project", "."),
            image=data.get("image", "") or "",
            resource_group_name=data.get("resourceGroup", "") or "",
            self_provisioning=bool(data.get("selfProvisioning", False)),
            hooks=_parse_hooks(name, data.get("hooks", {})),
        )

    @property
    def key(self) -> Tuple[str, str]:
        project_name = self.project.name if self.project is not None else ""
        return (project_name, self.name)

    @property
    def path(self) -> Path:
        root = self.project.path if self.project is not None else Path.cwd()
        return (root / self.relative_path).resolve()

    @property
    def effective_language(self) -> ServiceLanguage:
        # Publishing from an existing image follows the same lifecycle as a docker project.
        if self.language is ServiceLanguage.NONE and self.image:
            return ServiceLanguage.DOCKER
        return self.language


def _parse_hooks(service_name: str, raw: Any) -> Dict[str, List[str]]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ProjectError(f"Hooks for service '{service_name}' must be a mapping")
    hooks: Dict[str, List[str]] = {}
    for hook_name, commands in raw.items():
        if isinstance(commands, str):
            commands = [commands]
        if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
            raise ProjectError(
                f"Hook '{hook_name}' for service '{service_name}' must be a command or list of commands"
            )
        hooks[str(hook_name)] = list(commands)
    return hooks


@dataclass
class ProjectConfig:
    """Project descriptor owning the service configurations."""

    name: str
    path: Path
    resource_group_name: str = ""
    services: Dict[str, ServiceConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: str | Path) -> "ProjectConfig":
        if not isinstance(data, dict) or not isinstance(data.get("services"), dict):
            raise ProjectError("Project descriptor must contain a top-level 'services' mapping")

        project = cls(
            name=data.get("name") or Path(path).name,
            path=Path(path),
            resource_group_name=data.get("resourceGroup", "") or "",
        )
        for service_name, service_data in data["services"].items():
            service = ServiceConfig.from_dict(str(service_name), service_data)
            service.project = project
            project.services[service.name] = service
        return project


@dataclass(frozen=True)
class ExternalTool:
    name: str
    install_url: str = ""


@dataclass(frozen=True)
class StageRequirements:
    require_restore: bool = False
    require_build: bool = False


@dataclass(frozen=True)
class FrameworkRequirements:
    package: StageRequirements = field(default_factory=StageRequirements)


@dataclass
class ServiceProgress:
    message: str
    timestamp: str = field(default_factory=lambda: _dt.datetime.now(_dt.timezone.utc).isoformat())


Progress = Callable[[ServiceProgress], None]


@dataclass
class RestoreResult:
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BuildResult:
    restore: Optional[RestoreResult] = None
    build_output_path: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PackageResult:
    """Output of a package stage.

    ``package_path`` is either a file on disk or a container image reference.
    """

    build: Optional[BuildResult] = None
    package_path: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeployResult:
    package: Optional[PackageResult] = None
    target_resource_id: str = ""
    kind: str = ""
    endpoints: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TargetResource:
    subscription_id: str
    resource_group_name: str
    resource_name: str
    resource_type: str

    @property
    def resource_id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group_name}"
            f"/providers/{self.resource_type}/{self.resource_name}"
        )


@dataclass
class PackageOptions:
    output_path: str = ""


class CancellationToken:
    """Cooperative cancellation flag handed to every long-running call."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    def cancel(self, reason: str = "operation cancelled") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError(self.reason)
