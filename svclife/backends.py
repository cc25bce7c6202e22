"""Pluggable framework and target backends.

A framework knows how to restore, build and package code for one language. A
target knows how to package and deploy that output to one kind of host. A
composite framework wraps another framework (its source) and forwards every
operation it does not handle itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ResolutionError
from .models import (
    BuildResult,
    CancellationToken,
    DeployResult,
    ExternalTool,
    FrameworkRequirements,
    HostKind,
    PackageResult,
    Progress,
    RestoreResult,
    ServiceConfig,
    ServiceLanguage,
    TargetResource,
)


class Framework(ABC):
    backend_id: str = ""

    def required_tools(self, config: ServiceConfig) -> List[ExternalTool]:
        return []

    def initialize(self, config: ServiceConfig, token: CancellationToken) -> None:
        return None

    def requirements(self) -> FrameworkRequirements:
        return FrameworkRequirements()

    @abstractmethod
    def restore(
        self, config: ServiceConfig, progress: Optional[Progress], token: CancellationToken
    ) -> RestoreResult:
        ...

    @abstractmethod
    def build(
        self,
        config: ServiceConfig,
        restore_output: Optional[RestoreResult],
        progress: Optional[Progress],
        token: CancellationToken,
    ) -> BuildResult:
        ...

    @abstractmethod
    def package(
        self,
        config: ServiceConfig,
        build_output: Optional[BuildResult],
        progress: Optional[Progress],
        token: CancellationToken,
    ) -> PackageResult:
        ...


class CompositeFramework(Framework):
    """Framework that adds its own step on top of an inner source framework."""

    def __init__(self) -> None:
        self.source: Optional[Framework] = None

    def set_source(self, source: Framework) -> None:
        self.source = source

    def required_tools(self, config: ServiceConfig) -> List[ExternalTool]:
        if self.source is None:
            return []
        return self.source.required_tools(config)

    def initialize(self, config: ServiceConfig, token: CancellationToken) -> None:
        if self.source is not None:
            self.source.initialize(config, token)

    def requirements(self) -> FrameworkRequirements:
        if self.source is None:
            return FrameworkRequirements()
        return self.source.requirements()

    def restore(
        self, config: ServiceConfig, progress: Optional[Progress], token: CancellationToken
    ) -> RestoreResult:
        if self.source is None:
            return RestoreResult()
        return self.source.restore(config, progress, token)

    def build(
        self,
        config: ServiceConfig,
        restore_output: Optional[RestoreResult],
        progress: Optional[Progress],
        token: CancellationToken,
    ) -> BuildResult:
        if self.source is None:
            return BuildResult(restore=restore_output)
        return self.source.build(config, restore_output, progress, token)


class NoOpFramework(Framework):
    """Framework for services that declare no language."""

    def restore(self, config, progress, token):
        return RestoreResult()

    def build(self, config, restore_output, progress, token):
        return BuildResult(restore=restore_output)

    def package(self, config, build_output, progress, token):
        return PackageResult(build=build_output)


class Target(ABC):
    backend_id: str = ""

    def required_tools(self, config: ServiceConfig) -> List[ExternalTool]:
        return []

    def initialize(self, config: ServiceConfig, token: CancellationToken) -> None:
        return None

    @abstractmethod
    def package(
        self,
        config: ServiceConfig,
        framework_output: PackageResult,
        progress: Optional[Progress],
        token: CancellationToken,
    ) -> PackageResult:
        ...

    @abstractmethod
    def deploy(
        self,
        config: ServiceConfig,
        package_output: Optional[PackageResult],
        destination: TargetResource,
        progress: Optional[Progress],
        token: CancellationToken,
    ) -> DeployResult:
        ...


FrameworkFactory = Callable[[], Framework]
TargetFactory = Callable[[], Target]


class BackendRegistry:
    """Maps languages and hosts to the factories that build their backends."""

    def __init__(self) -> None:
        self._frameworks: Dict[ServiceLanguage, FrameworkFactory] = {}
        self._targets: Dict[HostKind, TargetFactory] = {}

    @classmethod
    def with_defaults(cls) -> "BackendRegistry":
        registry = cls()
        registry.register_framework(ServiceLanguage.NONE, NoOpFramework)
        return registry

    def register_framework(self, language: ServiceLanguage, factory: FrameworkFactory) -> None:
        if language in self._frameworks:
            raise ValueError(f"Duplicate framework registration for language: {language.value!r}")
        self._frameworks[language] = factory

    def register_target(self, host: HostKind, factory: TargetFactory) -> None:
        if host in self._targets:
            raise ValueError(f"Duplicate target registration for host: {host.value!r}")
        self._targets[host] = factory

    def available_languages(self) -> Tuple[ServiceLanguage, ...]:
        return tuple(sorted(self._frameworks, key=lambda language: language.value))

    def available_hosts(self) -> Tuple[HostKind, ...]:
        return tuple(sorted(self._targets, key=lambda host: host.value))

    def create_framework(self, language: ServiceLanguage) -> Framework:
        factory = self._frameworks.get(language)
        if factory is None:
            available = ", ".join(repr(lang.value) for lang in self.available_languages()) or "<none>"
            raise ResolutionError(
                f"no framework registered for language '{language.value}' (available: {available})"
            )
        return factory()

    def create_composite(self, language: ServiceLanguage) -> CompositeFramework:
        framework = self.create_framework(language)
        if not isinstance(framework, CompositeFramework):
            raise ResolutionError(
                f"framework registered for language '{language.value}' cannot wrap another framework"
            )
        return framework

    def create_target(self, host: HostKind) -> Target:
        factory = self._targets.get(host)
        if factory is None:
            available = ", ".join(h.value for h in self.available_hosts()) or "<none>"
            raise ResolutionError(f"no target registered for host '{host.value}' (available: {available})")
        return factory()
