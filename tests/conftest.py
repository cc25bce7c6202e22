from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from fakes import FakeComposite, FakeDestinations, FakeFramework, FakeTarget
from svclife.backends import BackendRegistry
from svclife.environment import Environment
from svclife.features import FeatureManager
from svclife.manager import ServiceManager
from svclife.models import (
    FrameworkRequirements,
    HostKind,
    ProjectConfig,
    ServiceConfig,
    ServiceLanguage,
    StageRequirements,
)
from svclife.resolver import CapabilityResolver


@pytest.fixture
def project(tmp_path: Path) -> ProjectConfig:
    return ProjectConfig(name="shop", path=tmp_path, resource_group_name="rg-project")


@pytest.fixture
def make_service(project: ProjectConfig) -> Callable[..., ServiceConfig]:
    def _make(
        name: str = "web",
        language: ServiceLanguage = ServiceLanguage.PYTHON,
        host: HostKind = HostKind.APP_SERVICE,
        **kwargs,
    ) -> ServiceConfig:
        service = ServiceConfig(name=name, language=language, host=host, project=project, **kwargs)
        project.services[name] = service
        return service

    return _make


@pytest.fixture
def framework() -> FakeFramework:
    return FakeFramework(
        requirements=FrameworkRequirements(package=StageRequirements(require_restore=True, require_build=True))
    )


@pytest.fixture
def target() -> FakeTarget:
    return FakeTarget()


@pytest.fixture
def registry(framework: FakeFramework, target: FakeTarget) -> BackendRegistry:
    registry = BackendRegistry.with_defaults()
    registry.register_framework(ServiceLanguage.PYTHON, lambda: framework)
    registry.register_framework(ServiceLanguage.DOCKER, FakeComposite)
    registry.register_framework(ServiceLanguage.SWA, FakeComposite)
    for host in (HostKind.APP_SERVICE, HostKind.CONTAINER_APP, HostKind.STATIC_WEB_APP,
                 HostKind.DOTNET_CONTAINER_APP, HostKind.SPRING_APP):
        registry.register_target(host, lambda: target)
    return registry


@pytest.fixture
def environment() -> Environment:
    return Environment.from_mapping("dev", {"AZURE_SUBSCRIPTION_ID": "sub-123"})


@pytest.fixture
def destinations() -> FakeDestinations:
    return FakeDestinations()


@pytest.fixture
def manager(environment, registry, destinations) -> ServiceManager:
    resolver = CapabilityResolver(registry, FeatureManager(environ={}))
    return ServiceManager(environment, resolver, destinations)
