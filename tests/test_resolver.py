from __future__ import annotations

import pytest

from svclife.backends import BackendRegistry, NoOpFramework
from svclife.errors import ResolutionError, UnsupportedHostError
from svclife.features import FeatureManager
from svclife.models import HostKind, ServiceLanguage
from svclife.resolver import CapabilityResolver

from fakes import FakeComposite, FakeFramework, FakeTarget


@pytest.fixture
def resolver(registry) -> CapabilityResolver:
    return CapabilityResolver(registry, FeatureManager(environ={}))


def test_container_host_wraps_language_framework(resolver, make_service, framework) -> None:
    service = make_service(host=HostKind.CONTAINER_APP)
    resolved = resolver.resolve_framework(service)
    assert isinstance(resolved, FakeComposite)
    assert resolved.source is framework
    assert resolved.backend_id == "framework:docker+python"


def test_container_host_does_not_wrap_docker(resolver, make_service) -> None:
    service = make_service(language=ServiceLanguage.DOCKER, host=HostKind.CONTAINER_APP)
    resolved = resolver.resolve_framework(service)
    assert isinstance(resolved, FakeComposite)
    assert resolved.source is None
    assert resolved.backend_id == "framework:docker"


def test_prebuilt_image_resolves_as_docker(resolver, make_service) -> None:
    service = make_service(language=ServiceLanguage.NONE, host=HostKind.APP_SERVICE, image="nginx:1.25")
    resolved = resolver.resolve_framework(service)
    assert isinstance(resolved, FakeComposite)
    assert service.language is ServiceLanguage.NONE


def test_no_language_resolves_noop(resolver, make_service) -> None:
    service = make_service(language=ServiceLanguage.NONE, host=HostKind.CONTAINER_APP)
    assert isinstance(resolver.resolve_framework(service), NoOpFramework)


def test_static_web_app_with_swa_config_is_wrapped(resolver, make_service, framework, project) -> None:
    (project.path / "swa-cli.config.json").write_text("{}")
    service = make_service(host=HostKind.STATIC_WEB_APP)
    resolved = resolver.resolve_framework(service)
    assert isinstance(resolved, FakeComposite)
    assert resolved.source is framework
    assert resolved.backend_id == "framework:swa+python"


def test_static_web_app_without_swa_config(resolver, make_service, framework) -> None:
    service = make_service(host=HostKind.STATIC_WEB_APP)
    assert resolver.resolve_framework(service) is framework


def test_missing_wrapper_is_an_error(make_service, framework, target) -> None:
    registry = BackendRegistry()
    registry.register_framework(ServiceLanguage.PYTHON, lambda: framework)
    resolver = CapabilityResolver(registry)
    with pytest.raises(ResolutionError, match="composite framework"):
        resolver.resolve_framework(make_service(host=HostKind.CONTAINER_APP))


def test_wrapper_must_be_composite(make_service, framework) -> None:
    registry = BackendRegistry()
    registry.register_framework(ServiceLanguage.PYTHON, lambda: framework)
    registry.register_framework(ServiceLanguage.DOCKER, FakeFramework)
    resolver = CapabilityResolver(registry)
    with pytest.raises(ResolutionError, match="cannot wrap"):
        resolver.resolve_framework(make_service(host=HostKind.AKS))


def test_unregistered_language(resolver, make_service) -> None:
    with pytest.raises(ResolutionError, match="language 'java'"):
        resolver.resolve_framework(make_service(language=ServiceLanguage.JAVA))


def test_unregistered_host(resolver, make_service) -> None:
    with pytest.raises(ResolutionError, match="service host 'function'"):
        resolver.resolve_target(make_service(host=HostKind.AZURE_FUNCTION))


def test_disabled_alpha_host_is_rejected_before_construction(make_service) -> None:
    built = []
    registry = BackendRegistry()
    registry.register_target(HostKind.SPRING_APP, lambda: built.append("target") or FakeTarget())
    resolver = CapabilityResolver(registry, FeatureManager(environ={}))

    with pytest.raises(ResolutionError) as excinfo:
        resolver.resolve_target(make_service(host=HostKind.SPRING_APP))

    assert isinstance(excinfo.value, UnsupportedHostError)
    assert excinfo.value.feature == "springapp"
    assert "export SVCLIFE_ALPHA_ENABLE_SPRINGAPP=true" in str(excinfo.value)
    assert built == []


def test_enabled_alpha_host_resolves(registry, make_service, target) -> None:
    resolver = CapabilityResolver(registry, FeatureManager(enabled=["springapp"], environ={}))
    resolved = resolver.resolve_target(make_service(host=HostKind.SPRING_APP))
    assert resolved is target
    assert resolved.backend_id == "target:springapp"


def test_backends_are_reused_per_service(resolver, make_service) -> None:
    web = make_service("web", host=HostKind.CONTAINER_APP)
    api = make_service("api", host=HostKind.CONTAINER_APP)
    first = resolver.resolve_framework(web)
    assert resolver.resolve_framework(web) is first
    assert resolver.resolve_framework(api) is not first
