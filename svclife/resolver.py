from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from . import features
from .backends import BackendRegistry, CompositeFramework, Framework, Target
from .errors import ResolutionError, UnsupportedHostError
from .features import FeatureManager
from .models import HostKind, ServiceConfig, ServiceLanguage

logger = logging.getLogger(__name__)

SWA_CONFIG_FILE = "swa-cli.config.json"


def contains_swa_config(config: ServiceConfig) -> bool:
    try:
        (config.path / SWA_CONFIG_FILE).stat()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ResolutionError(f"checking for {SWA_CONFIG_FILE}: {exc}", service=config.name) from exc
    return True


class CapabilityResolver:
    """Resolves the framework and target backends for a service.

    Backends are built once per service configuration and reused for the
    lifetime of the resolver. Every resolved backend gets a stable
    ``backend_id`` describing how it was composed.
    """

    def __init__(self, registry: BackendRegistry, feature_manager: Optional[FeatureManager] = None) -> None:
        self.registry = registry
        self.feature_manager = feature_manager or FeatureManager()
        self._frameworks: Dict[Tuple[str, str], Framework] = {}
        self._targets: Dict[Tuple[str, str], Target] = {}

    def resolve_target(self, config: ServiceConfig) -> Target:
        cached = self._targets.get(config.key)
        if cached is not None:
            return cached

        host = config.host.value
        if features.is_feature_key(host) and not self.feature_manager.is_enabled(host):
            raise UnsupportedHostError(host, host, features.enable_command(host), service=config.name)

        try:
            target = self.registry.create_target(config.host)
        except ResolutionError as exc:
            raise ResolutionError(
                f"failed to resolve service host '{host}' for service '{config.name}', {exc}",
                service=config.name,
            ) from exc

        target.backend_id = f"target:{host}"
        self._targets[config.key] = target
        return target

    def resolve_framework(self, config: ServiceConfig) -> Framework:
        cached = self._frameworks.get(config.key)
        if cached is not None:
            return cached

        language = config.effective_language
        try:
            framework = self.registry.create_framework(language)
        except ResolutionError as exc:
            raise ResolutionError(
                f"failed to resolve language '{language.value}' for service '{config.name}', {exc}",
                service=config.name,
            ) from exc
        framework.backend_id = f"framework:{language.value or 'none'}"

        wrapper_language = self._wrapper_language(config, language)
        if wrapper_language is not None:
            composite = self._create_composite(config, wrapper_language)
            composite.set_source(framework)
            composite.backend_id = f"framework:{wrapper_language.value}+{language.value}"
            framework = composite

        self._frameworks[config.key] = framework
        return framework

    def _wrapper_language(self, config: ServiceConfig, language: ServiceLanguage) -> Optional[ServiceLanguage]:
        # Hosts that run containers need a non-container source wrapped in a docker build.
        needs_language = language not in (ServiceLanguage.DOCKER, ServiceLanguage.NONE)
        if config.host.requires_container and needs_language:
            return ServiceLanguage.DOCKER
        if config.host is HostKind.STATIC_WEB_APP and contains_swa_config(config):
            logger.info(
                "Using swa-cli for build and deploy because %s was found in the service path", SWA_CONFIG_FILE
            )
            return ServiceLanguage.SWA
        return None

    def _create_composite(self, config: ServiceConfig, wrapper: ServiceLanguage) -> CompositeFramework:
        try:
            return self.registry.create_composite(wrapper)
        except ResolutionError as exc:
            raise ResolutionError(
                f"failed resolving composite framework service for '{config.name}', "
                f"language '{config.effective_language.value}': {exc}",
                service=config.name,
            ) from exc
