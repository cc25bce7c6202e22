"""Service lifecycle orchestration.

``ServiceManager`` drives one service through restore, build, package and
deploy. Each stage consults the operation cache first, resolves (and
initializes) the backends it needs, and runs the backend call inside the
service's lifecycle event dispatcher. A stage asked for without its upstream
output pulls that output from the cache, and package synthesizes the restore
and build it needs when nothing was supplied.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, List, Optional, Protocol, TypeVar

from .backends import Framework, Target
from .cache import OperationCache
from .environment import Environment, service_property_key
from .errors import (
    CancellationError,
    LifecycleError,
    DestinationResolutionError,
    RelocationError,
    StageExecutionError,
)
from .events import ServiceLifecycleEventArgs, Stage
from .models import (
    BuildResult,
    CancellationToken,
    DeployResult,
    ExternalTool,
    PackageOptions,
    PackageResult,
    Progress,
    RestoreResult,
    ServiceConfig,
    ServiceProgress,
    TargetResource,
)
from .resolver import CapabilityResolver
from .tracker import InitializationTracker
from .utils import is_regular_file, move_file

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTAINER_APP_ENVIRONMENT_TYPE = "Microsoft.App/managedEnvironments"
CONTAINER_ENVIRONMENT_PROPERTY = "CONTAINER_ENVIRONMENT_NAME"
CONTAINER_ENVIRONMENT_ID_VAR = "AZURE_CONTAINER_APPS_ENVIRONMENT_ID"
ENDPOINTS_PROPERTY = "ENDPOINTS"

_STAGE_VERBS = {
    Stage.RESTORE: "restoring",
    Stage.BUILD: "building",
    Stage.PACKAGE: "packaging",
    Stage.DEPLOY: "deploying",
}


class DestinationResolver(Protocol):
    def resolve_target_resource(self, subscription_id: str, config: ServiceConfig) -> TargetResource:
        ...

    def resolve_resource_group_name(self, subscription_id: str, name_template: str) -> str:
        ...


def overridden_endpoints(config: ServiceConfig, env: Environment) -> List[str]:
    """Return the user-specified endpoints for a service, if any.

    The ``ENDPOINTS`` service property holds a JSON array of strings. Anything
    else is logged and ignored.
    """

    raw = env.get_service_property(config.name, ENDPOINTS_PROPERTY)
    if not raw:
        return []
    try:
        endpoints = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning(
            "failed to parse endpoints override for service '%s' as JSON array of strings: %s, skipping override",
            config.name,
            exc,
        )
        return []
    if not isinstance(endpoints, list) or not all(isinstance(item, str) for item in endpoints):
        logger.warning(
            "endpoints override for service '%s' is not a JSON array of strings, skipping override", config.name
        )
        return []
    return endpoints


class ServiceManager:
    """Runs lifecycle stages for the services of one environment.

    The operation cache and initialization tracker may be shared between
    managers; neither is safe for concurrent runs without external locking.
    """

    def __init__(
        self,
        env: Environment,
        resolver: CapabilityResolver,
        destinations: DestinationResolver,
        cache: Optional[OperationCache] = None,
        tracker: Optional[InitializationTracker] = None,
    ) -> None:
        self.env = env
        self.resolver = resolver
        self.destinations = destinations
        self.cache = cache if cache is not None else OperationCache()
        self.tracker = tracker if tracker is not None else InitializationTracker()

    # Backends

    def get_framework(self, config: ServiceConfig) -> Framework:
        return self.resolver.resolve_framework(config)

    def get_target(self, config: ServiceConfig) -> Target:
        return self.resolver.resolve_target(config)

    def get_required_tools(self, config: ServiceConfig) -> List[ExternalTool]:
        framework = self.get_framework(config)
        target = self.get_target(config)
        tools: List[ExternalTool] = []
        for tool in [*framework.required_tools(config), *target.required_tools(config)]:
            if tool not in tools:
                tools.append(tool)
        return tools

    def initialize(self, config: ServiceConfig, token: Optional[CancellationToken] = None) -> None:
        token = token or CancellationToken()
        framework = self.get_framework(config)
        target = self.get_target(config)
        self.tracker.ensure_initialized(config, framework, token)
        self.tracker.ensure_initialized(config, target, token)

    def _framework(self, config: ServiceConfig, stage: Stage, token: CancellationToken) -> Framework:
        try:
            framework = self.get_framework(config)
            self.tracker.ensure_initialized(config, framework, token)
        except LifecycleError as exc:
            _attach(exc, stage, config)
            raise
        return framework

    def _target(self, config: ServiceConfig, stage: Stage, token: CancellationToken) -> Target:
        try:
            target = self.get_target(config)
            self.tracker.ensure_initialized(config, target, token)
        except LifecycleError as exc:
            _attach(exc, stage, config)
            raise
        return target

    # Stages

    def restore(
        self,
        config: ServiceConfig,
        progress: Optional[Progress] = None,
        token: Optional[CancellationToken] = None,
    ) -> RestoreResult:
        token = token or CancellationToken()
        cached = self._cached(config, Stage.RESTORE, RestoreResult)
        if cached is not None:
            return cached

        framework = self._framework(config, Stage.RESTORE, token)
        result = self._run_stage(
            Stage.RESTORE, config, progress, token, lambda: framework.restore(config, progress, token)
        )
        self._store(config, Stage.RESTORE, result)
        return result

    def build(
        self,
        config: ServiceConfig,
        restore_output: Optional[RestoreResult] = None,
        progress: Optional[Progress] = None,
        token: Optional[CancellationToken] = None,
    ) -> BuildResult:
        token = token or CancellationToken()
        cached = self._cached(config, Stage.BUILD, BuildResult)
        if cached is not None:
            return cached

        if restore_output is None:
            restore_output = self._cached(config, Stage.RESTORE, RestoreResult)

        framework = self._framework(config, Stage.BUILD, token)
        result = self._run_stage(
            Stage.BUILD,
            config,
            progress,
            token,
            lambda: framework.build(config, restore_output, progress, token),
        )
        self._store(config, Stage.BUILD, result)
        return result

    def package(
        self,
        config: ServiceConfig,
        build_output: Optional[BuildResult] = None,
        progress: Optional[Progress] = None,
        options: Optional[PackageOptions] = None,
        token: Optional[CancellationToken] = None,
    ) -> PackageResult:
        options = options or PackageOptions()
        token = token or CancellationToken()
        cached = self._cached(config, Stage.PACKAGE, PackageResult)
        if cached is not None:
            return cached

        if build_output is None:
            build_output = self._cached(config, Stage.BUILD, BuildResult)

        framework = self._framework(config, Stage.PACKAGE, token)
        target = self._target(config, Stage.PACKAGE, token)

        requirements = framework.requirements().package
        has_build_output = build_output is not None

        restore_result: Optional[RestoreResult] = None
        if requirements.require_restore and (build_output is None or build_output.restore is None):
            restore_result = self.restore(config, progress, token)

        build_result = BuildResult()
        if requirements.require_build and not has_build_output:
            build_result = self.build(config, restore_result or RestoreResult(), progress, token)

        if build_output is None:
            build_output = build_result
            build_output.restore = restore_result or RestoreResult()
        elif restore_result is not None:
            build_output.restore = restore_result

        def _package() -> PackageResult:
            framework_output = framework.package(config, build_output, progress, token)
            return target.package(config, framework_output, progress, token)

        result = self._run_stage(Stage.PACKAGE, config, progress, token, _package)

        # The package path is either a file or a container image reference; only files move.
        if options.output_path and is_regular_file(result.package_path):
            try:
                destination = move_file(result.package_path, options.output_path)
            except RelocationError as exc:
                _attach(exc, Stage.PACKAGE, config)
                raise
            logger.info("Moved package for service '%s' to %s", config.name, destination)
            result.package_path = str(destination)

        self._store(config, Stage.PACKAGE, result)
        return result

    def deploy(
        self,
        config: ServiceConfig,
        package_output: Optional[PackageResult] = None,
        progress: Optional[Progress] = None,
        token: Optional[CancellationToken] = None,
    ) -> DeployResult:
        token = token or CancellationToken()
        cached = self._cached(config, Stage.DEPLOY, DeployResult)
        if cached is not None:
            return cached

        if package_output is None:
            package_output = self._cached(config, Stage.PACKAGE, PackageResult)

        target = self._target(config, Stage.DEPLOY, token)
        destination = self._resolve_destination(config)

        result = self._run_stage(
            Stage.DEPLOY,
            config,
            progress,
            token,
            lambda: target.deploy(config, package_output, destination, progress, token),
        )

        # Users with their own front door, proxy or DNS name can replace the reported endpoints.
        endpoints = overridden_endpoints(config, self.env)
        if endpoints:
            result.endpoints = endpoints

        self._store(config, Stage.DEPLOY, result)
        return result

    # Helpers

    def _resolve_destination(self, config: ServiceConfig) -> TargetResource:
        subscription_id = self.env.subscription_id()

        if not config.host.requires_container_environment:
            try:
                return self.destinations.resolve_target_resource(subscription_id, config)
            except CancellationError as exc:
                _attach(exc, Stage.DEPLOY, config)
                raise
            except Exception as exc:
                raise DestinationResolutionError(
                    f"getting target resource: {exc}", stage=Stage.DEPLOY.event_name, service=config.name
                ) from exc

        environment_name = self.env.get_service_property(config.name, CONTAINER_ENVIRONMENT_PROPERTY)
        # Self-provisioning services create their own environment during deployment.
        if not environment_name and not config.self_provisioning:
            environment_name = self.env.getenv(CONTAINER_ENVIRONMENT_ID_VAR)
            if not environment_name:
                raise DestinationResolutionError(
                    f"could not determine container app environment for service {config.name}, "
                    "have you set AZURE_CONTAINER_ENVIRONMENT_NAME or "
                    f"{service_property_key(config.name, CONTAINER_ENVIRONMENT_PROPERTY)} as an output of your "
                    "infrastructure?",
                    stage=Stage.DEPLOY.event_name,
                    service=config.name,
                )
            environment_name = environment_name.split("/")[-1]

        name_template = config.resource_group_name
        if not name_template and config.project is not None:
            name_template = config.project.resource_group_name

        try:
            resource_group_name = self.destinations.resolve_resource_group_name(subscription_id, name_template)
        except CancellationError as exc:
            _attach(exc, Stage.DEPLOY, config)
            raise
        except Exception as exc:
            raise DestinationResolutionError(
                f"getting resource group name: {exc}", stage=Stage.DEPLOY.event_name, service=config.name
            ) from exc

        return TargetResource(
            subscription_id=subscription_id,
            resource_group_name=resource_group_name,
            resource_name=environment_name,
            resource_type=CONTAINER_APP_ENVIRONMENT_TYPE,
        )

    def _run_stage(
        self,
        stage: Stage,
        config: ServiceConfig,
        progress: Optional[Progress],
        token: CancellationToken,
        body: Callable[[], Optional[T]],
    ) -> T:
        args = ServiceLifecycleEventArgs(project=config.project, service=config)
        verb = _STAGE_VERBS[stage]
        _report(progress, f"{verb.capitalize()} service '{config.name}'")
        try:
            token.raise_if_cancelled()
            result = config.events.invoke(stage, args, body)
        except CancellationError as exc:
            _attach(exc, stage, config)
            raise
        except Exception as exc:
            raise StageExecutionError(
                f"failed {verb} service '{config.name}': {exc}", stage=stage.event_name, service=config.name
            ) from exc

        if result is None:
            raise StageExecutionError(
                f"failed {verb} service '{config.name}': backend returned no result",
                stage=stage.event_name,
                service=config.name,
            )
        return result

    def _cached(self, config: ServiceConfig, stage: Stage, expected: type[T]) -> Optional[T]:
        return self.cache.get(self.env.name(), config.name, stage, expected)

    def _store(self, config: ServiceConfig, stage: Stage, result: object) -> None:
        self.cache.put(self.env.name(), config.name, stage, result)


def _attach(exc: LifecycleError, stage: Stage, config: ServiceConfig) -> None:
    exc.stage = exc.stage or stage.event_name
    exc.service = exc.service or config.name


def _report(progress: Optional[Progress], message: str) -> None:
    if progress is None:
        return
    try:
        progress(ServiceProgress(message))
    except Exception as exc:
        logger.warning("progress observer failed on '%s': %s", message, exc)
