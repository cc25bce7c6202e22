"""Lifecycle orchestration for deployable services: restore, build, package, deploy."""

from .backends import BackendRegistry, CompositeFramework, Framework, Target
from .cache import OperationCache
from .environment import Environment
from .events import EventDispatcher, Stage
from .features import FeatureManager
from .manager import ServiceManager
from .models import CancellationToken, HostKind, PackageOptions, ServiceConfig, ServiceLanguage
from .project import ProjectDescriptor
from .resolver import CapabilityResolver
from .tracker import InitializationTracker

__all__ = [
    "BackendRegistry",
    "CancellationToken",
    "CapabilityResolver",
    "CompositeFramework",
    "Environment",
    "EventDispatcher",
    "FeatureManager",
    "Framework",
    "HostKind",
    "InitializationTracker",
    "OperationCache",
    "PackageOptions",
    "ProjectDescriptor",
    "ServiceConfig",
    "ServiceLanguage",
    "ServiceManager",
    "Stage",
    "Target",
]
