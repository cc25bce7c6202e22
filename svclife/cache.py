from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from .events import Stage

logger = logging.getLogger(__name__)

T = TypeVar("T")

CacheKey = Tuple[str, str, str]


def cache_key(environment_name: str, service_name: str, stage: Stage) -> CacheKey:
    return (environment_name, service_name, stage.event_name)


@dataclass(frozen=True)
class CacheEntry:
    stage: Stage
    value: Any


class OperationCache:
    """In-process memo of stage results keyed by environment, service and stage.

    Shared by every service manager created for one invocation. Entries are
    tagged with the stage that produced them and checked against the expected
    result type on the way out.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def get(self, environment_name: str, service_name: str, stage: Stage, expected: Type[T]) -> Optional[T]:
        entry = self._entries.get(cache_key(environment_name, service_name, stage))
        if entry is None or entry.value is None:
            return None
        if entry.stage is not stage or not isinstance(entry.value, expected):
            raise TypeError(
                f"cached {entry.stage.event_name} result for service '{service_name}' "
                f"is {type(entry.value).__name__}, expected {expected.__name__}"
            )
        logger.debug("Using cached %s result for service '%s'", stage.event_name, service_name)
        return entry.value

    def put(self, environment_name: str, service_name: str, stage: Stage, value: Any) -> None:
        if value is None:
            raise ValueError(f"refusing to cache an empty {stage.event_name} result for service '{service_name}'")
        self._entries[cache_key(environment_name, service_name, stage)] = CacheEntry(stage, value)

    def invalidate(self, environment_name: str, service_name: str, stage: Optional[Stage] = None) -> None:
        stages = (stage,) if stage is not None else tuple(Stage.ordered())
        for item in stages:
            self._entries.pop(cache_key(environment_name, service_name, item), None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries
