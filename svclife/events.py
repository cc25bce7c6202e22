from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

if TYPE_CHECKING:  # pragma: no cover
    from .models import ProjectConfig, ServiceConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Stage(Enum):
    RESTORE = auto()
    BUILD = auto()
    PACKAGE = auto()
    DEPLOY = auto()

    @classmethod
    def ordered(cls) -> Iterable["Stage"]:
        return (
            cls.RESTORE,
            cls.BUILD,
            cls.PACKAGE,
            cls.DEPLOY,
        )

    @property
    def event_name(self) -> str:
        return self.name.lower()


@dataclass
class ServiceLifecycleEventArgs:
    project: Optional["ProjectConfig"]
    service: "ServiceConfig"


EventHandler = Callable[[ServiceLifecycleEventArgs], None]

_PHASES = ("pre", "post")


class EventDispatcher:
    """Runs a stage body between its registered pre and post handlers.

    A pre handler that raises aborts the body. Post handlers only run once the
    body has returned successfully.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Tuple[Stage, str], List[EventHandler]] = {}

    def add_handler(self, stage: Stage, handler: EventHandler, *, phase: str = "pre") -> None:
        if phase not in _PHASES:
            raise ValueError(f"phase must be one of {', '.join(_PHASES)} (got {phase!r})")
        self._handlers.setdefault((stage, phase), []).append(handler)

    def remove_handler(self, stage: Stage, handler: EventHandler, *, phase: str = "pre") -> None:
        handlers = self._handlers.get((stage, phase), [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers(self, stage: Stage, phase: str) -> List[EventHandler]:
        return list(self._handlers.get((stage, phase), []))

    def invoke(self, stage: Stage, args: ServiceLifecycleEventArgs, body: Callable[[], T]) -> T:
        self._raise("pre", stage, args)
        logger.debug("Running %s for service '%s'", stage.event_name, args.service.name)
        result = body()
        self._raise("post", stage, args)
        return result

    def _raise(self, phase: str, stage: Stage, args: ServiceLifecycleEventArgs) -> None:
        for handler in self.handlers(stage, phase):
            handler(args)
