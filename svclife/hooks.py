"""Command hooks declared per service in the project descriptor.

A hook named ``pre<stage>`` or ``post<stage>`` (``prepackage``, ``postdeploy``,
...) runs its commands in the service directory around the matching stage.
"""

from __future__ import annotations

import logging
import shlex
from typing import List

from .errors import ProjectError
from .events import EventHandler, ServiceLifecycleEventArgs, Stage
from .models import ServiceConfig
from .utils import run_command

logger = logging.getLogger(__name__)


def _split_hook_name(hook_name: str) -> tuple[str, Stage]:
    for phase in ("pre", "post"):
        if hook_name.startswith(phase):
            stage_name = hook_name[len(phase):]
            for stage in Stage.ordered():
                if stage.event_name == stage_name:
                    return phase, stage
    valid = ", ".join(f"{phase}{stage.event_name}" for stage in Stage.ordered() for phase in ("pre", "post"))
    raise ProjectError(f"Unknown hook '{hook_name}' (valid: {valid})")


def command_hook(hook_name: str, commands: List[str]) -> EventHandler:
    def _run(args: ServiceLifecycleEventArgs) -> None:
        service = args.service
        for command in commands:
            logger.info("Running hook %s for service '%s': %s", hook_name, service.name, command)
            run_command(
                shlex.split(command),
                cwd=service.path,
                env={"SVCLIFE_SERVICE_NAME": service.name, "SVCLIFE_HOOK_NAME": hook_name},
            )

    return _run


def register_command_hooks(service: ServiceConfig) -> int:
    """Bind the service's declared hooks to its event dispatcher.

    Returns the number of hooks registered.
    """

    for hook_name, commands in service.hooks.items():
        phase, stage = _split_hook_name(hook_name)
        service.events.add_handler(stage, command_hook(hook_name, commands), phase=phase)
    return len(service.hooks)
