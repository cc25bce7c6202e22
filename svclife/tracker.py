from __future__ import annotations

import logging
from typing import Dict, Tuple, Union

from .backends import Framework, Target
from .errors import CancellationError, InitializationError
from .models import CancellationToken, ServiceConfig

logger = logging.getLogger(__name__)

Backend = Union[Framework, Target]


class InitializationTracker:
    """Runs each backend's one-time setup at most once per service configuration."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], Dict[str, bool]] = {}

    def is_initialized(self, config: ServiceConfig, backend: Backend) -> bool:
        return self._records.get(config.key, {}).get(_backend_id(backend), False)

    def ensure_initialized(self, config: ServiceConfig, backend: Backend, token: CancellationToken) -> None:
        backend_id = _backend_id(backend)
        record = self._records.setdefault(config.key, {})
        if record.get(backend_id):
            return

        token.raise_if_cancelled()
        try:
            backend.initialize(config, token)
        except CancellationError as exc:
            exc.service = exc.service or config.name
            raise
        except Exception as exc:
            raise InitializationError(
                f"failed initializing {backend_id} for service '{config.name}': {exc}", service=config.name
            ) from exc

        record[backend_id] = True
        logger.debug("Initialized %s for service '%s'", backend_id, config.name)


def _backend_id(backend: Backend) -> str:
    if not backend.backend_id:
        raise ValueError(f"{type(backend).__name__} has no backend_id; resolve it through CapabilityResolver")
    return backend.backend_id
