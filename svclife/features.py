from __future__ import annotations

import os
from typing import Dict, Iterable, Mapping, Optional

ENABLE_ENV_PREFIX = "SVCLIFE_ALPHA_ENABLE_"

# Experimental feature ids and what they unlock. A host whose name is a feature
# id can only be used once that feature is enabled.
ALPHA_FEATURES: Dict[str, str] = {
    "springapp": "Deploy services to Azure Spring Apps.",
    "ai.endpoint": "Deploy services to Azure AI online endpoints.",
}

_TRUTHY = {"1", "true", "yes", "on"}


def _env_name(feature_id: str) -> str:
    return ENABLE_ENV_PREFIX + feature_id.upper().replace(".", "_").replace("-", "_")


def is_feature_key(key: str) -> bool:
    return key in ALPHA_FEATURES


def enable_command(feature_id: str) -> str:
    return f"export {_env_name(feature_id)}=true"


class FeatureManager:
    """Decides which experimental features are enabled."""

    def __init__(self, enabled: Iterable[str] = (), environ: Optional[Mapping[str, str]] = None) -> None:
        self._enabled = set(enabled)
        self._environ = os.environ if environ is None else environ

    def is_enabled(self, feature_id: str) -> bool:
        if feature_id in self._enabled:
            return True
        return self._environ.get(_env_name(feature_id), "").strip().lower() in _TRUTHY
