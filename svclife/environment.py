from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import ProjectError

SUBSCRIPTION_ID_KEY = "AZURE_SUBSCRIPTION_ID"


def service_property_key(service_name: str, property_key: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9]", "_", service_name).upper()
    return f"SERVICE_{normalized}_{property_key.upper()}"


class Environment:
    """Named set of key/value settings, falling back to the process environment."""

    def __init__(self, name: str, values: Optional[Mapping[str, str]] = None) -> None:
        self._name = name
        self._values: Dict[str, str] = dict(values or {})

    @classmethod
    def from_mapping(cls, name: str, values: Mapping[str, str]) -> "Environment":
        return cls(name, values)

    @classmethod
    def from_file(cls, path: str | Path, name: Optional[str] = None) -> "Environment":
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ProjectError(f"Cannot load environment file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ProjectError(f"Environment file {path} must contain a JSON object")
        values = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()}
        return cls(name or path.stem, values)

    def name(self) -> str:
        return self._name

    def getenv(self, key: str) -> str:
        if key in self._values:
            return self._values[key]
        return os.environ.get(key, "")

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def get_service_property(self, service_name: str, property_key: str) -> str:
        return self.getenv(service_property_key(service_name, property_key))

    def subscription_id(self) -> str:
        return self.getenv(SUBSCRIPTION_ID_KEY)
