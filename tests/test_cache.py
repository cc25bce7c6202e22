from __future__ import annotations

import pytest

from svclife.cache import OperationCache, cache_key
from svclife.events import Stage
from svclife.models import BuildResult, PackageResult, RestoreResult


def test_cache_key_is_deterministic_and_collision_free() -> None:
    assert cache_key("dev", "web", Stage.BUILD) == cache_key("dev", "web", Stage.BUILD)
    assert cache_key("a:b", "c", Stage.BUILD) != cache_key("a", "b:c", Stage.BUILD)
    assert cache_key("dev", "web", Stage.BUILD) != cache_key("prod", "web", Stage.BUILD)


def test_get_returns_stored_instance() -> None:
    cache = OperationCache()
    result = RestoreResult()
    cache.put("dev", "web", Stage.RESTORE, result)
    assert cache.get("dev", "web", Stage.RESTORE, RestoreResult) is result
    assert cache.get("dev", "api", Stage.RESTORE, RestoreResult) is None
    assert cache.get("prod", "web", Stage.RESTORE, RestoreResult) is None


def test_stages_are_cached_independently() -> None:
    cache = OperationCache()
    cache.put("dev", "web", Stage.PACKAGE, PackageResult())
    assert cache.get("dev", "web", Stage.BUILD, BuildResult) is None
    assert len(cache) == 1


def test_type_mismatch_is_rejected() -> None:
    cache = OperationCache()
    cache.put("dev", "web", Stage.BUILD, RestoreResult())
    with pytest.raises(TypeError, match="expected BuildResult"):
        cache.get("dev", "web", Stage.BUILD, BuildResult)


def test_empty_results_are_not_stored() -> None:
    cache = OperationCache()
    with pytest.raises(ValueError):
        cache.put("dev", "web", Stage.DEPLOY, None)
    assert ("dev", "web", "deploy") not in cache


def test_invalidate_single_stage_and_service() -> None:
    cache = OperationCache()
    for stage, value in ((Stage.RESTORE, RestoreResult()), (Stage.BUILD, BuildResult())):
        cache.put("dev", "web", stage, value)
    cache.invalidate("dev", "web", Stage.BUILD)
    assert cache.get("dev", "web", Stage.BUILD, BuildResult) is None
    assert cache.get("dev", "web", Stage.RESTORE, RestoreResult) is not None
    cache.invalidate("dev", "web")
    assert len(cache) == 0
