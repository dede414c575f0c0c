"""Status store selection from settings."""
from __future__ import annotations

from typing import Optional

from shared.config import Settings, StoreBackend
from shared.store.base import StatusStore
from shared.store.json_file import JsonFileStatusStore
from shared.store.redis_store import RedisStatusStore
from shared.utils.redis_manager import RedisManager


def build_store(settings: Settings, redis: Optional[RedisManager] = None) -> StatusStore:
    """Return the configured backend. The Redis backend needs a connected manager."""
    if settings.store_backend == StoreBackend.REDIS:
        if redis is None:
            raise RuntimeError("store_backend=redis requires a RedisManager")
        return RedisStatusStore(redis, settings.redis_state_key)
    return JsonFileStatusStore(settings.state_path)
