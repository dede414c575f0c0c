"""
Redis status store: the same JSON document as the file store, kept under one key.
"""
from __future__ import annotations

import json

from shared.models.domain import StatusState
from shared.store.base import StatusStore
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

logger = get_logger(__name__)


class RedisStatusStore(StatusStore):
    """Status store backed by a Redis string key."""

    def __init__(self, redis: RedisManager, key: str) -> None:
        self._redis = redis
        self._key = key

    @property
    def location(self) -> str:
        return f"redis:{self._key}"

    async def load(self) -> StatusState:
        raw = await self._redis.get_document(self._key)
        if not raw:
            return StatusState()
        return StatusState.model_validate(json.loads(raw))

    async def save(self, state: StatusState) -> None:
        await self._redis.set_document(
            self._key, json.dumps(state.to_wire(), ensure_ascii=False)
        )
        logger.debug("state_saved", key=self._key, records=len(state.statuses))
