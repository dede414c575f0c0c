#!/usr/bin/env python3
"""
Run one reconciliation and print the result as JSON.

Usage:
  python scripts/run_poll_once.py

Exits non-zero when a mandatory entry source fails.
"""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

# Ensure backend root is on path when run as a script
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import Settings, get_settings
from shared.utils.log_sink import LogConfigStore
from shared.utils.logging import get_logger, setup_logging

from reconciler.runtime import Runtime

logger = get_logger(__name__)


async def run_once(settings: Settings) -> dict:
    async with Runtime(settings) as runtime:
        result = await runtime.engine.reconcile()
    return result.to_wire()


def main() -> int:
    settings = get_settings()
    setup_logging("poll-once", settings, LogConfigStore.from_settings(settings))
    try:
        result = asyncio.run(run_once(settings))
    except Exception as exc:
        logger.error("poll_once_failed", error=str(exc), exc_info=True)
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
