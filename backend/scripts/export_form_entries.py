#!/usr/bin/env python3
"""
Export the current form entries to a JSON document.

Runs the acquisition chain once and writes ``{generatedAt, count, entries}``,
the shape published as the release asset that the pollers read back.

Usage:
  python scripts/export_form_entries.py [--out PATH]

  PATH defaults to <data_dir>/form_entries.json.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure backend root is on path when run as a script
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import get_settings
from shared.models.domain import utcnow
from shared.utils.http_client import SourceFetcher
from shared.utils.log_sink import LogConfigStore
from shared.utils.logging import get_logger, setup_logging

from ingest.chain import AcquisitionChain

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--out",
        type=Path,
        default=settings.data_dir / "form_entries.json",
        help="Output file (parent directories are created)",
    )
    return parser.parse_args(argv)


async def export(out: Path) -> int:
    """Acquire entries and write the export document; returns the entry count."""
    settings = get_settings()
    async with SourceFetcher(settings) as fetcher:
        chain = AcquisitionChain.from_settings(fetcher, settings)
        result = await chain.acquire()

    payload = {
        "generatedAt": utcnow().isoformat(),
        "count": len(result.entries),
        "entries": [entry.to_wire() for entry in result.entries],
    }
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("entries_exported", count=len(result.entries), out=str(out), source=result.source.value)
    return len(result.entries)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    setup_logging("export", settings, LogConfigStore.from_settings(settings))
    args = parse_args(argv)
    try:
        asyncio.run(export(args.out.resolve()))
    except Exception as exc:
        logger.error("export_failed", error=str(exc), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
