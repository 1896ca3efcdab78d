#!/usr/bin/env python3
"""
One-shot expiry sweep.

Deletes every video whose `expires_at` has passed (blob first, then record)
and prints the JSON report on stdout. Per-video failures are listed in the
report and do not change the exit code; a metadata store that cannot be
scanned exits 1.

Meant for cron / a scheduled container task when the in-process scheduler
(`REAPER_SCHEDULER_ENABLED`) is off.

Run:
  python scripts/reap.py
"""

import asyncio
import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core import logger as _logsetup  # noqa: F401,E402
from app.core.config import settings  # noqa: E402
from app.core.container import build_container  # noqa: E402
from app.core.exceptions import StorageUnavailableException  # noqa: E402

log = logging.getLogger("app.reaper")


async def run() -> int:
    container = build_container(settings)
    try:
        report = await container.reaper.reap()
    except StorageUnavailableException:
        log.error("Sweep aborted: metadata store unavailable")
        return 1
    finally:
        await container.close()
    print(report.model_dump_json())
    return 0


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
