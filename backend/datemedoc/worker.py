"""
DateMeDoc Backend — Worker Entry Point
========================================

Usage:
    cd backend && python -m datemedoc.worker

Polls `analysis_jobs` until SIGINT/SIGTERM, then finishes the job in hand
and disposes the database engine.
"""

import asyncio
import logging
import signal

from datemedoc.config import settings
from datemedoc.database import dispose_engine
from datemedoc.main import setup_logging
from datemedoc.services.analysis_worker import AnalysisWorker

logger = logging.getLogger(__name__)


async def main() -> None:
    setup_logging()
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await AnalysisWorker().run_forever(stop)
    finally:
        await dispose_engine()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
