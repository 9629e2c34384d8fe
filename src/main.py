"""Process entry point — runs the compliance job scheduler.

Usage:
    python -m src.main                      # run the scheduler until SIGINT/SIGTERM
    python -m src.main finalize-deletions   # run one job once and exit

The one-shot form lets an external cron trigger a single job; its exit
status is non-zero when the job reports failure.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import structlog

from src.compliance.store import ComplianceStore
from src.config import settings
from src.db.engine import async_session_factory, db_lifespan
from src.events import start_event_system, stop_event_system, subscribe
from src.jobs.alerts import WATCHED_TYPES, alert_on_job_failure
from src.jobs.registry import setup_jobs
from src.schemas.jobs import JobResult

logger = logging.getLogger(__name__)


# ── Logging setup ────────────────────────────────────────────────────


def configure_logging() -> None:
    """stdlib logging for plain modules, structlog on top for job loggers."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        stream=sys.stdout,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
            if settings.is_production
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


# ── Runners ──────────────────────────────────────────────────────────


async def serve() -> None:
    """Start DB, events and scheduler; block until a termination signal."""
    logger.info("Starting compliance scheduler (env=%s)", settings.environment)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with db_lifespan():
        subscribe(alert_on_job_failure, event_types=WATCHED_TYPES)
        await start_event_system()

        scheduler = setup_jobs(ComplianceStore(async_session_factory))
        try:
            await stop.wait()
        finally:
            logger.info("Shutting down compliance scheduler...")
            scheduler.stop()
            await stop_event_system()

    logger.info("Shutdown complete")


async def run_job_once(name: str) -> JobResult:
    """Run a single registered job immediately, without starting the schedule."""
    async with db_lifespan():
        subscribe(alert_on_job_failure, event_types=WATCHED_TYPES)
        scheduler = setup_jobs(ComplianceStore(async_session_factory), auto_start=False)
        return await scheduler.run_now(name)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = sys.argv[1:] if argv is None else argv

    if not args:
        asyncio.run(serve())
        return 0

    result = asyncio.run(run_job_once(args[0]))
    logger.info("%s: %s", args[0], result.model_dump_json())
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
