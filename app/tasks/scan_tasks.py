"""Celery tasks for scheduled and queued scans.

Both tasks are thin wrappers: they open a fresh engine on a fresh event
loop and hand a session to the async services.
"""

import asyncio
import logging

from app.core.exceptions import ConfigurationError
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time to avoid conflicts with
    the module-level SQLAlchemy engine (which may be bound to a
    different loop created by uvicorn).
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_session_factory():
    """Create a fresh async engine + session factory for the worker's loop.

    The module-level engine from app.db.postgres is bound to uvicorn's event
    loop and cannot be reused in the loop created by _run_async().
    """
    from app.db.postgres import make_engine, make_session_factory

    engine = make_engine(echo=False)
    return make_session_factory(engine), engine


async def _run_automated_scans_async() -> dict:
    from app.services.automation import AutomationScheduler
    from app.services.scan_orchestrator import ScanOrchestrator

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            summary = await AutomationScheduler(db, ScanOrchestrator()).run_due_scans()
            data = summary.to_dict()
            data.pop("results")
            return data
    finally:
        await engine.dispose()


async def _process_scan_queue_async(limit: int | None = None) -> dict:
    from app.services.scan_orchestrator import ScanOrchestrator
    from app.services.scan_queue import process_due_queue_items

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            summary = await process_due_queue_items(db, ScanOrchestrator(), limit=limit)
            return summary.to_dict()
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="run_automated_scans", max_retries=0)
def run_automated_scans_task(self) -> dict:
    """Scan every brand whose automated scan is due."""
    logger.info("Automated scan run started (task_id=%s)", self.request.id)
    try:
        result = _run_async(_run_automated_scans_async())
    except ConfigurationError as e:
        logger.error("Automated scans skipped: %s", e)
        return {"error": str(e)}
    except Exception as e:
        logger.exception("Automated scan run failed: %s", e)
        return {"error": str(e)}
    logger.info("Automated scan run finished: %s", result)
    return result


@celery_app.task(bind=True, name="process_scan_queue", max_retries=0)
def process_scan_queue_task(self, limit: int | None = None) -> dict:
    """Run due items from the scan queue."""
    try:
        return _run_async(_process_scan_queue_async(limit))
    except ConfigurationError as e:
        logger.error("Scan queue not processed: %s", e)
        return {"error": str(e)}
    except Exception as e:
        logger.exception("Scan queue run failed: %s", e)
        return {"error": str(e)}
