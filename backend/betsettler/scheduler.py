"""Settlement worker lifecycle using APScheduler."""

import asyncio
import logging
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from betsettler.config import Settings
from betsettler.models import CycleReport
from betsettler.services.ledger import LedgerClient, create_ledger_client
from betsettler.settlement import SettlementCoordinator
from betsettler.storage import (
    AuditTrail,
    BetRepository,
    MarketRepository,
    RefundPolicyProvider,
    close_connections,
    connect_mongo,
    connect_redis,
)

logger = logging.getLogger(__name__)


async def build_coordinator(settings: Settings, ledger: LedgerClient) -> SettlementCoordinator:
    """
    Connect to MongoDB and Redis and wire the coordinator.

    Raises StoreConnectionError when a store is unreachable.
    """
    db = await connect_mongo(settings)
    redis = await connect_redis(settings)

    return SettlementCoordinator(
        bets=BetRepository(db, settings.mongo.bets_collection),
        markets=MarketRepository(db, settings.mongo.markets_collection),
        audit=AuditTrail(db, settings.mongo.logs_collection),
        ledger=ledger,
        policy=RefundPolicyProvider(
            redis,
            settings.redis.limits_key,
            settings.processor.default_refund_pct,
        ),
    )


async def run_once(settings: Settings) -> CycleReport:
    """Run a single settlement cycle and release all connections."""
    async with create_ledger_client(settings) as ledger:
        try:
            coordinator = await build_coordinator(settings, ledger)
            return await coordinator.run_cycle()
        finally:
            await close_connections()


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops: KeyboardInterrupt still ends the worker
            pass


async def run_worker(settings: Settings) -> None:
    """
    Run settlement cycles every ``processor.interval_ms`` until signalled.

    The first cycle runs immediately. A trigger firing while a cycle is
    still running is dropped. On SIGINT/SIGTERM no new cycle starts; the
    in-flight one is allowed to finish before connections are closed.
    """
    stop = asyncio.Event()
    _install_signal_handlers(stop)

    async with create_ledger_client(settings) as ledger:
        try:
            coordinator = await build_coordinator(settings, ledger)

            logger.info(f"Processing interval: {settings.processor.interval_ms}ms")
            await coordinator.run_cycle()

            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                coordinator.run_cycle,
                IntervalTrigger(seconds=settings.interval_seconds),
                id="settlement-cycle",
                name="Settlement: Process pending bets",
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()
            logger.info("Worker running. Press Ctrl+C to stop")

            await stop.wait()

            logger.info("Shutdown requested, stopping scheduler")
            scheduler.shutdown(wait=False)
            await coordinator.wait_idle()
            logger.info("Worker stopped cleanly")
        finally:
            await close_connections()
