"""Sweeper worker for event lifecycle housekeeping.

Each cycle mints paid events, closes active events whose end date has passed
and, when enabled, refunds the deposit of closed events. Every event is
handled on its own: a failure is logged and the cycle moves on, so the next
cycle retries it.
"""

import asyncio
from dataclasses import dataclass

import structlog

from attendify.core.config import Settings
from attendify.models.event import EventStatus
from attendify.services.attendify import Attendify
from attendify.services.exceptions import AttendifyError, ServiceError

logger = structlog.get_logger()

# Maximum events handled per step and cycle
SWEEP_BATCH_SIZE = 50


@dataclass
class SweepResult:
    minted: int = 0
    closed: int = 0
    refunded: int = 0
    failed: int = 0


async def _mint_paid_events(attendify: Attendify, result: SweepResult) -> None:
    for event in await attendify.get_events_by_status(EventStatus.PAID, limit=SWEEP_BATCH_SIZE):
        try:
            await attendify.mint_event(event.id)
            result.minted += 1
            logger.info("sweeper.event_minted", event_id=event.id)
        except AttendifyError as e:
            result.failed += 1
            logger.warning("sweeper.mint_rejected", event_id=event.id, reason=e.reason)
        except ServiceError as e:
            result.failed += 1
            logger.error(
                "sweeper.mint_failed",
                event_id=event.id,
                error_type=type(e).__name__,
                error_message=str(e),
            )


async def _close_expired_events(attendify: Attendify, result: SweepResult) -> None:
    for event in (await attendify.get_events_expired())[:SWEEP_BATCH_SIZE]:
        try:
            await attendify.close_event(event.id)
            result.closed += 1
            logger.info("sweeper.event_closed", event_id=event.id, date_end=event.date_end)
        except (AttendifyError, ServiceError) as e:
            result.failed += 1
            logger.error(
                "sweeper.close_failed",
                event_id=event.id,
                error_type=type(e).__name__,
                error_message=str(e),
            )


async def _refund_closed_events(attendify: Attendify, result: SweepResult) -> None:
    for event in await attendify.get_events_by_status(EventStatus.CLOSED, limit=SWEEP_BATCH_SIZE):
        details = await attendify.get_event(event.id, event.owner_wallet_address)
        # Events that never received a deposit have nothing to return
        if details is None or details.accounting is None or not details.accounting.deposit_tx_hash:
            continue
        try:
            tx_hash = await attendify.refund_deposit(event.id)
            result.refunded += 1
            logger.info("sweeper.event_refunded", event_id=event.id, tx_hash=tx_hash)
        except (AttendifyError, ServiceError) as e:
            result.failed += 1
            logger.error(
                "sweeper.refund_failed",
                event_id=event.id,
                error_type=type(e).__name__,
                error_message=str(e),
            )


async def run_sweeper_cycle(attendify: Attendify, settings: Settings) -> SweepResult:
    """Run one housekeeping pass over all configured networks.

    Args:
        attendify: Event lifecycle orchestrator
        settings: Application settings (auto refund toggle)

    Returns:
        Counts of handled and failed events
    """
    result = SweepResult()
    await _mint_paid_events(attendify, result)
    await _close_expired_events(attendify, result)
    if settings.sweeper_auto_refund:
        await _refund_closed_events(attendify, result)

    if result.minted or result.closed or result.refunded or result.failed:
        logger.info(
            "sweeper.cycle_completed",
            minted=result.minted,
            closed=result.closed,
            refunded=result.refunded,
            failed=result.failed,
        )
    return result


async def run_sweeper_worker(attendify: Attendify, settings: Settings) -> None:
    """Main sweeper loop.

    Runs a cycle every SWEEPER_INTERVAL_SECONDS until cancelled.

    Args:
        attendify: Event lifecycle orchestrator
        settings: Application settings (interval, auto refund)
    """
    logger.info(
        "worker.started",
        worker_type="sweeper",
        interval=settings.sweeper_interval_seconds,
        auto_refund=settings.sweeper_auto_refund,
    )

    try:
        while True:
            try:
                await run_sweeper_cycle(attendify, settings)
                await asyncio.sleep(settings.sweeper_interval_seconds)

            except asyncio.CancelledError:
                raise

            except Exception as e:
                # Unexpected error (database, ledger outage) - log and back off
                logger.error(
                    "worker.error",
                    worker_type="sweeper",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                await asyncio.sleep(5)

    except asyncio.CancelledError:
        logger.info("worker.stopped", worker_type="sweeper")
        raise
