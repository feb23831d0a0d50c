"""
Settlement coordinator: one cycle of discover -> compute -> submit -> persist.

A bet only reaches a terminal status after the ledger acknowledged its
instruction. Failures are isolated per bet; a market is completed only when
every bet attempted for it in the cycle settled.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Sequence

import logfire
from pydantic import BaseModel

from betsettler.models import (
    AuditType,
    Bet,
    CycleReport,
    GameEvent,
    Market,
    SettlementOutcome,
    UnreadableBet,
)
from betsettler.services.ledger import LedgerClient, LedgerError, build_instruction
from betsettler.storage import AuditTrail, BetRepository, MarketRepository, RefundPolicyProvider

from .calculator import calculate_outcome
from .events import build_event_sequence

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BetAttempt(BaseModel):
    """Result of trying to settle one bet in the current cycle."""

    bet_id: str
    settled: bool
    stage: Literal["settled", "calculation", "ledger", "persistence"]
    outcome: SettlementOutcome | None = None
    error: str | None = None


class BetSettlementTask:
    """
    Settle one bet: calculate, report to the ledger, then persist.

    Nothing is persisted unless the ledger acknowledged the instruction. A
    failed attempt leaves the bet ``confirmed`` so the next cycle retries it,
    and every failure leaves an audit entry.
    """

    def __init__(
        self,
        bet: Bet,
        events: Sequence[GameEvent],
        refund_pct: float,
        ledger: LedgerClient,
        bets: BetRepository,
        audit: AuditTrail,
    ):
        self.bet = bet
        self.events = events
        self.refund_pct = refund_pct
        self.ledger = ledger
        self.bets = bets
        self.audit = audit

    async def execute(self) -> BetAttempt:
        bet = self.bet

        try:
            outcome = calculate_outcome(bet, self.events, self.refund_pct)
        except Exception as e:
            logger.error(f"Failed to calculate outcome for bet {bet.bet_id}: {e}")
            await self._audit("processing_error", {"error": str(e), "timestamp": _now_iso()})
            return BetAttempt(bet_id=bet.bet_id, settled=False, stage="calculation", error=str(e))

        error = await self._submit(outcome)
        if error is not None:
            logger.error(f"Ledger failed for bet {bet.bet_id} - bet NOT updated")
            await self._audit(
                "api_error",
                {
                    "error": "Failed to reach ledger - bet not settled",
                    "detail": error,
                    "status": outcome.status,
                    "resultReason": outcome.result_reason,
                    "timestamp": _now_iso(),
                },
            )
            return BetAttempt(
                bet_id=bet.bet_id, settled=False, stage="ledger", outcome=outcome, error=error
            )

        try:
            await self.bets.mark_settled(outcome)
        except Exception as e:
            logger.error(f"Failed to persist settled bet {bet.bet_id}: {e}")
            await self._audit("processing_error", {"error": str(e), "timestamp": _now_iso()})
            return BetAttempt(
                bet_id=bet.bet_id,
                settled=False,
                stage="persistence",
                outcome=outcome,
                error=str(e),
            )

        await self._audit(
            "bet_result",
            {
                "status": outcome.status,
                "resultReason": outcome.result_reason,
                "eventsCount": outcome.events_count,
                "winAmount": outcome.win_amount,
                "refundAmount": outcome.refund_amount,
                "apiSuccess": True,
                "timestamp": _now_iso(),
            },
        )
        logger.info(
            f"Bet {bet.bet_id} settled: {outcome.status} "
            f"(win={outcome.win_amount}, refund={outcome.refund_amount})"
        )
        return BetAttempt(bet_id=bet.bet_id, settled=True, stage="settled", outcome=outcome)

    async def _submit(self, outcome: SettlementOutcome) -> str | None:
        """Report the outcome to the ledger; return an error message on failure."""
        bet = self.bet
        instruction = build_instruction(bet, outcome)

        try:
            await self.ledger.submit(instruction)
            error = None
        except LedgerError as e:
            error = str(e)
        except Exception as e:
            logger.error(f"Unexpected error while paying bet {bet.bet_id}: {e}", exc_info=True)
            await self._audit(
                "payment_error",
                {
                    "error": str(e),
                    "apiStatus": instruction.status,
                    "amount": instruction.amount,
                    "timestamp": _now_iso(),
                },
            )
            return str(e)

        success = error is None
        if instruction.status == "WON":
            await self._audit(
                "balance_credited",
                {
                    "amount": outcome.win_amount,
                    "reason": "bet_win",
                    "success": success,
                    "apiStatus": "WON",
                    "timestamp": _now_iso(),
                },
            )
        elif instruction.status == "VOID":
            await self._audit(
                "balance_credited",
                {
                    "amount": outcome.refund_amount,
                    "reason": "bet_refund",
                    "success": success,
                    "apiStatus": "LOST",
                    "houseFee": round(bet.stake - outcome.refund_amount, 2),
                    "timestamp": _now_iso(),
                },
            )
        else:
            await self._audit(
                "lost_recorded",
                {
                    "amount": bet.stake,
                    "success": success,
                    "apiStatus": "LOST",
                    "timestamp": _now_iso(),
                },
            )

        if error is not None:
            logger.error(
                f"Failed to send {instruction.status} result to ledger for bet {bet.bet_id}: {error}"
            )
        return error

    async def _audit(self, type: AuditType, data: dict[str, Any]) -> None:
        try:
            await self.audit.record(self.bet.bet_id, type, data)
        except Exception as e:
            logger.error(f"Failed to write {type} audit entry for bet {self.bet.bet_id}: {e}")


class SettlementCoordinator:
    """Runs settlement cycles over every market in ``processing``."""

    def __init__(
        self,
        bets: BetRepository,
        markets: MarketRepository,
        audit: AuditTrail,
        ledger: LedgerClient,
        policy: RefundPolicyProvider,
    ):
        self.bets = bets
        self.markets = markets
        self.audit = audit
        self.ledger = ledger
        self.policy = policy
        self._running = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return self._running

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any, to finish."""
        await self._idle.wait()

    async def run_cycle(self) -> CycleReport:
        """
        Run one cycle unless one is already in progress.

        An overlapping trigger is dropped, not queued. Unexpected errors are
        logged and reported; they never propagate to the scheduler.
        """
        if self._running:
            logger.info("Settlement already in progress, skipping cycle")
            return CycleReport(skipped=True)

        self._running = True
        self._idle.clear()
        try:
            with logfire.span("settlement.cycle"):
                logger.info("Starting settlement cycle")
                report = await self.process_pending_bets()
                logger.info(f"Settlement cycle finished: {report}")
                return report
        except Exception as e:
            logger.error(f"Settlement cycle failed: {e}", exc_info=True)
            return CycleReport(error=str(e))
        finally:
            self._running = False
            self._idle.set()

    async def process_pending_bets(self) -> CycleReport:
        refund_pct = await self.policy.load()
        report = CycleReport(refund_pct=refund_pct)

        processing = await self.markets.find_processing()
        report.markets_found = len(processing)
        logger.info(f"Markets in processing: {len(processing)}")
        if not processing:
            return report

        bets_by_market = await self._group_pending_bets(processing)
        if not bets_by_market:
            logger.info("No pending bets to process")
            return report

        total_bets = sum(len(b) for b in bets_by_market.values())
        logger.info(f"{total_bets} pending bets found")

        for market_id, bets in bets_by_market.items():
            completed, settled, failed = await self.settle_market(market_id, bets, refund_pct)
            report.bets_settled += settled
            report.bets_failed += failed
            if completed:
                report.markets_completed += 1
            else:
                report.markets_pending += 1

        return report

    async def _group_pending_bets(
        self, markets: Sequence[Market]
    ) -> dict[str, list[Bet | UnreadableBet]]:
        """
        Confirmed bets keyed by market id, in market discovery order.

        Only markets holding at least one confirmed bet appear.
        """
        by_market: dict[str, list[Bet | UnreadableBet]] = {}
        for bet in await self.bets.find_confirmed([m.market_id for m in markets]):
            by_market.setdefault(bet.market_id, []).append(bet)
        return {m.market_id: by_market[m.market_id] for m in markets if m.market_id in by_market}

    async def settle_market(
        self,
        market_id: str,
        bets: Sequence[Bet | UnreadableBet],
        refund_pct: float,
    ) -> tuple[bool, int, int]:
        """
        Settle the market's bets one by one, then complete it if none failed.

        Returns (completed, settled_count, failed_count).
        """
        logger.info(f"Processing market {market_id} ({len(bets)} bets)")

        try:
            events = await self.load_events(market_id)
        except Exception as e:
            logger.error(f"Failed to load events for market {market_id}: {e}")
            return False, 0, len(bets)

        settled = 0
        failed = 0
        for bet in bets:
            if isinstance(bet, UnreadableBet):
                await self._record_unreadable(bet)
                failed += 1
                continue
            task = BetSettlementTask(bet, events, refund_pct, self.ledger, self.bets, self.audit)
            try:
                attempt = await task.execute()
            except Exception as e:
                logger.error(f"Error processing bet {bet.bet_id}: {e}", exc_info=True)
                failed += 1
                continue
            if attempt.settled:
                settled += 1
            else:
                failed += 1

        if failed:
            logger.warning(
                f"Market {market_id} NOT completed: {settled} settled, {failed} failed "
                "- failed bets will be retried next cycle"
            )
            return False, settled, failed

        try:
            total_payout = await self.bets.sum_won_payout(market_id)
            await self.markets.mark_completed(market_id, total_payout)
        except Exception as e:
            logger.error(f"Failed to complete market {market_id}: {e}")
            return False, settled, failed

        logger.info(f"Market {market_id} completed: {settled} bets settled")
        return True, settled, failed

    async def _record_unreadable(self, bet: UnreadableBet) -> None:
        logger.error(f"Skipping unreadable bet {bet.bet_id} in market {bet.market_id}")
        try:
            await self.audit.record(
                bet.bet_id,
                "processing_error",
                {"error": f"Unreadable bet document: {bet.error}", "timestamp": _now_iso()},
            )
        except Exception as e:
            logger.error(f"Failed to write processing_error audit entry for bet {bet.bet_id}: {e}")

    async def load_events(self, market_id: str) -> list[GameEvent]:
        market = await self.markets.get(market_id)
        if market is None or not market.results:
            logger.warning(f"Market {market_id} has no results saved")
            return []

        events = build_event_sequence(market_id, market.results)
        logger.info(f"{len(events)} events loaded for market {market_id}")
        return events
