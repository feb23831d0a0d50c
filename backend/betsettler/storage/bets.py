"""
BetRepository

MongoDB operations for the 'bets' collection.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from motor.motor_asyncio import AsyncIOMotorDatabase

from betsettler.models import Bet, SettlementOutcome, UnreadableBet, read_bet_document

logger = logging.getLogger(__name__)


class BetRepository:
    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "bets"):
        self.collection = db[collection_name]

    async def find_confirmed(self, market_ids: Iterable[str]) -> list[Bet | UnreadableBet]:
        """
        Bets awaiting settlement in the given markets.

        A document that fails to parse comes back as an UnreadableBet so the
        caller can fail its market without losing the rest of the cycle.
        """
        ids = list(market_ids)
        if not ids:
            return []
        cursor = self.collection.find({"marketId": {"$in": ids}, "status": "confirmed"})
        bets: list[Bet | UnreadableBet] = []
        async for doc in cursor:
            bet = read_bet_document(doc)
            if isinstance(bet, UnreadableBet):
                logger.error(f"Unreadable bet document {bet.bet_id}: {bet.error}")
            bets.append(bet)
        return bets

    async def mark_settled(
        self,
        outcome: SettlementOutcome,
        now: datetime | None = None,
    ) -> None:
        """Persist the terminal state of a bet the ledger has acknowledged."""
        now = now or datetime.now(timezone.utc)
        await self.collection.update_one(
            {"betId": outcome.bet_id},
            {
                "$set": {
                    "status": outcome.status,
                    "payout": outcome.win_amount if outcome.win_amount > 0 else None,
                    "refund": outcome.refund_amount if outcome.refund_amount > 0 else None,
                    "resultReason": outcome.result_reason,
                    "eventsCount": outcome.events_count,
                    "processedAt": now,
                    "updatedAt": now,
                }
            },
        )
        logger.info(f"Bet {outcome.bet_id} updated: {outcome.status}")

    async def sum_won_payout(self, market_id: str) -> float:
        """Sum of payouts over the market's won bets."""
        total = 0.0
        async for doc in self.collection.find({"marketId": market_id, "status": "won"}):
            total += doc.get("payout") or 0
        return total
