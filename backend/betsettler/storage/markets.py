"""
MarketRepository

MongoDB operations for the 'markets' collection.
"""

import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from betsettler.models import Market

logger = logging.getLogger(__name__)


class MarketRepository:
    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "markets"):
        self.collection = db[collection_name]

    async def find_processing(self) -> list[Market]:
        """Markets whose games ended and whose bets await settlement."""
        cursor = self.collection.find({"status": "processing"})
        return [Market.from_document(doc) async for doc in cursor]

    async def get(self, market_id: str) -> Market | None:
        doc = await self.collection.find_one({"marketId": market_id})
        return Market.from_document(doc) if doc else None

    async def mark_completed(
        self,
        market_id: str,
        total_payout: float,
        now: datetime | None = None,
    ) -> None:
        now = now or datetime.now(timezone.utc)
        await self.collection.update_one(
            {"marketId": market_id},
            {
                "$set": {
                    "status": "completed",
                    "totalPayout": total_payout,
                    "completedAt": now,
                    "updatedAt": now,
                }
            },
        )
        logger.info(f"Market {market_id} completed (total payout: {total_payout:.2f})")
