"""Append-only audit trail of settlement decisions and failures ('bet_logs')."""

from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from betsettler.models import AuditRecord, AuditType


class AuditTrail:
    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "bet_logs"):
        self.collection = db[collection_name]

    async def record(self, bet_id: str, type: AuditType, data: dict[str, Any]) -> None:
        entry = AuditRecord(bet_id=bet_id, type=type, data=data)
        await self.collection.insert_one(entry.to_document())
