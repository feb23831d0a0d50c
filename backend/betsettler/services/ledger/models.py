from __future__ import annotations

import time
from decimal import ROUND_HALF_UP, Decimal
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from betsettler.models import Bet, LedgerStatus, SettlementOutcome


def to_cents(value: float) -> float:
    """Round a monetary value to 2 decimal places (half up)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def generate_transaction_id(bet_id: str, now_ms: int | None = None) -> str:
    """Build ``txn_<epoch-millis>_<last 8 chars of betId>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"txn_{now_ms}_{bet_id[-8:]}"


class LedgerTransaction(BaseModel):
    transaction_id: str
    amount: float


class LedgerInstruction(BaseModel):
    """One bet result reported to the ledger."""

    bet: Bet
    status: LedgerStatus
    amount: float = 0
    profit: float = 0
    transaction: LedgerTransaction | None = None
    last_updated: datetime

    @property
    def wire_status(self) -> Literal["WON", "LOST"]:
        # Refunds are reported as LOST carrying a credit transaction
        return "LOST" if self.status == "VOID" else self.status

    def to_payload(self) -> dict[str, Any]:
        bet = self.bet
        entry: dict[str, Any] = {
            "accountId": bet.account_id,
            "status": self.wire_status,
            "betId": bet.bet_id,
            "stake": bet.stake,
            "odd": bet.odd,
            "lastUpdated": self.last_updated.isoformat(),
            "placedDate": bet.placed_date,
            "appLoginId": bet.app_login_id,
            "sportId": bet.sport_id,
            "sportName": bet.sport_name,
            "competitionId": bet.competition_id,
            "competitionName": bet.competition_name,
            "eventId": bet.event_id,
            "eventName": bet.event_name,
            "eventDate": bet.event_date,
            "handicap": bet.handicap or None,
            "marketId": bet.market_id,
            "marketName": bet.market_name,
            "marketType": bet.market_type,
            "selectionId": bet.selection_id,
            "selectionName": bet.selection_name,
            "betRef": bet.bet_ref,
            "profit": self.profit,
        }
        if self.transaction is not None:
            entry["transaction"] = {
                "transactionId": self.transaction.transaction_id,
                "amount": self.transaction.amount,
            }
        # Stored descriptors may be dates or driver types; send them as JSON values
        return {"bets": [to_jsonable_python(entry, fallback=str)]}


class LedgerReceipt(BaseModel):
    status_code: int
    body: Any = None


def build_instruction(
    bet: Bet,
    outcome: SettlementOutcome,
    now: datetime | None = None,
) -> LedgerInstruction:
    """
    Map a settlement outcome to the ledger instruction for its bet.

    WON carries the win amount as a credit and profit stake x (odd - 1);
    VOID (refund) carries the refund as a credit and profit -(stake - refund);
    LOST carries no transaction and profit -stake.
    """
    now = now or datetime.now(timezone.utc)
    now_ms = int(now.timestamp() * 1000)
    status = outcome.ledger_status

    if status == "WON":
        amount = outcome.win_amount
        profit = to_cents(float(Decimal(str(bet.stake)) * (Decimal(str(bet.odd)) - 1)))
    elif status == "VOID":
        amount = outcome.refund_amount
        profit = to_cents(-float(Decimal(str(bet.stake)) - Decimal(str(amount))))
    else:
        amount = 0
        profit = -bet.stake

    transaction = None
    if amount > 0:
        transaction = LedgerTransaction(
            transaction_id=generate_transaction_id(bet.bet_id, now_ms),
            amount=to_cents(amount),
        )

    return LedgerInstruction(
        bet=bet,
        status=status,
        amount=amount,
        profit=profit,
        transaction=transaction,
        last_updated=now,
    )
