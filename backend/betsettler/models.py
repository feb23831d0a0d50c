"""Domain models for bets, markets, game events and settlement outcomes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

BetStatus = Literal["pending", "confirmed", "won", "lost", "void", "failed", "error"]
MarketStatus = Literal["betting", "game", "processing", "completed"]
GameSide = Literal["A", "B"]
LedgerStatus = Literal["WON", "LOST", "VOID"]
AuditType = Literal[
    "balance_credited",
    "lost_recorded",
    "api_error",
    "bet_result",
    "processing_error",
    "payment_error",
]

# Normalized categories an event can be mapped to
EVENT_CATEGORIES: tuple[str, ...] = ("side", "corner", "foul", "goal")
AT_LEAST_ONE = "atLeastOne"


def parse_timestamp(v: Any) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        dt = v
    else:
        try:
            dt = datetime.fromisoformat(str(v).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Bet(BaseModel):
    """A wager on which game of a market produces an event first."""

    bet_id: str
    user_id: str = ""
    account_id: str = ""
    market_id: str
    status: BetStatus = "pending"
    stake: float
    odd: float

    # Event type ("side", "corner", "foul", "goal" or "atLeastOne")
    market_name: str = ""
    # Free text carrying the chosen game, e.g. "... no JOGO A - Arsenal vs Liverpool"
    selection_name: str = ""

    # Ledger descriptors, forwarded untouched whatever their stored type
    placed_date: Any = None
    app_login_id: Any = None
    sport_id: Any = None
    sport_name: Any = None
    competition_id: Any = None
    competition_name: Any = None
    event_id: Any = None
    event_name: Any = None
    event_date: Any = None
    handicap: Any = None
    market_type: Any = None
    selection_id: Any = None
    bet_ref: Any = None

    # Terminal fields
    payout: float | None = None
    refund: float | None = None
    result_reason: str | None = None
    events_count: int | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Bet:
        return cls(
            bet_id=str(doc.get("betId", "")),
            user_id=str(doc.get("userId") or ""),
            account_id=str(doc.get("accountId") or ""),
            market_id=str(doc.get("marketId", "")),
            status=doc.get("status", "pending"),
            stake=doc.get("stake", 0),
            odd=doc.get("odd", 0),
            market_name=doc.get("marketName") or "",
            selection_name=doc.get("selectionName") or "",
            placed_date=doc.get("placedDate"),
            app_login_id=doc.get("appLoginId"),
            sport_id=doc.get("sportId"),
            sport_name=doc.get("sportName"),
            competition_id=doc.get("competitionId"),
            competition_name=doc.get("competitionName"),
            event_id=doc.get("eventId"),
            event_name=doc.get("eventName"),
            event_date=doc.get("eventDate"),
            handicap=doc.get("handicap"),
            market_type=doc.get("marketType"),
            selection_id=doc.get("selectionId"),
            bet_ref=doc.get("betRef"),
            payout=doc.get("payout"),
            refund=doc.get("refund"),
            result_reason=doc.get("resultReason"),
            events_count=doc.get("eventsCount"),
            processed_at=doc.get("processedAt"),
        )


class UnreadableBet(BaseModel):
    """A confirmed bet document that could not be turned into a Bet."""

    bet_id: str
    market_id: str
    error: str


def read_bet_document(doc: dict[str, Any]) -> Bet | UnreadableBet:
    """Parse one stored bet, keeping a rejected document attached to its market."""
    try:
        return Bet.from_document(doc)
    except (ValueError, TypeError) as e:
        return UnreadableBet(
            bet_id=str(doc.get("betId") or doc.get("_id") or ""),
            market_id=str(doc.get("marketId", "")),
            error=str(e),
        )


class Market(BaseModel):
    """A pair of games (A/B) under wagering."""

    market_id: str
    status: MarketStatus = "betting"
    results: dict[str, Any] | None = None
    total_payout: float | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Market:
        return cls(
            market_id=str(doc.get("marketId", "")),
            status=doc.get("status", "betting"),
            results=doc.get("results") or None,
            total_payout=doc.get("totalPayout"),
            completed_at=doc.get("completedAt"),
        )


class GameEvent(BaseModel):
    """One event recorded in game A or game B of a market."""

    side: GameSide
    game_id: Any = None
    market_id: str = ""
    # Descriptive fields are kept as stored; only the timestamp is validated
    original_type: Any = None
    mapped_type: Any = None
    event_name: Any = None
    timestamp: datetime
    match_time: Any = None
    match_clock: str | None = None
    competitor: Any = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_event_timestamp(cls, v: Any) -> datetime:
        parsed = parse_timestamp(v)
        if parsed is None:
            raise ValueError(f"invalid event timestamp: {v!r}")
        return parsed

    @property
    def is_qualifying(self) -> bool:
        return self.mapped_type in EVENT_CATEGORIES

    @property
    def display_time(self) -> str:
        """Match clock when known, otherwise the raw timestamp."""
        return self.match_clock or self.timestamp.isoformat()


class SettlementOutcome(BaseModel):
    """Computed win/loss/refund decision for one bet."""

    bet_id: str
    status: Literal["won", "lost"]
    win_amount: float = 0
    refund_amount: float = 0
    result_reason: str = ""
    events_count: int = 0

    @property
    def is_refund(self) -> bool:
        return self.status == "lost" and self.refund_amount > 0

    @property
    def ledger_status(self) -> LedgerStatus:
        if self.status == "won" and self.win_amount > 0:
            return "WON"
        if self.refund_amount > 0:
            return "VOID"
        return "LOST"


class AuditRecord(BaseModel):
    """Append-only entry of the settlement audit trail."""

    bet_id: str
    type: AuditType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {
            "betId": self.bet_id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "createdAt": datetime.now(timezone.utc),
        }


class CycleReport(BaseModel):
    """Summary of one settlement cycle."""

    skipped: bool = False
    refund_pct: float | None = None
    markets_found: int = 0
    markets_completed: int = 0
    markets_pending: int = 0
    bets_settled: int = 0
    bets_failed: int = 0
    error: str | None = None

    def __str__(self) -> str:
        if self.skipped:
            return "cycle skipped (previous cycle still running)"
        return (
            f"markets={self.markets_found} completed={self.markets_completed} "
            f"pending={self.markets_pending} settled={self.bets_settled} "
            f"failed={self.bets_failed}"
        )
