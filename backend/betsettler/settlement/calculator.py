"""
Outcome determination for first-event bets.

Pure functions: a bet, the market's ordered event sequence and the refund
percentage of the current cycle go in, a SettlementOutcome comes out. No I/O.

Two kinds of bet exist:
- atLeastOne: wins when the chosen game had any qualifying event.
- side/corner/foul/goal: wins when the earliest event of that category across
  both games happened in the chosen game.
"""

import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from betsettler.models import (
    AT_LEAST_ONE,
    EVENT_CATEGORIES,
    Bet,
    GameEvent,
    GameSide,
    SettlementOutcome,
)

logger = logging.getLogger(__name__)

_SIDE_MARKER = re.compile(r"\b(?:JOGO|GAME)\s*([AB])\b", re.IGNORECASE)


def parse_chosen_side(selection_name: str | None) -> GameSide:
    """Extract the chosen game ("A"/"B") from the selection text, defaulting to A."""
    match = _SIDE_MARKER.search(selection_name or "")
    if not match:
        return "A"
    return "A" if match.group(1).upper() == "A" else "B"


def _decimal(value: float) -> Decimal:
    return Decimal(str(value))


def win_amount(stake: float, odd: float) -> int:
    """floor(stake x odd)."""
    return math.floor(_decimal(stake) * _decimal(odd))


def refund_amount(stake: float, refund_pct: float) -> float:
    """stake x pct / 100, unrounded."""
    return float(_decimal(stake) * _decimal(refund_pct) / 100)


def rounded_refund_amount(stake: float, refund_pct: float) -> int:
    """stake x pct / 100 rounded half up to a whole unit."""
    exact = _decimal(stake) * _decimal(refund_pct) / 100
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _format_pct(refund_pct: float) -> str:
    return f"{refund_pct:g}%"


def _settle_at_least_one(
    bet: Bet,
    events: Sequence[GameEvent],
    chosen: GameSide,
    refund_pct: float,
) -> SettlementOutcome:
    in_chosen = [e for e in events if e.side == chosen and e.is_qualifying]

    if in_chosen:
        return SettlementOutcome(
            bet_id=bet.bet_id,
            status="won",
            win_amount=win_amount(bet.stake, bet.odd),
            result_reason=f"{len(in_chosen)} event(s) occurred in game {chosen}",
            events_count=len(in_chosen),
        )

    if not any(e.is_qualifying for e in events):
        return SettlementOutcome(
            bet_id=bet.bet_id,
            status="lost",
            refund_amount=rounded_refund_amount(bet.stake, refund_pct),
            result_reason=(
                f"No event occurred in either game - refund of {_format_pct(refund_pct)}"
            ),
            events_count=0,
        )

    return SettlementOutcome(
        bet_id=bet.bet_id,
        status="lost",
        result_reason=f"No event occurred in game {chosen}",
        events_count=0,
    )


def _settle_first_event(
    bet: Bet,
    events: Sequence[GameEvent],
    chosen: GameSide,
    event_type: str,
    refund_pct: float,
) -> SettlementOutcome:
    matches = [e for e in events if e.mapped_type == event_type]
    events_count = sum(1 for e in matches if e.side == chosen)

    if not matches:
        return SettlementOutcome(
            bet_id=bet.bet_id,
            status="lost",
            refund_amount=refund_amount(bet.stake, refund_pct),
            result_reason=(
                f"No {event_type} occurred in either game - "
                f"refund of {_format_pct(refund_pct)}"
            ),
            events_count=0,
        )

    # Stable: ties keep the sequence order (game A before game B)
    first = sorted(matches, key=lambda e: e.timestamp)[0]

    if first.side == chosen:
        return SettlementOutcome(
            bet_id=bet.bet_id,
            status="won",
            win_amount=win_amount(bet.stake, bet.odd),
            result_reason=(
                f"First {event_type} occurred in game {chosen} at {first.display_time}"
            ),
            events_count=events_count,
        )

    return SettlementOutcome(
        bet_id=bet.bet_id,
        status="lost",
        result_reason=(
            f"First {event_type} occurred in the opposing game at {first.display_time}"
        ),
        events_count=events_count,
    )


def calculate_outcome(
    bet: Bet,
    events: Sequence[GameEvent],
    refund_pct: float,
) -> SettlementOutcome:
    """
    Decide the outcome of one bet.

    Args:
        bet: Bet to settle; ``market_name`` holds the event type and
            ``selection_name`` the chosen game.
        events: Market events ordered by timestamp (A before B on ties).
        refund_pct: Refund percentage (0-100) fixed for the current cycle.

    Returns:
        SettlementOutcome with exactly one of: won with win_amount > 0,
        lost with refund_amount > 0, lost with nothing returned.
    """
    event_type = bet.market_name
    chosen = parse_chosen_side(bet.selection_name)

    if event_type == AT_LEAST_ONE:
        return _settle_at_least_one(bet, events, chosen, refund_pct)

    if event_type not in EVENT_CATEGORIES:
        logger.warning(
            f"Bet {bet.bet_id} has unknown event type {event_type!r}; "
            "no event can match it"
        )

    return _settle_first_event(bet, events, chosen, event_type, refund_pct)
