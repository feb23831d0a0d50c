"""Build the ordered event sequence of a market from its stored results."""

import logging
from typing import Any

from pydantic import ValidationError

from betsettler.models import GameEvent

logger = logging.getLogger(__name__)

SIDES = ("A", "B")


def _side_events(
    market_id: str,
    side: str,
    side_results: dict[str, Any],
) -> list[GameEvent]:
    events: list[GameEvent] = []
    game_id = side_results.get("gameId")

    for raw in side_results.get("events") or []:
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed event in market {market_id} game {side}: {raw!r}")
            continue
        try:
            events.append(
                GameEvent(
                    side=side,
                    game_id=game_id,
                    market_id=market_id,
                    original_type=raw.get("originalType"),
                    mapped_type=raw.get("type"),
                    event_name=raw.get("eventName"),
                    timestamp=raw.get("timestamp"),
                    match_time=raw.get("matchTime"),
                    match_clock=(
                        str(raw["matchTime"]) if raw.get("matchTime") is not None else None
                    ),
                    competitor=raw.get("competitor"),
                )
            )
        except ValidationError as e:
            # Only the timestamp is validated; without it the event cannot be ordered
            logger.warning(
                f"Skipping event with invalid timestamp in market {market_id} game {side}: {e}"
            )

    return events


def build_event_sequence(
    market_id: str,
    results: dict[str, Any] | None,
) -> list[GameEvent]:
    """
    Merge both games' events into one sequence ordered by timestamp.

    Game A's events are concatenated before game B's and the sort is stable,
    so events sharing a timestamp keep A ahead of B.

    A market without results yields an empty sequence.
    """
    if not results:
        return []

    by_side = results.get("eventsBySide") or {}
    events: list[GameEvent] = []
    for side in SIDES:
        side_results = by_side.get(side)
        if isinstance(side_results, dict):
            events.extend(_side_events(market_id, side, side_results))

    events.sort(key=lambda e: e.timestamp)
    return events
