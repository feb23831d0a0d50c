"""Settlement engine: outcome calculation and the settlement cycle."""

from .calculator import calculate_outcome, parse_chosen_side
from .coordinator import BetAttempt, BetSettlementTask, SettlementCoordinator
from .events import build_event_sequence

__all__ = [
    "calculate_outcome",
    "parse_chosen_side",
    "build_event_sequence",
    "BetAttempt",
    "BetSettlementTask",
    "SettlementCoordinator",
]
