"""
Unit Tests: Settlement Calculator

Outcome determination for first-event and at-least-one bets.

Test cases:
- Earliest category event decides win/loss
- Refund when no event of the category happened
- atLeastOne win / refund / loss
- Chosen game parsing and rounding policy
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from betsettler.models import Bet, GameEvent
from betsettler.settlement.calculator import (
    calculate_outcome,
    parse_chosen_side,
    rounded_refund_amount,
    win_amount,
)

T0 = datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)


def make_bet(event_type: str = "goal", side: str = "A", stake: float = 1000, odd: float = 2.5) -> Bet:
    return Bet(
        bet_id="bet-000000000001",
        market_id="mkt-1",
        status="confirmed",
        stake=stake,
        odd=odd,
        market_name=event_type,
        selection_name=f"Gol vai acontecer no JOGO {side} - Arsenal vs Liverpool",
    )


def make_event(side: str, mapped_type: str | None, seconds: int, clock: str | None = None) -> GameEvent:
    return GameEvent(
        side=side,
        market_id="mkt-1",
        mapped_type=mapped_type,
        timestamp=T0 + timedelta(seconds=seconds),
        match_clock=clock,
    )


# ============================================================================
# Specific-category bets
# ============================================================================


def test_earliest_event_in_other_game_loses_everything() -> None:
    events = [make_event("B", "goal", 5), make_event("A", "goal", 10)]

    outcome = calculate_outcome(make_bet("goal", "A"), events, 95)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 0
    assert outcome.win_amount == 0
    assert "opposing game" in outcome.result_reason


def test_earliest_event_in_chosen_game_wins() -> None:
    events = [make_event("B", "goal", 5), make_event("A", "goal", 10)]

    outcome = calculate_outcome(make_bet("goal", "B"), events, 95)

    assert outcome.status == "won"
    assert outcome.win_amount == 2500
    assert outcome.refund_amount == 0


def test_no_event_of_category_refunds_unrounded() -> None:
    events = [make_event("A", "corner", 5), make_event("B", "foul", 7)]

    outcome = calculate_outcome(make_bet("goal", "A", stake=1000), events, 95)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 950
    assert outcome.is_refund

    odd_stake = calculate_outcome(make_bet("goal", "A", stake=333), events, 95)
    assert odd_stake.refund_amount == pytest.approx(316.35)


def test_other_categories_do_not_decide_the_bet() -> None:
    events = [
        make_event("B", "corner", 1),
        make_event("B", "foul", 2),
        make_event("A", "corner", 3),
    ]

    outcome = calculate_outcome(make_bet("corner", "A"), events, 95)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 0


def test_timestamp_tie_resolves_in_favour_of_game_a() -> None:
    # Sequence order on equal timestamps is A before B
    events = [make_event("A", "side", 30), make_event("B", "side", 30)]

    assert calculate_outcome(make_bet("side", "A"), events, 95).status == "won"
    assert calculate_outcome(make_bet("side", "B"), events, 95).status == "lost"


def test_unsorted_input_still_uses_earliest_timestamp() -> None:
    events = [make_event("A", "goal", 50), make_event("B", "goal", 10)]

    assert calculate_outcome(make_bet("goal", "B"), events, 95).status == "won"


def test_events_count_is_chosen_game_matches() -> None:
    events = [
        make_event("A", "goal", 1),
        make_event("A", "goal", 2),
        make_event("B", "goal", 3),
        make_event("A", "corner", 4),
    ]

    outcome = calculate_outcome(make_bet("goal", "A"), events, 95)

    assert outcome.events_count == 2


def test_reason_uses_match_clock_when_present() -> None:
    events = [make_event("A", "foul", 1, clock="12:30")]

    outcome = calculate_outcome(make_bet("foul", "A"), events, 95)

    assert outcome.result_reason.endswith("12:30")


def test_unknown_event_type_refunds() -> None:
    events = [make_event("A", "goal", 1)]

    outcome = calculate_outcome(make_bet("penalty", "A", stake=200), events, 80)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 160


# ============================================================================
# atLeastOne bets
# ============================================================================


def test_at_least_one_wins_regardless_of_order() -> None:
    events = [make_event("B", "goal", 1), make_event("B", "side", 2), make_event("A", "foul", 90)]

    outcome = calculate_outcome(make_bet("atLeastOne", "A", stake=100, odd=1.8), events, 95)

    assert outcome.status == "won"
    assert outcome.win_amount == 180
    assert outcome.events_count == 1


def test_at_least_one_loses_when_only_other_game_had_events() -> None:
    events = [make_event("B", "corner", 5)]

    outcome = calculate_outcome(make_bet("atLeastOne", "A"), events, 95)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 0


def test_at_least_one_refunds_rounded_when_no_game_had_events() -> None:
    events = [make_event("A", None, 5), make_event("B", "offside", 6)]

    outcome = calculate_outcome(make_bet("atLeastOne", "A", stake=333), events, 95)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 316


def test_at_least_one_refunds_on_empty_sequence() -> None:
    outcome = calculate_outcome(make_bet("atLeastOne", "B", stake=1000), [], 90)

    assert outcome.status == "lost"
    assert outcome.refund_amount == 900


# ============================================================================
# Helpers
# ============================================================================


@pytest.mark.parametrize(
    "selection,expected",
    [
        ("Lateral ira acontecer no JOGO A - Arsenal vs Liverpool", "A"),
        ("Gol no jogo b - Real vs Barça", "B"),
        ("First corner in GAME B", "B"),
        ("JOGO Barcelona", "A"),
        ("", "A"),
        (None, "A"),
    ],
)
def test_parse_chosen_side(selection, expected) -> None:
    assert parse_chosen_side(selection) == expected


def test_win_amount_floors_exact_product() -> None:
    assert win_amount(100, 1.15) == 115
    assert win_amount(999, 1.5) == 1498


def test_rounded_refund_rounds_half_up() -> None:
    assert rounded_refund_amount(10, 95) == 10
    assert rounded_refund_amount(30, 95) == 29


@pytest.mark.parametrize("event_type", ["side", "corner", "foul", "goal", "atLeastOne"])
def test_outcome_amounts_are_mutually_exclusive(event_type) -> None:
    scenarios = [
        [],
        [make_event("A", event_type if event_type != "atLeastOne" else "goal", 1)],
        [make_event("B", event_type if event_type != "atLeastOne" else "goal", 1)],
    ]
    for events in scenarios:
        outcome = calculate_outcome(make_bet(event_type, "A"), events, 95)
        won = outcome.status == "won" and outcome.win_amount > 0 and outcome.refund_amount == 0
        refunded = outcome.status == "lost" and outcome.refund_amount > 0 and outcome.win_amount == 0
        lost = outcome.status == "lost" and outcome.refund_amount == 0 and outcome.win_amount == 0
        assert [won, refunded, lost].count(True) == 1


def test_side_marker_must_be_a_whole_word() -> None:
    # A team name starting with B is not a game marker
    assert parse_chosen_side("Gol no JOGO Barcelona vs Girona") == "A"
    assert parse_chosen_side("Gol no JOGO Barcelona vs Girona - JOGO B") == "B"
