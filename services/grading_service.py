"""
Bet grading extension point.

No odds or payout rules ship with the game: a settled round leaves its bets
``pending`` unless a grader is plugged into RoundManager. A grader receives
the round outcome and one bet and returns the grade to store.
"""
from dataclasses import dataclass
from typing import Callable, TYPE_CHECKING

from models import Bet, BetResult, Round
from services.outcome_service import Outcome

if TYPE_CHECKING:
    from core.repository import RoundRepository


@dataclass(frozen=True)
class Grade:
    result: BetResult
    payout: float = 0


BetGrader = Callable[[Outcome, Bet], Grade]


def grade_round_bets(repository: "RoundRepository", round_obj: Round, outcome: Outcome, grader: BetGrader) -> int:
    """
    Apply ``grader`` to every pending bet of a settled round.

    Returns the number of bets graded by this call. Bets already graded by
    another writer are skipped by the repository's conditional update.
    """
    graded = 0
    for bet in repository.find_pending_bets(round_obj.id):
        grade = grader(outcome, bet)
        if grade.result == BetResult.PENDING:
            continue
        if repository.grade_bet(bet.id, grade.result, grade.payout):
            graded += 1
    return graded
