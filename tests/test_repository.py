"""
Tests for the SQLAlchemy round repository
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from models import BetResult, BetType, RoundStatus, Track
from core.exceptions import DuplicateRound, RepositoryUnavailable
from core.repository import SqlAlchemyRoundRepository
from services.outcome_service import classify

START = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def create(repository, period="20250115301201", start=START, track=Track.THIRTY_SECONDS):
    return repository.create_round(track, period, start, start + timedelta(seconds=track.duration))


class TestRounds:

    def test_create_round_is_open_with_aware_times(self, repository):
        round_obj = create(repository)

        stored = repository.find_round(Track.THIRTY_SECONDS, "20250115301201")
        assert stored.id == round_obj.id
        assert stored.status == RoundStatus.OPEN
        assert stored.start_time == START
        assert stored.end_time.tzinfo is not None
        assert stored.result_number is None

    def test_duplicate_track_period_is_rejected(self, repository):
        create(repository)
        with pytest.raises(DuplicateRound):
            create(repository)

    def test_same_period_on_another_track_is_allowed(self, repository):
        create(repository, period="P1", track=Track.THIRTY_SECONDS)
        create(repository, period="P1", track=Track.ONE_MINUTE)

    def test_latest_round_by_start_time(self, repository):
        create(repository, period="B", start=START + timedelta(seconds=30))
        create(repository, period="A", start=START)

        assert repository.find_latest_round(Track.THIRTY_SECONDS).period == "B"
        assert repository.find_latest_round(Track.ONE_MINUTE) is None

    def test_conditional_status_update(self, repository):
        round_obj = create(repository)

        assert repository.update_round_status(round_obj.id, RoundStatus.OPEN, RoundStatus.LOCKED)
        # Status already advanced: second writer loses
        assert not repository.update_round_status(round_obj.id, RoundStatus.OPEN, RoundStatus.LOCKED)

        assert repository.update_round_status(
            round_obj.id, RoundStatus.LOCKED, RoundStatus.SETTLED, classify(0)
        )
        stored = repository.find_round(Track.THIRTY_SECONDS, round_obj.period)
        assert stored.status == RoundStatus.SETTLED
        assert stored.result_number == 0
        assert stored.result_color.value == "red_violet"
        assert stored.result_size.value == "small"

    def test_settled_history_most_recent_first(self, repository):
        for i in range(4):
            round_obj = create(repository, period=f"P{i}", start=START + timedelta(seconds=30 * i))
            if i < 3:
                repository.update_round_status(round_obj.id, RoundStatus.OPEN, RoundStatus.SETTLED, classify(i))

        history = repository.find_settled_history(Track.THIRTY_SECONDS, 2)
        assert [r.period for r in history] == ["P2", "P1"]


class TestBets:

    def test_create_bet_denormalizes_round(self, repository):
        round_obj = create(repository)
        bet = repository.create_bet(round_obj, BetType.COLOR, "green", 20, 3)

        assert bet.id is not None
        assert bet.track == Track.THIRTY_SECONDS
        assert bet.period == round_obj.period
        assert bet.total_amount == 60
        assert bet.result == BetResult.PENDING
        assert bet.payout == 0

    def test_find_bets_filters_and_orders(self, repository):
        r30 = create(repository)
        r60 = create(repository, period="X", track=Track.ONE_MINUTE)
        first = repository.create_bet(r30, BetType.NUMBER, "3", 10, 1)
        repository.create_bet(r60, BetType.SIZE, "big", 10, 1)
        last = repository.create_bet(r30, BetType.SIZE, "small", 10, 1)

        bets = repository.find_bets(Track.THIRTY_SECONDS, 10)
        assert [b.id for b in bets] == [last.id, first.id]
        assert len(repository.find_bets(None, 10)) == 3
        assert len(repository.find_bets(None, 1)) == 1

    def test_grade_bet_only_once(self, repository):
        round_obj = create(repository)
        bet = repository.create_bet(round_obj, BetType.NUMBER, "3", 10, 1)

        assert repository.grade_bet(bet.id, BetResult.LOSE, 0)
        assert not repository.grade_bet(bet.id, BetResult.WIN, 90)
        assert repository.find_pending_bets(round_obj.id) == []


class TestAvailability:

    def test_ping(self, repository):
        assert repository.ping()

    def test_storage_failure_is_wrapped(self):
        def broken_factory():
            raise OperationalError("SELECT 1", {}, Exception("down"))

        repository = SqlAlchemyRoundRepository(broken_factory)
        with pytest.raises(RepositoryUnavailable):
            repository.find_latest_round(Track.THIRTY_SECONDS)
