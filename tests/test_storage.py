from srs_engine import CardState, ParameterProfile, Rating, Scheduler, State
from srs_engine.errors import StaleCardStateError
from srs_engine.scheduler import commit, schedule_candidates
from srs_engine.storage import (
    CardStateStore,
    InMemoryCardStore,
    InMemoryReviewLogStore,
    ReviewLogStore,
    submit_review,
)

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
import pytest

NOW = datetime(2024, 3, 1, 12, 30, 0, 0, timezone.utc)


class TestInMemoryStores:
    def test_protocols(self):
        assert isinstance(InMemoryCardStore(), CardStateStore)
        assert isinstance(InMemoryReviewLogStore(), ReviewLogStore)

    def test_versioned_writes(self):
        store = InMemoryCardStore()
        card = CardState.new(card_id=1, due=NOW)

        assert store.get(("alice", 1)) is None
        assert store.put(("alice", 1), card, expected_version=None) == 1

        stored = store.get(("alice", 1))
        assert stored.card == card
        assert stored.version == 1

        with pytest.raises(StaleCardStateError):
            store.put(("alice", 1), card, expected_version=None)
        with pytest.raises(StaleCardStateError):
            store.put(("alice", 1), card, expected_version=7)

        assert store.put(("alice", 1), card, expected_version=1) == 2

    def test_review_log_store(self):
        log_store = InMemoryReviewLogStore()
        scheduler = Scheduler()

        card_a = CardState.new(card_id=1, due=NOW)
        card_b = CardState.new(card_id=2, due=NOW)
        _, log_a = scheduler.review_card(card_a, Rating.Good, review_datetime=NOW)
        _, log_b = scheduler.review_card(card_b, Rating.Easy, review_datetime=NOW)

        log_store.append(log_a)
        log_store.append(log_b)

        assert log_store.entries(1) == [log_a]
        assert log_store.entries(2) == [log_b]
        assert log_store.entries(3) == []


class TestSubmitReview:
    def test_submit_review(self):
        card_store = InMemoryCardStore()
        log_store = InMemoryReviewLogStore()
        profile = ParameterProfile()
        key = ("alice", 1)
        card_store.put(key, CardState.new(card_id=1, due=NOW), expected_version=None)

        card, review_log = submit_review(
            card_store, log_store, key, profile, Rating.Good, now=NOW
        )
        assert card.state == State.Learning
        assert card_store.get(key) == (card, 2)

        card, _ = submit_review(
            card_store, log_store, key, profile, 3, now=card.due, review_duration=800
        )
        assert card.state == State.Review
        assert card_store.get(key).version == 3

        review_logs = log_store.entries(1)
        assert [log.rating for log in review_logs] == [Rating.Good, Rating.Good]
        assert review_logs[0] == review_log
        assert review_logs[1].review_duration == 800

        # the log is enough to rebuild the stored card
        assert Scheduler(profile).reschedule_card(card, review_logs) == card

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            submit_review(
                InMemoryCardStore(),
                InMemoryReviewLogStore(),
                ("bob", 9),
                ParameterProfile(),
                Rating.Good,
                now=NOW,
            )

    def test_stale_outcome_is_rejected(self):
        card_store = InMemoryCardStore()
        profile = ParameterProfile()
        key = ("alice", 1)
        card_store.put(key, CardState.new(card_id=1, due=NOW), expected_version=None)

        # two sessions read the same state
        first_read = card_store.get(key)
        second_read = card_store.get(key)

        first_card, _ = commit(
            schedule_candidates(first_read.card, profile, NOW), Rating.Good
        )
        second_card, _ = commit(
            schedule_candidates(second_read.card, profile, NOW + timedelta(seconds=5)),
            Rating.Again,
        )

        card_store.put(key, first_card, expected_version=first_read.version)
        with pytest.raises(StaleCardStateError):
            card_store.put(key, second_card, expected_version=second_read.version)

        assert card_store.get(key).card == first_card

    def test_different_items_in_parallel(self):
        card_store = InMemoryCardStore()
        log_store = InMemoryReviewLogStore()
        profile = ParameterProfile()
        keys = [("alice", card_id) for card_id in range(50)]
        for _, card_id in keys:
            card_store.put(
                ("alice", card_id),
                CardState.new(card_id=card_id, due=NOW),
                expected_version=None,
            )

        def review(key):
            return submit_review(card_store, log_store, key, profile, Rating.Easy, now=NOW)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(review, keys))

        assert all(card.state == State.Review for card, _ in results)
        for key in keys:
            assert card_store.get(key).version == 2
            assert len(log_store.entries(key[1])) == 1
