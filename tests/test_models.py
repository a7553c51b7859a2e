from srs_engine import (
    CardState,
    ParameterProfile,
    Rating,
    ReviewLogEntry,
    Scheduler,
    State,
    Weights,
    DEFAULT_WEIGHTS,
)
from srs_engine.errors import InvalidInputError, InvalidRatingError, InvalidStateError
from srs_engine.profile import DEFAULT_LEARNING_STEPS

from datetime import datetime, timedelta, timezone
import json
import math
import pytest

NOW = datetime(2024, 3, 1, 12, 30, 0, 0, timezone.utc)


class TestRating:
    def test_coerce(self):
        assert Rating.coerce(1) is Rating.Again
        assert Rating.coerce(Rating.Easy) is Rating.Easy
        assert [int(rating) for rating in Rating] == [1, 2, 3, 4]

    @pytest.mark.parametrize("value", [0, 5, False, "Good", 3.0])
    def test_coerce_rejects(self, value):
        with pytest.raises(InvalidRatingError):
            Rating.coerce(value)


class TestWeights:
    def test_named_and_positional_access(self):
        assert len(DEFAULT_WEIGHTS) == 14
        assert DEFAULT_WEIGHTS[0] == DEFAULT_WEIGHTS.initial_stability
        assert DEFAULT_WEIGHTS[2] == DEFAULT_WEIGHTS.initial_difficulty
        assert DEFAULT_WEIGHTS[7] == DEFAULT_WEIGHTS.stability_exponent

    def test_from_sequence(self):
        assert Weights.from_sequence(list(DEFAULT_WEIGHTS)) == DEFAULT_WEIGHTS

    def test_wrong_length(self):
        with pytest.raises(InvalidInputError):
            Weights.from_sequence([])
        with pytest.raises(InvalidInputError):
            Weights.from_sequence(DEFAULT_WEIGHTS[:-1])
        with pytest.raises(InvalidInputError):
            Weights.from_sequence(tuple(DEFAULT_WEIGHTS) + (1.0,))

    def test_out_of_bounds(self):
        weights_one_too_high = list(DEFAULT_WEIGHTS)
        weights_one_too_high[5] = 100
        with pytest.raises(InvalidInputError):
            Weights.from_sequence(weights_one_too_high)

        weights_two_bad = list(DEFAULT_WEIGHTS)
        weights_two_bad[0] = 0
        weights_two_bad[7] = 0.5
        with pytest.raises(InvalidInputError) as excinfo:
            Weights.from_sequence(weights_two_bad)
        assert "initial_stability" in str(excinfo.value)
        assert "stability_exponent" in str(excinfo.value)

    def test_non_numeric(self):
        for bad_value in (math.nan, math.inf, "1.0", None):
            weights = list(DEFAULT_WEIGHTS)
            weights[3] = bad_value
            with pytest.raises(InvalidInputError):
                Weights.from_sequence(weights)

        with pytest.raises(InvalidInputError):
            Weights.from_sequence("0.4 1.2")


class TestCardState:
    def test_new(self):
        card = CardState.new(card_id=5, due=NOW)

        assert card.state == State.New
        assert card.stability is None
        assert card.difficulty is None
        assert card.repetition_count == 0
        assert card.lapse_count == 0
        assert card.last_review is None

    def test_unique_card_ids(self):
        card_ids = [CardState.new().card_id for _ in range(100)]

        assert len(card_ids) == len(set(card_ids))

    def test_immutable(self):
        card = CardState.new(card_id=5, due=NOW)

        with pytest.raises(AttributeError):
            card.stability = 3.0

    def test_dict_serialize(self):
        scheduler = Scheduler()
        card = CardState.new(card_id=5, due=NOW)

        card_dict = card.to_dict()
        assert card_dict["state"] == 0
        assert CardState.from_dict(card_dict) == card

        card, _ = scheduler.review_card(card, Rating.Again, review_datetime=NOW)
        assert CardState.from_dict(card.to_dict()) == card

    def test_json_serialize(self):
        scheduler = Scheduler()
        card = CardState.new(card_id=5, due=NOW)
        card, _ = scheduler.review_card(card, Rating.Easy, review_datetime=NOW)

        card_json = card.to_json(indent=2)
        assert type(json.loads(card_json)) is dict
        assert CardState.from_json(card_json) == card

    def test_malformed_dict(self):
        with pytest.raises(InvalidStateError):
            CardState.from_dict({})

        card_dict = CardState.new(card_id=5, due=NOW).to_dict()
        card_dict["state"] = 9
        with pytest.raises(InvalidStateError):
            CardState.from_dict(card_dict)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stability": -1.0},
            {"stability": 0.0},
            {"stability": math.nan},
            {"difficulty": 0.5},
            {"difficulty": 10.5},
            {"difficulty": math.inf},
            {"lapse_count": -1},
            {"repetition_count": 0},
            {"last_review": None},
            {"state": State.New},
            {"stability": None},
            {"due": NOW - timedelta(days=30)},
            {"due": datetime(2024, 3, 1)},
            {"state": 2},
        ],
    )
    def test_invalid_state(self, overrides):
        fields = dict(
            card_id=5,
            state=State.Review,
            stability=10.0,
            difficulty=5.0,
            repetition_count=3,
            lapse_count=0,
            last_review=NOW - timedelta(days=10),
            due=NOW,
        )
        fields.update(overrides)

        with pytest.raises(InvalidStateError):
            CardState(**fields)

    def test_new_card_with_history_is_rejected(self):
        with pytest.raises(InvalidStateError):
            CardState(card_id=5, due=NOW, repetition_count=2)
        with pytest.raises(InvalidStateError):
            CardState(card_id=5, due=NOW, last_review=NOW)


class TestReviewLogEntry:
    def test_dict_serialize(self):
        scheduler = Scheduler()
        card = CardState.new(card_id=5, due=NOW)
        card, review_log = scheduler.review_card(
            card, Rating.Good, review_datetime=NOW, review_duration=2500
        )

        review_log_dict = review_log.to_dict()
        assert review_log_dict["rating"] == 3
        assert review_log_dict["prior_state"] == 0
        assert review_log_dict["review_duration"] == 2500
        assert ReviewLogEntry.from_dict(review_log_dict) == review_log

    def test_json_serialize(self):
        scheduler = Scheduler()
        card = CardState.new(card_id=5, due=NOW)
        card, _ = scheduler.review_card(card, Rating.Easy, review_datetime=NOW)
        _, review_log = scheduler.review_card(card, Rating.Hard, review_datetime=card.due)

        review_log_json = review_log.to_json()
        assert type(json.loads(review_log_json)) is dict
        assert ReviewLogEntry.from_json(review_log_json) == review_log
        assert review_log.prior_state == State.Review
        assert review_log.review_duration is None

    def test_malformed_dict(self):
        scheduler = Scheduler()
        card = CardState.new(card_id=5, due=NOW)
        _, review_log = scheduler.review_card(card, Rating.Good, review_datetime=NOW)
        review_log_dict = review_log.to_dict()

        with pytest.raises(InvalidInputError):
            ReviewLogEntry.from_dict({"card_id": 1})
        with pytest.raises(InvalidInputError):
            ReviewLogEntry.from_dict({**review_log_dict, "prior_state": 9})
        with pytest.raises(InvalidInputError):
            ReviewLogEntry.from_dict({**review_log_dict, "reviewed_at": "yesterday"})
        with pytest.raises(InvalidRatingError):
            ReviewLogEntry.from_dict({**review_log_dict, "rating": 0})
        with pytest.raises(InvalidInputError):
            ReviewLogEntry.from_json("[]")


class TestParameterProfile:
    def test_defaults(self):
        profile = ParameterProfile()

        assert profile.weights == DEFAULT_WEIGHTS
        assert profile.target_retention == 0.9
        assert profile.maximum_interval == 36500
        assert profile.learning_steps == DEFAULT_LEARNING_STEPS
        assert profile.enable_fuzzing is False

    def test_dict_serialize(self):
        profile = ParameterProfile(
            target_retention=0.85,
            maximum_interval=365,
            learning_steps={
                Rating.Again: timedelta(minutes=2),
                Rating.Hard: timedelta(minutes=15),
                Rating.Good: timedelta(hours=1),
            },
            enable_fuzzing=True,
        )

        profile_dict = profile.to_dict()
        assert profile_dict["learning_steps"] == {"1": 120, "2": 900, "3": 3600}
        assert ParameterProfile.from_dict(profile_dict) == profile

    def test_json_serialize(self):
        profile = ParameterProfile(target_retention=0.95)

        assert ParameterProfile.from_json(profile.to_json(indent=2)) == profile

    def test_integer_rating_keys(self):
        profile = ParameterProfile(
            learning_steps={
                1: timedelta(minutes=1),
                2: timedelta(minutes=2),
                3: timedelta(minutes=3),
            }
        )

        assert profile.learning_steps[Rating.Hard] == timedelta(minutes=2)

    def test_immutable(self):
        profile = ParameterProfile()

        with pytest.raises(AttributeError):
            profile.target_retention = 5.0
        with pytest.raises(AttributeError):
            profile.maximum_interval = 10**7
        with pytest.raises(TypeError):
            profile.learning_steps[Rating.Again] = timedelta(days=-1)

        assert profile.target_retention == 0.9
        assert profile.learning_steps[Rating.Again] == timedelta(minutes=1)

    def test_caller_mapping_is_copied(self):
        learning_steps = dict(DEFAULT_LEARNING_STEPS)
        profile = ParameterProfile(learning_steps=learning_steps)

        learning_steps[Rating.Good] = timedelta(0)

        assert profile.learning_steps[Rating.Good] == timedelta(minutes=10)
        assert DEFAULT_LEARNING_STEPS[Rating.Good] == timedelta(minutes=10)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"target_retention": 0.0},
            {"target_retention": 1.0},
            {"target_retention": 1.5},
            {"target_retention": math.nan},
            {"maximum_interval": 0},
            {"maximum_interval": 10.5},
            {"maximum_interval": True},
            {"maximum_interval": 36501},
            {"maximum_interval": 10**7},
            {"weights": DEFAULT_WEIGHTS[:-1]},
            {"learning_steps": {Rating.Again: timedelta(minutes=1)}},
            {
                "learning_steps": {
                    Rating.Again: timedelta(minutes=1),
                    Rating.Hard: timedelta(0),
                    Rating.Good: timedelta(minutes=10),
                }
            },
            {
                "learning_steps": {
                    Rating.Again: timedelta(minutes=1),
                    Rating.Hard: timedelta(minutes=6),
                    Rating.Good: timedelta(minutes=10),
                    Rating.Easy: timedelta(days=1),
                }
            },
        ],
    )
    def test_invalid_profile(self, kwargs):
        with pytest.raises(InvalidInputError):
            ParameterProfile(**kwargs)

    def test_malformed_dict(self):
        with pytest.raises(InvalidInputError):
            ParameterProfile.from_dict({"weights": list(DEFAULT_WEIGHTS)})
