"""
srs_engine.scheduler
--------------------

This module defines the scheduling state machine: computing the four candidate outcomes of a
review and committing the one that matches the learner's rating.

Functions:
    schedule_candidates: Computes the Again/Hard/Good/Easy outcomes of reviewing a card now.
    commit: Picks the outcome for the rating the learner actually gave.

Classes:
    CandidateOutcome: The card and review log a single rating would produce.
    SchedulingCandidates: The four candidate outcomes of one review.
    Scheduler: Convenience wrapper binding a ParameterProfile to the functions above.
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
import logging
import math
from random import random
from typing import NamedTuple
from typing_extensions import assert_never
from srs_engine import memory_model
from srs_engine.card import CardState
from srs_engine.errors import InvalidInputError
from srs_engine.profile import ParameterProfile
from srs_engine.rating import Rating
from srs_engine.review_log import ReviewLogEntry
from srs_engine.state import State

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

FUZZ_RANGES = [
    {
        "start": 2.5,
        "end": 7.0,
        "factor": 0.15,
    },
    {
        "start": 7.0,
        "end": 20.0,
        "factor": 0.1,
    },
    {
        "start": 20.0,
        "end": math.inf,
        "factor": 0.05,
    },
]


class CandidateOutcome(NamedTuple):
    """
    The result of reviewing a card with one particular rating.

    Attributes:
        card: The card as it would be after the review.
        review_log: The log entry describing the review.
    """

    card: CardState
    review_log: ReviewLogEntry


@dataclass(frozen=True)
class SchedulingCandidates:
    """
    The four possible outcomes of reviewing a card at a given time.

    Attributes:
        card: The card the candidates were computed from.
        now: The date and time of the review.
        again: The outcome of rating the card Again.
        hard: The outcome of rating the card Hard.
        good: The outcome of rating the card Good.
        easy: The outcome of rating the card Easy.
    """

    card: CardState
    now: datetime
    again: CandidateOutcome
    hard: CandidateOutcome
    good: CandidateOutcome
    easy: CandidateOutcome

    def __getitem__(self, rating: Rating | int) -> CandidateOutcome:
        match Rating.coerce(rating):
            case Rating.Again:
                return self.again
            case Rating.Hard:
                return self.hard
            case Rating.Good:
                return self.good
            case Rating.Easy:
                return self.easy

    def items(self) -> list[tuple[Rating, CandidateOutcome]]:
        return [(rating, self[rating]) for rating in Rating]


def schedule_candidates(
    card: CardState, profile: ParameterProfile, now: datetime
) -> SchedulingCandidates:
    """
    Computes the outcome of reviewing `card` at `now` for each of the four ratings.

    Args:
        card: The card being reviewed.
        profile: The weights and policy to schedule the card with.
        now: The date and time of the review. Must be timezone-aware and set to UTC.

    Returns:
        SchedulingCandidates: One CandidateOutcome per rating.

    Raises:
        InvalidInputError: If the card, the profile or `now` is out of contract.
    """

    if not isinstance(card, CardState):
        raise InvalidInputError(f"card must be a CardState, got {type(card).__name__}")
    if not isinstance(profile, ParameterProfile):
        raise InvalidInputError(
            f"profile must be a ParameterProfile, got {type(profile).__name__}"
        )
    _check_utc(now)

    match card.state:
        case State.New:
            outcomes = _new_card_outcomes(card, profile, now)
        case State.Learning | State.Review | State.Relearning:
            outcomes = _reviewed_card_outcomes(card, profile, now)
        case _:
            assert_never(card.state)

    return SchedulingCandidates(
        card=card,
        now=now,
        again=outcomes[Rating.Again],
        hard=outcomes[Rating.Hard],
        good=outcomes[Rating.Good],
        easy=outcomes[Rating.Easy],
    )


def commit(
    candidates: SchedulingCandidates,
    rating: Rating | int,
    review_duration: int | None = None,
) -> tuple[CardState, ReviewLogEntry]:
    """
    Selects the outcome matching the learner's rating.

    Args:
        candidates: The candidates returned by schedule_candidates.
        rating: The rating the learner gave, as a Rating or its integer form.
        review_duration: The number of milliseconds it took to review the card or None if unspecified.

    Returns:
        tuple[CardState, ReviewLogEntry]: The updated card and the log entry of the review.

    Raises:
        InvalidRatingError: If the rating is not one of Again, Hard, Good or Easy.
    """

    if not isinstance(candidates, SchedulingCandidates):
        raise InvalidInputError(
            f"candidates must be SchedulingCandidates, got {type(candidates).__name__}"
        )

    rating = Rating.coerce(rating)

    if review_duration is not None and (
        isinstance(review_duration, bool)
        or not isinstance(review_duration, int)
        or review_duration < 0
    ):
        raise InvalidInputError(
            f"review_duration must be a non-negative integer, got {review_duration!r}"
        )

    card, review_log = candidates[rating]
    if review_duration is not None:
        review_log = replace(review_log, review_duration=review_duration)

    return card, review_log


def _check_utc(now: datetime) -> None:
    if not isinstance(now, datetime):
        raise InvalidInputError(f"now must be a datetime, got {type(now).__name__}")
    if now.utcoffset() != timedelta(0):
        raise InvalidInputError("datetime must be timezone-aware and set to UTC")


def _due_after(now: datetime, interval: timedelta) -> datetime:
    try:
        return now + interval
    except OverflowError as exc:
        raise InvalidInputError(
            f"due date {now.isoformat()} + {interval} is past the largest representable datetime"
        ) from exc


def _elapsed_days(card: CardState, now: datetime) -> float:
    assert card.last_review is not None

    elapsed_days = (now - card.last_review).total_seconds() / SECONDS_PER_DAY

    if elapsed_days < 0:
        logger.debug(
            "Review of card %s at %s precedes its last review at %s; treating elapsed time as 0",
            card.card_id,
            now.isoformat(),
            card.last_review.isoformat(),
        )
        return 0.0

    return elapsed_days


def _new_card_outcomes(
    card: CardState, profile: ParameterProfile, now: datetime
) -> dict[Rating, CandidateOutcome]:
    stability = memory_model.initial_stability(profile.weights)
    difficulty = memory_model.initial_difficulty(profile.weights)

    outcomes = {}
    for rating in Rating:
        if rating == Rating.Easy:
            state = State.Review
            scheduled_days = _review_interval(
                stability=stability, profile=profile, state=state
            )
            due = _due_after(now, timedelta(days=scheduled_days))
        else:
            state = State.Learning
            scheduled_days = 0
            due = _due_after(now, profile.learning_steps[rating])

        outcomes[rating] = _build_outcome(
            card=card,
            rating=rating,
            now=now,
            state=state,
            stability=stability,
            difficulty=difficulty,
            lapse_count=card.lapse_count,
            elapsed_days=0.0,
            scheduled_days=scheduled_days,
            due=due,
        )

    return outcomes


def _reviewed_card_outcomes(
    card: CardState, profile: ParameterProfile, now: datetime
) -> dict[Rating, CandidateOutcome]:
    assert card.stability is not None
    assert card.difficulty is not None

    elapsed_days = _elapsed_days(card, now)
    retrievability = memory_model.retrievability(elapsed_days, card.stability)

    outcomes = {}
    for rating in Rating:
        difficulty = memory_model.next_difficulty(
            card.difficulty, rating, profile.weights
        )

        if rating == Rating.Again:
            state = State.Relearning
            lapse_count = card.lapse_count + 1
            stability = memory_model.next_stability_on_lapse(
                card.difficulty, card.stability, retrievability, profile.weights
            )
        else:
            state = State.Review
            lapse_count = card.lapse_count
            stability = memory_model.next_stability_on_recall(
                card.difficulty,
                card.stability,
                retrievability,
                rating,
                profile.weights,
            )

        scheduled_days = _review_interval(
            stability=stability, profile=profile, state=state
        )

        outcomes[rating] = _build_outcome(
            card=card,
            rating=rating,
            now=now,
            state=state,
            stability=stability,
            difficulty=difficulty,
            lapse_count=lapse_count,
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            due=_due_after(now, timedelta(days=scheduled_days)),
        )

    return outcomes


def _review_interval(
    *, stability: float, profile: ParameterProfile, state: State
) -> int:
    interval_days = memory_model.next_interval(
        stability, profile.target_retention, profile.maximum_interval
    )

    if profile.enable_fuzzing and state == State.Review:
        interval_days = _get_fuzzed_interval(
            interval_days=interval_days, maximum_interval=profile.maximum_interval
        )

    return interval_days


def _build_outcome(
    *,
    card: CardState,
    rating: Rating,
    now: datetime,
    state: State,
    stability: float,
    difficulty: float,
    lapse_count: int,
    elapsed_days: float,
    scheduled_days: int,
    due: datetime,
) -> CandidateOutcome:
    next_card = replace(
        card,
        state=state,
        stability=stability,
        difficulty=difficulty,
        repetition_count=card.repetition_count + 1,
        lapse_count=lapse_count,
        due=due,
        last_review=now,
    )

    review_log = ReviewLogEntry(
        card_id=card.card_id,
        rating=rating,
        prior_state=card.state,
        elapsed_days=elapsed_days,
        scheduled_days=scheduled_days,
        stability=stability,
        difficulty=difficulty,
        reviewed_at=now,
        due=due,
    )

    return CandidateOutcome(card=next_card, review_log=review_log)


def _get_fuzzed_interval(*, interval_days: int, maximum_interval: int) -> int:
    """
    Takes the calculated interval and adds a small amount of random fuzz to it.
    For example, a card that would've been due in 50 days, after fuzzing, might be due in 49, or 51 days.

    Args:
        interval_days: The calculated next interval in days, before fuzzing.
        maximum_interval: The upper bound of the fuzzed interval.

    Returns:
        int: The new interval in days, after fuzzing.
    """

    if interval_days < 2.5:  # fuzz is not applied to intervals less than 2.5
        return interval_days

    delta = 1.0
    for fuzz_range in FUZZ_RANGES:
        delta += fuzz_range["factor"] * max(
            min(interval_days, fuzz_range["end"]) - fuzz_range["start"], 0.0
        )

    min_ivl = int(round(interval_days - delta))
    max_ivl = int(round(interval_days + delta))

    # make sure the min_ivl and max_ivl fall into a valid range
    min_ivl = max(2, min_ivl)
    max_ivl = min(max_ivl, maximum_interval)
    min_ivl = min(min_ivl, max_ivl)

    fuzzed_interval_days = (
        random() * (max_ivl - min_ivl + 1)
    ) + min_ivl  # the next interval is a random value between min_ivl and max_ivl

    return min(round(fuzzed_interval_days), maximum_interval)


@dataclass(init=False)
class Scheduler:
    """
    Schedules cards with a fixed ParameterProfile.

    Attributes:
        profile: The weights and policy cards are scheduled with.
    """

    profile: ParameterProfile

    def __init__(self, profile: ParameterProfile | None = None) -> None:
        if profile is None:
            profile = ParameterProfile()
        if not isinstance(profile, ParameterProfile):
            raise InvalidInputError(
                f"profile must be a ParameterProfile, got {type(profile).__name__}"
            )
        self.profile = profile

    def schedule(
        self, card: CardState, now: datetime | None = None
    ) -> SchedulingCandidates:
        """
        Computes the four candidate outcomes of reviewing a card.

        Args:
            card: The card being reviewed.
            now: The date and time of the review. Defaults to now.

        Returns:
            SchedulingCandidates: One CandidateOutcome per rating.
        """

        if now is None:
            now = datetime.now(timezone.utc)

        return schedule_candidates(card, self.profile, now)

    def review_card(
        self,
        card: CardState,
        rating: Rating | int,
        review_datetime: datetime | None = None,
        review_duration: int | None = None,
    ) -> tuple[CardState, ReviewLogEntry]:
        """
        Reviews a card with a given rating at a given time for a specified duration.

        Args:
            card: The card being reviewed.
            rating: The chosen rating for the card being reviewed.
            review_datetime: The date and time of the review. Defaults to now.
            review_duration: The number of milliseconds it took to review the card or None if unspecified.

        Returns:
            tuple[CardState, ReviewLogEntry]: The updated, reviewed card and its corresponding review log.
        """

        rating = Rating.coerce(rating)
        candidates = self.schedule(card, now=review_datetime)
        return commit(candidates, rating, review_duration=review_duration)

    def get_card_retrievability(
        self, card: CardState, current_datetime: datetime | None = None
    ) -> float:
        """
        Calculates a card's probability of being recalled at a given date and time.

        Args:
            card: The card whose retrievability is to be calculated.
            current_datetime: The current date and time. Defaults to now.

        Returns:
            float: The retrievability of the card, 0 for a New card.
        """

        if card.state == State.New or card.stability is None:
            return 0.0

        if current_datetime is None:
            current_datetime = datetime.now(timezone.utc)
        _check_utc(current_datetime)

        return memory_model.retrievability(
            _elapsed_days(card, current_datetime), card.stability
        )

    def reschedule_card(
        self, card: CardState, review_logs: Iterable[ReviewLogEntry]
    ) -> CardState:
        """
        Replays a card's review history with this scheduler's profile.

        Useful after the profile's weights or target retention changed: the card is
        recomputed as if it had always been scheduled with the current profile.

        Args:
            card: The card to be rescheduled.
            review_logs: The card's review log entries (order doesn't matter).

        Returns:
            CardState: The rescheduled card.

        Raises:
            InvalidInputError: If any of the review logs belongs to another card.
        """

        review_logs = list(review_logs)
        for review_log in review_logs:
            if review_log.card_id != card.card_id:
                raise InvalidInputError(
                    f"ReviewLogEntry card_id {review_log.card_id} does not match CardState card_id {card.card_id}"
                )

        review_logs.sort(key=lambda log: log.reviewed_at)

        rescheduled_card = CardState.new(card_id=card.card_id, due=card.due)

        for review_log in review_logs:
            rescheduled_card, _ = self.review_card(
                card=rescheduled_card,
                rating=review_log.rating,
                review_datetime=review_log.reviewed_at,
                review_duration=review_log.review_duration,
            )

        return rescheduled_card


__all__ = [
    "CandidateOutcome",
    "SchedulingCandidates",
    "Scheduler",
    "schedule_candidates",
    "commit",
]
