"""
srs_engine.memory_model
-----------------------

Pure functions implementing the memory model: the forgetting curve, the stability and
difficulty updates and the interval that hits a target retention.

The model tracks two numbers per card:

- Stability (S): the number of days after which the probability of recall has decayed to 0.9.
  It grows with every successful recall, faster for easy cards and for recalls that happened
  at low retrievability, and collapses on a lapse.
- Difficulty (D): a value between 1 and 10. Harder ratings push it up, easier ratings push it
  down, and on every review it reverts a little towards the seed difficulty.

No function here holds state or reads the clock.
"""

from __future__ import annotations
import functools
import math
from collections.abc import Callable
from typing import TypeVar
from srs_engine.errors import (
    DegenerateArithmeticError,
    InvalidInputError,
    InvalidRatingError,
)
from srs_engine.rating import Rating
from srs_engine.weights import Weights, validate_weights

STABILITY_MIN = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# retention at which t == S on the forgetting curve
REFERENCE_RETENTION = 0.9

_T = TypeVar("_T", int, float)


def _finite_result(func: Callable[..., _T]) -> Callable[..., _T]:
    """
    Turns NaN, infinite and overflowing results into a DegenerateArithmeticError.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> _T:
        try:
            result = func(*args, **kwargs)
        except (OverflowError, ZeroDivisionError) as exc:
            raise DegenerateArithmeticError(f"{func.__name__} failed: {exc}") from exc

        if not math.isfinite(result):
            raise DegenerateArithmeticError(
                f"{func.__name__} produced a non-finite value: {result}"
            )

        return result

    return wrapper


def clamp_difficulty(difficulty: float) -> float:
    return min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)


def clamp_stability(stability: float) -> float:
    return max(stability, STABILITY_MIN)


def _check_stability(stability: float) -> None:
    if not math.isfinite(stability) or stability <= 0:
        raise InvalidInputError(f"stability must be a positive number, got {stability}")


def _check_difficulty(difficulty: float) -> None:
    if not math.isfinite(difficulty) or not (
        MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY
    ):
        raise InvalidInputError(
            f"difficulty must be within [{MIN_DIFFICULTY}, {MAX_DIFFICULTY}], got {difficulty}"
        )


def _check_retrievability(retrievability: float) -> None:
    if not math.isfinite(retrievability) or not 0 < retrievability <= 1:
        raise InvalidInputError(
            f"retrievability must be within (0, 1], got {retrievability}"
        )


def _check_weights(weights: Weights) -> None:
    if not isinstance(weights, Weights):
        raise InvalidInputError(
            f"weights must be a Weights tuple, got {type(weights).__name__}"
        )
    validate_weights(weights)


@_finite_result
def initial_stability(weights: Weights) -> float:
    """
    Returns the seed stability of a brand-new card, floored at STABILITY_MIN.
    """

    _check_weights(weights)
    return clamp_stability(weights.initial_stability)


@_finite_result
def initial_difficulty(weights: Weights) -> float:
    """
    Returns the seed difficulty of a brand-new card, clamped to [1, 10].
    """

    _check_weights(weights)
    return clamp_difficulty(weights.initial_difficulty)


@_finite_result
def retrievability(elapsed_days: float, stability: float) -> float:
    """
    The forgetting curve: the probability of recall after `elapsed_days` days.

    Uses R(t, S) = (1 + t / (9 * S)) ^ -1, so R(0, S) == 1 and R(S, S) == 0.9.

    Args:
        elapsed_days: Days since the last review, >= 0.
        stability: Current stability, > 0.

    Returns:
        The retrievability, in (0, 1].
    """

    if not math.isfinite(elapsed_days) or elapsed_days < 0:
        raise InvalidInputError(
            f"elapsed_days must be a non-negative number, got {elapsed_days}"
        )
    _check_stability(stability)

    return (1 + elapsed_days / (9 * stability)) ** -1


@_finite_result
def next_interval(
    stability: float, target_retention: float, maximum_interval: int
) -> int:
    """
    Returns the number of whole days after which retrievability falls to `target_retention`.

    The raw interval S * ln(r) / ln(0.9) is rounded to the nearest day and clamped
    to [1, maximum_interval].
    """

    _check_stability(stability)
    if not 0 < target_retention < 1:
        raise InvalidInputError(
            f"target_retention must be within (0, 1), got {target_retention}"
        )
    if maximum_interval < 1:
        raise InvalidInputError(
            f"maximum_interval must be at least 1, got {maximum_interval}"
        )

    interval = stability * (
        math.log(target_retention) / math.log(REFERENCE_RETENTION)
    )

    interval = round(interval)  # intervals are full days

    # must be at least 1 day long
    interval = max(interval, 1)

    # can not be longer than the maximum interval
    interval = min(interval, maximum_interval)

    return interval


@_finite_result
def next_difficulty(difficulty: float, rating: Rating, weights: Weights) -> float:
    """
    Updates the difficulty after a review.

    D' = D + (w4 - (G - 3) * w5) + w6 * (D0 - D), clamped to [1, 10].
    """

    _check_difficulty(difficulty)
    rating = Rating.coerce(rating)
    _check_weights(weights)

    delta_difficulty = weights.difficulty_drift - (
        (rating - 3) * weights.difficulty_rating_slope
    )
    mean_reversion = weights.difficulty_mean_reversion * (
        initial_difficulty(weights) - difficulty
    )

    return clamp_difficulty(difficulty + delta_difficulty + mean_reversion)


@_finite_result
def next_stability_on_recall(
    difficulty: float,
    stability: float,
    retrievability: float,
    rating: Rating,
    weights: Weights,
) -> float:
    """
    Calculates the new stability after a successful recall (Hard, Good or Easy).

    Formula: S' = S * (1 + e^w1 * (11 - D) * S^w7 * (e^(w8 * (1 - R)) - 1) * penalty * bonus)

    Key effects:
    - Higher D -> smaller increase (linear: 11 - D)
    - Higher S -> harder to increase (power law: S^w7 with w7 <= 0)
    - Lower R -> larger increase (exponential: e^(w8 * (1 - R)))
    - Hard rating applies the penalty w12, Easy rating applies the bonus w13

    Raises:
        InvalidRatingError: If the rating is Again.
    """

    _check_difficulty(difficulty)
    _check_stability(stability)
    _check_retrievability(retrievability)
    _check_weights(weights)
    rating = Rating.coerce(rating)
    if rating == Rating.Again:
        raise InvalidRatingError("recall stability is undefined for Rating.Again")

    hard_penalty = weights.hard_penalty if rating == Rating.Hard else 1
    easy_bonus = weights.easy_bonus if rating == Rating.Easy else 1

    next_stability = stability * (
        1
        + math.exp(weights.recall_growth)
        * (11 - difficulty)
        * (stability**weights.stability_exponent)
        * (math.exp(weights.retrievability_boost * (1 - retrievability)) - 1)
        * hard_penalty
        * easy_bonus
    )

    return clamp_stability(next_stability)


@_finite_result
def next_stability_on_lapse(
    difficulty: float, stability: float, retrievability: float, weights: Weights
) -> float:
    """
    Calculates the new stability after the card was forgotten (rated Again).

    Formula: S' = w3 * D^-w9 * ((S + 1)^w10 - 1) * e^(w11 * (1 - R))

    The result is capped at the current stability and floored at STABILITY_MIN.
    """

    _check_difficulty(difficulty)
    _check_stability(stability)
    _check_retrievability(retrievability)
    _check_weights(weights)

    next_stability = (
        weights.lapse_scale
        * (difficulty**-weights.lapse_difficulty_exponent)
        * (((stability + 1) ** weights.lapse_stability_exponent) - 1)
        * math.exp(weights.lapse_retrievability_boost * (1 - retrievability))
    )

    return clamp_stability(min(next_stability, stability))


__all__ = [
    "STABILITY_MIN",
    "MIN_DIFFICULTY",
    "MAX_DIFFICULTY",
    "clamp_difficulty",
    "clamp_stability",
    "initial_stability",
    "initial_difficulty",
    "retrievability",
    "next_interval",
    "next_difficulty",
    "next_stability_on_recall",
    "next_stability_on_lapse",
]
