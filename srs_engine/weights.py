"""
srs_engine.weights
------------------

This module defines the Weights tuple fed to the memory model formulas, along with its default values and bounds.

Classes:
    Weights: The fixed-length, named vector of memory model coefficients.
"""

from __future__ import annotations
from collections.abc import Sequence
import math
from typing import NamedTuple
from typing_extensions import Self
from srs_engine.errors import InvalidInputError


class Weights(NamedTuple):
    """
    The tunable coefficients of the memory model.

    Every entry can be read by name or by position; the positions are part of the
    serialized form and must not be reordered.

    Attributes:
        initial_stability: Seed stability of a brand-new card (w0).
        recall_growth: Log-scale of the stability growth after a successful recall (w1).
        initial_difficulty: Seed difficulty of a brand-new card and the mean-reversion target (w2).
        lapse_scale: Scale of the post-lapse stability (w3).
        difficulty_drift: Constant difficulty shift applied on every review (w4).
        difficulty_rating_slope: Difficulty shift per rating step away from Good (w5).
        difficulty_mean_reversion: Pull of the difficulty back towards its seed value (w6).
        stability_exponent: Exponent on the current stability in the recall growth, <= 0 (w7).
        retrievability_boost: How much a riskier recall boosts stability (w8).
        lapse_difficulty_exponent: Difficulty exponent of the post-lapse stability (w9).
        lapse_stability_exponent: Stability exponent of the post-lapse stability (w10).
        lapse_retrievability_boost: Retrievability term of the post-lapse stability (w11).
        hard_penalty: Recall growth multiplier for the Hard rating (w12).
        easy_bonus: Recall growth multiplier for the Easy rating (w13).
    """

    initial_stability: float
    recall_growth: float
    initial_difficulty: float
    lapse_scale: float
    difficulty_drift: float
    difficulty_rating_slope: float
    difficulty_mean_reversion: float
    stability_exponent: float
    retrievability_boost: float
    lapse_difficulty_exponent: float
    lapse_stability_exponent: float
    lapse_retrievability_boost: float
    hard_penalty: float
    easy_bonus: float

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> Self:
        """
        Creates a validated Weights object from a plain sequence of numbers.

        Args:
            values: The weights, in positional order.

        Returns:
            A Weights object.

        Raises:
            InvalidInputError: If the length is wrong or any value is non-finite or out of bounds.
        """

        validate_weights(values)
        return cls(*(float(value) for value in values))


DEFAULT_WEIGHTS = Weights(
    initial_stability=2.3065,
    recall_growth=1.8722,
    initial_difficulty=4.9,
    lapse_scale=1.4835,
    difficulty_drift=0.0,
    difficulty_rating_slope=1.0,
    difficulty_mean_reversion=0.05,
    stability_exponent=-0.1666,
    retrievability_boost=0.796,
    lapse_difficulty_exponent=0.0614,
    lapse_stability_exponent=0.2629,
    lapse_retrievability_boost=1.6483,
    hard_penalty=0.6014,
    easy_bonus=1.8729,
)

LOWER_BOUNDS_WEIGHTS = Weights(
    initial_stability=0.001,
    recall_growth=0.0,
    initial_difficulty=1.0,
    lapse_scale=0.001,
    difficulty_drift=-1.0,
    difficulty_rating_slope=0.001,
    difficulty_mean_reversion=0.0,
    stability_exponent=-0.8,
    retrievability_boost=0.001,
    lapse_difficulty_exponent=0.001,
    lapse_stability_exponent=0.001,
    lapse_retrievability_boost=0.0,
    hard_penalty=0.001,
    easy_bonus=1.0,
)

UPPER_BOUNDS_WEIGHTS = Weights(
    initial_stability=100.0,
    recall_growth=4.0,
    initial_difficulty=10.0,
    lapse_scale=5.0,
    difficulty_drift=1.0,
    difficulty_rating_slope=4.0,
    difficulty_mean_reversion=1.0,
    stability_exponent=0.0,
    retrievability_boost=4.5,
    lapse_difficulty_exponent=0.25,
    lapse_stability_exponent=0.9,
    lapse_retrievability_boost=4.0,
    hard_penalty=1.0,
    easy_bonus=6.0,
)


def validate_weights(values: Sequence[float]) -> None:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidInputError(
            f"weights must be a sequence of numbers, got {type(values).__name__}"
        )

    if len(values) != len(Weights._fields):
        raise InvalidInputError(
            f"Expected {len(Weights._fields)} weights, got {len(values)}."
        )

    error_messages = []
    for index, (name, value, lower_bound, upper_bound) in enumerate(
        zip(Weights._fields, values, LOWER_BOUNDS_WEIGHTS, UPPER_BOUNDS_WEIGHTS)
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            error_messages.append(f"weights[{index}] ({name}) = {value!r} is not a number")
        elif not math.isfinite(value):
            error_messages.append(f"weights[{index}] ({name}) = {value} is not finite")
        elif not lower_bound <= value <= upper_bound:
            error_messages.append(
                f"weights[{index}] ({name}) = {value} is out of bounds: ({lower_bound}, {upper_bound})"
            )

    if len(error_messages) > 0:
        raise InvalidInputError(
            "One or more weights are invalid:\n" + "\n".join(error_messages)
        )


__all__ = [
    "Weights",
    "DEFAULT_WEIGHTS",
    "LOWER_BOUNDS_WEIGHTS",
    "UPPER_BOUNDS_WEIGHTS",
    "validate_weights",
]
