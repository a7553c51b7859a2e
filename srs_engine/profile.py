"""
srs_engine.profile
------------------

This module defines the ParameterProfile class as well as the default scheduling policy.

Classes:
    ParameterProfile: Per-learner weights, target retention and scheduling policy.
"""

from __future__ import annotations
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
import json
import math
from types import MappingProxyType
from typing import TypedDict
from typing_extensions import Self
from srs_engine.errors import InvalidInputError
from srs_engine.rating import Rating
from srs_engine.weights import DEFAULT_WEIGHTS, Weights

DEFAULT_TARGET_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500
# about a hundred years; keeps every due date far from datetime.max
MAXIMUM_INTERVAL_LIMIT = 36500

# sub-day steps a New card is scheduled with after its first Again/Hard/Good rating
DEFAULT_LEARNING_STEPS = {
    Rating.Again: timedelta(minutes=1),
    Rating.Hard: timedelta(minutes=6),
    Rating.Good: timedelta(minutes=10),
}


class ParameterProfileDict(TypedDict):
    """
    JSON-serializable dictionary representation of a ParameterProfile object.
    """

    weights: list[float]
    target_retention: float
    maximum_interval: int
    learning_steps: dict[str, int]
    enable_fuzzing: bool


@dataclass(frozen=True, init=False)
class ParameterProfile:
    """
    The tunable configuration a card is scheduled with.

    Attributes:
        weights: The memory model weights.
        target_retention: The desired probability of recall at the moment a card becomes due.
        maximum_interval: The maximum number of days a card can be scheduled into the future.
        learning_steps: The short intervals a New card is scheduled with after an Again, Hard or Good rating.
        enable_fuzzing: Whether to apply a small amount of random 'fuzz' to Review-state intervals.
    """

    weights: Weights
    target_retention: float
    maximum_interval: int
    learning_steps: Mapping[Rating, timedelta]
    enable_fuzzing: bool

    def __init__(
        self,
        weights: Sequence[float] = DEFAULT_WEIGHTS,
        target_retention: float = DEFAULT_TARGET_RETENTION,
        maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL,
        learning_steps: Mapping[Rating, timedelta] = DEFAULT_LEARNING_STEPS,
        enable_fuzzing: bool = False,
    ) -> None:
        object.__setattr__(self, "weights", Weights.from_sequence(weights))

        error_messages = []

        if (
            isinstance(target_retention, bool)
            or not isinstance(target_retention, (int, float))
            or not math.isfinite(target_retention)
            or not 0 < target_retention < 1
        ):
            error_messages.append(
                f"target_retention must be within (0, 1), got {target_retention!r}"
            )

        if (
            isinstance(maximum_interval, bool)
            or not isinstance(maximum_interval, int)
            or not 1 <= maximum_interval <= MAXIMUM_INTERVAL_LIMIT
        ):
            error_messages.append(
                f"maximum_interval must be an integer within [1, {MAXIMUM_INTERVAL_LIMIT}], "
                f"got {maximum_interval!r}"
            )

        error_messages.extend(self._learning_steps_errors(learning_steps))

        if len(error_messages) > 0:
            raise InvalidInputError(
                "Invalid ParameterProfile:\n" + "\n".join(error_messages)
            )

        object.__setattr__(self, "target_retention", float(target_retention))
        object.__setattr__(self, "maximum_interval", maximum_interval)
        object.__setattr__(
            self,
            "learning_steps",
            MappingProxyType(
                {
                    rating: learning_steps[rating]
                    for rating in (Rating.Again, Rating.Hard, Rating.Good)
                }
            ),
        )
        object.__setattr__(self, "enable_fuzzing", bool(enable_fuzzing))

    @staticmethod
    def _learning_steps_errors(learning_steps: Mapping[Rating, timedelta]) -> list[str]:
        if not isinstance(learning_steps, Mapping):
            return ["learning_steps must map Again, Hard and Good to a timedelta"]

        expected = {Rating.Again, Rating.Hard, Rating.Good}
        if set(learning_steps) != expected:
            return [
                "learning_steps must have exactly the keys Again, Hard and Good, "
                f"got {list(learning_steps)}"
            ]

        return [
            f"learning_steps[{Rating(rating).name}] must be a positive timedelta, got {step!r}"
            for rating, step in sorted(learning_steps.items())
            if not isinstance(step, timedelta) or step <= timedelta(0)
        ]

    def to_dict(self) -> ParameterProfileDict:
        """
        Returns a dictionary representation of the ParameterProfile object.

        Returns:
            ParameterProfileDict: A dictionary representation of the ParameterProfile object.
        """

        return {
            "weights": list(self.weights),
            "target_retention": self.target_retention,
            "maximum_interval": self.maximum_interval,
            "learning_steps": {
                str(int(rating)): int(step.total_seconds())
                for rating, step in self.learning_steps.items()
            },
            "enable_fuzzing": self.enable_fuzzing,
        }

    @classmethod
    def from_dict(cls, source_dict: ParameterProfileDict) -> Self:
        """
        Creates a ParameterProfile object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing ParameterProfile object.

        Returns:
            Self: A ParameterProfile object created from the provided dictionary.
        """

        try:
            learning_steps = {
                Rating.coerce(int(rating)): timedelta(seconds=seconds)
                for rating, seconds in source_dict["learning_steps"].items()
            }
            return cls(
                weights=source_dict["weights"],
                target_retention=source_dict["target_retention"],
                maximum_interval=source_dict["maximum_interval"],
                learning_steps=learning_steps,
                enable_fuzzing=source_dict["enable_fuzzing"],
            )
        except InvalidInputError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidInputError(
                f"Malformed ParameterProfile dictionary: {exc!r}"
            ) from exc

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the ParameterProfile object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the ParameterProfile object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a ParameterProfile object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing ParameterProfile object.

        Returns:
            Self: A ParameterProfile object created from the JSON string.
        """

        source_dict: ParameterProfileDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = [
    "ParameterProfile",
    "DEFAULT_TARGET_RETENTION",
    "DEFAULT_MAXIMUM_INTERVAL",
    "MAXIMUM_INTERVAL_LIMIT",
    "DEFAULT_LEARNING_STEPS",
]
