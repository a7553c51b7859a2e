from __future__ import annotations
from enum import IntEnum
from typing_extensions import Self
from srs_engine.errors import InvalidRatingError


class Rating(IntEnum):
    """
    Enum representing the four possible ratings when reviewing a card.
    """

    Again = 1
    Hard = 2
    Good = 3
    Easy = 4

    @classmethod
    def coerce(cls, value: Rating | int) -> Self:
        """
        Converts the integer form of a rating (1-4) into a Rating.

        Raises:
            InvalidRatingError: If the value is not a valid rating.
        """

        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRatingError(f"rating must be an integer 1-4, got {value!r}")

        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidRatingError(f"rating must be 1-4, got {value}") from exc


__all__ = ["Rating"]
