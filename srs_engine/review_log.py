"""
srs_engine.review_log
---------------------

This module defines the ReviewLogEntry class.

Classes:
    ReviewLogEntry: Represents the log entry of a card that has been reviewed.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import TypedDict
import json
from typing_extensions import Self
from srs_engine.errors import InvalidInputError
from srs_engine.rating import Rating
from srs_engine.state import State


class ReviewLogEntryDict(TypedDict):
    """
    JSON-serializable dictionary representation of a ReviewLogEntry object.
    """

    card_id: int
    rating: int
    prior_state: int
    elapsed_days: float
    scheduled_days: int
    stability: float
    difficulty: float
    reviewed_at: str
    due: str
    review_duration: int | None


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Represents the log entry of a card that has been reviewed.

    Attributes:
        card_id: The id of the card being reviewed.
        rating: The rating given to the card during the review.
        prior_state: The card's state before the review.
        elapsed_days: Days since the previous review, 0 for the first review.
        scheduled_days: Whole days until the card is due again, 0 for a sub-day learning step.
        stability: The card's stability after the review.
        difficulty: The card's difficulty after the review.
        reviewed_at: The date and time of the review.
        due: The date and time the card was scheduled for.
        review_duration: The number of milliseconds it took to review the card or None if unspecified.
    """

    card_id: int
    rating: Rating
    prior_state: State
    elapsed_days: float
    scheduled_days: int
    stability: float
    difficulty: float
    reviewed_at: datetime
    due: datetime
    review_duration: int | None = None

    def to_dict(self) -> ReviewLogEntryDict:
        """
        Returns a dictionary representation of the ReviewLogEntry object.

        Returns:
            A dictionary representation of the ReviewLogEntry object.
        """

        return {
            "card_id": self.card_id,
            "rating": int(self.rating),
            "prior_state": int(self.prior_state),
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "stability": self.stability,
            "difficulty": self.difficulty,
            "reviewed_at": self.reviewed_at.isoformat(),
            "due": self.due.isoformat(),
            "review_duration": self.review_duration,
        }

    @classmethod
    def from_dict(cls, source_dict: ReviewLogEntryDict) -> Self:
        """
        Creates a ReviewLogEntry object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing ReviewLogEntry object.

        Returns:
            A ReviewLogEntry object created from the provided dictionary.

        Raises:
            InvalidInputError: If a field is missing or cannot be converted.
        """

        try:
            return cls(
                card_id=int(source_dict["card_id"]),
                rating=Rating.coerce(int(source_dict["rating"])),
                prior_state=State(int(source_dict["prior_state"])),
                elapsed_days=float(source_dict["elapsed_days"]),
                scheduled_days=int(source_dict["scheduled_days"]),
                stability=float(source_dict["stability"]),
                difficulty=float(source_dict["difficulty"]),
                reviewed_at=datetime.fromisoformat(source_dict["reviewed_at"]),
                due=datetime.fromisoformat(source_dict["due"]),
                review_duration=source_dict["review_duration"],
            )
        except InvalidInputError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidInputError(
                f"Malformed ReviewLogEntry dictionary: {exc!r}"
            ) from exc

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the ReviewLogEntry object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the ReviewLogEntry object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a ReviewLogEntry object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing ReviewLogEntry object.

        Returns:
            Self: A ReviewLogEntry object created from the JSON string.
        """

        source_dict: ReviewLogEntryDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["ReviewLogEntry"]
