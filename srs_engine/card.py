"""
srs_engine.card
---------------

This module defines the CardState class.

Classes:
    CardState: The memory state of one item for one learner.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import math
import time
from typing import TypedDict
from typing_extensions import Self
from srs_engine.errors import InvalidStateError
from srs_engine.memory_model import MAX_DIFFICULTY, MIN_DIFFICULTY
from srs_engine.state import State


class CardStateDict(TypedDict):
    """
    JSON-serializable dictionary representation of a CardState object.
    """

    card_id: int
    state: int
    stability: float | None
    difficulty: float | None
    repetition_count: int
    lapse_count: int
    due: str
    last_review: str | None


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_aware(value: object) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None


@dataclass(frozen=True)
class CardState:
    """
    The memory state of one item for one learner.

    A CardState is never mutated: every review produces a new object.

    Attributes:
        card_id: The id of the card.
        state: The card's current learning state.
        stability: Days until the probability of recall decays to 0.9. None only before the first review.
        difficulty: Intrinsic hardness of the card, within [1, 10]. None only before the first review.
        repetition_count: The number of processed reviews.
        lapse_count: The number of times the card was forgotten after its first review.
        due: The date and time when the card is due next.
        last_review: The date and time of the card's last review, None while the card is New.
    """

    card_id: int
    due: datetime
    state: State = State.New
    stability: float | None = None
    difficulty: float | None = None
    repetition_count: int = 0
    lapse_count: int = 0
    last_review: datetime | None = None

    def __post_init__(self) -> None:
        error_messages = []

        if not isinstance(self.state, State):
            error_messages.append(f"state must be a State, got {self.state!r}")

        if not _is_count(self.repetition_count):
            error_messages.append(
                f"repetition_count must be a non-negative integer, got {self.repetition_count!r}"
            )
        if not _is_count(self.lapse_count):
            error_messages.append(
                f"lapse_count must be a non-negative integer, got {self.lapse_count!r}"
            )

        if self.stability is not None and not (
            isinstance(self.stability, (int, float))
            and math.isfinite(self.stability)
            and self.stability > 0
        ):
            error_messages.append(
                f"stability must be a positive number, got {self.stability!r}"
            )
        if self.difficulty is not None and not (
            isinstance(self.difficulty, (int, float))
            and math.isfinite(self.difficulty)
            and MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY
        ):
            error_messages.append(
                f"difficulty must be within [{MIN_DIFFICULTY}, {MAX_DIFFICULTY}], got {self.difficulty!r}"
            )

        if not _is_aware(self.due):
            error_messages.append("due must be a timezone-aware datetime")
        if self.last_review is not None and not _is_aware(self.last_review):
            error_messages.append("last_review must be a timezone-aware datetime")

        if len(error_messages) == 0:
            error_messages.extend(self._lifecycle_errors())

        if len(error_messages) > 0:
            raise InvalidStateError(
                "Invalid CardState:\n" + "\n".join(error_messages)
            )

    def _lifecycle_errors(self) -> list[str]:
        error_messages = []

        is_new = self.state == State.New
        if is_new != (self.last_review is None):
            error_messages.append(
                "last_review must be absent exactly when the card is New"
            )
        if is_new != (self.repetition_count == 0):
            error_messages.append(
                "repetition_count must be 0 exactly when the card is New"
            )

        if not is_new and (self.stability is None or self.difficulty is None):
            error_messages.append(
                f"a card in the {self.state.name} state needs stability and difficulty"
            )

        if self.last_review is not None and self.due < self.last_review:
            error_messages.append("due must not be earlier than last_review")

        return error_messages

    @classmethod
    def new(cls, card_id: int | None = None, due: datetime | None = None) -> Self:
        """
        Creates a card in the New state.

        Args:
            card_id: The id of the card. Defaults to the epoch milliseconds of when the card was created.
            due: When the card is first due. Defaults to now.

        Returns:
            A new CardState object.
        """

        if card_id is None:
            # epoch milliseconds of when the card was created
            card_id = int(datetime.now(timezone.utc).timestamp() * 1000)
            # wait 1ms to prevent potential card_id collision on next card creation
            time.sleep(0.001)

        if due is None:
            due = datetime.now(timezone.utc)

        return cls(card_id=card_id, due=due)

    def to_dict(self) -> CardStateDict:
        """
        Returns a JSON-serializable dictionary representation of the CardState object.

        This method is specifically useful for storing CardState objects in a database.

        Returns:
            A dictionary representation of the CardState object.
        """

        return {
            "card_id": self.card_id,
            "state": self.state.value,
            "stability": self.stability,
            "difficulty": self.difficulty,
            "repetition_count": self.repetition_count,
            "lapse_count": self.lapse_count,
            "due": self.due.isoformat(),
            "last_review": self.last_review.isoformat() if self.last_review else None,
        }

    @classmethod
    def from_dict(cls, source_dict: CardStateDict) -> Self:
        """
        Creates a CardState object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing CardState object.

        Returns:
            A CardState object created from the provided dictionary.

        Raises:
            InvalidStateError: If the dictionary is missing fields or describes an invalid card.
        """

        try:
            return cls(
                card_id=int(source_dict["card_id"]),
                state=State(int(source_dict["state"])),
                stability=(
                    float(source_dict["stability"])
                    if source_dict["stability"] is not None
                    else None
                ),
                difficulty=(
                    float(source_dict["difficulty"])
                    if source_dict["difficulty"] is not None
                    else None
                ),
                repetition_count=int(source_dict["repetition_count"]),
                lapse_count=int(source_dict["lapse_count"]),
                due=datetime.fromisoformat(source_dict["due"]),
                last_review=(
                    datetime.fromisoformat(source_dict["last_review"])
                    if source_dict["last_review"]
                    else None
                ),
            )
        except InvalidStateError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidStateError(f"Malformed CardState dictionary: {exc!r}") from exc

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the CardState object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the CardState object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a CardState object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing CardState object.

        Returns:
            Self: A CardState object created from the JSON string.
        """

        source_dict: CardStateDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["CardState"]
