"""
srs_engine.storage
------------------

Storage seams of the engine. The scheduler never persists anything itself: a caller reads a
CardState from a CardStateStore, schedules and commits it, writes the result back and appends
the log entry to a ReviewLogStore.

Writes to a CardStateStore carry the version that was read, so two reviews computed from the
same stale state can not both be applied.
"""

from __future__ import annotations
from collections.abc import Hashable
from datetime import datetime, timezone
import logging
import threading
from typing import NamedTuple, Protocol, runtime_checkable
from srs_engine.card import CardState
from srs_engine.errors import StaleCardStateError
from srs_engine.profile import ParameterProfile
from srs_engine.rating import Rating
from srs_engine.review_log import ReviewLogEntry
from srs_engine.scheduler import commit, schedule_candidates

logger = logging.getLogger(__name__)


class VersionedCard(NamedTuple):
    card: CardState
    version: int


@runtime_checkable
class CardStateStore(Protocol):
    """Durable per-(learner, item) card records with optimistic concurrency."""

    def get(self, key: Hashable) -> VersionedCard | None:
        """Returns the current card and its version, or None if the key is unknown."""
        ...

    def put(
        self, key: Hashable, card: CardState, expected_version: int | None
    ) -> int:
        """
        Stores `card` under `key` if the stored version still equals `expected_version`.

        `expected_version` is None when inserting a key that must not exist yet.

        Returns:
            The new version.

        Raises:
            StaleCardStateError: If the stored version differs.
        """
        ...


@runtime_checkable
class ReviewLogStore(Protocol):
    """Append-only record of review events."""

    def append(self, entry: ReviewLogEntry) -> None: ...

    def entries(self, card_id: int) -> list[ReviewLogEntry]: ...


class InMemoryCardStore:
    """
    Thread-safe CardStateStore keeping everything in a dict.
    """

    def __init__(self) -> None:
        self._cards: dict[Hashable, VersionedCard] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> VersionedCard | None:
        with self._lock:
            return self._cards.get(key)

    def put(
        self, key: Hashable, card: CardState, expected_version: int | None
    ) -> int:
        with self._lock:
            current = self._cards.get(key)
            current_version = current.version if current is not None else None

            if current_version != expected_version:
                logger.debug(
                    "Rejected write of card %s under %r: expected version %s, found %s",
                    card.card_id,
                    key,
                    expected_version,
                    current_version,
                )
                raise StaleCardStateError(
                    f"card under {key!r} is at version {current_version}, not {expected_version}"
                )

            version = 1 if current_version is None else current_version + 1
            self._cards[key] = VersionedCard(card=card, version=version)
            return version


class InMemoryReviewLogStore:
    """
    Thread-safe ReviewLogStore keeping entries in insertion order.
    """

    def __init__(self) -> None:
        self._entries: list[ReviewLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: ReviewLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self, card_id: int) -> list[ReviewLogEntry]:
        with self._lock:
            return [entry for entry in self._entries if entry.card_id == card_id]


def submit_review(
    card_store: CardStateStore,
    log_store: ReviewLogStore,
    key: Hashable,
    profile: ParameterProfile,
    rating: Rating | int,
    now: datetime | None = None,
    review_duration: int | None = None,
) -> tuple[CardState, ReviewLogEntry]:
    """
    Reviews the card stored under `key` and persists the result.

    Args:
        card_store: Where the card is read from and written back to.
        log_store: Where the review log entry is appended.
        key: The (learner, item) key of the card.
        profile: The learner's ParameterProfile.
        rating: The rating the learner gave.
        now: The date and time of the review. Defaults to now.
        review_duration: The number of milliseconds it took to review the card or None if unspecified.

    Returns:
        tuple[CardState, ReviewLogEntry]: The stored card and the appended log entry.

    Raises:
        KeyError: If no card is stored under `key`.
        StaleCardStateError: If the card changed between the read and the write.
    """

    stored = card_store.get(key)
    if stored is None:
        raise KeyError(key)

    if now is None:
        now = datetime.now(timezone.utc)

    candidates = schedule_candidates(stored.card, profile, now)
    card, review_log = commit(candidates, rating, review_duration=review_duration)

    card_store.put(key, card, expected_version=stored.version)
    log_store.append(review_log)

    return card, review_log


__all__ = [
    "VersionedCard",
    "CardStateStore",
    "ReviewLogStore",
    "InMemoryCardStore",
    "InMemoryReviewLogStore",
    "submit_review",
]
