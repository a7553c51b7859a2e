"""
srs-engine
----------

A spaced-repetition scheduling engine: an FSRS-style memory model deciding when each card
should next be reviewed and how its stability and difficulty evolve after every review.
"""

import logging

from srs_engine.state import State
from srs_engine.rating import Rating
from srs_engine.weights import Weights, DEFAULT_WEIGHTS
from srs_engine.card import CardState
from srs_engine.review_log import ReviewLogEntry
from srs_engine.profile import ParameterProfile
from srs_engine.scheduler import (
    CandidateOutcome,
    SchedulingCandidates,
    Scheduler,
    schedule_candidates,
    commit,
)
from srs_engine.errors import (
    SRSEngineError,
    InvalidInputError,
    InvalidStateError,
    InvalidRatingError,
    StaleCardStateError,
    DegenerateArithmeticError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "State",
    "Rating",
    "Weights",
    "DEFAULT_WEIGHTS",
    "CardState",
    "ReviewLogEntry",
    "ParameterProfile",
    "CandidateOutcome",
    "SchedulingCandidates",
    "Scheduler",
    "schedule_candidates",
    "commit",
    "SRSEngineError",
    "InvalidInputError",
    "InvalidStateError",
    "InvalidRatingError",
    "StaleCardStateError",
    "DegenerateArithmeticError",
]
