"""
srs_engine.errors
-----------------

Exception types raised by the scheduling engine.

Invalid input is always rejected before any computation, so none of these
errors ever leave a partially updated card behind.
"""


class SRSEngineError(Exception):
    """
    Base class for the recoverable errors raised by srs_engine.
    """


class InvalidInputError(SRSEngineError, ValueError):
    """
    A card, profile, weight vector, timestamp or rating is out of contract.
    """


class InvalidStateError(InvalidInputError):
    """
    A CardState violates one of its invariants.
    """


class InvalidRatingError(InvalidInputError):
    """
    A rating is not one of Again, Hard, Good or Easy.
    """


class StaleCardStateError(SRSEngineError):
    """
    A store write was attempted against a card version that is no longer current.
    """


class DegenerateArithmeticError(AssertionError):
    """
    A memory model formula produced NaN, infinity or overflowed.

    This is a programming-contract violation, not a recoverable input error.
    """


__all__ = [
    "SRSEngineError",
    "InvalidInputError",
    "InvalidStateError",
    "InvalidRatingError",
    "StaleCardStateError",
    "DegenerateArithmeticError",
]
