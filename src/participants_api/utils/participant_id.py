"""
Module: participant_id.py
Description: Public participant identifier generation.

Participants carry a short public identifier (printed on badges and ID
cards) next to their internal storage ID. Identifiers are 5 characters
drawn from [A-Za-z0-9]; uniqueness is checked against the store through
an injected async capability and retried a bounded number of times.

Key Components:
- generate_participant_id(): Pure random draw
- generate_unique_participant_id(): Bounded draw-and-check loop
- ParticipantIdExhaustedError: Raised when every draw collided

Dependencies: tenacity, random, string
Author: Participants API Team
"""

import random
import string
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from participants_api.utils.logger import get_logger

logger = get_logger(__name__)

PARTICIPANT_ID_LENGTH = 5
PARTICIPANT_ID_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
PARTICIPANT_ID_PATTERN = r"^[A-Za-z0-9]{5}$"

DEFAULT_MAX_ATTEMPTS = 10


class ParticipantIdExhaustedError(Exception):
    """Raised when no unused participant ID was found within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No unique participant ID found after {attempts} attempts")


class _ParticipantIdCollision(Exception):
    """A drawn candidate is already in use."""


def generate_participant_id(
    length: int = PARTICIPANT_ID_LENGTH,
    alphabet: str = PARTICIPANT_ID_ALPHABET,
    rng: Optional[random.Random] = None
) -> str:
    """
    Draw a random participant identifier.

    Each character is picked uniformly from the alphabet. This is not a
    cryptographically secure token; it only needs to be short and rarely
    collide (about 1 in 62**5 per draw).

    Args:
        length: Number of characters to draw
        alphabet: Symbols to draw from
        rng: Optional random source (for deterministic tests)

    Returns:
        Random identifier of the requested length

    Raises:
        ValueError: If length is not positive or alphabet is empty
    """
    if length <= 0:
        raise ValueError("length must be positive")
    if not alphabet:
        raise ValueError("alphabet must be a non-empty string")

    source = rng or random
    return ''.join(source.choice(alphabet) for _ in range(length))


async def generate_unique_participant_id(
    is_taken: Callable[[str], Awaitable[bool]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator: Callable[[], str] = generate_participant_id
) -> str:
    """
    Draw identifiers until one is not taken.

    Only collisions are retried. An exception raised by is_taken (for
    example an unreachable store) propagates on the first attempt.

    Args:
        is_taken: Async callable answering whether a candidate is in use
        max_attempts: Maximum number of candidates to try
        generator: Candidate factory

    Returns:
        An identifier for which is_taken answered False

    Raises:
        ParticipantIdExhaustedError: If all max_attempts candidates collided
        ValueError: If max_attempts is not positive
    """
    if max_attempts <= 0:
        raise ValueError("max_attempts must be positive")

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            retry=retry_if_exception_type(_ParticipantIdCollision),
            reraise=True
        ):
            with attempt:
                candidate = generator()
                if await is_taken(candidate):
                    logger.info(
                        "Participant ID collision, drawing again",
                        candidate=candidate,
                        attempt=attempt.retry_state.attempt_number
                    )
                    raise _ParticipantIdCollision(candidate)
                return candidate
    except _ParticipantIdCollision:
        logger.error(
            "Participant ID generation exhausted",
            max_attempts=max_attempts
        )
        raise ParticipantIdExhaustedError(max_attempts)
