"""Random room code generation.

Codes are short and meant to be read aloud and typed on a phone, so the
alphabet leaves out characters that are easy to confuse (I, O, 0 and 1).

"""
import random

ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'

DEFAULT_ROOM_CODE_LENGTH = 6


def generate_room_code(length: int = DEFAULT_ROOM_CODE_LENGTH, rng=None) -> str:
    """Return a random uppercase room code.

    Collisions with existing rooms are possible; the caller must check.

    """
    if length < 1:
        raise ValueError("Room code length must be at least 1")
    rng = rng or random
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def canonicalize_room_code(code: str) -> str:
    """Room codes are case-insensitive; they are stored uppercase."""
    return code.strip().upper()
