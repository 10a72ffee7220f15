"""Strong password generation with an injectable random source."""

from __future__ import annotations

import random
import string

LOWER_CHARS = string.ascii_lowercase
UPPER_CHARS = string.ascii_uppercase
SPECIAL_CHARS = '!@#$%&*'
NUMERIC_CHARS = string.digits
ALL_CHARS = LOWER_CHARS + UPPER_CHARS + SPECIAL_CHARS + NUMERIC_CHARS


def generate_password(
    length: int,
    min_special: int,
    min_numeric: int,
    min_upper: int,
    rng: random.Random | None = None,
) -> str:
    """Return a password with guaranteed character-class minimums.

    Picks ``min_special`` special characters, ``min_numeric`` digits and
    ``min_upper`` upper-case letters, fills the rest of ``length`` from the
    full alphabet, then shuffles. Deterministic for a seeded ``rng``;
    defaults to ``random.SystemRandom``.
    """
    if min(length, min_special, min_numeric, min_upper) < 0:
        raise ValueError('password length and minimums must be >= 0')
    remaining = length - min_special - min_numeric - min_upper
    if remaining < 0:
        raise ValueError(
            f'minimum character counts ({length - remaining}) exceed length ({length})'
        )

    rng = rng or random.SystemRandom()
    chars = [rng.choice(SPECIAL_CHARS) for _ in range(min_special)]
    chars += [rng.choice(NUMERIC_CHARS) for _ in range(min_numeric)]
    chars += [rng.choice(UPPER_CHARS) for _ in range(min_upper)]
    chars += [rng.choice(ALL_CHARS) for _ in range(remaining)]
    rng.shuffle(chars)
    return ''.join(chars)
