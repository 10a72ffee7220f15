from __future__ import annotations

import random

import pytest

from scratchforce.passwords import (
    ALL_CHARS,
    NUMERIC_CHARS,
    SPECIAL_CHARS,
    UPPER_CHARS,
    generate_password,
)


def test_meets_character_class_minimums():
    for seed in range(50):
        password = generate_password(16, 2, 2, 2, random.Random(seed))
        assert len(password) == 16
        assert sum(c in SPECIAL_CHARS for c in password) >= 2
        assert sum(c in NUMERIC_CHARS for c in password) >= 2
        assert sum(c in UPPER_CHARS for c in password) >= 2
        assert all(c in ALL_CHARS for c in password)


def test_deterministic_for_seeded_rng():
    first = generate_password(16, 2, 2, 2, random.Random(1234))
    second = generate_password(16, 2, 2, 2, random.Random(1234))
    assert first == second


def test_minimums_may_fill_whole_length():
    password = generate_password(3, 1, 1, 1, random.Random(0))
    assert sum(c in SPECIAL_CHARS for c in password) == 1
    assert sum(c in NUMERIC_CHARS for c in password) == 1
    assert sum(c in UPPER_CHARS for c in password) == 1


def test_zero_length():
    assert generate_password(0, 0, 0, 0, random.Random(0)) == ''


def test_minimums_exceeding_length_rejected():
    with pytest.raises(ValueError, match='exceed length'):
        generate_password(4, 2, 2, 2)


def test_negative_arguments_rejected():
    with pytest.raises(ValueError, match='>= 0'):
        generate_password(8, -1, 2, 2)
