import random

import pytest

from evolab_core.fitness import score
from evolab_core.targets.builtin import load_builtin_targets


def test_identical_candidate_scores_its_length() -> None:
    assert score(tuple("CAT"), tuple("CAT")) == 3


def test_score_counts_matching_positions() -> None:
    assert score(tuple("CUT"), tuple("CAT")) == 2
    assert score(tuple("XYZ"), tuple("CAT")) == 0


def test_score_stays_within_bounds() -> None:
    rng = random.Random(3)
    target = tuple(rng.randrange(4) for _ in range(10))
    for _ in range(50):
        candidate = tuple(rng.randrange(4) for _ in range(10))
        assert 0 <= score(candidate, target) <= len(candidate)


def test_blank_image_scores_full_and_one_cell_off() -> None:
    target = load_builtin_targets()["blank"]
    identical = tuple(0 for _ in range(64))
    one_off = (5,) + identical[1:]

    assert target.max_fitness == 64
    assert score(identical, target.symbols) == 64
    assert score(one_off, target.symbols) == 63


def test_length_mismatch_is_rejected() -> None:
    with pytest.raises(ValueError):
        score(tuple("CA"), tuple("CAT"))
