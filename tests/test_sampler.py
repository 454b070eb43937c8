import random

import pytest

from evolab_core.engines.sampler import RandomSearch
from evolab_core.models import OperatorOverrideError, RunConfig
from evolab_core.targets.builtin import word_target


def _engine(seed: int = 4, **overrides) -> RandomSearch:
    config = RunConfig(target="CAT", **overrides)
    return RandomSearch(word_target("CAT"), config, rng=random.Random(seed))


def test_fresh_sampler_is_empty() -> None:
    snapshot = _engine().snapshot()

    assert snapshot.engine == "sampler"
    assert snapshot.step == 0
    assert snapshot.best_fitness == 0
    assert snapshot.best_key is None
    assert snapshot.top_k == ()
    assert snapshot.history_append is None


def test_every_iteration_appends_best_so_far() -> None:
    engine = _engine()

    for _ in range(40):
        engine.run_iteration()

    assert engine.iterations == 40
    assert len(engine.fitness_history) == 40
    history = engine.fitness_history
    assert all(later >= earlier for earlier, later in zip(history, history[1:], strict=False))
    assert history[-1] == engine.best_fitness == max(engine.seen.values())


def test_duplicate_draws_are_remembered_once() -> None:
    engine = _engine()

    engine.run_iteration(tuple("CAX"))
    engine.run_iteration(tuple("CAX"))

    assert engine.seen == {"CAX": 2}
    assert engine.iterations == 2
    assert engine.fitness_history == [2, 2]
    assert [item.key for item in engine.top_k] == ["CAX"]


def test_equal_fitness_does_not_replace_best() -> None:
    engine = _engine()

    engine.run_iteration(tuple("CUX"))
    engine.run_iteration(tuple("CXT"))

    assert engine.best_candidate == tuple("CUX")
    assert engine.snapshot().best_key == "CUX"


def test_top_k_keeps_first_seen_order_on_ties() -> None:
    engine = _engine(top_k=3)

    for word in ("XAX", "CXX", "XXT", "XXX"):
        engine.run_iteration(tuple(word))

    assert [item.key for item in engine.top_k] == ["XAX", "CXX", "XXT"]
    assert [item.candidate for item in engine.top_k][0] == ("X", "A", "X")


def test_top_k_is_sorted_by_fitness() -> None:
    engine = _engine(top_k=3)

    for word in ("XXX", "CXX", "CAT", "CAX"):
        engine.run_iteration(tuple(word))

    assert [(item.key, item.fitness) for item in engine.top_k] == [
        ("CAT", 3),
        ("CAX", 2),
        ("CXX", 1),
    ]
    assert engine.snapshot().best_fitness == engine.snapshot().max_fitness


def test_same_seed_reproduces_draws() -> None:
    first = _engine(seed=12)
    second = _engine(seed=12)

    assert [first.sample() for _ in range(10)] == [second.sample() for _ in range(10)]


def test_sample_override_feeds_iterations() -> None:
    engine = _engine()
    engine.set_operator("sample", lambda length, alphabet, rng: ("C", "A", "T"))

    engine.run_iteration()

    assert engine.best_fitness == 3
    assert engine.operators.overridden == frozenset({"sample"})


def test_malformed_sample_override_is_rejected_on_install() -> None:
    engine = _engine()

    with pytest.raises(OperatorOverrideError):
        engine.set_operator("sample", lambda length, alphabet, rng: ("C", "A"))

    assert engine.operators.overridden == frozenset()
