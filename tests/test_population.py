import random

import pytest

from evolab_core.engines.population import GeneticAlgorithm
from evolab_core.fitness import score
from evolab_core.models import OperatorOverrideError, RunConfig
from evolab_core.targets.builtin import resolve_target, word_target


def _engine(population_size: int = 12, seed: int = 3, **overrides) -> GeneticAlgorithm:
    config = RunConfig(target="CAT", population_size=population_size, **overrides)
    return GeneticAlgorithm(word_target("CAT"), config, rng=random.Random(seed))


def test_initial_population_has_configured_size_and_alphabet() -> None:
    engine = _engine()

    assert len(engine.population) == 12
    for candidate in engine.population:
        assert len(candidate) == 3
        assert set(candidate) <= set(engine.target.alphabet)
    assert engine.generation == 0
    assert engine.snapshot().history_append is None


@pytest.mark.parametrize("population_size", [1, 2, 5, 12])
def test_population_size_is_preserved_across_generations(population_size: int) -> None:
    engine = _engine(population_size=population_size)

    for _ in range(6):
        engine.run_generation()
        assert len(engine.population) == population_size

    assert engine.generation == 6


def test_best_fitness_history_never_decreases() -> None:
    engine = _engine(mutation_rate=0.5)

    for _ in range(25):
        engine.run_generation()

    history = engine.fitness_history
    assert len(history) == 25
    assert all(later >= earlier for earlier, later in zip(history, history[1:], strict=False))
    assert all(0 <= value <= 3 for value in history)


def test_elite_survives_into_next_generation() -> None:
    engine = _engine(mutation_rate=1.0)
    scores = [score(candidate, engine.target.symbols) for candidate in engine.population]
    elite = engine.population[scores.index(max(scores))]

    engine.run_generation()

    assert engine.population[0] == elite


def test_evaluate_scores_each_distinct_candidate_once() -> None:
    engine = _engine(population_size=4)
    engine.population = [tuple("CAT"), tuple("CAT"), tuple("CUT"), tuple("XYZ")]

    engine.evaluate()

    assert engine.fitness == {"CAT": 3, "CUT": 2, "XYZ": 0}
    assert engine.best_fitness == 3
    assert engine.best_candidate == tuple("CAT")
    assert [item.key for item in engine.top_k] == ["CAT", "CUT", "XYZ"]
    assert engine.diversity is not None
    assert engine.diversity.distinct_count == 3


def test_top_k_is_distinct_sorted_and_truncated() -> None:
    engine = _engine(population_size=30, top_k=4)

    engine.run_generation()

    keys = [item.key for item in engine.top_k]
    fitnesses = [item.fitness for item in engine.top_k]
    assert len(keys) == len(set(keys)) <= 4
    assert fitnesses == sorted(fitnesses, reverse=True)


def test_best_is_only_replaced_on_strict_improvement() -> None:
    engine = _engine(population_size=2)
    engine.population = [tuple("CUT"), tuple("CAX")]
    engine.evaluate()
    assert engine.best_candidate == tuple("CUT")

    engine.population = [tuple("COT"), tuple("CAX")]
    engine.evaluate()
    assert engine.best_candidate == tuple("CUT")


def test_matching_target_reaches_max_fitness() -> None:
    engine = _engine(population_size=2)
    engine.population = [tuple("CAT"), tuple("XXX")]

    engine.run_generation()

    snapshot = engine.snapshot()
    assert snapshot.engine == "population"
    assert snapshot.best_fitness == snapshot.max_fitness == 3
    assert snapshot.best_key == "CAT"
    assert snapshot.history_append == 3
    assert snapshot.step == 1


def test_same_seed_reproduces_run() -> None:
    first = _engine(seed=21)
    second = _engine(seed=21)

    for _ in range(10):
        first.run_generation()
        second.run_generation()

    assert first.population == second.population
    assert first.fitness_history == second.fitness_history


def test_failing_override_leaves_generation_uncommitted() -> None:
    engine = _engine()
    engine.run_generation()
    population_before = list(engine.population)
    history_before = list(engine.fitness_history)
    scored_before = (engine.best_fitness, engine.best_candidate, engine.top_k, engine.fitness)
    diversity_before = engine.diversity
    calls: list[int] = []

    def mutate(candidate, mutation_rate, alphabet, rng):
        calls.append(1)
        if len(calls) > 3:
            raise IndexError("out of range")
        return candidate

    engine.set_operator("mutate", mutate)

    with pytest.raises(OperatorOverrideError) as excinfo:
        engine.run_generation()

    assert excinfo.value.operator == "mutate"
    assert engine.population == population_before
    assert engine.fitness_history == history_before
    assert engine.generation == 1
    assert (engine.best_fitness, engine.best_candidate, engine.top_k, engine.fitness) == (
        scored_before
    )
    assert engine.diversity == diversity_before


def test_failing_override_on_fresh_engine_records_nothing() -> None:
    engine = GeneticAlgorithm(
        word_target("HELLO"), RunConfig(target="HELLO"), rng=random.Random(0)
    )
    calls: list[int] = []

    def mutate(candidate, mutation_rate, alphabet, rng):
        calls.append(1)
        if len(calls) > 1:
            raise RuntimeError("always fails after install")
        return candidate

    engine.set_operator("mutate", mutate)

    with pytest.raises(OperatorOverrideError):
        engine.run_generation()

    assert engine.best_fitness == 0
    assert engine.best_candidate is None
    assert engine.top_k == []
    assert engine.fitness == {}
    assert engine.diversity is None
    assert engine.fitness_history == []
    assert engine.snapshot().best_key is None


def test_override_is_used_and_can_be_reset() -> None:
    engine = _engine(population_size=6, mutation_rate=0.0)

    def crossover(parent_a, parent_b, rng):
        return tuple("CAT"), tuple("CAT")

    engine.set_operator("crossover", crossover)
    engine.run_generation()
    engine.run_generation()
    assert engine.best_fitness == 3

    engine.reset_operator("crossover")
    assert engine.operators.overridden == frozenset()


def test_image_mode_keeps_cells_in_palette() -> None:
    config = RunConfig(mode="image", target="heart", population_size=20, mutation_rate=0.05)
    target = resolve_target(config)
    engine = GeneticAlgorithm(target, config, rng=random.Random(1))

    for _ in range(3):
        engine.run_generation()

    assert all(len(candidate) == 64 for candidate in engine.population)
    assert all(set(candidate) <= set(range(16)) for candidate in engine.population)
    assert engine.snapshot().max_fitness == 64
    assert "|" in (engine.snapshot().best_key or "")


def test_word_scenario_with_matching_member() -> None:
    engine = _engine(population_size=4, mutation_rate=0.0, tournament_size=1)
    engine.population = [tuple("XXX"), tuple("CAT"), tuple("CXX"), tuple("XAX")]

    engine.evaluate()

    assert engine.best_fitness == 3
    assert engine.best_candidate == tuple("CAT")

    engine.evolve()
    assert engine.population[0] == tuple("CAT")
    assert len(engine.population) == 4
