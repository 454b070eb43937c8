import math

from evolab_core.metrics.evolution import population_diversity, summarize_history


def test_diversity_of_identical_population_is_zero() -> None:
    metrics = population_diversity(["CAT"] * 5)

    assert metrics.distinct_count == 1
    assert metrics.distinct_ratio == 0.2
    assert metrics.shannon_entropy == 0.0
    assert metrics.simpson_index == 0.0


def test_diversity_of_distinct_population_is_one() -> None:
    metrics = population_diversity(["A", "B", "C", "D"])

    assert metrics.distinct_ratio == 1.0
    assert math.isclose(metrics.shannon_entropy, 1.0)
    assert math.isclose(metrics.simpson_index, 0.75)


def test_diversity_of_empty_population() -> None:
    metrics = population_diversity([])

    assert metrics.distinct_count == 0
    assert metrics.shannon_entropy == 0.0


def test_summarize_history_finds_first_solution_step() -> None:
    summary = summarize_history([1, 2, 3, 3], 3)

    assert summary.steps == 4
    assert summary.final_best == 3
    assert summary.steps_to_solution == 3
    assert math.isclose(summary.normalized_area, 0.75)


def test_summarize_history_without_solution() -> None:
    summary = summarize_history([0, 1, 1], 5)

    assert summary.steps_to_solution is None
    assert summary.final_best == 1


def test_summarize_empty_history() -> None:
    summary = summarize_history([], 5)

    assert summary.steps == 0
    assert summary.final_best == 0
    assert summary.normalized_area == 0.0
