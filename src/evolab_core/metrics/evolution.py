import math
import statistics
from collections import Counter
from collections.abc import Sequence

from evolab_core.models import DiversityMetrics, HistorySummary


def population_diversity(keys: Sequence[str]) -> DiversityMetrics:
    """Diversity of a population given the canonical keys of its members.

    Shannon entropy is normalized by log2(population size) so that 1.0 means
    every member is distinct.
    """
    if not keys:
        return DiversityMetrics(
            distinct_ratio=0.0,
            shannon_entropy=0.0,
            simpson_index=0.0,
            distinct_count=0,
        )

    counts = Counter(keys)
    total = len(keys)
    probabilities = [count / total for count in counts.values()]
    raw_entropy = -sum(prob * math.log2(prob) for prob in probabilities if prob > 0.0)
    max_entropy = math.log2(total) if total > 1 else 1.0
    return DiversityMetrics(
        distinct_ratio=len(counts) / total,
        shannon_entropy=raw_entropy / max_entropy if max_entropy > 0 else 0.0,
        simpson_index=1.0 - sum(prob * prob for prob in probabilities),
        distinct_count=len(counts),
    )


def summarize_history(history: Sequence[int], max_fitness: int) -> HistorySummary:
    """Summarize a best-so-far fitness curve.

    normalized_area is the mean of best/max over all steps: 1.0 means the
    target was matched from the first step on.
    """
    if not history or max_fitness <= 0:
        return HistorySummary(
            steps=len(history),
            final_best=max(history, default=0),
            steps_to_solution=None,
            normalized_area=0.0,
        )

    steps_to_solution = next(
        (step for step, value in enumerate(history, start=1) if value >= max_fitness),
        None,
    )
    return HistorySummary(
        steps=len(history),
        final_best=history[-1],
        steps_to_solution=steps_to_solution,
        normalized_area=statistics.fmean(value / max_fitness for value in history),
    )
