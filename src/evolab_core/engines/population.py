import logging
import random
from dataclasses import dataclass

from evolab_core.codec import ArtifactCodec
from evolab_core.fitness import score
from evolab_core.metrics.evolution import population_diversity
from evolab_core.models import (
    Candidate,
    DiversityMetrics,
    RankedCandidate,
    RunConfig,
    Snapshot,
    Target,
    validate_run_config,
)
from evolab_core.operators import (
    OperatorContext,
    OperatorFunction,
    OperatorSuite,
    uniform_sample,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Evaluation:
    population: list[Candidate]
    fitness: dict[str, int]
    scores: list[int]
    best_fitness: int
    best_candidate: Candidate | None
    top_k: list[RankedCandidate]
    diversity: DiversityMetrics


class GeneticAlgorithm:
    """Generational GA: tournament selection, single-point crossover,
    resampling mutation and single-member elitism.

    Selection, crossover and mutation go through ``self.operators`` and can be
    replaced at run time with ``set_operator``. A generation whose breeding
    raises leaves every attribute as it was.
    """

    def __init__(self, target: Target, config: RunConfig, rng: random.Random | None = None) -> None:
        validate_run_config(config)
        self.target = target
        self.codec = ArtifactCodec(target.kind, target.shape)
        self.population_size = config.population_size
        self.mutation_rate = config.mutation_rate
        self.tournament_size = config.tournament_size
        self.top_k_size = config.top_k
        self.rng = rng if rng is not None else random.Random(config.seed)
        self.operators = OperatorSuite(
            ("select", "crossover", "mutate"), OperatorContext.for_target(target, config)
        )

        self.population: list[Candidate] = []
        self.fitness: dict[str, int] = {}
        self.generation = 0
        self.best_fitness = 0
        self.best_candidate: Candidate | None = None
        self.fitness_history: list[int] = []
        self.top_k: list[RankedCandidate] = []
        self.diversity: DiversityMetrics | None = None
        self._evaluation: _Evaluation | None = None

        self.initialize_population()

    def initialize_population(self) -> None:
        self.population = [
            uniform_sample(self.target.length, self.target.alphabet, self.rng)
            for _ in range(self.population_size)
        ]

    def set_operator(self, name: str, function: OperatorFunction) -> None:
        self.operators.install(name, function)

    def reset_operator(self, name: str) -> None:
        self.operators.restore(name)

    def _score_population(self) -> _Evaluation:
        fitness: dict[str, int] = {}
        keys: list[str] = []
        for candidate in self.population:
            key = self.codec.key(candidate)
            keys.append(key)
            if key not in fitness:
                fitness[key] = score(candidate, self.target.symbols)

        best_fitness = self.best_fitness
        best_candidate = self.best_candidate
        for candidate, key in zip(self.population, keys, strict=True):
            if fitness[key] > best_fitness:
                best_fitness = fitness[key]
                best_candidate = candidate

        ranked: dict[str, RankedCandidate] = {}
        for candidate, key in zip(self.population, keys, strict=True):
            ranked.setdefault(key, RankedCandidate(candidate, key, fitness[key]))
        top_k = sorted(ranked.values(), key=lambda item: item.fitness, reverse=True)

        return _Evaluation(
            population=self.population,
            fitness=fitness,
            scores=[fitness[key] for key in keys],
            best_fitness=best_fitness,
            best_candidate=best_candidate,
            top_k=top_k[: self.top_k_size],
            diversity=population_diversity(keys),
        )

    def _commit(self, evaluation: _Evaluation) -> None:
        if evaluation.best_fitness > self.best_fitness:
            LOGGER.debug(
                "Generation %s improved best fitness to %s/%s",
                self.generation,
                evaluation.best_fitness,
                self.target.max_fitness,
            )
        self.fitness = evaluation.fitness
        self.best_fitness = evaluation.best_fitness
        self.best_candidate = evaluation.best_candidate
        self.top_k = evaluation.top_k
        self.diversity = evaluation.diversity
        self._evaluation = evaluation

    def evaluate(self) -> None:
        self._commit(self._score_population())

    def _population_scores(self) -> list[int]:
        if self._evaluation is None or self._evaluation.population is not self.population:
            self.evaluate()
        return self._evaluation.scores

    def tournament_selection(self) -> Candidate:
        return self.operators.select(self.population, self._population_scores(), self.rng)

    def crossover(self, parent_a: Candidate, parent_b: Candidate) -> tuple[Candidate, Candidate]:
        return self.operators.crossover(parent_a, parent_b, self.rng)

    def mutate(self, candidate: Candidate) -> Candidate:
        return self.operators.mutate(candidate, self.rng)

    def _breed(self, scores: list[int]) -> list[Candidate]:
        elite_index = max(range(len(self.population)), key=scores.__getitem__)
        next_population = [self.population[elite_index]]

        while len(next_population) < self.population_size:
            parent_a = self.operators.select(self.population, scores, self.rng)
            parent_b = self.operators.select(self.population, scores, self.rng)
            child_a, child_b = self.crossover(parent_a, parent_b)
            next_population.append(self.mutate(child_a))
            if len(next_population) < self.population_size:
                next_population.append(self.mutate(child_b))
        return next_population

    def evolve(self) -> None:
        self.population = self._breed(self._population_scores())
        self.generation += 1

    def run_generation(self) -> None:
        evaluation = self._score_population()
        next_population = self._breed(evaluation.scores)
        self._commit(evaluation)
        self.fitness_history.append(self.best_fitness)
        self.population = next_population
        self.generation += 1

    def snapshot(self) -> Snapshot:
        return Snapshot(
            engine="population",
            step=self.generation,
            best_fitness=self.best_fitness,
            best_candidate=self.best_candidate,
            best_key=(
                self.codec.key(self.best_candidate) if self.best_candidate is not None else None
            ),
            top_k=tuple(self.top_k),
            history_append=self.fitness_history[-1] if self.fitness_history else None,
            max_fitness=self.target.max_fitness,
            diversity=self.diversity,
        )
