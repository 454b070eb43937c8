import heapq
import logging
import random

from evolab_core.codec import ArtifactCodec
from evolab_core.fitness import score
from evolab_core.models import (
    Candidate,
    RankedCandidate,
    RunConfig,
    Snapshot,
    Target,
    validate_run_config,
)
from evolab_core.operators import OperatorContext, OperatorFunction, OperatorSuite

LOGGER = logging.getLogger(__name__)


class RandomSearch:
    """Uniform random sampling that remembers every distinct candidate it drew.

    ``seen`` grows without bound: one entry per distinct candidate ever drawn.
    """

    def __init__(self, target: Target, config: RunConfig, rng: random.Random | None = None) -> None:
        validate_run_config(config)
        self.target = target
        self.codec = ArtifactCodec(target.kind, target.shape)
        self.top_k_size = config.top_k
        self.rng = rng if rng is not None else random.Random(config.seed)
        self.operators = OperatorSuite(("sample",), OperatorContext.for_target(target, config))

        self.iterations = 0
        self.best_fitness = 0
        self.best_candidate: Candidate | None = None
        self.fitness_history: list[int] = []
        self.top_k: list[RankedCandidate] = []
        self.seen: dict[str, int] = {}

    def set_operator(self, name: str, function: OperatorFunction) -> None:
        self.operators.install(name, function)

    def reset_operator(self, name: str) -> None:
        self.operators.restore(name)

    def sample(self) -> Candidate:
        return self.operators.sample(self.rng)

    def run_iteration(self, candidate: Candidate | None = None) -> None:
        if candidate is None:
            candidate = self.sample()
        fitness = score(candidate, self.target.symbols)
        self.seen[self.codec.key(candidate)] = fitness

        if fitness > self.best_fitness:
            self.best_fitness = fitness
            self.best_candidate = candidate
            LOGGER.debug(
                "Iteration %s improved best fitness to %s/%s",
                self.iterations,
                fitness,
                self.target.max_fitness,
            )

        self.iterations += 1
        self.fitness_history.append(self.best_fitness)
        self._update_top_k()

    def _update_top_k(self) -> None:
        # nlargest is stable: equal fitness keeps first-seen order.
        best = heapq.nlargest(self.top_k_size, self.seen.items(), key=lambda item: item[1])
        self.top_k = [
            RankedCandidate(candidate=self.codec.from_key(key), key=key, fitness=fitness)
            for key, fitness in best
        ]

    def snapshot(self) -> Snapshot:
        return Snapshot(
            engine="sampler",
            step=self.iterations,
            best_fitness=self.best_fitness,
            best_candidate=self.best_candidate,
            best_key=(
                self.codec.key(self.best_candidate) if self.best_candidate is not None else None
            ),
            top_k=tuple(self.top_k),
            history_append=self.fitness_history[-1] if self.fitness_history else None,
            max_fitness=self.target.max_fitness,
        )
