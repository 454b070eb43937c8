from dataclasses import dataclass, field
from typing import Literal, get_args

Symbol = str | int
Candidate = tuple[Symbol, ...]
ArtifactKind = Literal["word", "image"]
EngineName = Literal["population", "sampler"]
OperatorName = Literal["select", "crossover", "mutate", "sample"]

MODE_DEFAULTS: dict[str, dict[str, object]] = {
    "word": {"target": "HELLO", "population_size": 50, "mutation_rate": 0.1, "tournament_size": 3},
    "image": {
        "target": "smiley",
        "population_size": 150,
        "mutation_rate": 0.05,
        "tournament_size": 3,
    },
}


class ConfigError(ValueError):
    """Raised when a run configuration is rejected before any engine is built."""

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field = field_name
        self.message = message


class OperatorOverrideError(RuntimeError):
    """Raised when a user-supplied operator fails to install or misbehaves at run time."""

    def __init__(self, operator: str, message: str) -> None:
        super().__init__(f"{operator} override failed: {message}")
        self.operator = operator
        self.message = message


class InvariantViolationError(RuntimeError):
    """Raised when engine state breaks an invariant; indicates a logic defect."""


@dataclass(frozen=True)
class RunConfig:
    seed: int = 0
    mode: ArtifactKind = "word"
    target: str = "HELLO"

    population_size: int = 50
    mutation_rate: float = 0.1
    tournament_size: int = 3
    top_k: int = 10

    palette_size: int = 16
    tick_delay_seconds: float = 0.1
    max_ticks: int = 10000

    overrides: dict[str, str] = field(default_factory=dict)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def validate_run_config(config: RunConfig) -> RunConfig:
    if not _is_int(config.population_size) or config.population_size < 1:
        raise ConfigError(
            "population_size",
            f"must be a positive integer, got {config.population_size!r}",
        )
    if not _is_real(config.mutation_rate) or not 0.0 <= config.mutation_rate <= 1.0:
        raise ConfigError("mutation_rate", f"must be within [0, 1], got {config.mutation_rate!r}")
    if not _is_int(config.tournament_size) or config.tournament_size < 1:
        raise ConfigError(
            "tournament_size",
            f"must be a positive integer, got {config.tournament_size!r}",
        )
    if not _is_int(config.top_k) or config.top_k < 1:
        raise ConfigError("top_k", f"must be a positive integer, got {config.top_k!r}")
    if config.mode not in get_args(ArtifactKind):
        raise ConfigError("mode", f"must be one of {get_args(ArtifactKind)}, got {config.mode!r}")
    if not isinstance(config.target, str) or not config.target.strip():
        raise ConfigError("target", "must be a non-empty string")
    if not _is_int(config.palette_size) or not 2 <= config.palette_size <= 16:
        raise ConfigError("palette_size", f"must be within [2, 16], got {config.palette_size!r}")
    if not _is_real(config.tick_delay_seconds) or config.tick_delay_seconds < 0:
        raise ConfigError(
            "tick_delay_seconds",
            f"must be a non-negative number, got {config.tick_delay_seconds!r}",
        )
    if not _is_int(config.max_ticks) or config.max_ticks < 1:
        raise ConfigError("max_ticks", f"must be a positive integer, got {config.max_ticks!r}")
    if not isinstance(config.overrides, dict):
        raise ConfigError("overrides", "must be a mapping of operator name to file path")
    unknown = sorted(set(config.overrides) - set(get_args(OperatorName)))
    if unknown:
        raise ConfigError(
            "overrides", f"unknown operators {unknown}; expected {get_args(OperatorName)}"
        )
    return config


@dataclass(frozen=True)
class Target:
    name: str
    kind: ArtifactKind
    symbols: Candidate
    alphabet: tuple[Symbol, ...]
    shape: tuple[int, ...]

    @property
    def length(self) -> int:
        return len(self.symbols)

    @property
    def max_fitness(self) -> int:
        return len(self.symbols)


@dataclass(frozen=True)
class RankedCandidate:
    candidate: Candidate
    key: str
    fitness: int


@dataclass(frozen=True)
class DiversityMetrics:
    distinct_ratio: float
    shannon_entropy: float
    simpson_index: float
    distinct_count: int


@dataclass(frozen=True)
class Snapshot:
    engine: EngineName
    step: int
    best_fitness: int
    best_candidate: Candidate | None
    best_key: str | None
    top_k: tuple[RankedCandidate, ...]
    history_append: int | None
    max_fitness: int
    diversity: DiversityMetrics | None = None

    @classmethod
    def empty(cls, engine: EngineName) -> "Snapshot":
        return cls(
            engine=engine,
            step=0,
            best_fitness=0,
            best_candidate=None,
            best_key=None,
            top_k=(),
            history_append=None,
            max_fitness=0,
        )


@dataclass(frozen=True)
class HistorySummary:
    steps: int
    final_best: int
    steps_to_solution: int | None
    normalized_area: float
