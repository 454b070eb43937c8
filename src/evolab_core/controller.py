import logging
import random
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import StrEnum

from evolab_core.engines.population import GeneticAlgorithm
from evolab_core.engines.sampler import RandomSearch
from evolab_core.models import (
    EngineName,
    InvariantViolationError,
    OperatorOverrideError,
    RunConfig,
    Snapshot,
    Target,
    validate_run_config,
)
from evolab_core.operators import (
    OperatorContext,
    OperatorFunction,
    OperatorSuite,
    check_signature,
)
from evolab_core.operators.scripted import compile_override
from evolab_core.targets.builtin import resolve_target

LOGGER = logging.getLogger(__name__)


class RunStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ComparisonState:
    status: RunStatus
    tick: int
    solved_by: tuple[EngineName, ...]
    population: Snapshot
    sampler: Snapshot

    @classmethod
    def empty(cls) -> "ComparisonState":
        return cls(
            status=RunStatus.IDLE,
            tick=0,
            solved_by=(),
            population=Snapshot.empty("population"),
            sampler=Snapshot.empty("sampler"),
        )


SnapshotObserver = Callable[[ComparisonState], None]


class RunController:
    """Steps the GA and random search side by side, one step each per tick.

    Observers receive the new ComparisonState after every tick. The run stops on
    its own as soon as either engine matches the target exactly.
    """

    def __init__(self, config: RunConfig, observers: Iterable[SnapshotObserver] = ()) -> None:
        self.config = config
        self._observers = list(observers)
        self._overrides: dict[str, OperatorFunction] = {}
        self.target: Target | None = None
        self.population_engine: GeneticAlgorithm | None = None
        self.sampler_engine: RandomSearch | None = None
        self.status = RunStatus.IDLE
        self.last_error: OperatorOverrideError | None = None
        self._tick = 0
        self._state = ComparisonState.empty()

    @property
    def state(self) -> ComparisonState:
        return self._state

    @property
    def overrides(self) -> dict[str, OperatorFunction]:
        return dict(self._overrides)

    def add_observer(self, observer: SnapshotObserver) -> None:
        self._observers.append(observer)

    def start(self) -> ComparisonState:
        validate_run_config(self.config)
        target = resolve_target(self.config)
        seeder = random.Random(self.config.seed)
        population_engine = GeneticAlgorithm(
            target, self.config, rng=random.Random(seeder.getrandbits(64))
        )
        sampler_engine = RandomSearch(target, self.config, rng=random.Random(seeder.getrandbits(64)))
        for name, function in self._overrides.items():
            engine = sampler_engine if name == "sample" else population_engine
            engine.set_operator(name, function)

        self.target = target
        self.population_engine = population_engine
        self.sampler_engine = sampler_engine
        self.status = RunStatus.RUNNING
        self.last_error = None
        self._tick = 0
        self._state = ComparisonState(
            status=self.status,
            tick=0,
            solved_by=(),
            population=population_engine.snapshot(),
            sampler=sampler_engine.snapshot(),
        )
        LOGGER.info(
            "Started %s run on %r (max fitness %s, population %s)",
            target.kind,
            target.name,
            target.max_fitness,
            self.config.population_size,
        )
        return self._state

    def tick(self) -> ComparisonState | None:
        if self.status is not RunStatus.RUNNING:
            return None
        population_engine = self.population_engine
        sampler_engine = self.sampler_engine
        if population_engine is None or sampler_engine is None:
            raise InvariantViolationError("Running controller has no engines")

        try:
            sample = sampler_engine.sample()
            population_engine.run_generation()
        except OperatorOverrideError as exc:
            self.last_error = exc
            self._set_status(RunStatus.PAUSED)
            LOGGER.warning("Tick %s aborted: %s", self._tick + 1, exc)
            raise
        sampler_engine.run_iteration(sample)
        self._tick += 1

        if len(population_engine.population) != self.config.population_size:
            raise InvariantViolationError(
                f"Population size drifted to {len(population_engine.population)}, "
                f"expected {self.config.population_size}"
            )

        population_snapshot = population_engine.snapshot()
        sampler_snapshot = sampler_engine.snapshot()
        solved_by = tuple(
            snapshot.engine
            for snapshot in (population_snapshot, sampler_snapshot)
            if snapshot.best_fitness >= snapshot.max_fitness
        )
        if solved_by:
            self.status = RunStatus.STOPPED
            LOGGER.info("Target matched at tick %s by %s", self._tick, ", ".join(solved_by))

        self._state = ComparisonState(
            status=self.status,
            tick=self._tick,
            solved_by=solved_by,
            population=population_snapshot,
            sampler=sampler_snapshot,
        )
        for observer in self._observers:
            observer(self._state)
        return self._state

    def run(
        self,
        max_ticks: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ComparisonState:
        if self.status is RunStatus.IDLE:
            self.start()
        ran = 0
        while self.status is RunStatus.RUNNING and (max_ticks is None or ran < max_ticks):
            if self._tick >= self.config.max_ticks:
                LOGGER.info("Tick limit %s reached without a match", self.config.max_ticks)
                self.stop()
                break
            self.tick()
            ran += 1
            if self.status is RunStatus.RUNNING and self.config.tick_delay_seconds > 0:
                sleep(self.config.tick_delay_seconds)
        return self._state

    def pause(self) -> None:
        if self.status is RunStatus.RUNNING:
            self._set_status(RunStatus.PAUSED)

    def resume(self) -> None:
        if self.status is RunStatus.PAUSED:
            self.last_error = None
            self._set_status(RunStatus.RUNNING)

    def stop(self) -> None:
        if self.status in (RunStatus.RUNNING, RunStatus.PAUSED):
            self._set_status(RunStatus.STOPPED)

    def reset(self) -> ComparisonState:
        self.target = None
        self.population_engine = None
        self.sampler_engine = None
        self.status = RunStatus.IDLE
        self.last_error = None
        self._tick = 0
        self._state = ComparisonState.empty()
        return self._state

    def set_override(self, name: str, function: OperatorFunction) -> None:
        check_signature(name, function)
        engine = self._live_engine_for(name)
        if engine is not None:
            engine.set_operator(name, function)
        else:
            # No run yet: probe against the configured target.
            target = resolve_target(validate_run_config(self.config))
            suite = OperatorSuite((name,), OperatorContext.for_target(target, self.config))
            suite.install(name, function)
        self._overrides[name] = function

    def load_override(self, name: str, source: str) -> None:
        self.set_override(name, compile_override(name, source))

    def clear_override(self, name: str) -> None:
        self._overrides.pop(name, None)
        engine = self._live_engine_for(name)
        if engine is not None:
            engine.reset_operator(name)

    def _live_engine_for(self, name: str) -> GeneticAlgorithm | RandomSearch | None:
        if name == "sample":
            return self.sampler_engine
        return self.population_engine

    def _set_status(self, status: RunStatus) -> None:
        self.status = status
        self._state = replace(self._state, status=status)
