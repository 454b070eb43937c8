import hashlib
import logging
import platform
import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, fields, replace
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import yaml

from evolab_core.controller import ComparisonState, RunController, SnapshotObserver
from evolab_core.logging.events import write_run_finished, write_run_start, write_tick
from evolab_core.metrics.evolution import summarize_history
from evolab_core.models import (
    MODE_DEFAULTS,
    ArtifactKind,
    ConfigError,
    EngineName,
    RunConfig,
    validate_run_config,
)
from evolab_core.operators.scripted import load_override_file

LOGGER = logging.getLogger(__name__)

_CONFIG_FIELDS = {item.name for item in fields(RunConfig)}


@dataclass(frozen=True)
class RunSummary:
    run_id: str
    log_path: Path
    solved_by: tuple[EngineName, ...]
    ticks: int
    population_best: int
    sampler_best: int
    population_best_key: str | None
    sampler_best_key: str | None
    max_fitness: int


def build_run_config(values: dict[str, object] | None = None) -> RunConfig:
    values = dict(values or {})
    unknown = sorted(set(values) - _CONFIG_FIELDS)
    if unknown:
        raise ConfigError("config", f"unknown keys: {unknown}")
    mode = values.get("mode", "word")
    if not isinstance(mode, str) or mode not in MODE_DEFAULTS:
        raise ConfigError("mode", f"must be one of {sorted(MODE_DEFAULTS)}, got {mode!r}")
    return validate_run_config(RunConfig(**{**MODE_DEFAULTS[mode], **values}))


def load_run_config(
    config_path: Path | None,
    seed_override: int | None = None,
    mode_override: ArtifactKind | None = None,
    target_override: str | None = None,
    population_size_override: int | None = None,
    mutation_rate_override: float | None = None,
    tournament_size_override: int | None = None,
    max_ticks_override: int | None = None,
    tick_delay_override: float | None = None,
    operator_overrides: dict[str, str] | None = None,
) -> RunConfig:
    loaded = None
    if config_path is not None:
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError("config", f"{config_path} is not valid YAML: {exc}") from exc
    if loaded is None:
        values: dict[str, object] = {}
    elif isinstance(loaded, dict):
        values = loaded
    else:
        raise ConfigError("config", f"Config must be a mapping, got: {type(loaded).__name__}")

    overrides_value = values.get("overrides") or {}
    if config_path is not None and isinstance(overrides_value, dict):
        # Override files are resolved relative to the config file.
        values["overrides"] = {
            str(name): str((config_path.parent / str(path)).resolve())
            for name, path in overrides_value.items()
        }

    if mode_override is not None and values.get("mode") != mode_override:
        # A mode switch drops the file's mode-specific values.
        values = {
            key: value for key, value in values.items() if key not in MODE_DEFAULTS["word"]
        }
        values["mode"] = mode_override

    command_line = {
        "seed": seed_override,
        "target": target_override,
        "population_size": population_size_override,
        "mutation_rate": mutation_rate_override,
        "tournament_size": tournament_size_override,
        "max_ticks": max_ticks_override,
        "tick_delay_seconds": tick_delay_override,
    }
    config = build_run_config(values)
    config = replace(
        config, **{key: value for key, value in command_line.items() if value is not None}
    )
    if operator_overrides:
        config = replace(config, overrides={**config.overrides, **operator_overrides})
    return validate_run_config(config)


def build_controller(
    config: RunConfig,
    observers: Iterable[SnapshotObserver] = (),
) -> RunController:
    validate_run_config(config)
    controller = RunController(config, observers=observers)
    for name, path in config.overrides.items():
        controller.set_override(name, load_override_file(name, Path(path)))
    return controller


class _TickRecorder:
    def __init__(self, log_path: Path, run_id: str) -> None:
        self._log_path = log_path
        self._run_id = run_id

    def __call__(self, state: ComparisonState) -> None:
        write_tick(self._log_path, self._run_id, state.tick, state.population, state.sampler)


def run_comparison(
    config: RunConfig,
    output_root: Path,
    observers: Iterable[SnapshotObserver] = (),
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    controller = build_controller(config, observers=observers)
    controller.start()

    run_id = datetime.now(UTC).strftime("run-%Y%m%dT%H%M%S%fZ") + f"-{uuid4().hex[:6]}"
    log_path = output_root / "logs" / f"{run_id}.jsonl"
    parameters = asdict(config)
    config_hash = hashlib.sha256(str(sorted(parameters.items())).encode("utf-8")).hexdigest()
    write_run_start(
        log_path=log_path,
        run_id=run_id,
        config=config,
        python_version=sys.version.split()[0],
        cpu_architecture=platform.machine(),
        parameters={**parameters, "config_hash": config_hash},
    )

    controller.add_observer(_TickRecorder(log_path, run_id))
    state = controller.run(sleep=sleep)

    population_engine = controller.population_engine
    sampler_engine = controller.sampler_engine
    max_fitness = controller.target.max_fitness if controller.target else 0
    population_history = population_engine.fitness_history if population_engine else []
    sampler_history = sampler_engine.fitness_history if sampler_engine else []
    write_run_finished(
        log_path,
        run_id,
        {
            "status": str(state.status),
            "ticks": state.tick,
            "solved_by": list(state.solved_by),
            "population": asdict(summarize_history(population_history, max_fitness)),
            "sampler": asdict(summarize_history(sampler_history, max_fitness)),
            "sampler_distinct_candidates": len(sampler_engine.seen) if sampler_engine else 0,
        },
    )
    LOGGER.info(
        "Run %s finished after %s ticks (GA %s/%s, RS %s/%s)",
        run_id,
        state.tick,
        state.population.best_fitness,
        max_fitness,
        state.sampler.best_fitness,
        max_fitness,
    )

    return RunSummary(
        run_id=run_id,
        log_path=log_path,
        solved_by=state.solved_by,
        ticks=state.tick,
        population_best=state.population.best_fitness,
        sampler_best=state.sampler.best_fitness,
        population_best_key=state.population.best_key,
        sampler_best_key=state.sampler.best_key,
        max_fitness=max_fitness,
    )
