import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path

from evolab_core.models import RunConfig, Snapshot

SCHEMA_VERSION = 2


def write_event(log_path: Path, payload: dict[str, object]) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as file_obj:
        file_obj.write(json.dumps(payload, sort_keys=True, default=str) + "\n")


def _envelope(event_type: str, run_id: str, payload: dict[str, object]) -> dict[str, object]:
    return {
        "schema_version": SCHEMA_VERSION,
        "event_type": event_type,
        "run_id": run_id,
        "timestamp": datetime.now(UTC).isoformat(),
        "payload": payload,
    }


def snapshot_payload(snapshot: Snapshot, top: int = 3) -> dict[str, object]:
    return {
        "step": snapshot.step,
        "best_fitness": snapshot.best_fitness,
        "best_key": snapshot.best_key,
        "history_append": snapshot.history_append,
        "max_fitness": snapshot.max_fitness,
        "top_k": [[item.key, item.fitness] for item in snapshot.top_k[:top]],
        "diversity": asdict(snapshot.diversity) if snapshot.diversity else None,
    }


def write_run_start(
    log_path: Path,
    run_id: str,
    config: RunConfig,
    python_version: str,
    cpu_architecture: str,
    parameters: dict[str, object],
) -> None:
    payload: dict[str, object] = {
        "random_seed": config.seed,
        "mode": config.mode,
        "target": config.target,
        "python_version": python_version,
        "cpu_architecture": cpu_architecture,
        "parameters": parameters,
    }
    write_event(log_path, _envelope("run.started", run_id, payload))


def write_tick(
    log_path: Path,
    run_id: str,
    tick: int,
    population: Snapshot,
    sampler: Snapshot,
) -> None:
    payload: dict[str, object] = {
        "tick": tick,
        "population": snapshot_payload(population),
        "sampler": snapshot_payload(sampler),
    }
    write_event(log_path, _envelope("tick.completed", run_id, payload))


def write_run_finished(log_path: Path, run_id: str, payload: dict[str, object]) -> None:
    write_event(log_path, _envelope("run.finished", run_id, payload))
