#!/usr/bin/env python3
import json
from pathlib import Path

_ENGINES = ("population", "sampler")


def summarize_run(log_path: Path | str) -> dict[str, object]:
    path = Path(log_path)
    ticks = 0
    bad_lines = 0
    run_id: str | None = None
    finished: dict[str, object] = {}
    trends: dict[str, list[int]] = {engine: [] for engine in _ENGINES}
    with path.open("r", encoding="utf-8") as file_obj:
        for line in file_obj:
            try:
                event = json.loads(line)
            except (json.JSONDecodeError, ValueError):
                bad_lines += 1
                continue
            if not isinstance(event, dict):
                bad_lines += 1
                continue
            run_id = event.get("run_id", run_id)
            payload = event.get("payload", {})
            if not isinstance(payload, dict):
                bad_lines += 1
                continue
            if event.get("event_type") == "run.finished":
                finished = payload
                continue
            if event.get("event_type") != "tick.completed":
                continue
            ticks += 1
            for engine in _ENGINES:
                snapshot = payload.get(engine, {})
                if isinstance(snapshot, dict) and "best_fitness" in snapshot:
                    trends[engine].append(int(snapshot["best_fitness"]))

    return {
        "schema_version": 2,
        "log_path": str(path),
        "run_id": run_id,
        "ticks": ticks,
        "best_fitness": {engine: max(values) for engine, values in trends.items() if values},
        "trends": {engine: values for engine, values in trends.items() if values},
        "solved_by": finished.get("solved_by", []),
        "finished": bool(finished),
        "bad_lines": bad_lines,
    }


if __name__ == "__main__":
    payload = summarize_run(Path("logs/latest.jsonl"))
    print(json.dumps(payload, sort_keys=True))
