import argparse
import importlib.util
import json
import logging
import sys
from pathlib import Path
from types import ModuleType

from evolab_core.models import ConfigError, OperatorOverrideError
from evolab_core.runtime import load_run_config, run_comparison
from evolab_core.targets.builtin import PALETTE, builtin_target_names

_REPO_ROOT = Path(__file__).resolve().parents[2]


def _load_script_module(path: str) -> ModuleType:
    script_path = _REPO_ROOT / path
    spec = importlib.util.spec_from_file_location(script_path.stem, script_path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Unable to load script: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_report(log_path: str) -> dict[str, object]:
    module = _load_script_module("scripts/run_report.py")
    return module.summarize_run(log_path)


def _parse_operator_overrides(
    parser: argparse.ArgumentParser, values: list[str] | None
) -> dict[str, str] | None:
    if not values:
        return None
    overrides: dict[str, str] = {}
    for value in values:
        name, separator, path = value.partition("=")
        if not separator or not name or not path:
            parser.error(f"--override expects NAME=PATH, got: {value}")
        overrides[name] = path
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="evolab")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run")
    run_parser.add_argument("--config", default=None)
    run_parser.add_argument("--mode", choices=["word", "image"], default=None)
    run_parser.add_argument("--target", default=None)
    run_parser.add_argument("--seed", type=int, default=None)
    run_parser.add_argument("--population-size", type=int, default=None)
    run_parser.add_argument("--mutation-rate", type=float, default=None)
    run_parser.add_argument("--tournament-size", type=int, default=None)
    run_parser.add_argument("--max-ticks", type=int, default=None)
    run_parser.add_argument("--tick-delay", type=float, default=None)
    run_parser.add_argument("--override", action="append", metavar="NAME=PATH", default=None)
    run_parser.add_argument("--output-root", default=".")

    subparsers.add_parser("targets")

    report_parser = subparsers.add_parser("report")
    report_parser.add_argument("--log-path", required=True)

    return parser


def _dispatch(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.command == "run":
        try:
            config = load_run_config(
                Path(args.config) if args.config else None,
                seed_override=args.seed,
                mode_override=args.mode,
                target_override=args.target,
                population_size_override=args.population_size,
                mutation_rate_override=args.mutation_rate,
                tournament_size_override=args.tournament_size,
                max_ticks_override=args.max_ticks,
                tick_delay_override=args.tick_delay,
                operator_overrides=_parse_operator_overrides(parser, args.override),
            )
            summary = run_comparison(config=config, output_root=Path(args.output_root))
        except ConfigError as exc:
            print(
                json.dumps({"error": "config", "field": exc.field, "message": exc.message}),
                file=sys.stderr,
            )
            return 2
        except OperatorOverrideError as exc:
            print(
                json.dumps(
                    {"error": "operator_override", "operator": exc.operator, "message": exc.message}
                ),
                file=sys.stderr,
            )
            return 2
        print(
            json.dumps(
                {
                    "run_id": summary.run_id,
                    "log_path": str(summary.log_path),
                    "solved_by": list(summary.solved_by),
                    "ticks": summary.ticks,
                    "max_fitness": summary.max_fitness,
                    "population_best": summary.population_best,
                    "population_best_key": summary.population_best_key,
                    "sampler_best": summary.sampler_best,
                    "sampler_best_key": summary.sampler_best_key,
                },
                sort_keys=True,
            )
        )
        return 0

    if args.command == "targets":
        print(
            json.dumps(
                {"image_targets": builtin_target_names(), "palette": list(PALETTE)},
                sort_keys=True,
            )
        )
        return 0

    if args.command == "report":
        print(json.dumps(run_report(log_path=args.log_path), sort_keys=True))
        return 0

    return 1


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return _dispatch(args, parser)


if __name__ == "__main__":
    raise SystemExit(main())
