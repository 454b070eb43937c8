"""Built-in search operators and the swappable operator suite engines call into."""

from __future__ import annotations

import inspect
import logging
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from evolab_core.models import Candidate, OperatorOverrideError, RunConfig, Symbol, Target

LOGGER = logging.getLogger(__name__)

OperatorFunction = Callable[..., object]

OPERATOR_PARAMETERS: dict[str, tuple[str, ...]] = {
    "select": ("population", "scores", "tournament_size", "rng"),
    "crossover": ("parent_a", "parent_b", "rng"),
    "mutate": ("candidate", "mutation_rate", "alphabet", "rng"),
    "sample": ("length", "alphabet", "rng"),
}


def tournament_select(
    population: Sequence[Candidate],
    scores: Sequence[int],
    tournament_size: int,
    rng: random.Random,
) -> Candidate:
    best_index = rng.randrange(len(population))
    for _ in range(tournament_size - 1):
        index = rng.randrange(len(population))
        if scores[index] > scores[best_index]:
            best_index = index
    return population[best_index]


def single_point_crossover(
    parent_a: Candidate,
    parent_b: Candidate,
    rng: random.Random,
) -> tuple[Candidate, Candidate]:
    point = rng.randrange(len(parent_a))
    return parent_a[:point] + parent_b[point:], parent_b[:point] + parent_a[point:]


def resample_mutation(
    candidate: Candidate,
    mutation_rate: float,
    alphabet: Sequence[Symbol],
    rng: random.Random,
) -> Candidate:
    return tuple(
        rng.choice(alphabet) if rng.random() < mutation_rate else symbol for symbol in candidate
    )


def uniform_sample(length: int, alphabet: Sequence[Symbol], rng: random.Random) -> Candidate:
    return tuple(rng.choice(alphabet) for _ in range(length))


BUILTIN_OPERATORS: dict[str, OperatorFunction] = {
    "select": tournament_select,
    "crossover": single_point_crossover,
    "mutate": resample_mutation,
    "sample": uniform_sample,
}


def check_signature(name: str, function: OperatorFunction) -> None:
    if name not in OPERATOR_PARAMETERS:
        raise OperatorOverrideError(
            name, f"unknown operator; expected one of {list(OPERATOR_PARAMETERS)}"
        )
    if not callable(function):
        raise OperatorOverrideError(name, "override is not callable")
    parameters = OPERATOR_PARAMETERS[name]
    try:
        inspect.signature(function).bind(*parameters)
    except TypeError as exc:
        raise OperatorOverrideError(
            name, f"signature must accept ({', '.join(parameters)}): {exc}"
        ) from exc
    except ValueError:
        # Some builtins expose no signature; the probe call still checks them.
        LOGGER.debug("No inspectable signature for %s override", name)


@dataclass(frozen=True)
class OperatorContext:
    length: int
    alphabet: tuple[Symbol, ...]
    mutation_rate: float
    tournament_size: int

    @classmethod
    def for_target(cls, target: Target, config: RunConfig) -> OperatorContext:
        return cls(
            length=target.length,
            alphabet=target.alphabet,
            mutation_rate=config.mutation_rate,
            tournament_size=config.tournament_size,
        )


class OperatorSuite:
    """Currently installed operators of one engine.

    Built-ins are called directly. Overrides are called through a boundary that
    turns exceptions and malformed results into OperatorOverrideError.
    """

    def __init__(self, names: Iterable[str], context: OperatorContext) -> None:
        self._context = context
        self._alphabet = frozenset(context.alphabet)
        self._functions: dict[str, OperatorFunction] = {
            name: BUILTIN_OPERATORS[name] for name in names
        }
        self._overridden: set[str] = set()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._functions)

    @property
    def overridden(self) -> frozenset[str]:
        return frozenset(self._overridden)

    def get(self, name: str) -> OperatorFunction:
        return self._functions[name]

    def install(self, name: str, function: OperatorFunction) -> None:
        if name not in self._functions:
            raise OperatorOverrideError(name, "operator is not used by this engine")
        check_signature(name, function)
        self._call(name, function, self._probe_arguments(name))
        self._functions[name] = function
        self._overridden.add(name)
        LOGGER.info("Installed %s override %s", name, getattr(function, "__name__", function))

    def restore(self, name: str) -> None:
        if name not in self._functions:
            raise OperatorOverrideError(name, "operator is not used by this engine")
        self._functions[name] = BUILTIN_OPERATORS[name]
        self._overridden.discard(name)

    def select(
        self, population: Sequence[Candidate], scores: Sequence[int], rng: random.Random
    ) -> Candidate:
        return self._invoke("select", (population, scores, self._context.tournament_size, rng))

    def crossover(
        self, parent_a: Candidate, parent_b: Candidate, rng: random.Random
    ) -> tuple[Candidate, Candidate]:
        return self._invoke("crossover", (parent_a, parent_b, rng))

    def mutate(self, candidate: Candidate, rng: random.Random) -> Candidate:
        return self._invoke(
            "mutate", (candidate, self._context.mutation_rate, self._context.alphabet, rng)
        )

    def sample(self, rng: random.Random) -> Candidate:
        return self._invoke("sample", (self._context.length, self._context.alphabet, rng))

    def _invoke(self, name: str, arguments: tuple[object, ...]):
        function = self._functions[name]
        if name not in self._overridden:
            return function(*arguments)
        return self._call(name, function, arguments)

    def _call(self, name: str, function: OperatorFunction, arguments: tuple[object, ...]):
        try:
            result = function(*arguments)
        except Exception as exc:  # noqa: BLE001
            raise OperatorOverrideError(name, f"{type(exc).__name__}: {exc}") from exc
        if name == "crossover":
            if not isinstance(result, (tuple, list)) or len(result) != 2:
                raise OperatorOverrideError(name, "must return a pair of children")
            return self._coerce(name, result[0]), self._coerce(name, result[1])
        return self._coerce(name, result)

    def _coerce(self, name: str, value: object) -> Candidate:
        if not isinstance(value, (tuple, list, str)):
            raise OperatorOverrideError(
                name, f"must return a sequence of symbols, got {type(value).__name__}"
            )
        candidate = tuple(value)
        if len(candidate) != self._context.length:
            raise OperatorOverrideError(
                name, f"returned length {len(candidate)}, expected {self._context.length}"
            )
        try:
            unknown = [symbol for symbol in candidate if symbol not in self._alphabet]
        except TypeError as exc:
            raise OperatorOverrideError(name, f"returned unhashable symbols: {exc}") from exc
        if unknown:
            raise OperatorOverrideError(
                name, f"returned symbols outside the alphabet: {unknown[:3]}"
            )
        return candidate

    def _probe_arguments(self, name: str) -> tuple[object, ...]:
        rng = random.Random(0)
        context = self._context
        population = [
            uniform_sample(context.length, context.alphabet, rng)
            for _ in range(max(2, context.tournament_size))
        ]
        scores = [rng.randrange(context.length + 1) for _ in population]
        if name == "select":
            return (population, scores, context.tournament_size, rng)
        if name == "crossover":
            return (population[0], population[1], rng)
        if name == "mutate":
            return (population[0], context.mutation_rate, context.alphabet, rng)
        return (context.length, context.alphabet, rng)
