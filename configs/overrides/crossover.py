"""Single-point crossover written as an override file.

Load with: evolab run --override crossover=configs/overrides/crossover.py
"""


def crossover(parent_a, parent_b, rng):
    point = rng.randrange(len(parent_a))
    child_a = tuple(parent_a[:point]) + tuple(parent_b[point:])
    child_b = tuple(parent_b[:point]) + tuple(parent_a[point:])
    return child_a, child_b
