from evolab_core.models import Candidate


def score(candidate: Candidate, target: Candidate) -> int:
    return sum(1 for symbol, wanted in zip(candidate, target, strict=True) if symbol == wanted)
