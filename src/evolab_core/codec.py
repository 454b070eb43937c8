"""Canonical keys and text rendering for word and image candidates."""

from evolab_core.models import ArtifactKind, Candidate

_ROW_SEPARATOR = "|"
_CELL_SEPARATOR = ","


class ArtifactCodec:
    def __init__(self, kind: ArtifactKind, shape: tuple[int, ...]) -> None:
        if kind == "image" and len(shape) != 2:
            raise ValueError(f"Image shape must be (rows, cols), got: {shape}")
        self.kind = kind
        self.shape = shape

    def key(self, candidate: Candidate) -> str:
        if self.kind == "word":
            return "".join(str(symbol) for symbol in candidate)
        return _ROW_SEPARATOR.join(
            _CELL_SEPARATOR.join(str(cell) for cell in row) for row in self.rows(candidate)
        )

    def from_key(self, key: str) -> Candidate:
        if self.kind == "word":
            return tuple(key)
        return tuple(
            int(cell) for row in key.split(_ROW_SEPARATOR) for cell in row.split(_CELL_SEPARATOR)
        )

    def rows(self, candidate: Candidate) -> list[Candidate]:
        if self.kind == "word":
            return [tuple(candidate)]
        _, cols = self.shape
        return [tuple(candidate[start : start + cols]) for start in range(0, len(candidate), cols)]

    def render(self, candidate: Candidate | None) -> str:
        if candidate is None:
            return "-"
        if self.kind == "word":
            return self.key(candidate)
        return "\n".join(" ".join(f"{cell:x}" for cell in row) for row in self.rows(candidate))


def flatten_grid(grid: list[list[int]] | tuple[tuple[int, ...], ...]) -> Candidate:
    widths = {len(row) for row in grid}
    if len(widths) > 1:
        raise ValueError("Image rows must all have the same width")
    return tuple(cell for row in grid for cell in row)
