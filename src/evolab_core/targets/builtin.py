import string

from evolab_core.codec import flatten_grid
from evolab_core.models import ConfigError, RunConfig, Target

LETTERS: tuple[str, ...] = tuple(string.ascii_uppercase)

PALETTE: tuple[str, ...] = (
    "#000000",
    "#1d2b53",
    "#7e2553",
    "#008751",
    "#ab5236",
    "#5f574f",
    "#c2c3c7",
    "#fff1e8",
    "#ff004d",
    "#ffa300",
    "#ffec27",
    "#00e436",
    "#29adff",
    "#83769c",
    "#ff77a8",
    "#ffccaa",
)

# One hex digit per cell, indexing into PALETTE.
_IMAGE_PATTERNS: dict[str, tuple[str, ...]] = {
    "blank": (
        "00000000",
        "00000000",
        "00000000",
        "00000000",
        "00000000",
        "00000000",
        "00000000",
        "00000000",
    ),
    "smiley": (
        "00aaaa00",
        "0aaaaaa0",
        "aa0aa0aa",
        "aaaaaaaa",
        "a0aaaa0a",
        "aa0000aa",
        "0aaaaaa0",
        "00aaaa00",
    ),
    "heart": (
        "07700770",
        "78877887",
        "88888888",
        "88888888",
        "08888880",
        "00888800",
        "00088000",
        "00000000",
    ),
    "checkerboard": (
        "07070707",
        "70707070",
        "07070707",
        "70707070",
        "07070707",
        "70707070",
        "07070707",
        "70707070",
    ),
    "tree": (
        "000bb000",
        "00bbbb00",
        "0bbbbbb0",
        "00bbbb00",
        "0bbbbbb0",
        "bbbbbbbb",
        "00044000",
        "00044000",
    ),
}


def word_target(text: str) -> Target:
    word = text.strip().upper()
    if not word:
        raise ConfigError("target", "word target must not be empty")
    if any(letter not in LETTERS for letter in word):
        raise ConfigError("target", f"word target must contain only letters A-Z, got: {text!r}")
    return Target(
        name=word,
        kind="word",
        symbols=tuple(word),
        alphabet=LETTERS,
        shape=(len(word),),
    )


def image_target(name: str, grid: list[list[int]], palette_size: int = len(PALETTE)) -> Target:
    if not grid or not grid[0]:
        raise ConfigError("target", "image target must have at least one cell")
    try:
        symbols = flatten_grid(grid)
    except ValueError as exc:
        raise ConfigError("target", str(exc)) from exc
    if any(cell < 0 or cell >= palette_size for cell in symbols):
        raise ConfigError(
            "target", f"image target {name!r} uses colors outside a {palette_size}-color palette"
        )
    return Target(
        name=name,
        kind="image",
        symbols=symbols,
        alphabet=tuple(range(palette_size)),
        shape=(len(grid), len(grid[0])),
    )


def load_builtin_targets(palette_size: int = len(PALETTE)) -> dict[str, Target]:
    return {
        name: image_target(
            name,
            [[int(cell, 16) for cell in row] for row in rows],
            palette_size=palette_size,
        )
        for name, rows in _IMAGE_PATTERNS.items()
    }


def builtin_target_names() -> list[str]:
    return list(_IMAGE_PATTERNS)


def resolve_target(config: RunConfig) -> Target:
    if config.mode == "word":
        return word_target(config.target)
    if config.target not in _IMAGE_PATTERNS:
        raise ConfigError(
            "target",
            f"unknown image target {config.target!r}; choose from {builtin_target_names()}",
        )
    rows = _IMAGE_PATTERNS[config.target]
    return image_target(
        config.target,
        [[int(cell, 16) for cell in row] for row in rows],
        palette_size=config.palette_size,
    )
