import pytest

from evolab_core.models import ConfigError, RunConfig
from evolab_core.targets.builtin import (
    PALETTE,
    builtin_target_names,
    image_target,
    load_builtin_targets,
    resolve_target,
    word_target,
)


def test_word_target_is_upper_cased_over_letters() -> None:
    target = word_target("cat")

    assert target.kind == "word"
    assert target.symbols == ("C", "A", "T")
    assert len(target.alphabet) == 26
    assert target.shape == (3,)
    assert target.max_fitness == 3


@pytest.mark.parametrize("text", ["C4T", "   ", "two words"])
def test_word_target_rejects_non_letters(text: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        word_target(text)

    assert excinfo.value.field == "target"


def test_builtin_image_targets_are_eight_by_eight() -> None:
    targets = load_builtin_targets()

    assert set(targets) == set(builtin_target_names())
    assert {"blank", "smiley", "heart", "checkerboard"} <= set(targets)
    for target in targets.values():
        assert target.kind == "image"
        assert target.shape == (8, 8)
        assert target.length == 64
        assert target.alphabet == tuple(range(len(PALETTE)))


def test_resolve_target_uses_mode() -> None:
    assert resolve_target(RunConfig(mode="word", target="dog")).symbols == ("D", "O", "G")
    assert resolve_target(RunConfig(mode="image", target="blank")).symbols == (0,) * 64


def test_resolve_target_rejects_unknown_image() -> None:
    with pytest.raises(ConfigError) as excinfo:
        resolve_target(RunConfig(mode="image", target="mona_lisa"))

    assert excinfo.value.field == "target"


def test_small_palette_limits_targets_and_alphabet() -> None:
    blank = resolve_target(RunConfig(mode="image", target="blank", palette_size=2))
    assert blank.alphabet == (0, 1)

    with pytest.raises(ConfigError):
        resolve_target(RunConfig(mode="image", target="smiley", palette_size=4))


def test_image_target_rejects_out_of_palette_cells() -> None:
    with pytest.raises(ConfigError):
        image_target("bad", [[0, 16], [1, 2]])
