from pathlib import Path

import pytest

from blipmachine.config import DEFAULT_CONFIG_PATH, AppConfig, config_from_mapping, load_configuration


def test_default_configuration_loads() -> None:
    config = load_configuration(DEFAULT_CONFIG_PATH)
    assert isinstance(config, AppConfig)
    assert config.sample_rate == 8000
    assert config.seed == 0
    assert config.output.sample_format == "u8"
    assert config.output.sink == "stdout"
    assert config.runtime.frames_per_chunk > 0


def test_missing_sections_use_defaults() -> None:
    assert config_from_mapping({}) == AppConfig()


def test_partial_configuration(tmp_path: Path) -> None:
    path = tmp_path / "cfg.json"
    path.write_text(
        '{"sample_rate": 16000, "seed": null,'
        ' "runtime": {"log_level": "debug"},'
        ' "output": {"sample_format": "s16", "sink": "file", "path": "out.raw"}}'
    )
    config = load_configuration(path)
    assert config.sample_rate == 16000
    assert config.seed is None
    assert config.runtime.log_level == "DEBUG"
    assert config.output.path == "out.raw"


@pytest.mark.parametrize(
    "raw, fragment",
    [
        ({"sample_rate": 0}, "sample_rate"),
        ({"runtime": {"frames_per_chunk": 0}}, "frames_per_chunk"),
        ({"runtime": {"log_level": "loud"}}, "log_level"),
        ({"output": {"sample_format": "mp3"}}, "sample_format"),
        ({"output": {"sink": "radio"}}, "sink"),
        ({"output": {"sink": "file"}}, "output.path"),
        ({"seed": -1}, "seed"),
    ],
)
def test_invalid_values_raise_value_error(raw, fragment) -> None:
    with pytest.raises(ValueError) as info:
        config_from_mapping(raw)
    assert fragment in str(info.value)


def test_seed_must_be_integer() -> None:
    with pytest.raises(TypeError):
        config_from_mapping({"seed": True})
    with pytest.raises(TypeError):
        config_from_mapping({"seed": 1.5})


def test_root_must_be_object(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text("[]")
    with pytest.raises(TypeError):
        load_configuration(path)
