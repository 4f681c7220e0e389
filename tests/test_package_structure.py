"""Package surface tests."""

import importlib.util

import pytest


def test_public_api_is_exported():
    package = importlib.import_module("blipmachine")
    for name in ("BlipApplication", "Scheduler", "Mixer", "Program", "parse_program", "StreamClosed"):
        assert hasattr(package, name)


@pytest.mark.parametrize(
    "module",
    ["cli", "compiler", "config", "decisions", "mixer", "program", "scheduler", "sinks", "threads"],
)
def test_modules_reside_in_package(module: str):
    spec = importlib.util.find_spec(f"blipmachine.{module}")
    assert spec is not None, f"blipmachine.{module} should be importable"


def test_module_entry_point_exists():
    assert importlib.util.find_spec("blipmachine.__main__") is not None
