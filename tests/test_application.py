import numpy as np
import pytest

from blipmachine.application import BlipApplication
from blipmachine.config import AppConfig, OutputConfig, RuntimeConfig
from blipmachine.program import ProgramErrors
from blipmachine.sinks import BufferSink

LOOP = "lbl a\nsin 300 0.002\npfork b 0.5\npjump a 0.9\nlbl b\nsin 600 0.002\n"


def _app(**output) -> BlipApplication:
    config = AppConfig(runtime=RuntimeConfig(frames_per_chunk=100), output=OutputConfig(**output))
    return BlipApplication.from_config(config)


def test_render_is_reproducible_per_seed() -> None:
    app = _app()
    app.load(LOOP)
    first = app.render_array(limit=4000)
    second = app.render_array(limit=4000)
    np.testing.assert_array_equal(first, second)
    assert first.dtype == np.uint8


def test_render_array_uses_configured_format() -> None:
    app = _app(sample_format="s16")
    app.load("sin 440 0.01")
    data = app.render_array()
    assert data.dtype == np.dtype("<i2")
    assert data.shape == (80,)


def test_render_reports_stats() -> None:
    app = _app()
    app.load("pfork x 1\nsin 200 0.01\nlbl x\nsin 300 0.01\n")
    sink = BufferSink()
    stats = app.render(sink)
    assert stats.reason == "halted"
    assert stats.samples == len(sink) == 160
    assert stats.threads_spawned == 2
    assert stats.peak_threads == 2
    assert stats.seconds(app.config.sample_rate) == pytest.approx(0.02)


def test_failed_load_keeps_previous_program() -> None:
    app = _app()
    program = app.load("sin 100 0.01")
    with pytest.raises(ProgramErrors):
        app.load("sin 100")
    assert app.program is program


def test_render_without_program_raises() -> None:
    with pytest.raises(RuntimeError):
        _app().render(BufferSink())


def test_summary_lists_labels() -> None:
    app = _app()
    assert "Program: not loaded" in app.summary()
    app.load("lbl intro\nsin 100 1\nlbl outro\n")
    summary = app.summary()
    assert "Sample rate: 8000 Hz" in summary
    assert "Program: 3 instructions, 2 labels" in summary
    assert "intro @ 0" in summary
    assert "outro @ 2" in summary
