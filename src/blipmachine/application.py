"""High level application orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .compiler import parse_program
from .config import AppConfig, load_configuration
from .mixer import Mixer
from .program import Program
from .scheduler import RenderStats, Scheduler
from .sinks import BufferSink, SampleSink, open_sink


@dataclass(slots=True)
class BlipApplication:
    """A loaded program plus the configuration it will be rendered with.

    Each :meth:`render` call builds a fresh :class:`Scheduler`, so repeated
    renders with the same seed produce identical bytes.
    """

    config: AppConfig
    program: Optional[Program] = None

    @classmethod
    def from_config(cls, config: AppConfig) -> "BlipApplication":
        return cls(config=config)

    @classmethod
    def from_file(cls, path: str) -> "BlipApplication":
        return cls.from_config(load_configuration(path))

    def load(self, text: str) -> Program:
        """Compile ``text``; on failure the previously loaded program is kept."""

        self.program = parse_program(text)
        return self.program

    def build_mixer(self) -> Mixer:
        return Mixer(self.config.sample_rate, self.config.output.sample_format)

    def build_scheduler(self) -> Scheduler:
        if self.program is None:
            raise RuntimeError("no program loaded")
        return Scheduler(
            self.program,
            sample_rate=self.config.sample_rate,
            seed=self.config.seed,
            mixer=self.build_mixer(),
        )

    def open_sink(self) -> SampleSink:
        out = self.config.output
        return open_sink(
            out.sink,
            path=out.path,
            sample_rate=self.config.sample_rate,
            dtype=self.build_mixer().format.dtype,
        )

    def render(self, sink: SampleSink, *, limit: int | None = None) -> RenderStats:
        """Stream the loaded program into ``sink``."""

        scheduler = self.build_scheduler()
        return scheduler.run(
            sink,
            frames_per_chunk=self.config.runtime.frames_per_chunk,
            limit=limit,
        )

    def render_array(self, *, limit: int | None = None) -> np.ndarray:
        """Render into memory and return the encoded samples."""

        sink = BufferSink(dtype=self.build_mixer().format.dtype)
        self.render(sink, limit=limit)
        return sink.samples()

    def summary(self) -> str:
        cfg = self.config
        lines = [
            f"Sample rate: {cfg.sample_rate} Hz",
            f"Sample format: {cfg.output.sample_format}",
            f"Seed: {cfg.seed if cfg.seed is not None else 'random'}",
            f"Frames per chunk: {cfg.runtime.frames_per_chunk}",
        ]
        if self.program is None:
            lines.append("Program: not loaded")
            return "\n".join(lines)
        lines.append(
            f"Program: {len(self.program)} instructions, {len(self.program.labels)} labels"
        )
        for name, index in sorted(self.program.labels.items(), key=lambda item: item[1]):
            lines.append(f"  - {name} @ {index}")
        return "\n".join(lines)


__all__ = ["BlipApplication"]
