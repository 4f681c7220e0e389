"""Sample-clock scheduler driving every virtual thread of a program.

Each tick has two phases.  *Resolve* runs every ``READY`` thread through its
zero-duration instructions (labels, jumps, forks, empty tones) until it is
either playing a tone or has run off the end of the program.  *Advance* mixes
one sample from all playing threads and consumes one tick of their tones.

Between two scheduling events (a tone finishing) nothing can change, so the
scheduler renders whole spans at once with numpy.  The output is identical to
stepping one tick at a time.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .decisions import DecisionSource
from .mixer import RAW_DTYPE, Mixer
from .program import OP_FORK, OP_JUMP, OP_LABEL, OP_TONE, Program
from .sinks import SampleSink, StreamClosed
from .threads import READY, ThreadSet

__all__ = ["DEFAULT_SAMPLE_RATE", "RenderStats", "Scheduler"]

_LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 8000
DEFAULT_FRAMES_PER_CHUNK = 256


@dataclass(slots=True)
class RenderStats:
    """Summary of one :meth:`Scheduler.run`."""

    samples: int = 0
    clipped: int = 0
    threads_spawned: int = 0
    peak_threads: int = 0
    reason: str = ""

    def seconds(self, sample_rate: float) -> float:
        return self.samples / float(sample_rate)


class Scheduler:
    """Owns the thread set for one run of a :class:`Program`."""

    def __init__(
        self,
        program: Program,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        seed: int | None = 0,
        mixer: Optional[Mixer] = None,
    ) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.program = program
        self.sample_rate = int(sample_rate)
        self.mixer = mixer or Mixer(self.sample_rate)
        if self.mixer.sample_rate != self.sample_rate:
            raise ValueError(
                f"mixer runs at {self.mixer.sample_rate} Hz, scheduler at {self.sample_rate} Hz"
            )
        self.tick = 0
        self.threads = ThreadSet()
        self.threads.spawn(0, DecisionSource(seed))
        # Tone lengths in ticks, indexed by instruction.
        self._tone_samples = tuple(
            round(b * self.sample_rate) if op == OP_TONE else 0 for op, _, b in program.code
        )

    @property
    def finished(self) -> bool:
        return not self.threads

    # =========================
    # Resolve phase
    # =========================
    def resolve(self) -> None:
        """Run zero-duration work until no thread is ``READY``.

        Threads spawned by a fork join the end of the worklist and are
        resolved in the same pass, so they start on the fork's tick.  A
        program that loops through zero-duration instructions forever never
        returns from here, which is the intended semantics.
        """

        code = self.program.code
        end = len(code)
        threads = self.threads
        worklist = deque(threads.ready_ids())
        while worklist:
            tid = worklist.popleft()
            thread = threads.get(tid)
            while thread.status == READY:
                pc = thread.pc
                if pc >= end:
                    threads.remove(tid)
                    _LOGGER.debug("tick %d: thread %d halted", self.tick, tid)
                    break
                op, a, b = code[pc]
                if op == OP_TONE:
                    samples = self._tone_samples[pc]
                    if samples:
                        thread.play(a, samples, pc + 1)
                    else:
                        thread.pc = pc + 1
                elif op == OP_JUMP:
                    thread.pc = a if thread.decisions.next() < b else pc + 1
                elif op == OP_FORK:
                    if thread.decisions.next() < b:
                        child = threads.spawn(a, thread.decisions.spawn())
                        worklist.append(child)
                        _LOGGER.debug(
                            "tick %d: thread %d forked thread %d at %d", self.tick, tid, child, a
                        )
                    thread.pc = pc + 1
                elif op == OP_LABEL:
                    thread.pc = pc + 1
                else:  # pragma: no cover - Program only emits known opcodes
                    raise RuntimeError(f"unknown opcode {op!r} at {pc}")

    # =========================
    # Advance phase
    # =========================
    def render_block(self, frames: int) -> np.ndarray:
        """Mix and return up to ``frames`` float samples.

        The result is shorter than ``frames`` only once every thread has
        halted; an empty array means the program is over.
        """

        parts = []
        filled = 0
        while filled < frames:
            self.resolve()
            if not self.threads:
                break
            playing = self.threads.playing()
            span = min(frames - filled, min(voice.remaining for voice in playing))
            parts.append(self.mixer.mix(playing, span))
            for voice in playing:
                voice.advance(span)
            filled += span
            self.tick += span
        if not parts:
            return np.zeros(0, dtype=RAW_DTYPE)
        if len(parts) == 1:
            return parts[0]
        return np.concatenate(parts)

    def blocks(self, frames_per_chunk: int = DEFAULT_FRAMES_PER_CHUNK) -> Iterator[np.ndarray]:
        """Lazily yield mixed float blocks until the program halts.

        The sequence is infinite for looping programs.
        """

        if frames_per_chunk <= 0:
            raise ValueError("frames_per_chunk must be positive")
        while True:
            block = self.render_block(frames_per_chunk)
            if block.size == 0:
                return
            yield block

    def samples(self) -> Iterator[float]:
        """Yield one mixed float sample per tick."""

        for block in self.blocks():
            for value in block:
                yield float(value)

    # =========================
    # Output
    # =========================
    def run(
        self,
        sink: SampleSink,
        *,
        frames_per_chunk: int = DEFAULT_FRAMES_PER_CHUNK,
        limit: int | None = None,
    ) -> RenderStats:
        """Stream encoded samples into ``sink`` until the program halts.

        Stops early without error when the sink raises :class:`StreamClosed`,
        or once ``limit`` samples have been written.
        """

        if frames_per_chunk <= 0:
            raise ValueError("frames_per_chunk must be positive")
        stats = RenderStats()
        while True:
            want = frames_per_chunk
            if limit is not None:
                want = min(want, limit - stats.samples)
                if want <= 0:
                    stats.reason = "limit"
                    break
            mixed = self.render_block(want)
            if mixed.size == 0:
                stats.reason = "halted"
                break
            pcm, clipped = self.mixer.encode(mixed)
            try:
                sink.write(pcm)
            except StreamClosed:
                _LOGGER.debug("tick %d: sink closed", self.tick)
                stats.reason = "closed"
                break
            stats.samples += int(pcm.shape[0])
            stats.clipped += clipped
        if stats.reason != "closed":
            try:
                sink.flush()
            except StreamClosed:
                stats.reason = "closed"
        stats.threads_spawned = self.threads.spawned
        stats.peak_threads = self.threads.peak
        _LOGGER.info(
            "Render %s after %d samples (%.3f s): %d threads spawned, peak %d, %d clipped",
            stats.reason,
            stats.samples,
            stats.seconds(self.sample_rate),
            stats.threads_spawned,
            stats.peak_threads,
            stats.clipped,
        )
        return stats
