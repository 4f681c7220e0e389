"""Virtual threads of control and the arena that owns them."""

from __future__ import annotations

import math
from typing import Dict, Iterator, List

from .decisions import DecisionSource

__all__ = ["HALTED", "PLAYING", "READY", "ThreadSet", "VoiceThread"]

READY = "ready"
PLAYING = "playing"
HALTED = "halted"

_TWO_PI = 2.0 * math.pi


class VoiceThread:
    """One program counter plus its tone state and decision stream.

    While ``PLAYING`` the thread tracks how many ticks of the current tone
    have elapsed rather than a running phase accumulator; the phase at any
    tick is derived from that count, which keeps long tones free of drift.
    """

    __slots__ = (
        "tid",
        "pc",
        "decisions",
        "status",
        "frequency",
        "elapsed",
        "remaining",
    )

    def __init__(self, tid: int, pc: int, decisions: DecisionSource) -> None:
        self.tid = tid
        self.pc = pc
        self.decisions = decisions
        self.status = READY
        self.frequency = 0.0
        self.elapsed = 0
        self.remaining = 0

    def play(self, frequency: float, samples: int, resume_pc: int) -> None:
        self.status = PLAYING
        self.frequency = frequency
        self.elapsed = 0
        self.remaining = samples
        self.pc = resume_pc

    def advance(self, ticks: int) -> None:
        """Consume ``ticks`` samples of the current tone."""

        if ticks > self.remaining:
            raise ValueError(f"thread {self.tid}: cannot advance {ticks} ticks, {self.remaining} left")
        self.elapsed += ticks
        self.remaining -= ticks
        if self.remaining == 0:
            self.status = READY

    def phase(self, sample_rate: float) -> float:
        """Current waveform phase in radians, wrapped to ``[0, 2*pi)``."""

        return (_TWO_PI * self.frequency * self.elapsed / sample_rate) % _TWO_PI

    def __repr__(self) -> str:
        return (
            f"VoiceThread(tid={self.tid}, pc={self.pc}, status={self.status}, "
            f"remaining={self.remaining})"
        )


class ThreadSet:
    """Arena of live threads keyed by stable integer ids.

    Iteration order is creation order.  Ids are never reused, so spawning or
    removing threads while a resolve pass holds ids is safe.
    """

    __slots__ = ("_threads", "_next_id", "spawned", "peak")

    def __init__(self) -> None:
        self._threads: Dict[int, VoiceThread] = {}
        self._next_id = 0
        self.spawned = 0
        self.peak = 0

    def spawn(self, pc: int, decisions: DecisionSource) -> int:
        tid = self._next_id
        self._next_id += 1
        self._threads[tid] = VoiceThread(tid, pc, decisions)
        self.spawned += 1
        self.peak = max(self.peak, len(self._threads))
        return tid

    def remove(self, tid: int) -> None:
        thread = self._threads.pop(tid)
        thread.status = HALTED

    def get(self, tid: int) -> VoiceThread:
        return self._threads[tid]

    def ready_ids(self) -> List[int]:
        return [tid for tid, thread in self._threads.items() if thread.status == READY]

    def playing(self) -> List[VoiceThread]:
        return [thread for thread in self._threads.values() if thread.status == PLAYING]

    def __contains__(self, tid: int) -> bool:
        return tid in self._threads

    def __iter__(self) -> Iterator[VoiceThread]:
        return iter(list(self._threads.values()))

    def __len__(self) -> int:
        return len(self._threads)

    def __bool__(self) -> bool:
        return bool(self._threads)
