# mixer.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .threads import VoiceThread

RAW_DTYPE = np.float64


# =========================
# Sample formats
# =========================
@dataclass(frozen=True, slots=True)
class SampleFormat:
    """Raw PCM layout: numpy dtype plus how unit amplitude maps onto it."""

    name: str
    dtype: str
    full_scale: float
    offset: float
    lo: float
    hi: float
    integer: bool = True

    @property
    def width(self) -> int:
        return np.dtype(self.dtype).itemsize

    @property
    def silence(self) -> float:
        return self.offset


SAMPLE_FORMATS = {
    "u8": SampleFormat("u8", "u1", 127.0, 128.0, 0.0, 255.0),
    "s16": SampleFormat("s16", "<i2", 32767.0, 0.0, -32768.0, 32767.0),
    "f32": SampleFormat("f32", "<f4", 1.0, 0.0, -1.0, 1.0, integer=False),
}


def get_format(name: str) -> SampleFormat:
    try:
        return SAMPLE_FORMATS[name]
    except KeyError:
        choices = ", ".join(sorted(SAMPLE_FORMATS))
        raise ValueError(f"unknown sample format '{name}' (choose from {choices})") from None


# =========================
# Mixer
# =========================
class Mixer:
    """Sum the unit sines of every playing thread and saturate to PCM.

    Overflow is hard-clipped to the format's extremes; the mix is never
    renormalised, so dense chords distort audibly instead of getting quieter.
    """

    __slots__ = ("sample_rate", "format", "_ramp")

    def __init__(self, sample_rate: float, sample_format: str | SampleFormat = "u8") -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.sample_rate = float(sample_rate)
        self.format = sample_format if isinstance(sample_format, SampleFormat) else get_format(sample_format)
        self._ramp = np.arange(0, dtype=RAW_DTYPE)

    def _ticks(self, frames: int) -> np.ndarray:
        if self._ramp.shape[0] < frames:
            capacity = 1 << max(0, frames - 1).bit_length()
            self._ramp = np.arange(capacity, dtype=RAW_DTYPE)
        return self._ramp[:frames]

    def mix(self, voices: Sequence[VoiceThread], frames: int) -> np.ndarray:
        """Return ``frames`` float samples of the unclipped sum of ``voices``.

        Each voice contributes ``sin(phase)`` starting at its current phase;
        the voices are not advanced.
        """

        out = np.zeros(frames, dtype=RAW_DTYPE)
        if frames <= 0 or not voices:
            return out
        ramp = self._ticks(frames)
        two_pi = 2.0 * np.pi
        for voice in voices:
            if voice.remaining < frames:
                raise ValueError(
                    f"thread {voice.tid} has {voice.remaining} samples left, cannot mix {frames}"
                )
            phase = two_pi * voice.frequency * (voice.elapsed + ramp) / self.sample_rate
            np.mod(phase, two_pi, out=phase)
            out += np.sin(phase)
        return out

    def encode(self, mixed: np.ndarray) -> tuple[np.ndarray, int]:
        """Scale, saturate and quantise ``mixed``; return samples and clip count."""

        fmt = self.format
        scaled = np.asarray(mixed, dtype=RAW_DTYPE) * fmt.full_scale + fmt.offset
        clipped = int(np.count_nonzero((scaled < fmt.lo) | (scaled > fmt.hi)))
        np.clip(scaled, fmt.lo, fmt.hi, out=scaled)
        if fmt.integer:
            np.rint(scaled, out=scaled)
        return scaled.astype(fmt.dtype), clipped

    def render(self, voices: Sequence[VoiceThread], frames: int) -> tuple[np.ndarray, int]:
        return self.encode(self.mix(voices, frames))

    def silence(self, frames: int) -> np.ndarray:
        return np.full(frames, self.format.silence, dtype=self.format.dtype)


__all__ = ["Mixer", "RAW_DTYPE", "SAMPLE_FORMATS", "SampleFormat", "get_format"]
