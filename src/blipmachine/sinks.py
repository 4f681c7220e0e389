"""Destinations for encoded PCM blocks.

Every sink reports "the consumer went away" by raising :class:`StreamClosed`;
the scheduler treats that as a clean stop, never as a failure.
"""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import BinaryIO, Optional

import numpy as np

__all__ = [
    "BufferSink",
    "DeviceSink",
    "FileSink",
    "SampleSink",
    "StdoutSink",
    "StreamSink",
    "StreamClosed",
    "open_sink",
]


class StreamClosed(Exception):
    """The output sink no longer accepts samples."""


class SampleSink:
    """Base class; subclasses implement :meth:`write`."""

    def write(self, samples: np.ndarray) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "SampleSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StreamSink(SampleSink):
    """Write raw little-endian bytes to a binary stream."""

    def __init__(self, stream: BinaryIO, *, owns_stream: bool = False) -> None:
        self._stream = stream
        self._owns_stream = owns_stream

    def write(self, samples: np.ndarray) -> None:
        try:
            self._stream.write(np.ascontiguousarray(samples).tobytes())
        except OSError as exc:
            # Broken pipe, reset socket, full disk: the consumer is gone.
            raise StreamClosed(str(exc)) from exc
        except ValueError as exc:
            # Writing to a closed file object.
            if self._stream.closed:
                raise StreamClosed(str(exc)) from exc
            raise

    def flush(self) -> None:
        try:
            self._stream.flush()
        except OSError as exc:
            raise StreamClosed(str(exc)) from exc
        except ValueError as exc:
            if self._stream.closed:
                raise StreamClosed(str(exc)) from exc
            raise

    def close(self) -> None:
        if not self._owns_stream or self._stream.closed:
            return
        try:
            self._stream.close()
        except OSError:
            # close() flushes again; the stream is closed either way.
            pass


class StdoutSink(StreamSink):
    def __init__(self, stream: Optional[BinaryIO] = None) -> None:
        super().__init__(stream if stream is not None else sys.stdout.buffer)


class FileSink(StreamSink):
    """Headerless raw PCM file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(open(self.path, "wb"), owns_stream=True)


class BufferSink(SampleSink):
    """Collect samples in memory.

    ``close_after`` simulates a consumer that hangs up once it has accepted
    that many samples: a write that would take the total past the limit
    stores the part that fits and raises :class:`StreamClosed`.  A write that
    lands exactly on the limit is accepted; the next one raises.

    ``dtype`` fixes the sample type; otherwise the first block decides it.
    """

    def __init__(self, *, close_after: int | None = None, dtype: str | np.dtype | None = None) -> None:
        self._buffer = io.BytesIO()
        self._accepted = 0
        self.dtype = None if dtype is None else np.dtype(dtype)
        self.close_after = close_after
        self.closed = False

    def write(self, samples: np.ndarray) -> None:
        if self.closed:
            raise StreamClosed("buffer sink closed")
        samples = np.ascontiguousarray(samples)
        if self.dtype is None:
            self.dtype = samples.dtype
        elif samples.dtype != self.dtype:
            raise ValueError(f"expected {self.dtype} samples, got {samples.dtype}")
        if self.close_after is not None and self._accepted + samples.shape[0] > self.close_after:
            self._store(samples[: self.close_after - self._accepted])
            self.closed = True
            raise StreamClosed(f"consumer stopped after {self.close_after} samples")
        self._store(samples)

    def _store(self, samples: np.ndarray) -> None:
        self._buffer.write(samples.tobytes())
        self._accepted += int(samples.shape[0])

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()

    def samples(self) -> np.ndarray:
        dtype = self.dtype if self.dtype is not None else np.dtype("u1")
        return np.frombuffer(self.getvalue(), dtype=dtype).copy()

    def __len__(self) -> int:
        return self._accepted

    def close(self) -> None:
        self.closed = True


_DEVICE_DTYPES = {"u1": "uint8", "<i2": "int16", "<f4": "float32"}


class DeviceSink(SampleSink):
    """Play through the default output device using ``sounddevice``."""

    def __init__(self, sample_rate: int, dtype: str, *, device=None) -> None:
        import sounddevice as sd

        self._sd = sd
        try:
            self._stream = sd.RawOutputStream(
                samplerate=sample_rate,
                channels=1,
                dtype=_DEVICE_DTYPES.get(dtype, dtype),
                device=device,
            )
            self._stream.start()
        except sd.PortAudioError as exc:
            raise RuntimeError(f"Audio output unavailable: {exc}") from exc

    def write(self, samples: np.ndarray) -> None:
        if self._stream.closed:
            raise StreamClosed("audio stream closed")
        try:
            self._stream.write(np.ascontiguousarray(samples).tobytes())
        except self._sd.PortAudioError as exc:
            raise StreamClosed(str(exc)) from exc

    def close(self) -> None:
        if self._stream.closed:
            return
        try:
            self._stream.stop()
        finally:
            self._stream.close()


def open_sink(kind: str, *, path: str | Path | None = None, sample_rate: int = 8000, dtype: str = "u1") -> SampleSink:
    """Build a sink from configuration values."""

    if kind == "stdout":
        return StdoutSink()
    if kind == "file":
        if path is None:
            raise ValueError("file sink requires a path")
        return FileSink(path)
    if kind == "device":
        return DeviceSink(sample_rate, dtype)
    if kind == "buffer":
        return BufferSink()
    raise ValueError(f"unknown sink '{kind}'")
