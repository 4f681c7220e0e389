"""Reproducible uniform draws used to resolve probabilistic instructions."""

from __future__ import annotations

import numpy as np

__all__ = ["DecisionSource"]


class DecisionSource:
    """Lazy stream of independent uniform values in ``[0, 1)``.

    Every virtual thread owns one.  :meth:`spawn` derives a child stream from
    this one's seed sequence, so forked threads make decisions that are
    uncorrelated with their parent while the whole run stays reproducible from
    a single root seed.
    """

    __slots__ = ("_seed_seq", "_rng", "draws")

    def __init__(self, seed: int | np.random.SeedSequence | None = 0) -> None:
        if isinstance(seed, np.random.SeedSequence):
            seed_seq = seed
        else:
            seed_seq = np.random.SeedSequence(seed)
        self._seed_seq = seed_seq
        self._rng = np.random.Generator(np.random.PCG64(seed_seq))
        self.draws = 0

    def next(self) -> float:
        self.draws += 1
        return float(self._rng.random())

    __next__ = next

    def __iter__(self) -> "DecisionSource":
        return self

    def spawn(self) -> "DecisionSource":
        """Return an independent child stream."""

        (child,) = self._seed_seq.spawn(1)
        return DecisionSource(child)

    @property
    def spawn_key(self) -> tuple[int, ...]:
        return tuple(self._seed_seq.spawn_key)
