"""Probabilistic tone-program interpreter producing raw PCM audio."""

from __future__ import annotations

from .application import BlipApplication
from .compiler import parse_program
from .decisions import DecisionSource
from .mixer import Mixer
from .program import (
    DuplicateLabelError,
    Fork,
    Jump,
    Label,
    MalformedInstructionError,
    Program,
    ProgramError,
    ProgramErrors,
    Tone,
    UnresolvedLabelError,
    label_errors,
)
from .scheduler import RenderStats, Scheduler
from .sinks import StreamClosed

__all__ = [
    "BlipApplication",
    "DecisionSource",
    "DuplicateLabelError",
    "Fork",
    "Jump",
    "Label",
    "MalformedInstructionError",
    "Mixer",
    "Program",
    "ProgramError",
    "ProgramErrors",
    "RenderStats",
    "Scheduler",
    "StreamClosed",
    "Tone",
    "UnresolvedLabelError",
    "label_errors",
    "parse_program",
]
