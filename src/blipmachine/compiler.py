"""Compile program text into a :class:`~blipmachine.program.Program`.

One instruction per line, whitespace separated::

    lbl <name>
    sin <frequency> <duration>
    pjump <name> <probability>
    pfork <name> <probability>

Blank lines are ignored.  All problems in the text are collected and raised
together as :class:`ProgramErrors`, each tagged with its 1-based line number.
"""

from __future__ import annotations

import logging
import math
from typing import List, Sequence

from .program import (
    Fork,
    Instruction,
    Jump,
    Label,
    MalformedInstructionError,
    Program,
    ProgramError,
    ProgramErrors,
    Tone,
    label_errors,
)

__all__ = ["parse_program", "parse_line"]

_LOGGER = logging.getLogger(__name__)


def _number(token: str, line: int) -> float:
    try:
        value = float(token)
    except ValueError:
        raise MalformedInstructionError("expected a number", line=line) from None
    if not math.isfinite(value):
        raise MalformedInstructionError("expected a number", line=line)
    return value


def _probability(token: str, line: int) -> float:
    value = _number(token, line)
    if not 0.0 <= value <= 1.0:
        raise MalformedInstructionError("probabilities must be between 0 and 1", line=line)
    return value


def parse_line(tokens: Sequence[str], line: int) -> Instruction:
    """Turn one tokenised line into an instruction."""

    if not tokens:
        raise MalformedInstructionError("bad syntax", line=line)
    opcode, operands = tokens[0], list(tokens[1:])
    if opcode == "lbl" and len(operands) == 1:
        return Label(operands[0])
    if opcode == "sin" and len(operands) == 2:
        frequency = _number(operands[0], line)
        duration = _number(operands[1], line)
        if frequency <= 0.0:
            raise MalformedInstructionError("frequency must be positive", line=line)
        if duration < 0.0:
            raise MalformedInstructionError("duration must not be negative", line=line)
        return Tone(frequency, duration)
    if opcode == "pjump" and len(operands) == 2:
        return Jump(operands[0], _probability(operands[1], line))
    if opcode == "pfork" and len(operands) == 2:
        return Fork(operands[0], _probability(operands[1], line))
    raise MalformedInstructionError("bad syntax", line=line)


def parse_program(text: str) -> Program:
    """Compile ``text``; raise :class:`ProgramErrors` if anything is wrong."""

    errors: List[ProgramError] = []
    parsed: list[tuple[int, Instruction]] = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        tokens = raw.split()
        if not tokens:
            continue
        try:
            parsed.append((line_no, parse_line(tokens, line_no)))
        except ProgramError as exc:
            errors.append(exc)

    errors.extend(label_errors(parsed))

    if errors:
        errors.sort(key=lambda exc: exc.line or 0)
        raise ProgramErrors(errors)

    program = Program.from_instructions(instruction for _, instruction in parsed)
    _LOGGER.info(
        "Loaded program: %d instructions, %d labels", len(program), len(program.labels)
    )
    return program
