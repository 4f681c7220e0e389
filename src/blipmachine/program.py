"""Instruction types and the validated, immutable program table."""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Union

__all__ = [
    "DuplicateLabelError",
    "Fork",
    "Jump",
    "Label",
    "MalformedInstructionError",
    "OP_FORK",
    "OP_JUMP",
    "OP_LABEL",
    "OP_TONE",
    "Program",
    "ProgramError",
    "ProgramErrors",
    "Tone",
    "UnresolvedLabelError",
    "label_errors",
]


# =========================
# Errors
# =========================


class ProgramError(ValueError):
    """Base class for anything that stops a program from loading."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def describe(self, prog: str = "blip-machine") -> str:
        if self.line is None:
            return f"{prog}: error: {self.message}"
        return f"{prog}:{self.line} error: {self.message}"


class MalformedInstructionError(ProgramError):
    pass


class DuplicateLabelError(ProgramError):
    def __init__(self, name: str, *, line: int | None = None) -> None:
        super().__init__(f"duplicate label '{name}'", line=line)
        self.name = name


class UnresolvedLabelError(ProgramError):
    def __init__(self, name: str, *, line: int | None = None) -> None:
        super().__init__(f"unknown label '{name}'", line=line)
        self.name = name


class ProgramErrors(ProgramError):
    """Every problem found while compiling a program text."""

    def __init__(self, errors: Iterable[ProgramError]) -> None:
        self.errors = list(errors)
        count = len(self.errors)
        plural = "error" if count == 1 else "errors"
        super().__init__(f"aborting due to {count} previous {plural}.")


# =========================
# Instructions
# =========================


@dataclass(frozen=True, slots=True)
class Label:
    name: str


@dataclass(frozen=True, slots=True)
class Tone:
    frequency: float
    duration: float


@dataclass(frozen=True, slots=True)
class Jump:
    target: str
    probability: float


@dataclass(frozen=True, slots=True)
class Fork:
    target: str
    probability: float


Instruction = Union[Label, Tone, Jump, Fork]

# Opcodes used by the resolved code table.
OP_LABEL = 0
OP_TONE = 1
OP_JUMP = 2
OP_FORK = 3


def _as_number(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise MalformedInstructionError("expected a number") from None
    if not math.isfinite(number):
        raise MalformedInstructionError("expected a number")
    return number


def _check_operands(instruction: Instruction) -> None:
    if isinstance(instruction, Label):
        if not instruction.name:
            raise MalformedInstructionError("label name must not be empty")
    elif isinstance(instruction, Tone):
        freq = _as_number(instruction.frequency)
        dur = _as_number(instruction.duration)
        if freq <= 0.0:
            raise MalformedInstructionError("frequency must be positive")
        if dur < 0.0:
            raise MalformedInstructionError("duration must not be negative")
    elif isinstance(instruction, (Jump, Fork)):
        prob = _as_number(instruction.probability)
        if not (0.0 <= prob <= 1.0):
            raise MalformedInstructionError("probabilities must be between 0 and 1")
    else:
        raise MalformedInstructionError(f"unknown instruction {instruction!r}")


def label_errors(numbered: Iterable[tuple[int | None, Instruction]]) -> list[ProgramError]:
    """Return duplicate and unresolved label errors sorted by line.

    ``numbered`` pairs each instruction with its source line (or ``None``).
    A duplicate is reported at its second definition; every jump or fork
    naming a missing label is reported at the jump.
    """

    items = list(numbered)
    defined: set[str] = set()
    errors: list[ProgramError] = []
    for line, instruction in items:
        if isinstance(instruction, Label):
            if instruction.name in defined:
                errors.append(DuplicateLabelError(instruction.name, line=line))
            defined.add(instruction.name)
    for line, instruction in items:
        if isinstance(instruction, (Jump, Fork)) and instruction.target not in defined:
            errors.append(UnresolvedLabelError(instruction.target, line=line))
    errors.sort(key=lambda error: -1 if error.line is None else error.line)
    return errors


class Program:
    """Validated instruction list shared read-only by every thread.

    Label targets are resolved to integer indices once, when the program is
    built; ``code`` holds one ``(opcode, a, b)`` tuple per instruction so the
    scheduler never performs string lookups.
    """

    __slots__ = ("_instructions", "_labels", "_code")

    def __init__(
        self,
        instructions: tuple[Instruction, ...],
        labels: Mapping[str, int],
        code: tuple[tuple[int, object, float], ...],
    ) -> None:
        self._instructions = instructions
        self._labels = MappingProxyType(dict(labels))
        self._code = code

    @classmethod
    def from_instructions(cls, instructions: Iterable[Instruction]) -> "Program":
        """Validate ``instructions`` and build a program.

        Raises the first :class:`ProgramError` found; nothing is returned
        unless the whole list is valid.
        """

        items = tuple(instructions)
        for instruction in items:
            _check_operands(instruction)
        errors = label_errors((None, instruction) for instruction in items)
        if errors:
            raise errors[0]

        labels = {
            instruction.name: index
            for index, instruction in enumerate(items)
            if isinstance(instruction, Label)
        }
        code: list[tuple[int, object, float]] = []
        for instruction in items:
            if isinstance(instruction, Label):
                code.append((OP_LABEL, instruction.name, 0.0))
            elif isinstance(instruction, Tone):
                code.append((OP_TONE, float(instruction.frequency), float(instruction.duration)))
            else:
                opcode = OP_JUMP if isinstance(instruction, Jump) else OP_FORK
                code.append((opcode, labels[instruction.target], float(instruction.probability)))
        return cls(items, labels, tuple(code))

    @property
    def instructions(self) -> tuple[Instruction, ...]:
        return self._instructions

    @property
    def labels(self) -> Mapping[str, int]:
        return self._labels

    @property
    def code(self) -> tuple[tuple[int, object, float], ...]:
        return self._code

    def __len__(self) -> int:
        return len(self._instructions)

    def __repr__(self) -> str:
        return f"Program(instructions={len(self._instructions)}, labels={len(self._labels)})"
