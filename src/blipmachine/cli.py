"""Command line entry point for the blip machine."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .application import BlipApplication
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_configuration, normalise_log_level
from .diagnostics import configure_logging
from .mixer import SAMPLE_FORMATS
from .program import ProgramErrors
from .sinks import StdoutSink

PROG = "blip-machine"

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=(
            "Compile a tone program and stream it as raw mono PCM, e.g."
            " `blip-machine song.blip | aplay -r 8000 -f U8`"
        ),
    )
    parser.add_argument(
        "program",
        nargs="?",
        default="-",
        help="Program file to read ('-' or omitted reads stdin)",
    )
    parser.add_argument("--config", type=Path, help="Path to a JSON configuration file")
    parser.add_argument("--sample-rate", type=int, help="Output sample rate in Hz")
    parser.add_argument(
        "--format",
        dest="sample_format",
        choices=sorted(SAMPLE_FORMATS),
        help="Raw sample format written to the output",
    )
    parser.add_argument("--seed", type=int, help="Seed for probabilistic jumps and forks")
    parser.add_argument("--output", type=Path, help="Write raw samples to this file instead of stdout")
    parser.add_argument(
        "--play",
        action="store_true",
        help="Play through the default audio device (requires sounddevice)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        help="Stop after this many seconds of audio, even if the program loops",
    )
    parser.add_argument(
        "--log-level",
        help="Logging verbosity on stderr (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Compile the program, print a summary and exit without rendering",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Load the configuration file and apply command line overrides."""

    if args.config is not None:
        config = load_configuration(args.config)
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_configuration(DEFAULT_CONFIG_PATH)
    else:
        config = AppConfig()

    if args.sample_rate is not None:
        if args.sample_rate <= 0:
            raise ValueError("--sample-rate must be positive")
        config = replace(config, sample_rate=args.sample_rate)
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.log_level is not None:
        config = replace(config, runtime=replace(config.runtime, log_level=normalise_log_level(args.log_level)))

    output = config.output
    if args.sample_format is not None:
        output = replace(output, sample_format=args.sample_format)
    if args.play:
        output = replace(output, sink="device", path=None)
    elif args.output is not None:
        output = replace(output, sink="file", path=str(args.output))
    return replace(config, output=output)


def _read_program(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _detach_stdout() -> None:
    # Point stdout at devnull so interpreter shutdown does not report the
    # broken pipe a second time.
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    except (OSError, ValueError):
        return


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except (OSError, ValueError, TypeError) as exc:
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        return 1
    configure_logging(config.runtime.log_level)

    if args.duration is not None and args.duration < 0:
        print(f"{PROG}: error: --duration must not be negative", file=sys.stderr)
        return 1
    limit = None if args.duration is None else int(round(args.duration * config.sample_rate))

    try:
        text = _read_program(args.program)
    except OSError as exc:
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        return 1

    app = BlipApplication.from_config(config)
    try:
        app.load(text)
    except ProgramErrors as exc:
        for error in exc.errors:
            print(error.describe(PROG), file=sys.stderr)
        print(f"\nerror: {exc.message}", file=sys.stderr)
        return 1

    if args.check:
        print(app.summary())
        return 0

    try:
        sink = app.open_sink()
    except (ImportError, OSError, RuntimeError) as exc:
        print(f"{PROG}: error: cannot open output: {exc}", file=sys.stderr)
        return 1

    _LOGGER.info(
        "Streaming %s at %d Hz to %s", config.output.sample_format, config.sample_rate, config.output.sink
    )
    with sink:
        stats = app.render(sink, limit=limit)
    if stats.reason == "closed" and isinstance(sink, StdoutSink):
        _detach_stdout()
    return 0


__all__ = ["main", "build_parser", "resolve_config"]
