#!/usr/bin/env python3
"""
rpn: interactive RPN calculator

Usage:
    python rpn.py [-f FILE ...] [-q] [-v] [--max-steps N] [--log-file PATH]

Lines from each --file are fed first, then standard input until end of
input or ``quit``. Ctrl-C stops a running loop at its next ``]``.

Examples:
    python rpn.py
    echo "10 6 4 - / p" | python rpn.py -q           # prints 5
    python rpn.py -f lib.rpn -v --log-file rpn.log
"""

import argparse
import logging
import signal
import sys
import os

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from rpncalc import __version__
from rpncalc.assembler import Assembler
from rpncalc.instructions import help_text
from rpncalc.log_setup import setup_logging
from rpncalc.machine import Machine

log = logging.getLogger("rpncalc.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpn",
        description="RPN calculator with complex numbers, registers, vectors and loops",
        epilog="Type 'help' at the prompt for the instruction list.",
    )
    parser.add_argument("-f", "--file", action="append", default=[], metavar="FILE",
                        help="Read commands from FILE before stdin (repeatable)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="No banner, only error diagnostics")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Trace tokens and executed instructions")
    parser.add_argument("--max-steps", type=int, default=None, metavar="N",
                        help="Stop any single run after N instructions")
    parser.add_argument("--log-file", default=None, metavar="PATH",
                        help="Also write a full debug log to PATH")
    parser.add_argument("--version", action="version",
                        version=f"rpn {__version__}")
    return parser


def install_interrupt(machine: Machine):
    """Route Ctrl-C to the machine's cancellation token."""
    def handler(signum, frame):
        machine.cancel.set()
    return signal.signal(signal.SIGINT, handler)


def feed_file(asm: Assembler, path: str) -> bool:
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        log.error("Cannot read %s: %s", path, e)
        return False
    log.debug("Reading %s (%d lines)", path, len(lines))
    asm.parse_lines(lines)
    return True


def repl(asm: Assembler, prompt: str):
    while True:
        try:
            line = input(prompt)
        except EOFError:
            break
        # a Ctrl-C typed at the prompt must not cancel the next loop
        asm.machine.cancel.clear()
        asm.parse_line(line)


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(argv)

    if args.quiet:
        console_level = logging.ERROR
    elif args.verbose:
        console_level = logging.DEBUG
    else:
        console_level = logging.INFO
    setup_logging("rpncalc", console_level=console_level, log_file=args.log_file)

    machine = Machine(max_steps=args.max_steps)
    asm = Assembler(machine)

    if not argv:
        machine.write(help_text().rstrip())

    prompt = "> " if sys.stdin.isatty() and not args.quiet else ""
    previous = install_interrupt(machine)
    try:
        for path in args.file:
            if not feed_file(asm, path):
                return 1
        repl(asm, prompt)
    finally:
        signal.signal(signal.SIGINT, previous)
    return 0


if __name__ == "__main__":
    sys.exit(main())
