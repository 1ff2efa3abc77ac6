"""
Single-pass assembler for the RPN calculator.

Turns input lines into machine instructions and hands them to the
:class:`~rpncalc.machine.Machine`. Unlike a classic two-pass assembler
there are no forward references: a subroutine must be defined before it
is called and a loop's target is always behind its ``]``, so every
address is known the moment it is needed.

Addresses are absolute indices into the machine's program, which only
ever grows. An address is computed as::

    machine.proglen + len(pending)

where ``pending`` is the buffer of instructions for the statement being
assembled. That value stays valid after the buffer is committed, which is
what lets ``[`` record its target before the loop body exists.

Parse states:
  NORMAL         each line is run as soon as it is assembled
  AWAITING_NAME  after ``:``; the next token names the subroutine
  IN_BODY        tokens are buffered (across lines) until ``;``

Index-taking mnemonics (``save``, ``load``, ``vsave`` ...) get their
register/vector number from the literal assembled just before them:
``3 save`` pops the ``LITERAL 3`` back out of the buffer and emits
``SAVE 3``.

Errors abort the rest of the line. Whatever was assembled before the
fault is still run at the end of the statement.
"""

from __future__ import annotations
import enum
import logging
from typing import Dict, Iterable, List, Optional

from .errors import RpnError, RpnSyntaxError, LexerError, IndexNeeded, UnbalancedControl
from .instructions import (
    Instruction, Op, MNEMONICS, INDEXED_MNEMONICS, is_reserved, help_text,
)
from .lexer import Lexer, Token, TokenType
from .machine import Machine
from .values import is_real, to_index

__all__ = ['Assembler', 'ParseState', 'evaluate']

log = logging.getLogger(__name__)


def _is_numeric(tok: Token) -> bool:
    try:
        tok.number()
    except LexerError:
        return False
    return True


class ParseState(enum.Enum):
    NORMAL = 'NORMAL'
    AWAITING_NAME = 'AWAITING_NAME'
    IN_BODY = 'IN_BODY'


class Assembler:
    """Line-at-a-time assembler bound to one machine.

    Usage:
        asm = Assembler()
        asm.parse_line(": sq dup * ;")
        asm.parse_line("5 sq p")        # prints 25
    """

    def __init__(self, machine: Optional[Machine] = None):
        self.machine = machine if machine is not None else Machine()
        self.pending: List[Instruction] = []       # instructions of the current statement
        self.subroutines: Dict[str, int] = {}      # name -> entry address
        self.loop_addrs: List[int] = []            # open '[' targets
        self.mode = ParseState.NORMAL
        self.errors: List[str] = []
        self._last_literal = False                 # pending[-1] came from the previous token
        self._def_base = 0
        self._def_loop_depth = 0
        self._def_name: Optional[str] = None
        self._def_prev: Optional[int] = None

    @property
    def address(self) -> int:
        """Absolute address the next emitted instruction will occupy."""
        return self.machine.proglen + len(self.pending)

    # ══════════════════════════════════════════════
    # Entry points
    # ══════════════════════════════════════════════

    def parse_line(self, line: str) -> None:
        """Assemble one line and, outside a definition, execute it."""
        loop_depth = len(self.loop_addrs)
        try:
            for tok in Lexer(line).tokens():
                log.debug("Token: %r", tok)
                self._handle(tok)
        except RpnError as e:
            self.errors.append(str(e))
            log.error("%s", e)
            if self.mode is ParseState.NORMAL:
                # a '[' opened on the failed line must not pair with a later ']'
                del self.loop_addrs[loop_depth:]

        if self.mode is ParseState.NORMAL and self.pending:
            self._flush()

    def parse_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.parse_line(line)

    # ══════════════════════════════════════════════
    # Token handling
    # ══════════════════════════════════════════════

    def _handle(self, tok: Token):
        if self.mode is ParseState.AWAITING_NAME:
            self._define_name(tok)
            return

        follows_literal = self._last_literal
        self._last_literal = False

        if tok.type is TokenType.MNEMONIC:
            if tok.text in INDEXED_MNEMONICS:
                index = self._take_index(tok, follows_literal)
                self._emit(Instruction(INDEXED_MNEMONICS[tok.text], index))
            else:
                self._emit(Instruction(MNEMONICS[tok.text]))

        elif tok.type is TokenType.CONTROL:
            self._control(tok)

        elif tok.type is TokenType.NUMBER:
            self._emit(Instruction(Op.LITERAL, tok.number()))
            self._last_literal = True

        elif tok.type is TokenType.IMAGINARY:
            imag = tok.number()
            real = 0.0
            # "3 4j" is one literal, 3+4j
            if follows_literal and is_real(self.pending[-1].arg):
                real = self.pending.pop().arg
            self._emit(Instruction(Op.LITERAL, complex(real, imag)))
            self._last_literal = True

        elif tok.text in self.subroutines:
            self._emit(Instruction(Op.CALL, self.subroutines[tok.text]))

        elif _is_numeric(tok):
            # ".5", "+3", "inf" and friends
            self._emit(Instruction(Op.LITERAL, tok.number()))
            self._last_literal = True

        else:
            raise RpnSyntaxError(
                f"Unknown word '{tok.text}'. Please type 'help'.", tok.text, tok.column)

    def _emit(self, instr: Instruction):
        self.pending.append(instr)

    def _take_index(self, tok: Token, follows_literal: bool) -> int:
        """Pop the literal just before ``tok`` and use it as an 8-bit index."""
        if not follows_literal or self.pending[-1].op is not Op.LITERAL \
                or not is_real(self.pending[-1].arg):
            raise IndexNeeded(
                f"Register/vector number needed before '{tok.text}'", tok.text, tok.column)
        return to_index(self.pending.pop().arg)

    def _control(self, tok: Token):
        text = tok.text
        if text == ':':
            self._begin_definition(tok)
        elif text == ';':
            self._end_definition(tok)
        elif text == '[':
            self.loop_addrs.append(self.address)
        elif text == ']':
            floor = self._def_loop_depth if self.mode is ParseState.IN_BODY else 0
            if len(self.loop_addrs) <= floor:
                raise UnbalancedControl("']' without matching '['", text, tok.column)
            self._emit(Instruction(Op.JNZ, self.loop_addrs.pop()))
        elif text == 'help':
            self.machine.write(help_text().rstrip())
        elif text in ('dumpsr', 'dsr'):
            self._dump_subroutines()

    # ── Subroutines ──

    def _begin_definition(self, tok: Token):
        if self.mode is ParseState.IN_BODY:
            self._abandon_definition()
            raise UnbalancedControl("':' inside a definition", tok.text, tok.column)
        # run what the line assembled so far, the body must not
        if self.pending:
            self._flush()
        self._def_base = self.machine.proglen
        self._def_loop_depth = len(self.loop_addrs)
        self.mode = ParseState.AWAITING_NAME

    def _define_name(self, tok: Token):
        name = tok.text
        if is_reserved(name) or tok.type in (TokenType.NUMBER, TokenType.IMAGINARY) \
                or _is_numeric(tok):
            self.mode = ParseState.NORMAL
            raise RpnSyntaxError(f"'{name}' cannot be used as a subroutine name",
                                 name, tok.column)
        self._def_name = name
        self._def_prev = self.subroutines.get(name)
        if self._def_prev is not None:
            log.info("Redefining subroutine '%s' (was at %d)", name, self.subroutines[name])
        self.subroutines[name] = self._def_base
        self.mode = ParseState.IN_BODY

    def _end_definition(self, tok: Token):
        if self.mode is not ParseState.IN_BODY:
            raise UnbalancedControl("';' without ':'", tok.text, tok.column)
        if len(self.loop_addrs) > self._def_loop_depth:
            self._abandon_definition()
            raise UnbalancedControl("'[' not closed before ';'", tok.text, tok.column)
        self._emit(Instruction(Op.RET))
        self.machine.commit(self.pending)
        self.pending = []
        self._last_literal = False
        self.mode = ParseState.NORMAL

    def _abandon_definition(self):
        del self.loop_addrs[self._def_loop_depth:]
        self.pending = []
        self._last_literal = False
        self.mode = ParseState.NORMAL
        # the body was never committed, so the name must not point at its address
        if self._def_prev is None:
            self.subroutines.pop(self._def_name, None)
        else:
            self.subroutines[self._def_name] = self._def_prev

    def _dump_subroutines(self):
        if not self.subroutines:
            self.machine.write("No subroutines defined.")
            return
        for name, addr in sorted(self.subroutines.items(), key=lambda kv: kv[1]):
            self.machine.write(f"{name:<16} @ {addr}")

    # ── Execution ──

    def _flush(self):
        instrs = self.pending
        self.pending = []
        self._last_literal = False
        self.machine.run(instrs)


def evaluate(source: str, machine: Optional[Machine] = None) -> Assembler:
    """Feed every line of ``source`` to a fresh assembler and return it."""
    asm = Assembler(machine)
    asm.parse_lines(source.splitlines())
    return asm
