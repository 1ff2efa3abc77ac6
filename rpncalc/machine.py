"""
Calculator stack machine.

Executes the append-only program built by the assembler. The program
counter survives between runs, so CALL and JNZ targets resolved at
assembly time stay valid however many statements contributed code.

Execution model:
  1. Fetch the instruction at PC
  2. Dispatch on its op to a handler
  3. The handler mutates the state and may return a new PC
     (CALL, RET, taken JNZ); otherwise PC advances by one
  4. Repeat until PC reaches the end of the program

Termination reasons:
  - DONE:       ran off the end of the program
  - ERROR:      a fault (underflow, type mismatch, bad index, ...)
  - CANCELLED:  the cancellation token was set when a JNZ was reached
  - TIMEOUT:    max_steps exceeded

Whatever the reason, the unexecuted remainder of the program is skipped
(PC is moved to the end) and the return stack is cleared, so the next
statement starts clean. Stack, register and vector changes made before
a fault are kept.
"""

from __future__ import annotations
import logging
import math
import sys
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, TextIO

import numpy as np

from . import ops
from .errors import RpnError, TypeMismatch, UnbalancedControl
from .instructions import Instruction, Op
from .state import CancellationToken, MachineState, MAX_PRECISION
from .values import Value, as_value, format_value, is_complex, to_count

log = logging.getLogger(__name__)


class StopReason(Enum):
    DONE = 'DONE'
    ERROR = 'ERROR'
    CANCELLED = 'CANCELLED'
    TIMEOUT = 'TIMEOUT'


class _Cancelled(Exception):
    pass


class Machine:
    """RPN calculator machine.

    Usage:
        m = Machine()
        m.run([Instruction(Op.LITERAL, 2.0), Instruction(Op.DUP), Instruction(Op.MUL)])
        m.state.stack    # [4.0]
    """

    DEFAULT_MAX_STEPS: Optional[int] = None

    def __init__(self, out: Optional[TextIO] = None, max_steps: Optional[int] = None,
                 cancel: Optional[CancellationToken] = None):
        self.program: List[Instruction] = []
        self.state = MachineState(cancel)
        self.out = out
        self.max_steps = max_steps if max_steps is not None else self.DEFAULT_MAX_STEPS
        self.errors: List[str] = []
        self._dispatch = self._build_dispatch()

    @property
    def proglen(self) -> int:
        return len(self.program)

    @property
    def cancel(self) -> CancellationToken:
        return self.state.cancel

    def write(self, text: str):
        print(text, file=self.out if self.out is not None else sys.stdout)

    # ══════════════════════════════════════════════
    # Loading / execution
    # ══════════════════════════════════════════════

    def commit(self, instructions: Iterable[Instruction]) -> StopReason:
        """Append code without running it (subroutine bodies)."""
        self.program.extend(instructions)
        self.state.pc = len(self.program)
        return StopReason.DONE

    def run(self, instructions: Iterable[Instruction] = ()) -> StopReason:
        """Append ``instructions`` and execute from PC to the end of the program."""
        self.program.extend(instructions)
        steps = 0
        reason = StopReason.DONE
        try:
            while self.state.pc < len(self.program):
                if self.max_steps is not None and steps >= self.max_steps:
                    log.warning("Step limit (%d) reached, run stopped", self.max_steps)
                    reason = StopReason.TIMEOUT
                    break
                reason = self.step()
                if reason is not None:
                    break
                steps += 1
            else:
                reason = StopReason.DONE
        finally:
            # drop whatever was not executed
            self.state.pc = len(self.program)
            self.state.rstack.clear()
        return reason

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns a StopReason if the run must stop."""
        pc = self.state.pc
        instr = self.program[pc]
        if log.isEnabledFor(logging.DEBUG):
            log.debug("PC %d: %s  %s", pc, instr, self.state.display())
        try:
            next_pc = self._dispatch[instr.op](instr)
        except _Cancelled:
            log.warning("Interrupted ... stop")
            return StopReason.CANCELLED
        except RpnError as e:
            message = f"{e} (at {pc}: {instr})"
            self.errors.append(message)
            log.error(message)
            return StopReason.ERROR
        self.state.pc = pc + 1 if next_pc is None else next_pc
        return None

    # ══════════════════════════════════════════════
    # Handlers
    # ══════════════════════════════════════════════
    # Signature: handler(instr) -> Optional[int]
    # A non-None return value is the next PC.

    def _build_dispatch(self) -> Dict[Op, Callable[[Instruction], Optional[int]]]:
        table = {
            # ── Control ──
            Op.LITERAL: self._op_literal,
            Op.CALL:    self._op_call,
            Op.RET:     self._op_ret,
            Op.JNZ:     self._op_jnz,
            Op.QUIT:    self._op_quit,

            # ── Stack ──
            Op.DUP:        self._op_dup,
            Op.DROP:       self._op_drop,
            Op.OVER:       self._op_over,
            Op.ROT:        self._op_rot,
            Op.SWAP:       self._op_swap,
            Op.CLEAR:      self._op_clear,
            Op.DUMP_STACK: self._op_dump_stack,

            # ── Complex ──
            Op.REAL: self._op_real,
            Op.IMAG: self._op_imag,
            Op.R2C:  self._op_r2c,
            Op.C2R:  self._op_c2r,

            # ── Registers ──
            Op.SAVE:     self._op_save,
            Op.LOAD:     self._op_load,
            Op.CREG:     self._op_creg,
            Op.CLREGS:   self._op_clregs,
            Op.DUMP_REG: self._op_dump_reg,

            # ── Vectors ──
            Op.VREAL:    self._op_vreal,
            Op.VCPLX:    self._op_vcplx,
            Op.VSAVE:    self._op_vsave,
            Op.VLOAD:    self._op_vload,
            Op.CVEC:     self._op_cvec,
            Op.CLVECS:   self._op_clvecs,
            Op.DUMP_VEC: self._op_dump_vec,

            # ── Output ──
            Op.PRECISION:     self._op_precision,
            Op.GET_PRECISION: self._op_get_precision,
            Op.PRINT:         self._op_print,
        }
        for op, fn in ops.UNARY.items():
            table[op] = self._unary(fn)
        for op, fn in ops.BINARY.items():
            table[op] = self._binary(fn)
        return table

    def _unary(self, fn: Callable[[Value], Value]):
        def handler(instr: Instruction):
            self.state.push(fn(self.state.pop()))
        return handler

    def _binary(self, fn: Callable[[Value, Value], Value]):
        def handler(instr: Instruction):
            a, b = self.state.pop_n(2)
            self.state.push(fn(b, a))
        return handler

    # ── Control ──

    def _op_literal(self, instr: Instruction):
        self.state.push(instr.arg)

    def _op_call(self, instr: Instruction) -> int:
        self.state.rstack.append(self.state.pc)
        return instr.arg

    def _op_ret(self, instr: Instruction) -> int:
        if not self.state.rstack:
            raise UnbalancedControl("RET: return stack is empty")
        return self.state.rstack.pop() + 1

    def _op_jnz(self, instr: Instruction) -> Optional[int]:
        value = self.state.pop()
        # the only point where an interrupt is honoured
        if self.state.cancel.consume():
            raise _Cancelled()
        if value != 0:
            return instr.arg
        return None

    def _op_quit(self, instr: Instruction):
        log.info("Exit from calculator. Bye.")
        sys.exit(0)

    # ── Stack ──

    def _op_dup(self, instr: Instruction):
        self.state.push(self.state.peek())

    def _op_drop(self, instr: Instruction):
        self.state.pop()

    def _op_over(self, instr: Instruction):
        self.state.push(self.state.peek(1))

    def _op_rot(self, instr: Instruction):
        # [x y z] -> [y z x]
        z, y, x = self.state.pop_n(3)
        self.state.push(y)
        self.state.push(z)
        self.state.push(x)

    def _op_swap(self, instr: Instruction):
        a, b = self.state.pop_n(2)
        self.state.push(a)
        self.state.push(b)

    def _op_clear(self, instr: Instruction):
        self.state.stack.clear()

    def _op_dump_stack(self, instr: Instruction):
        p = self.state.precision
        self.write("Stack: [" + ', '.join(format_value(v, p) for v in self.state.stack) + "]")

    # ── Complex ──

    def _op_real(self, instr: Instruction):
        self.state.push(float(self.state.pop().real))

    def _op_imag(self, instr: Instruction):
        self.state.push(float(self.state.pop().imag))

    def _op_r2c(self, instr: Instruction):
        im, re = self.state.pop_n(2)
        if is_complex(im) or is_complex(re):
            raise TypeMismatch("r2c: needs two real operands")
        self.state.push(complex(re, im))

    def _op_c2r(self, instr: Instruction):
        v = self.state.pop()
        self.state.push(float(v.real))
        self.state.push(float(v.imag))

    # ── Registers ──

    def _op_save(self, instr: Instruction):
        self.state.registers[instr.arg] = self.state.pop()

    def _op_load(self, instr: Instruction):
        self.state.push(self.state.registers[instr.arg])

    def _op_creg(self, instr: Instruction):
        self.state.registers[instr.arg] = 0.0

    def _op_clregs(self, instr: Instruction):
        for i in range(len(self.state.registers)):
            self.state.registers[i] = 0.0

    def _op_dump_reg(self, instr: Instruction):
        p = self.state.precision
        found = False
        for i, v in enumerate(self.state.registers):
            if v != 0:
                self.write(f"Reg {i:3}: {format_value(v, p)}")
                found = True
        if not found:
            self.write("All registers are zero.")

    # ── Vectors ──

    def _pop_real(self, what: str) -> float:
        v = self.state.pop()
        if is_complex(v):
            raise TypeMismatch(f"{what}: complex operand not allowed")
        return v

    def _op_vreal(self, instr: Instruction):
        length = to_count(self._pop_real("vreal length"))
        self.state.create_vector(instr.arg, length, np.float64)

    def _op_vcplx(self, instr: Instruction):
        length = to_count(self._pop_real("vcplx length"))
        self.state.create_vector(instr.arg, length, np.complex128)

    def _op_vsave(self, instr: Instruction):
        offset, value = self.state.pop_n(2)
        if is_complex(offset):
            raise TypeMismatch("vsave: complex element index")
        vec = self.state.check_element(instr.arg, to_count(offset))
        vec_is_complex = np.iscomplexobj(vec)
        if vec_is_complex != is_complex(value):
            kind = "complex" if vec_is_complex else "real"
            raise TypeMismatch(f"vsave: vector {instr.arg} holds {kind} values")
        vec[to_count(offset)] = value

    def _op_vload(self, instr: Instruction):
        offset = to_count(self._pop_real("vload element index"))
        vec = self.state.check_element(instr.arg, offset)
        self.state.push(as_value(vec[offset]))

    def _op_cvec(self, instr: Instruction):
        self.state.clear_vector(instr.arg)

    def _op_clvecs(self, instr: Instruction):
        for i in range(len(self.state.vectors)):
            self.state.clear_vector(i)
        log.info("All vectors cleared.")

    def _op_dump_vec(self, instr: Instruction):
        found = False
        for i, vec in enumerate(self.state.vectors):
            if len(vec):
                kind = "complex" if np.iscomplexobj(vec) else "real"
                self.write(f"Vec {i:3}  len: {len(vec)}  {kind}")
                found = True
        if not found:
            self.write("No vectors defined. Use LEN VNUM vreal or LEN VNUM vcplx to create one.")

    # ── Output ──

    def _op_precision(self, instr: Instruction):
        digits = self._pop_real("precision")
        if math.isnan(digits):
            digits = 0.0
        self.state.precision = int(min(max(digits, 0.0), MAX_PRECISION))

    def _op_get_precision(self, instr: Instruction):
        self.state.push(float(self.state.precision))

    def _op_print(self, instr: Instruction):
        self.write(format_value(self.state.peek(), self.state.precision))
