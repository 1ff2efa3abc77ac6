"""
Calculator machine state: stacks, register bank, vector bank, precision,
program counter and the cancellation token.

One :class:`MachineState` is created per session and owned by the
:class:`~rpncalc.machine.Machine`; every statement mutates it and nothing
is rolled back when a statement faults.

Layout:
  stack       operand stack of Values (top = last element)
  rstack      return addresses pushed by CALL
  registers   256 Value slots, Real 0.0 initially
  vectors     256 numpy buffers, float64 or complex128, initially empty
  precision   digits after the point for ``print`` (0 = automatic)
  pc          index of the next instruction to execute
  cancel      set asynchronously (Ctrl-C), polled only by JNZ
"""

from __future__ import annotations
import threading
from typing import List, Optional

import numpy as np

from .errors import StackUnderflow, StackOverflow, IndexOutOfRange
from .values import Value, format_value

REGISTER_COUNT = 256
VECTOR_COUNT = 256
MAX_PRECISION = 17


class CancellationToken:
    """Process-wide interrupt flag.

    Written by the host's interrupt handler, read by the machine only at
    a loop back-edge.
    """

    def __init__(self):
        self._event = threading.Event()

    def set(self):
        self._event.set()

    def clear(self):
        self._event.clear()

    def is_set(self) -> bool:
        return self._event.is_set()

    def consume(self) -> bool:
        """Return True (and reset the flag) if cancellation was requested."""
        if self._event.is_set():
            self._event.clear()
            return True
        return False


class MachineState:
    """Mutable state of one calculator session."""

    MAX_STACK = 1_000_000
    MAX_VECTOR_LEN = 1 << 24

    def __init__(self, cancel: Optional[CancellationToken] = None):
        self.cancel = cancel if cancel is not None else CancellationToken()
        self.stack: List[Value] = []
        self.rstack: List[int] = []
        self.registers: List[Value] = [0.0] * REGISTER_COUNT
        self.vectors: List[np.ndarray] = [self._empty_vector() for _ in range(VECTOR_COUNT)]
        self.precision: int = 0
        self.pc: int = 0

    @staticmethod
    def _empty_vector() -> np.ndarray:
        return np.zeros(0, dtype=np.float64)

    # --- Operand stack ---

    def push(self, value: Value):
        if len(self.stack) >= self.MAX_STACK:
            raise StackOverflow(f"Stack is full ({len(self.stack)} elements), clear it")
        self.stack.append(value)

    def pop(self) -> Value:
        if not self.stack:
            raise StackUnderflow("Stack is empty")
        return self.stack.pop()

    def pop_n(self, n: int) -> List[Value]:
        """Pop ``n`` values; returned top-first. Nothing is popped on underflow."""
        if len(self.stack) < n:
            raise StackUnderflow(f"Need {n} operands, stack holds {len(self.stack)}")
        return [self.stack.pop() for _ in range(n)]

    def peek(self, depth: int = 0) -> Value:
        if len(self.stack) <= depth:
            raise StackUnderflow("Stack is empty" if not self.stack
                                 else f"Need {depth + 1} operands, stack holds {len(self.stack)}")
        return self.stack[-1 - depth]

    # --- Vector bank ---

    def create_vector(self, index: int, length: int, dtype=np.float64):
        if length < 0:
            raise IndexOutOfRange(f"Vector {index}: negative length {length}")
        if length > self.MAX_VECTOR_LEN:
            raise IndexOutOfRange(
                f"Vector length {length} exceeds limit {self.MAX_VECTOR_LEN}")
        self.vectors[index] = np.zeros(length, dtype=dtype)

    def clear_vector(self, index: int):
        self.vectors[index] = self._empty_vector()

    def check_element(self, index: int, offset: int) -> np.ndarray:
        vec = self.vectors[index]
        if not 0 <= offset < len(vec):
            raise IndexOutOfRange(
                f"Vector {index}: element {offset} out of range (len {len(vec)})")
        return vec

    # --- Display ---

    def display(self) -> str:
        body = ' '.join(format_value(v) for v in self.stack)
        return f"pc={self.pc} depth={len(self.stack)} rdepth={len(self.rstack)} [{body}]"
