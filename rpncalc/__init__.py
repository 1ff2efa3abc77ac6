"""
rpncalc: interactive RPN calculator
===================================
A stack-machine calculator with real and complex numbers, 256 registers,
256 numeric vectors, user-defined subroutines and loops.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌───────────┐
    │  Input   │───>│  Lexer   │───>│ Assembler │───>│  Machine  │
    │  (line)  │    │ (tokens) │    │ (program) │    │  (state)  │
    └──────────┘    └──────────┘    └───────────┘    └───────────┘

    - lexer.py:        whitespace tokenizer, '#' comments, token classification
    - assembler.py:    single pass; subroutine table, loop address stack,
                       index literals folded into the following mnemonic
    - instructions.py: Op enum, mnemonic table, help text
    - machine.py:      fetch/dispatch loop over an append-only program
    - ops.py:          numeric kernels (numpy, IEEE semantics)
    - state.py:        stacks, register and vector banks, cancellation token
"""

__version__ = "0.1.0"

from .errors import (
    RpnError, RpnSyntaxError, LexerError, IndexNeeded, StackUnderflow,
    StackOverflow, UnbalancedControl, TypeMismatch, IndexOutOfRange,
)
from .instructions import Instruction, Op
from .lexer import Lexer, Token, TokenType
from .state import CancellationToken, MachineState
from .machine import Machine, StopReason
from .assembler import Assembler, ParseState, evaluate
