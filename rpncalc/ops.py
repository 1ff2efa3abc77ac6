"""
Arithmetic kernels for the calculator machine.

Each kernel takes already-popped operands and returns the value to push.
Binary kernels are called as ``fn(b, a)`` where ``a`` was on top of the
stack and ``b`` just below it, so ``10 2 /`` computes ``fn(10.0, 2.0)``.

Floating-point semantics follow IEEE 754 rather than Python's: dividing
by zero gives ±inf or NaN, ``loge`` of a negative Real gives NaN (it does
not silently turn Complex). numpy does the math under ``np.errstate`` so
none of these raise or warn.

Real-only kernels (rounding, ordering comparisons, bitwise) raise
:class:`TypeMismatch` when handed a Complex.

Bitwise kernels work on the value truncated to an unsigned 32-bit
integer. ``neg`` is the one's complement of that integer, not arithmetic
negation.
"""

from __future__ import annotations
import math
from typing import Callable, Dict

import numpy as np

from .errors import TypeMismatch
from .instructions import Op
from .values import Value, as_value, is_complex, promote, to_u32, U32_MAX

DEG = math.pi / 180.0


def _real(v: Value, what: str) -> float:
    if is_complex(v):
        raise TypeMismatch(f"{what}: complex operand not allowed")
    return v


def _np(x: Value):
    return np.complex128(x) if is_complex(x) else np.float64(x)


def _apply(fn, *args) -> Value:
    with np.errstate(all='ignore'):
        return as_value(fn(*(_np(a) for a in args)))


# ══════════════════════════════════════════════
# Arithmetic
# ══════════════════════════════════════════════

def add(b: Value, a: Value) -> Value:
    b, a = promote(b, a)
    return b + a


def sub(b: Value, a: Value) -> Value:
    b, a = promote(b, a)
    return b - a


def mul(b: Value, a: Value) -> Value:
    b, a = promote(b, a)
    return b * a


def div(b: Value, a: Value) -> Value:
    b, a = promote(b, a)
    return _apply(np.divide, b, a)


def absolute(a: Value) -> float:
    """|a|; the modulus for a Complex (inf when it overflows)."""
    return _apply(np.abs, a)


def floor(a: Value) -> float:
    return as_value(np.floor(_real(a, 'floor')))


def ceil(a: Value) -> float:
    return as_value(np.ceil(_real(a, 'ceil')))


def round_half_away(a: Value) -> float:
    x = _real(a, 'round')
    return as_value(np.copysign(np.floor(np.abs(x) + 0.5), x))


# ══════════════════════════════════════════════
# Bitwise (u32)
# ══════════════════════════════════════════════

def _u32_pair(b: Value, a: Value, what: str):
    return to_u32(_real(b, what)), to_u32(_real(a, what))


def bit_and(b: Value, a: Value) -> float:
    x, y = _u32_pair(b, a, 'and')
    return float(x & y)


def bit_or(b: Value, a: Value) -> float:
    x, y = _u32_pair(b, a, 'or')
    return float(x | y)


def bit_xor(b: Value, a: Value) -> float:
    x, y = _u32_pair(b, a, 'xor')
    return float(x ^ y)


def bit_not(a: Value) -> float:
    return float(to_u32(_real(a, 'neg')) ^ U32_MAX)


def shl(b: Value, a: Value) -> float:
    x, n = _u32_pair(b, a, 'shl')
    return float((x << (n & 31)) & U32_MAX)


def shr(b: Value, a: Value) -> float:
    x, n = _u32_pair(b, a, 'shr')
    return float(x >> (n & 31))


# ══════════════════════════════════════════════
# Trigonometric
# ══════════════════════════════════════════════

def _deg_in(fn):
    def kernel(a: Value) -> Value:
        return _apply(fn, a * DEG)
    return kernel


def _deg_out(fn):
    def kernel(a: Value) -> Value:
        return _apply(fn, a) / DEG
    return kernel


# ══════════════════════════════════════════════
# Logarithm / exponential
# ══════════════════════════════════════════════

def log_x(b: Value, a: Value) -> Value:
    """Logarithm of ``b`` in base ``a``."""
    b, a = promote(b, a)
    return _apply(lambda x, y: np.log(x) / np.log(y), b, a)


def exp_x(b: Value, a: Value) -> Value:
    """``b`` raised to ``a``."""
    b, a = promote(b, a)
    return _apply(np.power, b, a)


def exp_10(a: Value) -> Value:
    return _apply(lambda x: np.power(10.0, x), a)


# ══════════════════════════════════════════════
# Comparison (push 1.0 / 0.0)
# ══════════════════════════════════════════════

def _ordering(name: str, test: Callable[[float, float], bool]):
    def kernel(b: Value, a: Value) -> float:
        return 1.0 if test(_real(b, name), _real(a, name)) else 0.0
    return kernel


def equal(b: Value, a: Value) -> float:
    return 1.0 if b == a else 0.0


# ══════════════════════════════════════════════
# Dispatch tables used by the machine
# ══════════════════════════════════════════════

UNARY: Dict[Op, Callable[[Value], Value]] = {
    Op.ABS:    absolute,
    Op.FLOOR:  floor,
    Op.CEIL:   ceil,
    Op.ROUND:  round_half_away,
    Op.NEG:    bit_not,
    Op.SIN_R:  lambda a: _apply(np.sin, a),
    Op.COS_R:  lambda a: _apply(np.cos, a),
    Op.TAN_R:  lambda a: _apply(np.tan, a),
    Op.ASIN_R: lambda a: _apply(np.arcsin, a),
    Op.ACOS_R: lambda a: _apply(np.arccos, a),
    Op.ATAN_R: lambda a: _apply(np.arctan, a),
    Op.SIN_D:  _deg_in(np.sin),
    Op.COS_D:  _deg_in(np.cos),
    Op.TAN_D:  _deg_in(np.tan),
    Op.ASIN_D: _deg_out(np.arcsin),
    Op.ACOS_D: _deg_out(np.arccos),
    Op.ATAN_D: _deg_out(np.arctan),
    Op.LOG_E:  lambda a: _apply(np.log, a),
    Op.LOG_2:  lambda a: _apply(np.log2, a),
    Op.LOG_10: lambda a: _apply(np.log10, a),
    Op.EXP_E:  lambda a: _apply(np.exp, a),
    Op.EXP_2:  lambda a: _apply(np.exp2, a),
    Op.EXP_10: exp_10,
}

BINARY: Dict[Op, Callable[[Value, Value], Value]] = {
    Op.ADD:   add,
    Op.SUB:   sub,
    Op.MUL:   mul,
    Op.DIV:   div,
    Op.AND:   bit_and,
    Op.OR:    bit_or,
    Op.XOR:   bit_xor,
    Op.SHL:   shl,
    Op.SHR:   shr,
    Op.LOG_X: log_x,
    Op.EXP_X: exp_x,
    Op.GT:    _ordering('>', lambda b, a: b > a),
    Op.LT:    _ordering('<', lambda b, a: b < a),
    Op.GE:    _ordering('>=', lambda b, a: b >= a),
    Op.LE:    _ordering('<=', lambda b, a: b <= a),
    Op.EQ:    equal,
}
