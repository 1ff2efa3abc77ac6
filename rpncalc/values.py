"""
Numeric values carried by the stack, registers and vectors.

A value is either Real (a Python ``float``) or Complex (a Python
``complex``). Mixed operations promote the Real side to ``complex(re, 0)``
before combining, which is exactly what Python's numeric tower does, so
the helpers here only deal with normalisation, coercion to machine
integers, and rendering.
"""

from __future__ import annotations
import math
from typing import Union

import numpy as np

__all__ = [
    'Value', 'is_real', 'is_complex', 'promote', 'as_value',
    'to_index', 'to_u32', 'to_count', 'format_value',
]

Value = Union[float, complex]

U32_MAX = 0xFFFFFFFF


def is_real(v) -> bool:
    return isinstance(v, float)


def is_complex(v) -> bool:
    return isinstance(v, complex)


def promote(a: Value, b: Value):
    """Bring two values to a common variant: Real+Real stays Real, else Complex."""
    if is_complex(a) or is_complex(b):
        return complex(a), complex(b)
    return a, b


def as_value(x) -> Value:
    """Normalise a numpy/int/bool result back to ``float`` or ``complex``."""
    if np.iscomplexobj(x):
        return complex(x)
    return float(x)


def _saturate(x: float, hi: int) -> int:
    # float -> unsigned cast: truncate toward zero, clamp, NaN -> 0
    if math.isnan(x) or x <= 0:
        return 0
    if x >= hi:
        return hi
    return int(x)


def to_index(x: float) -> int:
    """Reinterpret a literal as an 8-bit register/vector number."""
    return _saturate(x, 0xFF)


def to_u32(x: float) -> int:
    return _saturate(x, U32_MAX)


def to_count(x: float) -> int:
    """Truncate to an integer length/offset, keeping the sign (NaN -> -1)."""
    if math.isnan(x):
        return -1
    if math.isinf(x):
        return -1 if x < 0 else 1 << 62
    return int(x)


# ──────────────────────────────────────────────
# Rendering
# ──────────────────────────────────────────────

def _format_real(x: float, precision: int) -> str:
    if precision > 0:
        return f"{x:.{precision}f}"
    if x.is_integer() and abs(x) < 1e16:
        if x == 0 and math.copysign(1.0, x) < 0:
            return "-0"
        return str(int(x))
    return repr(x)


def format_value(v: Value, precision: int = 0) -> str:
    """Render a value for ``print``.

    precision > 0 gives fixed decimals; 0 gives the shortest round-trip
    form, with integral reals shown without ``.0`` (``5``, ``0.1``).
    Complex values render as ``re+imj``.
    """
    if is_complex(v):
        re = _format_real(v.real, precision)
        im = _format_real(v.imag, precision)
        if not im.startswith('-'):
            im = '+' + im
        return f"{re}{im}j"
    return _format_real(float(v), precision)
