"""
Instruction set for the RPN calculator machine.

Every token the assembler understands maps to exactly one :class:`Op`.
Some ops carry an immediate operand in :attr:`Instruction.arg`:

  LITERAL          a numeric value (float or complex)
  CALL / JNZ       an absolute program address
  indexed ops      an 8-bit register or vector number (0..255)

The mnemonic table is built with :func:`_mn`, one registration per op,
with aliases listed together. Tokens that steer the assembler itself
(``:`` ``;`` ``[`` ``]`` ``help`` ``dumpsr``) are listed in
:data:`CONTROL_WORDS` and never become instructions on their own.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .values import Value, format_value

__all__ = [
    'Op', 'Instruction', 'MNEMONICS', 'INDEXED_MNEMONICS', 'CONTROL_WORDS',
    'is_reserved', 'help_text',
]


class Op(enum.Enum):
    # Assembler-generated
    LITERAL = "literal"
    CALL = "call"
    RET = "ret"
    JNZ = "jnz"

    # Stack shape
    DUP = "dup"
    DROP = "drop"
    OVER = "over"
    ROT = "rot"
    SWAP = "swap"
    CLEAR = "clear"
    DUMP_STACK = "dumpstack"

    # Arithmetic
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    ABS = "abs"
    FLOOR = "floor"
    CEIL = "ceil"
    ROUND = "round"

    # Bitwise (u32)
    AND = "and"
    OR = "or"
    XOR = "xor"
    NEG = "neg"
    SHL = "shl"
    SHR = "shr"

    # Trigonometric
    SIN_R = "sinr"
    COS_R = "cosr"
    TAN_R = "tanr"
    ASIN_R = "asinr"
    ACOS_R = "acosr"
    ATAN_R = "atanr"
    SIN_D = "sind"
    COS_D = "cosd"
    TAN_D = "tand"
    ASIN_D = "asind"
    ACOS_D = "acosd"
    ATAN_D = "atand"

    # Logarithm / exponential
    LOG_E = "loge"
    LOG_2 = "log2"
    LOG_10 = "log10"
    LOG_X = "logx"
    EXP_E = "expe"
    EXP_2 = "exp2"
    EXP_10 = "exp10"
    EXP_X = "expx"

    # Comparison
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    EQ = "="

    # Complex helpers
    REAL = "real"
    IMAG = "imag"
    R2C = "r2c"
    C2R = "c2r"

    # Registers
    SAVE = "save"
    LOAD = "load"
    CREG = "creg"
    CLREGS = "clregs"
    DUMP_REG = "dumpreg"

    # Vectors
    VREAL = "vreal"
    VCPLX = "vcplx"
    VSAVE = "vsave"
    VLOAD = "vload"
    CVEC = "cvec"
    CLVECS = "clvecs"
    DUMP_VEC = "dumpvec"

    # Output
    PRECISION = "precision"
    GET_PRECISION = "K"
    PRINT = "print"

    QUIT = "quit"


@dataclass(frozen=True)
class Instruction:
    """One program cell. Immutable once emitted."""
    op: Op
    arg: Optional[Union[int, Value]] = None

    def __str__(self) -> str:
        if self.arg is None:
            return self.op.name
        if self.op is Op.LITERAL:
            return f"{self.op.name} {format_value(self.arg)}"
        return f"{self.op.name} {self.arg}"


# ──────────────────────────────────────────────
# Mnemonic table
# ──────────────────────────────────────────────
# MNEMONICS:          token -> Op, emitted as-is
# INDEXED_MNEMONICS:  token -> Op, takes its 8-bit operand from the
#                     literal emitted just before it ("3 save")

MNEMONICS: Dict[str, Op] = {}
INDEXED_MNEMONICS: Dict[str, Op] = {}


def _mn(op: Op, *tokens: str, indexed: bool = False):
    """Register one op under all of its spellings."""
    table = INDEXED_MNEMONICS if indexed else MNEMONICS
    for tok in tokens:
        table[tok] = op


# ── Stack ──
_mn(Op.DUP,        'dup')
_mn(Op.DROP,       'drop')
_mn(Op.OVER,       'over')
_mn(Op.ROT,        'rot')
_mn(Op.SWAP,       'swap')
_mn(Op.CLEAR,      'clear')
_mn(Op.DUMP_STACK, 'dumpstack', 'ds')

# ── Arithmetic ──
_mn(Op.ADD,   '+', 'add')
_mn(Op.SUB,   '-', 'sub')
_mn(Op.MUL,   '*', 'mul')
_mn(Op.DIV,   '/', 'div')
_mn(Op.ABS,   'abs')
_mn(Op.FLOOR, 'floor')
_mn(Op.CEIL,  'ceil')
_mn(Op.ROUND, 'round')

# ── Bitwise ──
_mn(Op.AND, 'and')
_mn(Op.OR,  'or')
_mn(Op.XOR, 'xor')
_mn(Op.NEG, 'neg')
_mn(Op.SHL, 'shl')
_mn(Op.SHR, 'shr')

# ── Trigonometric ──
for _op in (Op.SIN_R, Op.COS_R, Op.TAN_R, Op.ASIN_R, Op.ACOS_R, Op.ATAN_R,
            Op.SIN_D, Op.COS_D, Op.TAN_D, Op.ASIN_D, Op.ACOS_D, Op.ATAN_D):
    _mn(_op, _op.value)

# ── Logarithm / exponential ──
for _op in (Op.LOG_E, Op.LOG_2, Op.LOG_10, Op.LOG_X,
            Op.EXP_E, Op.EXP_2, Op.EXP_10, Op.EXP_X):
    _mn(_op, _op.value)

# ── Comparison ──
for _op in (Op.GT, Op.LT, Op.GE, Op.LE, Op.EQ):
    _mn(_op, _op.value)

# ── Complex ──
_mn(Op.REAL, 'real')
_mn(Op.IMAG, 'imag')
_mn(Op.R2C,  'r2c')
_mn(Op.C2R,  'c2r')

# ── Registers ──
_mn(Op.SAVE,     'save', indexed=True)
_mn(Op.LOAD,     'load', indexed=True)
_mn(Op.CREG,     'creg', indexed=True)
_mn(Op.CLREGS,   'clregs')
_mn(Op.DUMP_REG, 'dumpreg', 'dr')

# ── Vectors ──
_mn(Op.VREAL,    'vcreate', 'vreal', indexed=True)
_mn(Op.VCPLX,    'vcplx', indexed=True)
_mn(Op.VSAVE,    'vsave', indexed=True)
_mn(Op.VLOAD,    'vload', indexed=True)
_mn(Op.CVEC,     'cvec', indexed=True)
_mn(Op.CLVECS,   'clvecs')
_mn(Op.DUMP_VEC, 'dumpvec', 'dv')

# ── Output ──
_mn(Op.PRECISION,     'precision', 'k', 'frdigit')
_mn(Op.GET_PRECISION, 'K')
_mn(Op.PRINT,         'print', 'p')

_mn(Op.QUIT, 'quit', 'bye', 'exit', 'q')

# Words the assembler acts on itself
CONTROL_WORDS = frozenset({':', ';', '[', ']', 'help', 'dumpsr', 'dsr'})


def is_reserved(token: str) -> bool:
    """True if ``token`` is a mnemonic or control word (not usable as a name)."""
    return token in MNEMONICS or token in INDEXED_MNEMONICS or token in CONTROL_WORDS


def help_text() -> str:
    return HELP_TEXT


HELP_TEXT = """\
RPN calculator with real and complex numbers, registers, vectors,
subroutines and loops.

   Basic example:      10 6 4 - / p                     # 6 - 4 = 2, 10 / 2 = 5

   Stack operation:    dup drop over rot swap clear
   Stack <--> Reg:     RNUM save  RNUM load  RNUM creg  clregs
   Create a vector:    LEN VNUM vreal  LEN VNUM vcplx   # vcreate = vreal
   Stack <--> Vector:  VAL IDX VNUM vsave  IDX VNUM vload
   Clear vectors:      VNUM cvec  clvecs
   Debug:              dumpstack (ds) dumpreg (dr) dumpvec (dv) dumpsr (dsr)

   Literal:            3  -2.5  4j  3 4j                # real, imaginary, complex
   Arithmetic:         + - * / abs
   Rounding:           floor ceil round
   Logical (u32):      and or xor neg  N shl  N shr
   Complex:            real imag r2c c2r

   Trigonometric(rad): sinr cosr tanr asinr acosr atanr
   Trigonometric(deg): sind cosd tand asind acosd atand
   Logarithm:          loge expe log10 exp10 log2 exp2 logx expx

   Output:             print or p                       # stack is unchanged
   Precision:          4 precision (k)   K              # 0 = auto, max 17

   Subroutine:         : sq dup * ;                     # may span lines
   Call subroutine:    5 sq p
   Relation:           5 4 > p                          # 1
   Loop:               10 [ 1 - dup ]                   # repeat while top != 0
   Interrupt:          Ctrl-C stops a running loop at its next ']'

   Quit:               q quit bye exit
"""
