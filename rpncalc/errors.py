"""
Error taxonomy for the RPN calculator.

Every fault the assembler or the interpreter can report derives from
:class:`RpnError`. None of them is fatal to the session: the assembler
catches them per line, the machine per run, and both report them and carry
on with the next statement. Only ``quit`` ends the process.
"""

from __future__ import annotations

__all__ = [
    'RpnError', 'RpnSyntaxError', 'LexerError', 'IndexNeeded',
    'StackUnderflow', 'StackOverflow', 'UnbalancedControl',
    'TypeMismatch', 'IndexOutOfRange',
]


class RpnError(Exception):
    """Base class for calculator faults."""
    def __init__(self, message: str, token: str = "", column: int = 0):
        self.token = token
        self.column = column
        super().__init__(f"Col {column}: {message}" if column else message)


class RpnSyntaxError(RpnError):
    """Unresolved bare word, bad subroutine name, or misplaced token."""


class LexerError(RpnSyntaxError):
    """Malformed numeric literal."""


class IndexNeeded(RpnSyntaxError):
    """An index-taking mnemonic was not directly preceded by a literal."""


class StackUnderflow(RpnError):
    """An operation needed more operands than the stack holds."""


class StackOverflow(RpnError):
    """The operand stack hit its size limit."""


class UnbalancedControl(RpnError):
    """Loop/definition brackets or call/return do not pair up."""


class TypeMismatch(RpnError):
    """An operation was applied to a value of the wrong variant."""


class IndexOutOfRange(RpnError):
    """A vector element index (or requested length) is out of bounds."""
