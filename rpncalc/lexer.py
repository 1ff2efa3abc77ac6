"""
Lexer for calculator input lines.

Splits a line into whitespace-separated tokens after dropping any ``#``
comment, and classifies each one so the assembler can dispatch on kind
instead of re-inspecting text:

  MNEMONIC   a token in the instruction table (``dup``, ``+``, ``3 save``'s ``save``)
  CONTROL    ``:`` ``;`` ``[`` ``]`` ``help`` ``dumpsr``
  NUMBER     starts with a digit or ``-``
  IMAGINARY  a NUMBER ending in ``j`` (``4j``, ``-0.5j``)
  WORD       anything else: a subroutine name or an error

Numeric conversion is deferred to :meth:`Token.number` because the token
right after ``:`` is a name regardless of what it looks like.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Iterator, List

from .errors import LexerError
from .instructions import MNEMONICS, INDEXED_MNEMONICS, CONTROL_WORDS


class TokenType(enum.Enum):
    MNEMONIC = "MNEMONIC"
    CONTROL = "CONTROL"
    NUMBER = "NUMBER"
    IMAGINARY = "IMAGINARY"
    WORD = "WORD"


@dataclass
class Token:
    type: TokenType
    text: str
    column: int = 0

    def number(self) -> float:
        """Parse the literal payload; for IMAGINARY this is the imaginary part."""
        text = self.text[:-1] if self.type is TokenType.IMAGINARY else self.text
        # float() accepts things a calculator literal should not
        if '_' in text or not text:
            raise LexerError(f"Malformed number: '{self.text}'", self.text, self.column)
        try:
            return float(text)
        except ValueError:
            raise LexerError(f"Malformed number: '{self.text}'", self.text, self.column) from None

    def __repr__(self):
        return f"Token({self.type.name}, {self.text!r}, col={self.column})"


COMMENT_CHAR = '#'


def classify(text: str) -> TokenType:
    if text in MNEMONICS or text in INDEXED_MNEMONICS:
        return TokenType.MNEMONIC
    if text in CONTROL_WORDS:
        return TokenType.CONTROL
    if text[0].isdigit() or text[0] == '-':
        if text.endswith('j'):
            return TokenType.IMAGINARY
        return TokenType.NUMBER
    return TokenType.WORD


class Lexer:
    """Tokenizer for one input line.

    Usage:
        for tok in Lexer("10 6 4 - / p  # comment").tokens():
            ...
    """

    def __init__(self, line: str):
        self.line = line.split(COMMENT_CHAR, 1)[0]

    def tokens(self) -> Iterator[Token]:
        pos = 0
        text = self.line
        n = len(text)
        while pos < n:
            while pos < n and text[pos].isspace():
                pos += 1
            if pos >= n:
                break
            start = pos
            while pos < n and not text[pos].isspace():
                pos += 1
            word = text[start:pos]
            yield Token(classify(word), word, start + 1)

    def tokenize(self) -> List[Token]:
        return list(self.tokens())
