"""
Stutter Lexer (Tokenizer)
=========================

Converts Stutter source text into a stream of tokens for the parser.

Token Categories
----------------
- Keywords: if, then, else, true, false
- Identifiers: symbol names
- Numbers: decimal integers (``42``) and reals (``2.5``)
- Strings: "double quoted", with \\n \\t \\\\ \\" escapes
- Operators: + - * /
- Delimiters: ( ) ;

Comments start with ``#`` and run to the end of the line.

Example Usage
-------------
>>> for token in Lexer("1 + 2").tokenize():
...     print(token)
Token(NUMBER, 1, 1:1)
Token(PLUS, '+', 1:3)
Token(NUMBER, 2, 1:5)
Token(EOF, 1:6)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, Union
import string

from stutter.errors import InvalidCharacterError, ParseError, SourceLocation


class TokenType(Enum):
    """Token types of the Stutter expression language."""

    EOF = auto()

    # === Literals and Names ===
    NUMBER = auto()         # 42
    REAL = auto()           # 2.5
    STRING = auto()         # "text"
    IDENTIFIER = auto()     # x

    # === Keywords ===
    IF = auto()
    THEN = auto()
    ELSE = auto()
    TRUE = auto()
    FALSE = auto()

    # === Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    SEMICOLON = auto()      # ;


KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ";": TokenType.SEMICOLON,
}


@dataclass(frozen=True)
class Token:
    """
    A single token.

    Attributes:
        type: The TokenType classification
        value: int for NUMBER, float for REAL, str for STRING, IDENTIFIER
            and punctuation, None for EOF
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        filename: Source filename
    """
    type: TokenType
    value: Union[str, int, float, None]
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        if self.value is not None:
            if isinstance(self.value, (int, float)):
                return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    __str__ = __repr__

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, self.column)

    def describe(self) -> str:
        """Short description for error messages."""
        if self.type is TokenType.EOF:
            return "end of input"
        if self.type is TokenType.STRING:
            return "string literal"
        return repr(str(self.value))


class Lexer:
    """
    Tokenizes Stutter source text.

    Usage:
        tokens = list(Lexer(source, "calc.st").tokenize())

    Attributes:
        source: The text being tokenized
        filename: Name of the source (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    ESCAPE_SEQUENCES = {
        "n": "\n",
        "t": "\t",
        "\\": "\\",
        '"': '"',
    }

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self._lines = source.splitlines()

        self._pos = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens, ending with a single EOF token.

        Raises:
            ParseError: On an invalid character or an unterminated string
        """
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                break
            yield self._scan_token()

        yield Token(TokenType.EOF, None, self._line, self._column, self.filename)

    # =========================================================================
    # Character Access
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        char = self.source[self._pos]
        self._pos += 1
        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return char

    def _source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()
            if char in " \t\r\n":
                self._advance()
            elif char == "#":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
            else:
                return

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        line, column = self._line, self._column
        char = self._peek()

        if char.isascii() and char.isdigit():
            return self._scan_number(line, column)
        if char in self.IDENT_START:
            return self._scan_word(line, column)
        if char == '"':
            return self._scan_string(line, column)
        if char in SINGLE_CHAR_TOKENS:
            self._advance()
            return Token(SINGLE_CHAR_TOKENS[char], char, line, column, self.filename)

        raise InvalidCharacterError(
            char,
            SourceLocation(self.filename, line, column),
            self._source_line(line),
        )

    def _scan_number(self, line: int, column: int) -> Token:
        start = self._pos
        while self._peek().isascii() and self._peek().isdigit():
            self._advance()

        is_real = self._peek() == "." and self._peek(1).isascii() and self._peek(1).isdigit()
        if is_real:
            self._advance()
            while self._peek().isascii() and self._peek().isdigit():
                self._advance()

        text = self.source[start:self._pos]
        if self._peek() and self._peek() in self.IDENT_CHARS:
            raise ParseError(
                f"invalid number literal '{text}{self._peek()}'",
                SourceLocation(self.filename, line, column),
                source_line=self._source_line(line),
            )
        if is_real:
            return Token(TokenType.REAL, float(text), line, column, self.filename)
        return Token(TokenType.NUMBER, int(text), line, column, self.filename)

    def _scan_word(self, line: int, column: int) -> Token:
        start = self._pos
        while self._peek() and self._peek() in self.IDENT_CHARS:
            self._advance()
        word = self.source[start:self._pos]
        token_type = KEYWORDS.get(word, TokenType.IDENTIFIER)
        return Token(token_type, word, line, column, self.filename)

    def _scan_string(self, line: int, column: int) -> Token:
        self._advance()  # opening quote
        chars = []
        while True:
            if self._at_end() or self._peek() == "\n":
                raise ParseError(
                    "unterminated string literal",
                    SourceLocation(self.filename, line, column),
                    hint='add a closing "',
                    source_line=self._source_line(line),
                )
            char = self._advance()
            if char == '"':
                break
            if char == "\\":
                if self._at_end():
                    continue
                escape = self._advance()
                if escape not in self.ESCAPE_SEQUENCES:
                    raise ParseError(
                        f"unknown escape sequence '\\{escape}'",
                        SourceLocation(self.filename, self._line, self._column - 2),
                        source_line=self._source_line(self._line),
                    )
                chars.append(self.ESCAPE_SEQUENCES[escape])
            else:
                chars.append(char)
        return Token(TokenType.STRING, "".join(chars), line, column, self.filename)
