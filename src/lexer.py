import io
import string
from typing import List, TextIO, Union


class TokenType:
    EOF = "EOF"
    # commands
    DEF = "DEF"
    EXTERN = "EXTERN"
    # primary
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    # control
    IF = "IF"
    THEN = "THEN"
    ELSE = "ELSE"
    FOR = "FOR"
    IN = "IN"
    # operators
    BINARY = "BINARY"
    UNARY = "UNARY"
    # var definition
    VAR = "VAR"
    # any other single character, value is the character itself
    CHAR = "CHAR"


keywords = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "binary": TokenType.BINARY,
    "unary": TokenType.UNARY,
    "var": TokenType.VAR,
}

separators = {
    "COMMA": ",",
    "SEMICOLON": ";",
    "LPAREN": "(",
    "RPAREN": ")",
    "ASSIGN": "=",
}

COMMENT = "#"

# identifier and number characters are ASCII only
LETTERS = frozenset(string.ascii_letters)
DIGITS = frozenset(string.digits)
ALNUM = LETTERS | DIGITS
NUMBER_CHARS = DIGITS | {"."}


def parse_number_prefix(text: str) -> float:
    """
    Value of the longest leading part of `text` that is a valid number, so
    "1.2.3" reads as 1.2 and a lone "." as 0.0.
    """
    head, dot, tail = text.partition(".")
    digits = head + dot + tail.split(".")[0]
    if digits in ("", "."):
        return 0.0
    return float(digits)


class Token:
    _type: str
    value: Union[str, float, None]
    line: int
    column: int

    def __init__(self, _type, value, line, column):
        self._type = _type
        self.value = value
        self.line = line
        self.column = column

    def is_char(self, char: str) -> bool:
        return self._type == TokenType.CHAR and self.value == char

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (self._type, self.value) == (other._type, other.value)

    def __repr__(self):
        return f"Token(type={self._type}, value={repr(self.value)}, line={self.line}, column={self.column})"

    def print(self):
        print(f'TOKEN: Type: {self._type}, value: {self.value}, line: {self.line}, column: {self.column}')


class Lexer:
    """
    Streaming lexer. Characters are pulled one at a time from the source so
    an interactive stream only blocks when the parser actually needs the
    next token.

    The side-channel fields `identifier` and `number` mirror the value of the
    last IDENTIFIER / NUMBER token returned.
    """
    def __init__(self, source: Union[str, TextIO]):
        if isinstance(source, str):
            source = io.StringIO(source)
        self.stream = source
        self.line = 1
        self.column = 0
        self.last_char = " "
        self.identifier = ""
        self.number = 0.0

    def _advance_char(self) -> str:
        char = self.stream.read(1)
        if char == "\n":
            self.line += 1
            self.column = 0
        elif char:
            self.column += 1
        self.last_char = char
        return char

    def next_token(self) -> Token:
        # skip whitespace
        while self.last_char and self.last_char.isspace():
            self._advance_char()

        line, column = self.line, self.column

        # end of input, don't eat it so repeated calls keep returning EOF
        if not self.last_char:
            return Token(TokenType.EOF, None, line, column)

        # identifier: [a-zA-Z][a-zA-Z0-9]*
        if self.last_char in LETTERS:
            value = self.last_char
            while self._advance_char() and self.last_char in ALNUM:
                value += self.last_char

            if value in keywords:
                return Token(keywords[value], value, line, column)

            self.identifier = value
            return Token(TokenType.IDENTIFIER, value, line, column)

        # number: [0-9.]+
        if self.last_char in NUMBER_CHARS:
            text = ""
            while self.last_char and self.last_char in NUMBER_CHARS:
                text += self.last_char
                self._advance_char()
            self.number = parse_number_prefix(text)
            return Token(TokenType.NUMBER, self.number, line, column)

        # comment until end of line
        if self.last_char == COMMENT:
            while self._advance_char() and self.last_char not in ("\n", "\r"):
                pass
            return self.next_token()

        # otherwise, just return the character itself
        char = self.last_char
        self._advance_char()
        return Token(TokenType.CHAR, char, line, column)

    def tokenize(self) -> List[Token]:
        """Read the whole source. The returned list always ends with EOF."""
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token._type == TokenType.EOF:
                break
        return tokens
