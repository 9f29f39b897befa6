from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import ply.lex as lex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    kind: str
    literal: str
    line: int
    column: int


def _strip_quotes(text: str) -> str:
    """Return the body of a string/char literal, tolerating a missing closing quote."""
    quote = text[0]
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return text[1:i]
        i += 1
    return text[1:]


class CLexer:

    reserved = {
        'auto': 'AUTO',
        'break': 'BREAK',
        'case': 'CASE',
        'char': 'CHAR_KW',
        'const': 'CONST',
        'continue': 'CONTINUE',
        'default': 'DEFAULT',
        'do': 'DO',
        'double': 'DOUBLE',
        'else': 'ELSE',
        'enum': 'ENUM',
        'extern': 'EXTERN',
        'float': 'FLOAT_KW',
        'for': 'FOR',
        'goto': 'GOTO',
        'if': 'IF',
        'int': 'INT_KW',
        'long': 'LONG',
        'register': 'REGISTER',
        'return': 'RETURN',
        'short': 'SHORT',
        'signed': 'SIGNED',
        'sizeof': 'SIZEOF',
        'static': 'STATIC',
        'struct': 'STRUCT',
        'switch': 'SWITCH',
        'typedef': 'TYPEDEF',
        'union': 'UNION',
        'unsigned': 'UNSIGNED',
        'void': 'VOID',
        'volatile': 'VOLATILE',
        'while': 'WHILE',
    }

    tokens = (
        # Identifiers and literals
        'IDENT', 'INT', 'FLOAT', 'CHAR', 'STRING', 'ILLEGAL',

        # Three-character operators
        'LSHIFTEQ', 'RSHIFTEQ',

        # Two-character operators
        'EQ', 'NEQ', 'LTE', 'GTE', 'AND', 'OR',
        'LSHIFT', 'RSHIFT', 'INC', 'DEC', 'ARROW',
        'PLUSEQ', 'MINUSEQ', 'STAREQ', 'SLASHEQ', 'PERCENTEQ',
        'ANDEQ', 'OREQ', 'XOREQ',

        # Single-character operators
        'PLUS', 'MINUS', 'STAR', 'SLASH', 'PERCENT', 'ASSIGN',
        'LT', 'GT', 'NOT', 'BITAND', 'BITOR', 'BITXOR', 'BITNOT',
        'QUESTION', 'COLON', 'DOT',

        # Delimiters
        'LPAREN', 'RPAREN', 'LBRACE', 'RBRACE', 'LBRACKET', 'RBRACKET',
        'SEMICOLON', 'COMMA',
    ) + tuple(reserved.values())

    # Ignored characters
    t_ignore = ' \t\r\f\v'

    # ply sorts string rules by decreasing regex length, so longer operators win
    t_LSHIFTEQ = r'<<='
    t_RSHIFTEQ = r'>>='

    t_EQ = r'=='
    t_NEQ = r'!='
    t_LTE = r'<='
    t_GTE = r'>='
    t_AND = r'&&'
    t_OR = r'\|\|'
    t_LSHIFT = r'<<'
    t_RSHIFT = r'>>'
    t_INC = r'\+\+'
    t_DEC = r'--'
    t_ARROW = r'->'
    t_PLUSEQ = r'\+='
    t_MINUSEQ = r'-='
    t_STAREQ = r'\*='
    t_SLASHEQ = r'/='
    t_PERCENTEQ = r'%='
    t_ANDEQ = r'&='
    t_OREQ = r'\|='
    t_XOREQ = r'\^='

    t_PLUS = r'\+'
    t_MINUS = r'-'
    t_STAR = r'\*'
    t_SLASH = r'/'
    t_PERCENT = r'%'
    t_ASSIGN = r'='
    t_LT = r'<'
    t_GT = r'>'
    t_NOT = r'!'
    t_BITAND = r'&'
    t_BITOR = r'\|'
    t_BITXOR = r'\^'
    t_BITNOT = r'~'
    t_QUESTION = r'\?'
    t_COLON = r':'
    t_DOT = r'\.'

    t_LPAREN = r'\('
    t_RPAREN = r'\)'
    t_LBRACE = r'\{'
    t_RBRACE = r'\}'
    t_LBRACKET = r'\['
    t_RBRACKET = r'\]'
    t_SEMICOLON = r';'
    t_COMMA = r','

    def __init__(self):
        self.lexer = None

    # Comments, an unterminated block comment runs to end of input
    def t_COMMENT(self, t):
        r'/\*[\s\S]*?(?:\*/|\Z)|//[^\n]*'
        t.lexer.lineno += t.value.count('\n')

    # Floats: fraction and/or exponent, suffix letter dropped
    def t_FLOAT(self, t):
        r'(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?[fFlL]?|\d+[eE][+-]?\d+[fFlL]?'
        t.value = t.value.rstrip('fFlL')
        return t

    # Integers: hex or decimal, suffix letters dropped
    def t_INT(self, t):
        r'0[xX][0-9a-fA-F]+[uUlL]*|\d+[uUlL]*'
        t.value = t.value.rstrip('uUlL')
        return t

    def t_IDENT(self, t):
        r'[A-Za-z_][A-Za-z_0-9]*'
        t.type = self.reserved.get(t.value, 'IDENT')
        return t

    def t_STRING(self, t):
        r'"(?:[^"\\]|\\[\s\S]|\\\Z)*(?:"|\Z)'
        t.lexer.lineno += t.value.count('\n')
        t.value = _strip_quotes(t.value)
        return t

    def t_CHAR(self, t):
        r"'(?:[^'\\]|\\[\s\S]|\\\Z)*(?:'|\Z)"
        t.lexer.lineno += t.value.count('\n')
        t.value = _strip_quotes(t.value)
        return t

    # line number tracking
    def t_newline(self, t):
        r'\n+'
        t.lexer.lineno += len(t.value)

    def t_error(self, t):
        logger.warning("Illegal character %r at line %d", t.value[0], t.lineno)
        t.type = 'ILLEGAL'
        t.value = t.value[0]
        t.lexer.skip(1)
        return t

    def build(self, **kwargs):
        """Build the lexer"""
        self.lexer = lex.lex(module=self, **kwargs)
        return self.lexer

    def tokenize(self, data: str) -> List[Token]:
        if not self.lexer:
            self.build()

        self.lexer.input(data)
        self.lexer.lineno = 1
        tokens: List[Token] = []

        while True:
            tok = self.lexer.token()
            if not tok:
                break
            tokens.append(Token(tok.type, tok.value, tok.lineno, _column(data, tok.lexpos)))

        tokens.append(Token('EOF', '', self.lexer.lineno, _column(data, len(data))))
        return tokens


def _column(data: str, pos: int) -> int:
    line_start = data.rfind('\n', 0, pos) + 1
    return pos - line_start + 1


def tokenize(source: str) -> List[Token]:
    return CLexer().tokenize(source)


def print_tokens(tokens: List[Token]):
    if not tokens:
        print("No tokens found!")
        return

    print(f"{'Line':<6}| {'Column':<7}| {'Token':<20}| Value")
    print("-" * 118)

    for tok in tokens:
        value = tok.literal
        # Limit length for display
        if len(value) > 50:
            value = value[:47] + "..."
        # Display escape characters
        value = repr(value)[1:-1] if '\n' in value or '\t' in value else value

        print(f"{tok.line:<6}| {tok.column:<7}| {tok.kind:<20}| {value}")
