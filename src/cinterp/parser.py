from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional
from .ast_nodes import *
from .lexer import Token, tokenize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    expected: str
    actual: str
    literal: str
    line: int

    @property
    def message(self) -> str:
        return (f"expected {self.expected}, got {self.actual} "
                f"'{self.literal}' instead at line {self.line}")


class ParseError(Exception):
    def __init__(self, diagnostics: List[Diagnostic]):
        self.diagnostics = list(diagnostics)
        body = "".join(f"\t{d.message}\n" for d in self.diagnostics)
        super().__init__(f"Parse errors:\n{body}")

    @property
    def messages(self) -> List[str]:
        return [d.message for d in self.diagnostics]


TYPE_KEYWORDS = frozenset({
    "INT_KW", "CHAR_KW", "FLOAT_KW", "DOUBLE", "VOID",
    "LONG", "SHORT", "UNSIGNED", "SIGNED",
})
QUALIFIERS = frozenset({"CONST", "STATIC", "EXTERN", "REGISTER", "VOLATILE", "AUTO"})
DECL_START = TYPE_KEYWORDS | QUALIFIERS

# Operator precedence, low to high
(LOWEST, ASSIGN, TERNARY, LOGOR, LOGAND, BITOR, BITXOR, BITAND,
 EQUALS, RELATIONAL, SHIFT, SUM, PRODUCT, PREFIX, POSTFIX, CALL, INDEX) = range(1, 18)

ASSIGN_OPS = frozenset({
    "ASSIGN", "PLUSEQ", "MINUSEQ", "STAREQ", "SLASHEQ", "PERCENTEQ",
    "ANDEQ", "OREQ", "XOREQ", "LSHIFTEQ", "RSHIFTEQ",
})

PRECEDENCES = {
    **{kind: ASSIGN for kind in ASSIGN_OPS},
    "QUESTION": TERNARY,
    "OR": LOGOR,
    "AND": LOGAND,
    "BITOR": BITOR,
    "BITXOR": BITXOR,
    "BITAND": BITAND,
    "EQ": EQUALS, "NEQ": EQUALS,
    "LT": RELATIONAL, "GT": RELATIONAL, "LTE": RELATIONAL, "GTE": RELATIONAL,
    "LSHIFT": SHIFT, "RSHIFT": SHIFT,
    "PLUS": SUM, "MINUS": SUM,
    "STAR": PRODUCT, "SLASH": PRODUCT, "PERCENT": PRODUCT,
    "INC": POSTFIX, "DEC": POSTFIX,
    "LPAREN": CALL,
    "LBRACKET": INDEX,
}

BINARY_OPS = frozenset({
    "OR", "AND", "BITOR", "BITXOR", "BITAND", "EQ", "NEQ",
    "LT", "GT", "LTE", "GTE", "LSHIFT", "RSHIFT",
    "PLUS", "MINUS", "STAR", "SLASH", "PERCENT",
})

PREFIX_OPS = frozenset({"MINUS", "PLUS", "NOT", "BITNOT", "INC", "DEC", "STAR", "BITAND"})

_CHAR_ESCAPES = {
    "n": 10, "t": 9, "r": 13, "0": 0, "a": 7, "b": 8, "f": 12, "v": 11,
    "\\": 92, "'": 39, '"': 34, "?": 63,
}


def char_value(text: str) -> int:
    """Code of the first character of a char literal body, escapes decoded."""
    if not text:
        return 0
    if text[0] != "\\" or len(text) == 1:
        return ord(text[0])
    if text[1] == "x":
        digits = ""
        for ch in text[2:]:
            if ch not in "0123456789abcdefABCDEF":
                break
            digits += ch
        if digits:
            return int(digits, 16) & 0xFF
    octal = ""
    for ch in text[1:4]:
        if ch not in "01234567":
            break
        octal += ch
    if len(octal) > 1:
        return int(octal, 8) & 0xFF
    return _CHAR_ESCAPES.get(text[1], ord(text[1]))


def int_value(text: str) -> int:
    if text[:2] in ("0x", "0X"):
        return int(text, 16)
    return int(text, 10)


class TokenStream:
    def __init__(self, tokens: List[Token]):
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].kind != "EOF":
            line = self.tokens[-1].line if self.tokens else 1
            self.tokens.append(Token("EOF", "", line, 0))
        self.i = 0

    def peek(self, k: int = 0) -> Token:
        j = self.i + k
        if j >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[j]

    def at_end(self) -> bool:
        return self.peek().kind == "EOF"

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind != "EOF":
            self.i += 1
        return tok

    def check(self, *kinds: str) -> bool:
        return self.peek().kind in kinds

    def match(self, *kinds: str) -> Optional[Token]:
        if self.check(*kinds):
            return self.advance()
        return None


class Parser:
    """Recursive descent for statements, precedence climbing for expressions.

    Every parse_* method returns None when the construct had to be abandoned;
    the mismatch has already been recorded in ``diagnostics`` by then.
    """

    def __init__(self, tokens: List[Token]):
        self.ts = TokenStream(tokens)
        self.diagnostics: List[Diagnostic] = []

    @property
    def errors(self) -> List[str]:
        return [d.message for d in self.diagnostics]

    def error(self, expected: str, tok: Optional[Token] = None):
        tok = tok or self.ts.peek()
        diag = Diagnostic(expected, tok.kind, tok.literal, tok.line)
        logger.debug("parse diagnostic: %s", diag.message)
        self.diagnostics.append(diag)

    def expect(self, kind: str) -> Optional[Token]:
        tok = self.ts.match(kind)
        if tok is None:
            self.error(kind)
        return tok

    def parse_program(self) -> Program:
        decls: List[Stmt] = []
        while not self.ts.at_end():
            decls.extend(self.parse_guarded())
        return Program(declarations=tuple(decls), line=1, column=1)

    def parse_guarded(self) -> List[Stmt]:
        start = self.ts.i
        stmts = self.parse_stmt()
        if stmts is None:
            self.synchronize(start)
            return []
        return stmts

    def synchronize(self, start: int):
        # skip to the next ';' (consumed) or '}' (left for the enclosing block)
        while not self.ts.check("SEMICOLON", "RBRACE", "EOF"):
            self.ts.advance()
        self.ts.match("SEMICOLON")
        if self.ts.i == start:
            self.ts.advance()

    # ---------------- STATEMENTS ----------------
    def parse_stmt(self) -> Optional[List[Stmt]]:
        kind = self.ts.peek().kind

        if kind in DECL_START:
            return self.parse_declaration()
        if kind == "SEMICOLON":
            self.ts.advance()
            return []

        if kind == "RETURN":
            stmt = self.parse_return()
        elif kind == "IF":
            stmt = self.parse_if()
        elif kind == "WHILE":
            stmt = self.parse_while()
        elif kind == "FOR":
            stmt = self.parse_for()
        elif kind in ("BREAK", "CONTINUE"):
            stmt = self.parse_jump()
        elif kind == "LBRACE":
            stmt = self.parse_block()
        else:
            stmt = self.parse_expr_stmt()
        return None if stmt is None else [stmt]

    def parse_type(self) -> Optional[str]:
        words = []
        while self.ts.check(*DECL_START):
            words.append(self.ts.advance().literal)
        if not words:
            self.error("type")
            return None
        return " ".join(words)

    def parse_stars(self, base: str) -> str:
        while self.ts.match("STAR"):
            base += "*"
        return base

    def parse_declaration(self, single: bool = False) -> Optional[List[Stmt]]:
        base = self.parse_type()
        if base is None:
            return None
        typ = self.parse_stars(base)
        name_tok = self.expect("IDENT")
        if name_tok is None:
            return None

        if self.ts.check("LPAREN") and not single:
            fn = self.parse_function(typ, name_tok)
            return None if fn is None else [fn]

        decls: List[Stmt] = []
        while True:
            decl = self.parse_var_decl(typ, name_tok)
            if decl is None:
                return None
            decls.append(decl)
            if single or not self.ts.match("COMMA"):
                break
            typ = self.parse_stars(base)
            name_tok = self.expect("IDENT")
            if name_tok is None:
                return None
        self.expect("SEMICOLON")
        return decls

    def parse_var_decl(self, typ: str, name_tok: Token) -> Optional[VarDecl]:
        if self.ts.match("LBRACKET"):
            # size is accepted and dropped
            if not self.ts.check("RBRACKET") and self.parse_expr() is None:
                return None
            if self.expect("RBRACKET") is None:
                return None
            typ += "[]"

        init = None
        if self.ts.match("ASSIGN"):
            init = self.parse_expr()
            if init is None:
                return None
        return VarDecl(type_name=typ, name=name_tok.literal, init=init,
                       line=name_tok.line, column=name_tok.column)

    def parse_function(self, return_type: str, name_tok: Token) -> Optional[FunctionDecl]:
        self.expect("LPAREN")
        params: List[Param] = []
        if not self.ts.check("RPAREN"):
            while True:
                ptok = self.ts.peek()
                ptype = self.parse_type()
                if ptype is None:
                    return None
                ptype = self.parse_stars(ptype)
                pname = self.ts.match("IDENT")
                if self.ts.match("LBRACKET"):
                    if self.expect("RBRACKET") is None:
                        return None
                    ptype += "[]"
                params.append(Param(type_name=ptype, name=pname.literal if pname else "",
                                    line=ptok.line, column=ptok.column))
                if not self.ts.match("COMMA"):
                    break
        if self.expect("RPAREN") is None:
            return None

        # f(void) takes no parameters
        if len(params) == 1 and params[0].type_name == "void" and not params[0].name:
            params = []

        body = None
        if self.ts.check("LBRACE"):
            body = self.parse_block()
            if body is None:
                return None
        elif self.ts.match("SEMICOLON") is None:
            self.error("LBRACE")
            return None

        return FunctionDecl(return_type=return_type, name=name_tok.literal,
                            params=tuple(params), body=body,
                            line=name_tok.line, column=name_tok.column)

    def parse_block(self) -> Optional[Block]:
        lb = self.expect("LBRACE")
        if lb is None:
            return None
        stmts: List[Stmt] = []
        while not self.ts.check("RBRACE", "EOF"):
            stmts.extend(self.parse_guarded())
        self.expect("RBRACE")
        return Block(statements=tuple(stmts), line=lb.line, column=lb.column)

    def parse_body(self) -> Optional[Block]:
        # braced block, or a single statement wrapped in one
        if self.ts.check("LBRACE"):
            return self.parse_block()
        tok = self.ts.peek()
        stmts = self.parse_stmt()
        if stmts is None:
            return None
        return Block(statements=tuple(stmts), line=tok.line, column=tok.column)

    def parse_return(self) -> Optional[Return]:
        t = self.ts.advance()
        value = None
        if not self.ts.check("SEMICOLON"):
            value = self.parse_expr()
            if value is None:
                return None
        self.expect("SEMICOLON")
        return Return(value=value, line=t.line, column=t.column)

    def parse_if(self) -> Optional[IfStmt]:
        t = self.ts.advance()
        if self.expect("LPAREN") is None:
            return None
        cond = self.parse_expr()
        if cond is None or self.expect("RPAREN") is None:
            return None
        then_block = self.parse_body()
        if then_block is None:
            return None
        else_block = None
        if self.ts.match("ELSE"):
            # 'else if' arrives here as a one-statement block
            else_block = self.parse_body()
            if else_block is None:
                return None
        return IfStmt(cond=cond, then_block=then_block, else_block=else_block,
                      line=t.line, column=t.column)

    def parse_while(self) -> Optional[WhileStmt]:
        t = self.ts.advance()
        if self.expect("LPAREN") is None:
            return None
        cond = self.parse_expr()
        if cond is None or self.expect("RPAREN") is None:
            return None
        body = self.parse_body()
        if body is None:
            return None
        return WhileStmt(cond=cond, body=body, line=t.line, column=t.column)

    def parse_for(self) -> Optional[ForStmt]:
        t = self.ts.advance()
        if self.expect("LPAREN") is None:
            return None

        init = None
        if self.ts.match("SEMICOLON"):
            pass
        elif self.ts.check(*DECL_START):
            decls = self.parse_declaration(single=True)
            if decls is None:
                return None
            init = decls[0]
        else:
            init = self.parse_expr_stmt()
            if init is None:
                return None

        cond = None
        if not self.ts.check("SEMICOLON"):
            cond = self.parse_expr()
            if cond is None:
                return None
        if self.expect("SEMICOLON") is None:
            return None

        post = None
        if not self.ts.check("RPAREN"):
            post = self.parse_expr()
            if post is None:
                return None
        if self.expect("RPAREN") is None:
            return None

        body = self.parse_body()
        if body is None:
            return None
        return ForStmt(init=init, cond=cond, post=post, body=body, line=t.line, column=t.column)

    def parse_jump(self) -> Stmt:
        t = self.ts.advance()
        self.expect("SEMICOLON")
        if t.kind == "BREAK":
            return Break(line=t.line, column=t.column)
        return Continue(line=t.line, column=t.column)

    def parse_expr_stmt(self) -> Optional[ExprStmt]:
        tok = self.ts.peek()
        expr = self.parse_expr()
        if expr is None:
            return None
        self.expect("SEMICOLON")
        return ExprStmt(expr=expr, line=tok.line, column=tok.column)

    # ---------------- EXPRESSIONS (precedence) ----------------
    def parse_expr(self, precedence: int = LOWEST) -> Optional[Expr]:
        left = self.parse_prefix()
        while left is not None:
            tok = self.ts.peek()
            prec = PRECEDENCES.get(tok.kind, LOWEST)
            if precedence >= prec:
                break
            kind = tok.kind

            if kind in BINARY_OPS:
                self.ts.advance()
                right = self.parse_expr(prec)
                if right is None:
                    return None
                left = BinaryOp(op=tok.literal, left=left, right=right,
                                line=tok.line, column=tok.column)
            elif kind in ASSIGN_OPS:
                self.ts.advance()
                # one level down so that a = b = c groups to the right
                right = self.parse_expr(ASSIGN - 1)
                if right is None:
                    return None
                left = Assign(target=left, op=tok.literal, value=right,
                              line=left.line, column=left.column)
            elif kind in ("INC", "DEC"):
                self.ts.advance()
                left = PostfixOp(operand=left, op=tok.literal, line=left.line, column=left.column)
            elif kind == "LPAREN":
                left = self.parse_call(left)
            elif kind == "LBRACKET":
                self.ts.advance()
                idx = self.parse_expr()
                if idx is None or self.expect("RBRACKET") is None:
                    return None
                left = Index(base=left, index=idx, line=left.line, column=left.column)
            elif kind == "QUESTION":
                left = self.parse_ternary(left)
            else:
                break
        return left

    def parse_ternary(self, cond: Expr) -> Optional[Expr]:
        self.ts.advance()
        then_e = self.parse_expr()
        if then_e is None:
            return None
        if self.expect("COLON") is None:
            return None
        else_e = self.parse_expr(TERNARY - 1)
        if else_e is None:
            return None
        return TernaryOp(cond=cond, then_expr=then_e, else_expr=else_e,
                         line=cond.line, column=cond.column)

    def parse_call(self, callee: Expr) -> Optional[Call]:
        lp = self.ts.advance()
        if not isinstance(callee, Identifier):
            self.error("IDENT", lp)
            return None
        args: List[Expr] = []
        if self.ts.match("RPAREN") is None:
            while True:
                arg = self.parse_expr()
                if arg is None:
                    return None
                args.append(arg)
                if self.ts.match("COMMA") is None:
                    break
            if self.expect("RPAREN") is None:
                return None
        return Call(func=callee.name, args=tuple(args), line=callee.line, column=callee.column)

    def parse_prefix(self) -> Optional[Expr]:
        tok = self.ts.peek()
        kind = tok.kind

        if kind == "IDENT":
            self.ts.advance()
            return Identifier(name=tok.literal, line=tok.line, column=tok.column)
        if kind == "INT":
            self.ts.advance()
            return IntLiteral(value=int_value(tok.literal), line=tok.line, column=tok.column)
        if kind == "FLOAT":
            self.ts.advance()
            return FloatLiteral(value=float(tok.literal), line=tok.line, column=tok.column)
        if kind == "STRING":
            self.ts.advance()
            return StringLiteral(value=tok.literal, line=tok.line, column=tok.column)
        if kind == "CHAR":
            self.ts.advance()
            return CharLiteral(value=char_value(tok.literal), line=tok.line, column=tok.column)

        if kind in PREFIX_OPS:
            self.ts.advance()
            operand = self.parse_expr(PREFIX)
            if operand is None:
                return None
            return PrefixOp(op=tok.literal, operand=operand, line=tok.line, column=tok.column)

        if kind == "LPAREN":
            self.ts.advance()
            expr = self.parse_expr()
            if expr is None or self.expect("RPAREN") is None:
                return None
            return expr

        self.error("expression")
        return None


def parse(source: str) -> Program:
    parser = Parser(tokenize(source))
    program = parser.parse_program()
    if parser.diagnostics:
        raise ParseError(parser.diagnostics)
    return program
