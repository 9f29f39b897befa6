from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

# Nodes are frozen and hold tuples; a parsed Program is shared across resets.

@dataclass(frozen=True)
class Node:
    line: int = 0
    column: int = 0

# ---------- Statements ----------
class Stmt(Node): ...

@dataclass(frozen=True)
class Param(Node):
    type_name: str = "int"
    name: str = ""

@dataclass(frozen=True)
class Block(Stmt):
    statements: Tuple[Stmt, ...] = ()

@dataclass(frozen=True)
class FunctionDecl(Stmt):
    return_type: str = "int"
    name: str = ""
    params: Tuple[Param, ...] = ()
    body: Optional[Block] = None  # None => prototype

@dataclass(frozen=True)
class VarDecl(Stmt):
    type_name: str = "int"
    name: str = ""
    init: Optional["Expr"] = None

@dataclass(frozen=True)
class IfStmt(Stmt):
    cond: "Expr" = None
    then_block: Block = None
    else_block: Optional[Block] = None

@dataclass(frozen=True)
class WhileStmt(Stmt):
    cond: "Expr" = None
    body: Block = None

@dataclass(frozen=True)
class ForStmt(Stmt):
    init: Optional[Stmt] = None
    cond: Optional["Expr"] = None
    post: Optional["Expr"] = None
    body: Block = None

@dataclass(frozen=True)
class Return(Stmt):
    value: Optional["Expr"] = None

@dataclass(frozen=True)
class Break(Stmt):
    pass

@dataclass(frozen=True)
class Continue(Stmt):
    pass

@dataclass(frozen=True)
class ExprStmt(Stmt):
    expr: "Expr" = None

# ---------- Expressions ----------
class Expr(Node): ...

@dataclass(frozen=True)
class Identifier(Expr):
    name: str = ""

@dataclass(frozen=True)
class IntLiteral(Expr):
    value: int = 0

@dataclass(frozen=True)
class FloatLiteral(Expr):
    value: float = 0.0

@dataclass(frozen=True)
class StringLiteral(Expr):
    value: str = ""

@dataclass(frozen=True)
class CharLiteral(Expr):
    value: int = 0

@dataclass(frozen=True)
class PrefixOp(Expr):
    op: str = ""
    operand: Expr = None

@dataclass(frozen=True)
class PostfixOp(Expr):
    operand: Expr = None
    op: str = ""

@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str = ""
    left: Expr = None
    right: Expr = None

@dataclass(frozen=True)
class Assign(Expr):
    target: Expr = None
    op: str = "="
    value: Expr = None

@dataclass(frozen=True)
class Call(Expr):
    func: str = ""
    args: Tuple[Expr, ...] = ()

@dataclass(frozen=True)
class Index(Expr):
    base: Expr = None
    index: Expr = None

@dataclass(frozen=True)
class TernaryOp(Expr):
    cond: Expr = None
    then_expr: Expr = None
    else_expr: Expr = None

# ---------- Program ----------
@dataclass(frozen=True)
class Program(Node):
    declarations: Tuple[Stmt, ...] = ()

    @property
    def functions(self) -> Tuple[FunctionDecl, ...]:
        return tuple(d for d in self.declarations if isinstance(d, FunctionDecl))
