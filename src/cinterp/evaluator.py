from __future__ import annotations
import logging
import math
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .ast_nodes import *
from .errors import (
    CRuntimeError, DivisionByZeroError, InvalidAssignmentError, InvalidOperandsError,
    NoEntryPointError, StackOverflowError, SteppingDisabledError, UndefinedFunctionError,
    UndefinedVariableError, UnknownNodeError, UnknownOperatorError, UnsupportedOperationError,
)
from .settings import Settings
from .stdlib import Builtin, get_builtins
from .symbols import GLOBAL, ScopeArena
from .values import (
    CHAR, FLOAT, INT, ZERO, Value, bool_value, coerce_to_declared, default_value,
)

logger = logging.getLogger(__name__)

# each interpreted call costs about ten Python frames
RECURSION_LIMIT = 20000


@contextmanager
def recursion_budget(limit: int = RECURSION_LIMIT):
    previous = sys.getrecursionlimit()
    if limit > previous:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Signal(Enum):
    NORMAL = "normal"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Flow:
    signal: Signal = Signal.NORMAL
    value: Optional[Value] = None


NORMAL = Flow()
BREAK = Flow(Signal.BREAK)
CONTINUE = Flow(Signal.CONTINUE)


@dataclass
class StepResult:
    statement: Optional[Stmt] = None
    line: int = 0
    done: bool = False
    returned: bool = False
    return_value: Optional[Value] = None
    broke: bool = False
    continued: bool = False
    error: Optional[CRuntimeError] = None


_INT_OPS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "&": lambda a, b: a & b,
    "|": lambda a, b: a | b,
    "^": lambda a, b: a ^ b,
}

_FLOAT_OPS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
}

_COMPARISONS = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _float_div(a: float, b: float) -> float:
    if b != 0:
        return a / b
    if a == 0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _shift(op: str, a: int, count: int) -> int:
    # the count is read as an unsigned 64-bit number
    count &= 0xFFFFFFFFFFFFFFFF
    if op == "<<":
        return 0 if count >= 64 else a << count
    if count >= 64:
        return -1 if a < 0 else 0
    return a >> count


class Evaluator:
    """Tree-walking evaluator with run-to-completion and single-step modes.

    Statement execution returns a ``Flow``; a return, break or continue
    unwinds by being handed back up through the enclosing calls.
    """

    def __init__(self, program: Program, settings: Optional[Settings] = None,
                 builtins: Optional[Dict[str, Builtin]] = None):
        self.program = program
        self.settings = settings or Settings()
        self.builtins = get_builtins()
        if builtins:
            self.builtins.update(builtins)

        self.functions: Dict[str, FunctionDecl] = {}
        for fn in program.functions:
            # a definition wins over any prototype
            if fn.body is not None or fn.name not in self.functions:
                self.functions[fn.name] = fn

        self.stepping = False
        self.reset()

    # ---------- host protocol ----------
    def reset(self):
        self.scopes = ScopeArena()
        self.globals_ready = False
        self.queue: Optional[List[Stmt]] = None
        self.step_index = 0
        self.main_scope: Optional[int] = None
        self.finished = False
        self.returned = False
        self.return_value: Optional[Value] = None

    def enable_stepping(self):
        self.stepping = True

    def disable_stepping(self):
        self.stepping = False

    def entry_point(self) -> FunctionDecl:
        main = self.functions.get("main")
        if main is None or main.body is None:
            raise NoEntryPointError()
        return main

    def run(self) -> Value:
        with recursion_budget():
            return self.run_main()

    def step(self) -> StepResult:
        if not self.stepping:
            raise SteppingDisabledError()
        with recursion_budget():
            return self.step_main()

    def run_main(self) -> Value:
        main = self.entry_point()
        try:
            self.init_globals()
            scope = self.scopes.push(GLOBAL)
            try:
                flow = self.exec_statements(main.body.statements, scope)
            finally:
                self.scopes.release(scope)
        except RecursionError:
            raise StackOverflowError("call stack exhausted") from None
        if flow.signal == Signal.RETURN and flow.value is not None:
            return flow.value
        return ZERO

    def step_main(self) -> StepResult:
        if self.finished:
            return StepResult(done=True, returned=self.returned, return_value=self.return_value)

        if self.queue is None:
            try:
                main = self.entry_point()
                self.init_globals()
            except RecursionError:
                self.finished = True
                return StepResult(done=True, error=StackOverflowError("call stack exhausted"))
            except CRuntimeError as e:
                self.finished = True
                return StepResult(done=True, error=e)
            self.queue = list(main.body.statements)
            self.main_scope = self.scopes.push(GLOBAL)
            if not self.queue:
                self.finish()
                return StepResult(done=True)

        stmt = self.queue[self.step_index]
        self.step_index += 1
        logger.debug("step %d: %s at line %d", self.step_index, type(stmt).__name__, stmt.line)

        error = None
        try:
            flow = self.exec_stmt(stmt, self.main_scope)
        except RecursionError:
            flow, error = NORMAL, StackOverflowError("call stack exhausted", stmt.line)
        except CRuntimeError as e:
            flow, error = NORMAL, e

        if flow.signal == Signal.RETURN:
            self.returned = True
            self.return_value = flow.value if flow.value is not None else ZERO
        done = self.step_index >= len(self.queue) or flow.signal != Signal.NORMAL
        if done:
            self.finish()

        return StepResult(
            statement=stmt,
            line=stmt.line,
            done=done,
            returned=self.returned,
            return_value=self.return_value,
            broke=flow.signal == Signal.BREAK,
            continued=flow.signal == Signal.CONTINUE,
            error=error,
        )

    def finish(self):
        self.finished = True
        if self.main_scope is not None:
            self.scopes.release(self.main_scope)
            self.main_scope = None

    def init_globals(self):
        if self.globals_ready:
            return
        self.globals_ready = True
        for decl in self.program.declarations:
            if isinstance(decl, VarDecl):
                self.exec_var_decl(decl, GLOBAL)

    # ---------- statements ----------
    def exec_statements(self, statements: Sequence[Stmt], scope: int) -> Flow:
        for stmt in statements:
            flow = self.exec_stmt(stmt, scope)
            if flow.signal != Signal.NORMAL:
                return flow
        return NORMAL

    def exec_block(self, block: Block, parent: int) -> Flow:
        scope = self.scopes.push(parent)
        try:
            return self.exec_statements(block.statements, scope)
        finally:
            self.scopes.release(scope)

    def exec_stmt(self, stmt: Stmt, scope: int) -> Flow:
        if isinstance(stmt, ExprStmt):
            self.eval_expr(stmt.expr, scope)
            return NORMAL
        if isinstance(stmt, VarDecl):
            self.exec_var_decl(stmt, scope)
            return NORMAL
        if isinstance(stmt, Return):
            value = None if stmt.value is None else self.eval_expr(stmt.value, scope)
            return Flow(Signal.RETURN, value)
        if isinstance(stmt, IfStmt):
            if self.eval_expr(stmt.cond, scope).truthy():
                return self.exec_block(stmt.then_block, scope)
            if stmt.else_block is not None:
                return self.exec_block(stmt.else_block, scope)
            return NORMAL
        if isinstance(stmt, WhileStmt):
            return self.exec_while(stmt, scope)
        if isinstance(stmt, ForStmt):
            return self.exec_for(stmt, scope)
        if isinstance(stmt, Block):
            return self.exec_block(stmt, scope)
        if isinstance(stmt, Break):
            return BREAK
        if isinstance(stmt, Continue):
            return CONTINUE
        if isinstance(stmt, FunctionDecl):
            # nested definitions are not callable; the table is built from top level
            return NORMAL
        raise UnknownNodeError(f"unknown statement type: {type(stmt).__name__}", stmt.line)

    def exec_var_decl(self, decl: VarDecl, scope: int):
        if decl.init is None:
            value = default_value(decl.type_name)
        else:
            value = coerce_to_declared(decl.type_name, self.eval_expr(decl.init, scope))
        self.scopes.define(scope, decl.name, value)

    def exec_while(self, stmt: WhileStmt, scope: int) -> Flow:
        while self.eval_expr(stmt.cond, scope).truthy():
            flow = self.exec_block(stmt.body, scope)
            if flow.signal == Signal.RETURN:
                return flow
            if flow.signal == Signal.BREAK:
                break
        return NORMAL

    def exec_for(self, stmt: ForStmt, parent: int) -> Flow:
        scope = self.scopes.push(parent)
        try:
            if stmt.init is not None:
                self.exec_stmt(stmt.init, scope)
            while stmt.cond is None or self.eval_expr(stmt.cond, scope).truthy():
                flow = self.exec_block(stmt.body, scope)
                if flow.signal == Signal.RETURN:
                    return flow
                if flow.signal == Signal.BREAK:
                    break
                if stmt.post is not None:
                    self.eval_expr(stmt.post, scope)
            return NORMAL
        finally:
            self.scopes.release(scope)

    # ---------- expressions ----------
    def eval_expr(self, expr: Expr, scope: int) -> Value:
        if isinstance(expr, IntLiteral):
            return Value.int_(expr.value)
        if isinstance(expr, FloatLiteral):
            return Value.float_(expr.value)
        if isinstance(expr, StringLiteral):
            return Value.string(expr.value)
        if isinstance(expr, CharLiteral):
            return Value.char(expr.value)
        if isinstance(expr, Identifier):
            value = self.scopes.lookup(scope, expr.name)
            if value is None:
                raise UndefinedVariableError(expr.name, expr.line)
            return value
        if isinstance(expr, BinaryOp):
            return self.eval_binary(expr, scope)
        if isinstance(expr, Assign):
            return self.eval_assign(expr, scope)
        if isinstance(expr, PrefixOp):
            return self.eval_prefix(expr, scope)
        if isinstance(expr, PostfixOp):
            return self.eval_postfix(expr, scope)
        if isinstance(expr, Call):
            return self.eval_call(expr, scope)
        if isinstance(expr, TernaryOp):
            if self.eval_expr(expr.cond, scope).truthy():
                return self.eval_expr(expr.then_expr, scope)
            return self.eval_expr(expr.else_expr, scope)
        if isinstance(expr, Index):
            raise UnsupportedOperationError("array indexing is not supported", expr.line)
        raise UnknownNodeError(f"unknown expression type: {type(expr).__name__}", expr.line)

    def eval_binary(self, expr: BinaryOp, scope: int) -> Value:
        left = self.eval_expr(expr.left, scope)
        # && and || short-circuit
        if expr.op == "&&":
            return bool_value(left.truthy() and self.eval_expr(expr.right, scope).truthy())
        if expr.op == "||":
            return bool_value(left.truthy() or self.eval_expr(expr.right, scope).truthy())
        right = self.eval_expr(expr.right, scope)
        return self.apply_binary(expr.op, left, right, expr.line)

    def apply_binary(self, op: str, left: Value, right: Value, line: int) -> Value:
        if left.is_string or right.is_string:
            if op in ("==", "!=") and left.is_string and right.is_string:
                return bool_value(_COMPARISONS[op](left.data, right.data))
            raise InvalidOperandsError(f"invalid operands to binary {op}", line)

        if left.is_float or right.is_float:
            a, b = left.as_float(), right.as_float()
            if op in _FLOAT_OPS:
                return Value.float_(_FLOAT_OPS[op](a, b))
            if op == "/":
                return Value.float_(_float_div(a, b))
            if op in _COMPARISONS:
                return bool_value(_COMPARISONS[op](a, b))
            if op in ("%", "&", "|", "^", "<<", ">>"):
                raise InvalidOperandsError(f"invalid operands to binary {op}", line)
            raise UnknownOperatorError(f"unknown infix operator: {op}", line)

        a, b = left.as_int(), right.as_int()
        if op in _INT_OPS:
            return Value.int_(_INT_OPS[op](a, b))
        if op in _COMPARISONS:
            return bool_value(_COMPARISONS[op](a, b))
        if op in ("/", "%"):
            if b == 0:
                raise DivisionByZeroError("division by zero" if op == "/" else "modulo by zero", line)
            q = _trunc_div(a, b)
            return Value.int_(q if op == "/" else a - b * q)
        if op in ("<<", ">>"):
            return Value.int_(_shift(op, a, b))
        raise UnknownOperatorError(f"unknown infix operator: {op}", line)

    def eval_assign(self, expr: Assign, scope: int) -> Value:
        right = self.eval_expr(expr.value, scope)
        if not isinstance(expr.target, Identifier):
            raise InvalidAssignmentError("invalid assignment target", expr.line)
        name = expr.target.name

        if expr.op == "=":
            result = right
        else:
            current = self.scopes.lookup(scope, name)
            if current is None:
                raise UndefinedVariableError(name, expr.line)
            result = self.apply_binary(expr.op[:-1], current, right, expr.line)
            if current.kind == CHAR and result.kind == INT:
                result = Value.char(result.data)

        self.scopes.assign(scope, name, result)
        return result

    def step_variable(self, operand: Expr, delta: int, scope: int, line: int):
        """Add ``delta`` to a named variable; returns (old, new) values."""
        current = self.scopes.lookup(scope, operand.name)
        if current is None:
            raise UndefinedVariableError(operand.name, line)
        if current.kind == FLOAT:
            updated = Value.float_(current.data + delta)
        elif current.kind == CHAR:
            updated = Value.char(current.data + delta)
        elif current.kind == INT:
            updated = Value.int_(current.data + delta)
        else:
            raise InvalidOperandsError("invalid operand to increment/decrement", line)
        self.scopes.assign(scope, operand.name, updated)
        return current, updated

    def eval_prefix(self, expr: PrefixOp, scope: int) -> Value:
        op = expr.op
        if op in ("++", "--"):
            if not isinstance(expr.operand, Identifier):
                return self.eval_expr(expr.operand, scope)
            _, updated = self.step_variable(expr.operand, 1 if op == "++" else -1, scope, expr.line)
            return updated
        if op in ("*", "&"):
            raise UnsupportedOperationError(f"pointer operator '{op}' is not supported", expr.line)

        right = self.eval_expr(expr.operand, scope)
        if op == "!":
            return bool_value(not right.truthy())
        if right.is_string:
            raise InvalidOperandsError(f"invalid operand to unary {op}", expr.line)
        if op == "-":
            return Value.float_(-right.data) if right.is_float else Value.int_(-right.as_int())
        if op == "+":
            return right if right.is_float else Value.int_(right.as_int())
        if op == "~":
            if right.is_float:
                raise InvalidOperandsError("invalid operand to unary ~", expr.line)
            return Value.int_(~right.as_int())
        raise UnknownOperatorError(f"unknown prefix operator: {op}", expr.line)

    def eval_postfix(self, expr: PostfixOp, scope: int) -> Value:
        if expr.op not in ("++", "--"):
            raise UnknownOperatorError(f"unknown postfix operator: {expr.op}", expr.line)
        if not isinstance(expr.operand, Identifier):
            return self.eval_expr(expr.operand, scope)
        old, _ = self.step_variable(expr.operand, 1 if expr.op == "++" else -1, scope, expr.line)
        return old

    def eval_call(self, expr: Call, scope: int) -> Value:
        fn = self.builtins.get(expr.func)
        if fn is not None:
            return fn(self, expr.args, scope)

        decl = self.functions.get(expr.func)
        if decl is None or decl.body is None:
            raise UndefinedFunctionError(expr.func, expr.line)

        # arguments are evaluated in the caller's scope, bound in a frame under globals
        args = [self.eval_expr(arg, scope) for arg in expr.args[:len(decl.params)]]
        logger.debug("call %s(%s) at line %d", expr.func, ", ".join(map(str, args)), expr.line)
        frame = self.scopes.push(GLOBAL)
        try:
            for param, value in zip(decl.params, args):
                if param.name:
                    self.scopes.define(frame, param.name, value)
            flow = self.exec_statements(decl.body.statements, frame)
        finally:
            self.scopes.release(frame)

        if flow.signal == Signal.RETURN and flow.value is not None:
            return flow.value
        return ZERO
