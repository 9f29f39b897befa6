"""
Built-in functions callable from C source.

Each built-in receives the evaluator, the raw argument expressions and the
calling scope, and evaluates only the arguments it needs.
"""

from __future__ import annotations
import math
import re
from typing import TYPE_CHECKING, Callable, Dict, List, Sequence

from .ast_nodes import Expr
from .errors import BuiltinError
from .values import ZERO, Value

if TYPE_CHECKING:
    from .evaluator import Evaluator

Builtin = Callable[["Evaluator", Sequence[Expr], int], Value]

BUILTINS: Dict[str, Builtin] = {}

_MASK64 = 0xFFFFFFFFFFFFFFFF


def builtin(name: str):
    def register(fn: Builtin) -> Builtin:
        BUILTINS[name] = fn
        return fn
    return register


def get_builtins() -> Dict[str, Builtin]:
    return dict(BUILTINS)


# ---------- printf ----------
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "0": "\0"}

_CONVERSION = re.compile(r"%([-+ #0]*)(\d*)(?:\.(\d*))?(?:hh|h|ll|l|L|j|z|t)?([diouxXeEfFgGcs%])")


def process_escapes(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(_ESCAPES.get(nxt, ch + nxt))
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _convert(flags: str, width: str, precision, conv: str, value: Value) -> str:
    if conv in "uoxX":
        # unsigned conversions carry no sign
        flags = flags.replace("+", "").replace(" ", "")
    spec = "%" + flags + width
    if precision is not None:
        spec += "." + (precision or "0")

    if conv in "di":
        return (spec + "d") % value.as_int()
    if conv == "u":
        return (spec + "d") % (value.as_int() & _MASK64)
    if conv in "xX":
        return (spec + conv) % (value.as_int() & _MASK64)
    if conv == "o":
        n = value.as_int() & _MASK64
        if "#" in flags:
            # C spells the alternate octal form with a bare leading zero
            return (spec.replace("#", "") + "s") % ("0%o" % n if n else "0")
        return (spec + "o") % n
    if conv in "eEfFgG":
        return (spec + conv) % value.as_float()
    if conv == "c":
        ch = value.data[:1] if value.is_string else chr(value.as_int() & 0xFF)
        return ("%" + flags + width + "s") % ch
    return (spec + "s") % value


def format_c(fmt: str, values: List[Value]) -> str:
    """Expand C printf conversions in ``fmt`` with ``values``."""
    out = []
    pos = 0
    args = iter(values)
    for m in _CONVERSION.finditer(fmt):
        out.append(fmt[pos:m.start()])
        pos = m.end()
        flags, width, precision, conv = m.groups()
        if conv == "%":
            out.append("%")
            continue
        value = next(args, None)
        if value is None:
            raise BuiltinError(f"printf: missing argument for %{conv}")
        out.append(_convert(flags, width, precision, conv, value))
    out.append(fmt[pos:])
    return "".join(out)


@builtin("printf")
def printf(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
    if not args:
        return ZERO
    fmt = ev.eval_expr(args[0], scope)
    if not fmt.is_string:
        raise BuiltinError("printf: format must be a string", args[0].line)
    values = [ev.eval_expr(arg, scope) for arg in args[1:]]
    text = format_c(process_escapes(fmt.data), values)
    ev.settings.stdout.write(text)
    return Value.int_(len(text))


@builtin("sleep")
def sleep(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
    if not args:
        return ZERO
    ms = ev.eval_expr(args[0], scope).as_int()
    if ms > 0:
        ev.settings.sleep(ms / 1000.0)
    return ZERO


@builtin("putchar")
def putchar(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
    if not args:
        return ZERO
    code = ev.eval_expr(args[0], scope).as_int()
    ev.settings.stdout.write(chr(code & 0xFF))
    return Value.int_(code)


# ---------- math ----------
def _float_args(ev: "Evaluator", args: Sequence[Expr], scope: int, name: str, count: int) -> List[float]:
    if len(args) < count:
        noun = "argument" if count == 1 else "arguments"
        raise BuiltinError(f"{name} requires {count} {noun}")
    return [ev.eval_expr(arg, scope).as_float() for arg in args[:count]]


def _ieee(fn: Callable[..., float], *xs: float) -> float:
    # math raises where C returns nan/inf
    try:
        return float(fn(*xs))
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


def _log(x: float) -> float:
    return -math.inf if x == 0 else math.log(x)


def _log10(x: float) -> float:
    return -math.inf if x == 0 else math.log10(x)


def _rounding(fn: Callable[[float], int]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if math.isinf(x) or math.isnan(x):
            return x
        return float(fn(x))
    return apply


def _pow(base: float, exp: float) -> float:
    if base == 0 and exp < 0:
        return math.inf
    return math.pow(base, exp)


_UNARY_MATH = {
    "sqrt": math.sqrt,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "floor": _rounding(math.floor),
    "ceil": _rounding(math.ceil),
    "log": _log,
    "log10": _log10,
    "exp": math.exp,
}


def _register_unary(name: str, fn: Callable[[float], float]):
    @builtin(name)
    def impl(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
        (x,) = _float_args(ev, args, scope, name, 1)
        return Value.float_(_ieee(fn, x))


for _name, _fn in _UNARY_MATH.items():
    _register_unary(_name, _fn)


@builtin("pow")
def pow_fn(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
    base, exp = _float_args(ev, args, scope, "pow", 2)
    return Value.float_(_ieee(_pow, base, exp))


@builtin("abs")
def abs_fn(ev: "Evaluator", args: Sequence[Expr], scope: int) -> Value:
    if not args:
        raise BuiltinError("abs requires 1 argument")
    val = ev.eval_expr(args[0], scope)
    if val.is_float:
        return Value.float_(abs(val.data))
    return Value.int_(abs(val.as_int()))
