"""
cinterp - an embeddable interpreter for a K&R-era subset of C
"""

from .lexer import tokenize, CLexer, Token
from .parser import parse, Parser, ParseError, Diagnostic
from .evaluator import Evaluator, StepResult, Signal, Flow
from .interpreter import Interpreter
from .settings import Settings
from .stdlib import BUILTINS, builtin, get_builtins
from .values import Value
from .errors import CRuntimeError

__version__ = "0.1.0"
__all__ = [
    "tokenize", "CLexer", "Token",
    "parse", "Parser", "ParseError", "Diagnostic",
    "Evaluator", "StepResult", "Signal", "Flow",
    "Interpreter", "Settings",
    "BUILTINS", "builtin", "get_builtins",
    "Value", "CRuntimeError",
]
