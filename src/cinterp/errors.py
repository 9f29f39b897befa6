from __future__ import annotations
from typing import Optional


class CRuntimeError(Exception):
    def __init__(self, message: str, line: Optional[int] = None):
        text = message if line is None else f"{message} (line {line})"
        super().__init__(text)
        self.message = message
        self.line = line


class NoEntryPointError(CRuntimeError):
    def __init__(self):
        super().__init__("no main function found")


class UndefinedVariableError(CRuntimeError):
    def __init__(self, name: str, line: Optional[int] = None):
        super().__init__(f"undefined variable: {name}", line)
        self.name = name


class UndefinedFunctionError(CRuntimeError):
    def __init__(self, name: str, line: Optional[int] = None):
        super().__init__(f"undefined function: {name}", line)
        self.name = name


class DivisionByZeroError(CRuntimeError):
    pass


class InvalidAssignmentError(CRuntimeError):
    pass


class InvalidOperandsError(CRuntimeError):
    pass


class UnknownOperatorError(CRuntimeError):
    pass


class UnknownNodeError(CRuntimeError):
    pass


class UnsupportedOperationError(CRuntimeError):
    pass


class BuiltinError(CRuntimeError):
    pass


class StackOverflowError(CRuntimeError):
    pass


class SteppingDisabledError(CRuntimeError):
    def __init__(self):
        super().__init__("single-step mode not enabled")
