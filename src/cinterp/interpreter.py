from __future__ import annotations
from typing import Dict, Optional

from .ast_nodes import Program
from .evaluator import Evaluator, StepResult
from .parser import parse
from .settings import Settings
from .stdlib import Builtin
from .values import Value


class Interpreter:
    """Embedding surface: parse once, then run or single-step ``main``.

    Construction raises ``ParseError`` carrying every diagnostic. Calls on
    one instance must not overlap; nothing here is thread-safe.
    """

    def __init__(self, source: str, settings: Optional[Settings] = None,
                 builtins: Optional[Dict[str, Builtin]] = None):
        self.program: Program = parse(source)
        self.evaluator = Evaluator(self.program, settings, builtins)

    @property
    def stepping(self) -> bool:
        return self.evaluator.stepping

    def run(self) -> Value:
        return self.evaluator.run()

    def enable_stepping(self):
        self.evaluator.enable_stepping()

    def disable_stepping(self):
        self.evaluator.disable_stepping()

    def step(self) -> StepResult:
        return self.evaluator.step()

    def reset(self):
        self.evaluator.reset()
