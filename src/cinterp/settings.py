from __future__ import annotations
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, TextIO


def _stdout() -> TextIO:
    # resolved at construction so redirected/captured stdout is honoured
    return sys.stdout


@dataclass
class Settings:
    """Host-side hooks for the side effects of built-in functions."""
    stdout: TextIO = field(default_factory=_stdout)
    sleep: Callable[[float], None] = time.sleep
