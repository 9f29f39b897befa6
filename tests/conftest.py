"""Shared helpers for the cinterp test suite."""

import io
from dataclasses import dataclass, field
from typing import List

import pytest

from cinterp import Interpreter, Settings


@dataclass
class Host:
    """Captures what interpreted code writes and how long it asks to sleep."""

    out: io.StringIO = field(default_factory=io.StringIO)
    sleeps: List[float] = field(default_factory=list)

    def settings(self) -> Settings:
        return Settings(stdout=self.out, sleep=self.sleeps.append)

    def interpreter(self, source: str) -> Interpreter:
        return Interpreter(source, settings=self.settings())

    @property
    def output(self) -> str:
        return self.out.getvalue()


@pytest.fixture
def host() -> Host:
    return Host()


def run_main(body: str, host: Host = None, prelude: str = ""):
    """Run ``body`` as the body of main; returns (return value data, output)."""
    host = host or Host()
    interp = host.interpreter(prelude + "\nint main() {\n" + body + "\n}\n")
    value = interp.run()
    return value.data, host.output
