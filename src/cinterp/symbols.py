from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .values import Value

GLOBAL = 0


@dataclass
class Frame:
    parent: Optional[int] = None
    vars: Dict[str, Value] = field(default_factory=dict)


class ScopeArena:
    """Scopes stored by index; frame 0 is the global scope.

    Frames are pushed on block, for-loop and call entry and released in
    LIFO order, so releasing a frame also drops every frame above it.
    """

    def __init__(self):
        self.frames: List[Frame] = [Frame(parent=None)]

    def __len__(self) -> int:
        return len(self.frames)

    def push(self, parent: int) -> int:
        self.frames.append(Frame(parent=parent))
        return len(self.frames) - 1

    def release(self, index: int):
        if index <= GLOBAL:
            raise ValueError("the global scope cannot be released")
        del self.frames[index:]

    def resolve(self, scope: int, name: str) -> Optional[int]:
        cur: Optional[int] = scope
        while cur is not None:
            frame = self.frames[cur]
            if name in frame.vars:
                return cur
            cur = frame.parent
        return None

    def lookup(self, scope: int, name: str) -> Optional[Value]:
        owner = self.resolve(scope, name)
        if owner is None:
            return None
        return self.frames[owner].vars[name]

    def define(self, scope: int, name: str, value: Value):
        self.frames[scope].vars[name] = value

    def assign(self, scope: int, name: str, value: Value):
        # innermost scope that already binds the name, else the current one
        owner = self.resolve(scope, name)
        self.frames[scope if owner is None else owner].vars[name] = value
