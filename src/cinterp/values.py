from __future__ import annotations
from dataclasses import dataclass
from typing import Union

INT = "int"
FLOAT = "float"
STRING = "string"
CHAR = "char"

_INT_TYPE_WORDS = {"int", "char", "short", "long", "signed", "unsigned"}
_FLOAT_TYPE_WORDS = {"float", "double"}


def wrap_int(n: int) -> int:
    """Wrap an arbitrary Python int into the signed 64-bit range."""
    n &= 0xFFFFFFFFFFFFFFFF
    if n >= 0x8000000000000000:
        n -= 0x10000000000000000
    return n


@dataclass(frozen=True)
class Value:
    kind: str
    data: Union[int, float, str]

    @classmethod
    def int_(cls, n: int) -> "Value":
        return cls(INT, wrap_int(n))

    @classmethod
    def float_(cls, f: float) -> "Value":
        return cls(FLOAT, float(f))

    @classmethod
    def char(cls, code: int) -> "Value":
        return cls(CHAR, wrap_int(code))

    @classmethod
    def string(cls, s: str) -> "Value":
        return cls(STRING, s)

    @property
    def is_float(self) -> bool:
        return self.kind == FLOAT

    @property
    def is_string(self) -> bool:
        return self.kind == STRING

    def as_float(self) -> float:
        if self.kind == STRING:
            return 0.0
        return float(self.data)

    def as_int(self) -> int:
        if self.kind == FLOAT:
            return wrap_int(int(self.data))
        if self.kind == STRING:
            return 0
        return self.data

    def truthy(self) -> bool:
        if self.kind == STRING:
            return True
        return self.data != 0

    def __str__(self) -> str:
        return str(self.data)


ZERO = Value.int_(0)


def bool_value(flag: bool) -> Value:
    return Value.int_(1 if flag else 0)


def _type_words(type_name: str):
    return set(type_name.replace("*", " ").split())


def default_value(type_name: str) -> Value:
    if "*" not in type_name and "[]" not in type_name and _type_words(type_name) & _FLOAT_TYPE_WORDS:
        return Value.float_(0.0)
    return ZERO


def coerce_to_declared(type_name: str, value: Value) -> Value:
    """Convert an initialiser to the declared scalar type of a variable."""
    if "*" in type_name or "[]" in type_name or value.is_string:
        return value
    words = _type_words(type_name)
    if words & _FLOAT_TYPE_WORDS:
        return value if value.is_float else Value.float_(value.as_float())
    if words & _INT_TYPE_WORDS and value.is_float:
        return Value.int_(value.as_int())
    return value
