from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Union

from .config import NOT_SUPPORTED
from .errors import ConversionError
from .frame import ResponseFrame

Inferred = Union[int, float, bool, str]

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_FLOAT_WORDS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan"}

_TRUE = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE = {"0", "f", "F", "false", "FALSE", "False"}


def try_int(text: str) -> tuple[bool, int]:
    if not _INT_RE.fullmatch(text):
        return False, 0
    return True, int(text)


def try_int64(text: str) -> tuple[bool, int]:
    ok, value = try_int(text)
    if not ok or not INT64_MIN <= value <= INT64_MAX:
        return False, 0
    return True, value


def try_float64(text: str) -> tuple[bool, float]:
    if text.lower() in _FLOAT_WORDS:
        return True, float(text)
    if not _FLOAT_RE.fullmatch(text):
        return False, 0.0
    value = float(text)
    # out of float64 range, e.g. "1e400"
    if not math.isfinite(value):
        return False, 0.0
    return True, value


def try_bool(text: str) -> tuple[bool, bool]:
    if text in _TRUE:
        return True, True
    if text in _FALSE:
        return True, False
    return False, False


def infer(text: str) -> Inferred:
    """Convert ``text`` to the narrowest fitting type: int64, float, bool, then str."""
    ok, i = try_int64(text)
    if ok:
        return i
    ok, f = try_float64(text)
    if ok:
        return f
    ok, b = try_bool(text)
    if ok:
        return b
    return text


@dataclass(frozen=True)
class Response:
    """The agent's answer to a single key.

    ``data`` is what most callers want; ``header`` should always be
    ``ZBXD\\x01`` and ``data_length`` is the length the agent declared, which
    is not checked against ``data`` unless the client runs in strict mode.
    """

    key: str
    header: bytes
    data_length: int
    data: bytes

    @classmethod
    def from_frame(cls, key: str, frame: ResponseFrame) -> "Response":
        return cls(key=key, header=frame.header, data_length=frame.data_length, data=frame.data)

    def supported(self) -> bool:
        return NOT_SUPPORTED not in self.as_str()

    def as_str(self) -> str:
        return self.data.decode("utf-8", errors="replace")

    def as_bool(self) -> bool:
        ok, value = try_bool(self.as_str())
        if not ok:
            raise ConversionError(f"{self.key}: cannot parse {self.as_str()!r} as bool")
        return value

    def as_int(self) -> int:
        ok, value = try_int(self.as_str())
        if not ok:
            raise ConversionError(f"{self.key}: cannot parse {self.as_str()!r} as int")
        return value

    def as_int64(self) -> int:
        ok, value = try_int64(self.as_str())
        if not ok:
            raise ConversionError(f"{self.key}: cannot parse {self.as_str()!r} as int64")
        return value

    def as_float64(self) -> float:
        ok, value = try_float64(self.as_str())
        if not ok:
            raise ConversionError(f"{self.key}: cannot parse {self.as_str()!r} as float")
        return value

    def as_inferred(self) -> Inferred:
        return infer(self.as_str())
