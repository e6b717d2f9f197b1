from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from .errors import DiscoveryError

FILESYSTEMS_KEY = "vfs.fs.discovery"
NETWORK_INTERFACES_KEY = "net.if.discovery"
CPUS_KEY = "system.cpu.discovery"


@dataclass(frozen=True)
class Filesystem:
    """A filesystem as reported by vfs.fs.discovery."""

    name: str
    type: str


@dataclass(frozen=True)
class NetworkInterface:
    """A network interface as reported by net.if.discovery."""

    name: str


@dataclass(frozen=True)
class CPU:
    """A CPU as reported by system.cpu.discovery."""

    number: float
    status: str


def parse_discovery(data: bytes) -> list[dict[str, Any]]:
    """Decode a low-level discovery payload of the form ``{"data": [{...}, ...]}``."""
    try:
        doc = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Invalid discovery JSON from agent: {e}: {data[:200]!r}") from e

    rows = doc.get("data") if isinstance(doc, dict) else None
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise DiscoveryError("Discovery payload must be an object with a 'data' list of objects")
    return rows


def _field(row: dict[str, Any], macro: str, kind: Any) -> Any:
    value = row.get(macro)
    # bool is an int subclass; never accept it as a number
    if not isinstance(value, kind) or isinstance(value, bool):
        raise DiscoveryError(f"Discovery row is missing {macro} or it is not {getattr(kind, '__name__', 'a number')}: {row!r}")
    return value


def filesystems_from(data: bytes) -> list[Filesystem]:
    return [
        Filesystem(name=_field(r, "{#FSNAME}", str), type=_field(r, "{#FSTYPE}", str))
        for r in parse_discovery(data)
    ]


def network_interfaces_from(data: bytes) -> list[NetworkInterface]:
    return [NetworkInterface(name=_field(r, "{#IFNAME}", str)) for r in parse_discovery(data)]


def _cpu_number(row: dict[str, Any]) -> float:
    value = _field(row, "{#CPU.NUMBER}", (int, float))
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    # json.loads lets NaN and Infinity through
    if not math.isfinite(number):
        raise DiscoveryError(f"Discovery row has a non-finite {{#CPU.NUMBER}}: {row!r}")
    return number


def cpus_from(data: bytes) -> list[CPU]:
    return [CPU(number=_cpu_number(r), status=_field(r, "{#CPU.STATUS}", str)) for r in parse_discovery(data)]
