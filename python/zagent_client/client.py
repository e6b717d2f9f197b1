from __future__ import annotations

import json
import socket
from dataclasses import dataclass
from typing import Any

from . import config
from .discovery import (
    CPUS_KEY,
    CPU,
    FILESYSTEMS_KEY,
    NETWORK_INTERFACES_KEY,
    Filesystem,
    NetworkInterface,
    cpus_from,
    filesystems_from,
    network_interfaces_from,
)
from .errors import DiscoveryError, FramingError, TransportError, UnsupportedKeyError
from .frame import parse_frame
from .logging import get_logger
from .response import Inferred, Response

log = get_logger(__name__)


@dataclass(frozen=True)
class AgentClientConfig:
    host: str = config.DEFAULT_HOST
    port: int = config.DEFAULT_PORT
    timeout_s: float = config.DEFAULT_TIMEOUT_S
    strict_header: bool = False
    strict_length: bool = False

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            object.__setattr__(self, "timeout_s", config.DEFAULT_TIMEOUT_S)

    @classmethod
    def from_env(cls) -> "AgentClientConfig":
        return cls(
            host=config.agent_host(),
            port=config.agent_port(),
            timeout_s=config.agent_timeout_s(),
            strict_header=config.strict_header(),
            strict_length=config.strict_length(),
        )


class AgentClient:
    """Queries a single remote agent. Every call opens and closes its own connection."""

    def __init__(self, cfg: AgentClientConfig):
        self._cfg = cfg

    @property
    def config(self) -> AgentClientConfig:
        return self._cfg

    def _timeout(self, timeout_s: float | None) -> float:
        if timeout_s is None or timeout_s <= 0:
            return self._cfg.timeout_s
        return timeout_s

    def query(self, key: str, timeout_s: float | None = None) -> Response:
        """Run ``key`` against the agent.

        A ``timeout_s`` of None, zero or less uses the configured default.
        Raises UnsupportedKeyError, with the response attached, when the agent
        does not know the key.
        """
        timeout = self._timeout(timeout_s)
        address = (self._cfg.host, self._cfg.port)
        log.debug("querying %s on %s:%s (timeout %.1fs)", key, address[0], address[1], timeout)

        try:
            with socket.create_connection(address, timeout=timeout) as s:
                s.settimeout(timeout)
                s.sendall(key.encode("utf-8"))
                with s.makefile("rb") as stream:
                    frame = parse_frame(
                        stream,
                        strict_header=self._cfg.strict_header,
                        strict_length=self._cfg.strict_length,
                    )
        except OSError as e:
            log.debug("transport failure for %s on %s:%s: %s", key, address[0], address[1], e)
            raise TransportError(f"{key}: {address[0]}:{address[1]}: {e}") from e
        except FramingError as e:
            log.debug("bad frame for %s: %s", key, e)
            raise

        res = Response.from_frame(key, frame)
        if not res.supported():
            log.warning("%s is not supported by %s", key, address[0])
            raise UnsupportedKeyError(key, res)
        return res

    def query_str(self, key: str, timeout_s: float | None = None) -> str:
        return self.query(key, timeout_s).as_str()

    def query_bool(self, key: str, timeout_s: float | None = None) -> bool:
        return self.query(key, timeout_s).as_bool()

    def query_int(self, key: str, timeout_s: float | None = None) -> int:
        return self.query(key, timeout_s).as_int()

    def query_int64(self, key: str, timeout_s: float | None = None) -> int:
        return self.query(key, timeout_s).as_int64()

    def query_float64(self, key: str, timeout_s: float | None = None) -> float:
        return self.query(key, timeout_s).as_float64()

    def query_inferred(self, key: str, timeout_s: float | None = None) -> Inferred:
        """Run ``key`` and convert the result to int, float, bool or str, whichever fits first."""
        return self.query(key, timeout_s).as_inferred()

    def query_json(self, key: str, timeout_s: float | None = None) -> Any:
        data = self.query(key, timeout_s).data
        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DiscoveryError(f"Invalid JSON from agent for {key}: {e}: {data[:200]!r}") from e

    def discover_filesystems(self, timeout_s: float | None = None) -> list[Filesystem]:
        return filesystems_from(self.query(FILESYSTEMS_KEY, timeout_s).data)

    def discover_network_interfaces(self, timeout_s: float | None = None) -> list[NetworkInterface]:
        return network_interfaces_from(self.query(NETWORK_INTERFACES_KEY, timeout_s).data)

    def discover_cpus(self, timeout_s: float | None = None) -> list[CPU]:
        return cpus_from(self.query(CPUS_KEY, timeout_s).data)

    def agent_hostname(self, timeout_s: float | None = None) -> str:
        return self.query_str("agent.hostname", timeout_s)

    def agent_ping(self, timeout_s: float | None = None) -> bool:
        """True when agent.ping answers "1"."""
        return self.query_bool("agent.ping", timeout_s)

    def agent_version(self, timeout_s: float | None = None) -> str:
        return self.query_str("agent.version", timeout_s)


def new_agent(
    host: str,
    port: int = config.DEFAULT_PORT,
    timeout_s: float = config.DEFAULT_TIMEOUT_S,
) -> AgentClient:
    return AgentClient(AgentClientConfig(host=host, port=port, timeout_s=timeout_s))
