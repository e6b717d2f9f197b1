from __future__ import annotations

import os

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 10050
DEFAULT_TIMEOUT_S = 30.0

HEADER_MAGIC = b"ZBXD\x01"
NOT_SUPPORTED = "ZBX_NOTSUPPORTED"


def env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def agent_host() -> str:
    return env_str("ZABBIX_HOST", DEFAULT_HOST)


def agent_port() -> int:
    try:
        return int(env_str("ZABBIX_PORT", str(DEFAULT_PORT)))
    except ValueError:
        return DEFAULT_PORT


def agent_timeout_s() -> float:
    """
    Seconds allowed for connect and for every read/write on the socket.
    Falls back to 30 when ZABBIX_TIMEOUT is unset, invalid or not positive.
    """
    try:
        value = float(env_str("ZABBIX_TIMEOUT", str(DEFAULT_TIMEOUT_S)))
    except ValueError:
        return DEFAULT_TIMEOUT_S
    return value if value > 0 else DEFAULT_TIMEOUT_S


def strict_header() -> bool:
    return env_flag("ZAGENT_STRICT_HEADER")


def strict_length() -> bool:
    return env_flag("ZAGENT_STRICT_LENGTH")
