from __future__ import annotations

import argparse
import time
from typing import Any, Callable, Sequence

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from . import config
from .client import AgentClient, AgentClientConfig
from .errors import AgentError, UnsupportedKeyError
from .response import Response

_CONVERTERS: dict[str, Callable[[Response], Any]] = {
    "str": Response.as_str,
    "bool": Response.as_bool,
    "int": Response.as_int64,
    "float": Response.as_float64,
    "auto": Response.as_inferred,
}


def _watch_table(key: str, res: Response | None, error: str | None = None) -> Table:
    t = Table(title=f"zagent watch {key}")
    t.add_column("Key", style="bold")
    t.add_column("Value")

    t.add_row("key", key)
    t.add_row("ts_ms", str(int(time.time() * 1000)))
    if res is not None:
        t.add_row("supported", str(res.supported()))
        t.add_row("data_length", str(res.data_length))
        t.add_row("value", escape(res.as_str()))
    if error:
        t.add_row("error", f"[red]{escape(error)}[/red]")
    return t


def _rows_table(title: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> Table:
    t = Table(title=title)
    for c in columns:
        t.add_column(c, style="bold" if c == columns[0] else None)
    for r in rows:
        t.add_row(*(str(v) for v in r))
    return t


def _discover(client: AgentClient, what: str, timeout: float) -> Table:
    if what == "filesystems":
        fs = client.discover_filesystems(timeout)
        return _rows_table("Filesystems", ["Name", "Type"], [(f.name, f.type) for f in fs])
    if what == "interfaces":
        ifaces = client.discover_network_interfaces(timeout)
        return _rows_table("Network interfaces", ["Name"], [(i.name,) for i in ifaces])
    cpus = client.discover_cpus(timeout)
    return _rows_table("CPUs", ["Number", "Status"], [(int(c.number), c.status) for c in cpus])


def _watch(client: AgentClient, console: Console, key: str, interval: float, timeout: float) -> int:
    with Live(_watch_table(key, None), refresh_per_second=4, console=console) as live:
        try:
            while True:
                try:
                    live.update(_watch_table(key, client.query(key, timeout)))
                except UnsupportedKeyError as e:
                    live.update(_watch_table(key, e.response, str(e)))
                except AgentError as e:
                    live.update(_watch_table(key, None, str(e)))
                time.sleep(max(0.05, interval))
        except KeyboardInterrupt:
            return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="zagent")
    p.add_argument("--host", default=config.agent_host())
    p.add_argument("--port", default=config.agent_port(), type=int)
    p.add_argument("--timeout", default=config.agent_timeout_s(), type=float)
    p.add_argument("--strict-header", action=argparse.BooleanOptionalAction, default=config.strict_header(),
                   help="Reject frames whose header is not ZBXD\\x01")
    p.add_argument("--strict-length", action=argparse.BooleanOptionalAction, default=config.strict_length(),
                   help="Reject frames whose payload size differs from the declared length")

    sub = p.add_subparsers(dest="cmd", required=True)

    get = sub.add_parser("get", help="Query a single key")
    get.add_argument("key")
    get.add_argument("--type", default="str", choices=sorted(_CONVERTERS))

    sub.add_parser("ping", help="Query agent.ping")
    sub.add_parser("hostname", help="Query agent.hostname")
    sub.add_parser("version", help="Query agent.version")

    discover = sub.add_parser("discover", help="Run a low-level discovery key")
    discover.add_argument("what", choices=["filesystems", "interfaces", "cpus"])

    watch = sub.add_parser("watch", help="Continuously query a key and display it")
    watch.add_argument("key")
    watch.add_argument("--interval", default=1.0, type=float)

    args = p.parse_args(argv)
    console = Console()

    client = AgentClient(AgentClientConfig(
        host=args.host,
        port=args.port,
        timeout_s=args.timeout,
        strict_header=args.strict_header,
        strict_length=args.strict_length,
    ))
    timeout = float(args.timeout)

    try:
        if args.cmd == "get":
            res = client.query(args.key, timeout)
            value = _CONVERTERS[args.type](res)
            console.print(value if isinstance(value, str) else repr(value), markup=False, highlight=False)
            return 0

        if args.cmd == "ping":
            ok = client.agent_ping(timeout)
            console.print("[green]pong[/green]" if ok else "[red]no pong[/red]")
            return 0 if ok else 1

        if args.cmd == "hostname":
            console.print(client.agent_hostname(timeout), markup=False, highlight=False)
            return 0

        if args.cmd == "version":
            console.print(client.agent_version(timeout), markup=False, highlight=False)
            return 0

        if args.cmd == "discover":
            console.print(_discover(client, args.what, timeout))
            return 0

        if args.cmd == "watch":
            return _watch(client, console, args.key, float(args.interval), timeout)
    except AgentError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1

    console.print("[red]Unknown command[/red]")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
