"""
`tcp-prof` command line interface over the per-connection TCP statistics tree.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from ..aggregator import AggregationConfig, IntervalAggregator
from ..collectors import (
    BaseCollector,
    CollectorConfig,
    ConnectionInfoCollector,
    TcpStatsCollector,
    describe_info,
)
from ..core.catalog import Agent, attach
from ..core.config import AgentConfig
from ..core.profiling import RefreshProfiler
from ..core.render import value_to_text
from ..core.snapshot import read_variable
from ..core.types import VarType
from ..correlation import ConnectionInfoContext
from ..exceptions import InstrumentationError, describe

LOG = logging.getLogger("tcp_prof")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tcp-prof",
        description="Inspect per-connection TCP statistics and the processes owning each connection.",
    )
    parser.add_argument("--root", type=Path, help="Connection statistics root (default /proc/web100).")
    parser.add_argument("--header", type=Path, help="Header schema path (default <root>/header).")
    parser.add_argument("--proc-root", type=Path, help="Process tree root used for correlation (default /proc).")
    parser.add_argument(
        "--log",
        type=str,
        default="INFO",
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("groups", help="List groups with their size and variable count.")
    vars_parser = sub.add_parser("vars", help="List the variables of a group.")
    vars_parser.add_argument("group")
    sub.add_parser("list", help="List tracked connections.")
    read_parser = sub.add_parser("read", help="Read one variable from a live connection.")
    read_parser.add_argument("cid", type=int)
    read_parser.add_argument("variable")
    sub.add_parser("conninfo", help="Attribute every tracked connection to its process.")

    watch = sub.add_parser("watch", help="Periodically emit counter deltas and attribution as JSONL.")
    watch.add_argument("--interval", type=float, default=1.0, help="Aggregation interval seconds.")
    watch.add_argument("--output", type=Path, help="Write JSONL to this path.")
    watch.add_argument(
        "--compression",
        choices=["none", "lz4", "zstd"],
        default="none",
        help="Compress each flushed chunk of the output file.",
    )
    watch.add_argument(
        "--flush-every",
        type=int,
        default=5,
        help="Flush after this many events when writing to disk.",
    )
    watch.add_argument(
        "--only",
        type=str,
        default="tcp,conninfo",
        help="Comma separated collectors to enable: tcp,conninfo.",
    )
    watch.add_argument("--group", type=str, default="read", help="Group snapshotted by the tcp collector.")
    watch.add_argument("--cid", type=int, action="append", default=[], help="Restrict to connection ids.")
    watch.add_argument(
        "--labels",
        type=str,
        help="Comma separated key=value pairs added to every event for filtering.",
    )
    watch.add_argument("--overhead", action="store_true", help="Emit refresh timing and RSS events.")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_labels(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    out: dict[str, str] = {}
    for item in raw.split(","):
        if not item:
            continue
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        out[key.strip()] = value.strip()
    return out


def build_agent_config(args: argparse.Namespace) -> AgentConfig:
    config = AgentConfig.from_env()
    if args.root:
        config.with_root(args.root)
    if args.header:
        config.with_header(args.header)
    if args.proc_root:
        config.with_proc_root(args.proc_root)
    return config


def build_collectors(
    args: argparse.Namespace, agent: Agent, profiler: Optional[RefreshProfiler]
) -> List[BaseCollector]:
    config = CollectorConfig(agent=agent.config, group=args.group, cids=tuple(args.cid))
    enabled = {item.strip() for item in args.only.split(",") if item.strip()}
    collectors: List[BaseCollector] = []

    if "tcp" in enabled:
        collectors.append(TcpStatsCollector(config, agent=agent, profiler=profiler))
    if "conninfo" in enabled:
        collectors.append(ConnectionInfoCollector(config, agent=agent, profiler=profiler))

    return collectors


def _print(line: str) -> None:
    sys.stdout.write(line + "\n")


def cmd_groups(agent: Agent, args: argparse.Namespace) -> int:
    for group in agent.groups:
        _print(f"{group.name}\t{group.size}\t{group.nvars}")
    return 0


def cmd_vars(agent: Agent, args: argparse.Namespace) -> int:
    group = agent.group_by_name(args.group)
    if group is None:
        LOG.error("No such group: %s", args.group)
        return 1
    for var in group:
        _print(f"{var.name}\t{var.offset}\t{var.type.name}")
    return 0


def cmd_list(agent: Agent, args: argparse.Namespace) -> int:
    for conn in agent.connections():
        spec = conn.spec
        local = value_to_text(VarType.IP_ADDRESS, spec.addr_bytes("src"))
        remote = value_to_text(VarType.IP_ADDRESS, spec.addr_bytes("dst"))
        _print(f"{conn.cid}\t{local}:{spec.src_port}\t{remote}:{spec.dst_port}")
    return 0


def cmd_read(agent: Agent, args: argparse.Namespace) -> int:
    _, var = agent.require_variable(args.variable)
    conn = agent.find_by_cid(args.cid)
    if conn is None:
        LOG.error("No such connection: %d", args.cid)
        return 1
    _print(value_to_text(var.type, read_variable(var, conn)))
    return 0


def cmd_conninfo(agent: Agent, args: argparse.Namespace) -> int:
    context = ConnectionInfoContext(agent)
    for info in context.refresh():
        _print(json.dumps(describe_info(info), sort_keys=True))
    return 0


def cmd_watch(agent: Agent, args: argparse.Namespace) -> int:
    profiler = RefreshProfiler() if args.overhead else None
    collectors = build_collectors(args, agent, profiler)
    if not collectors:
        LOG.error("No collectors enabled. Check --only flag.")
        return 1

    agg_cfg = AggregationConfig(
        interval=args.interval,
        output_path=args.output,
        flush_every=max(1, args.flush_every),
        compression=args.compression,
        include_overhead=args.overhead,
        extra_labels=parse_labels(args.labels),
    )
    aggregator = IntervalAggregator(collectors, agg_cfg, profiler)
    try:
        aggregator.run_forever()
    except KeyboardInterrupt:
        LOG.info("Shutting down collectors...")
    return 0


COMMANDS = {
    "groups": cmd_groups,
    "vars": cmd_vars,
    "list": cmd_list,
    "read": cmd_read,
    "conninfo": cmd_conninfo,
    "watch": cmd_watch,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log)

    try:
        with attach(build_agent_config(args)) as agent:
            return COMMANDS[args.command](agent, args)
    except InstrumentationError as exc:
        LOG.error("%s", describe(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
