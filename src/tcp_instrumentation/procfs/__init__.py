"""Readers for the kernel's socket tables and per-process fd tables."""

from .processes import ProcessSocket, read_process_name, scan_processes
from .sockets import SocketEntry, parse_socket_line, parse_socket_table, read_socket_tables, state_name
from .source import ProcFS

__all__ = [
    "ProcFS",
    "ProcessSocket",
    "SocketEntry",
    "parse_socket_line",
    "parse_socket_table",
    "read_process_name",
    "read_socket_tables",
    "scan_processes",
    "state_name",
]
