"""
Extension points for connection diagnostics.

Nothing behind these hooks is implemented yet; they exist so callers can probe
for the capability and get a clear error.
"""

from __future__ import annotations

from typing import Any


class DiagnosticsHooks:
    def __init__(self, agent: Any) -> None:
        self.agent = agent

    def start(self) -> None:
        raise NotImplementedError("connection diagnostics are not available")

    def stop(self) -> None:
        raise NotImplementedError("connection diagnostics are not available")

    def define(self, *args: Any, **kwargs: Any) -> None:
        raise NotImplementedError("connection diagnostics are not available")


__all__ = ["DiagnosticsHooks"]
