import pytest

from tcp_instrumentation.core.catalog import attach
from tcp_instrumentation.core.diagnostics import DiagnosticsHooks


def test_diagnostics_not_available(kernel):
    hooks = DiagnosticsHooks(attach(kernel.config))
    for call in (hooks.start, hooks.stop, hooks.define):
        with pytest.raises(NotImplementedError):
            call()
