import sys

import pytest

from tcp_instrumentation.core.catalog import attach
from tcp_instrumentation.core.snapshot import (
    copy_snapshot_data,
    delta,
    delta_value,
    read_from_snapshot,
    read_variable,
    snapshot_alloc,
    snapshot_free,
    write_variable,
)
from tcp_instrumentation.exceptions import (
    InvalidArgumentError,
    NoSuchConnectionError,
    SystemIOError,
)


@pytest.fixture
def agent(kernel):
    kernel.add_connection(1, pkts_out=7, bytes_out=1000, lim_cwnd=65535)
    kernel.add_connection(2, pkts_out=1)
    with attach(kernel.config) as agent:
        yield agent


def _var(agent, name):
    return agent.require_variable(name)[1]


def test_read_variable_live(agent):
    conn = agent.find_by_cid(1)
    raw = read_variable(_var(agent, "PktsOut"), conn)
    assert int.from_bytes(raw, sys.byteorder) == 7
    raw = read_variable(_var(agent, "LimCwnd"), conn)
    assert int.from_bytes(raw, sys.byteorder) == 65535


def test_snapshot_is_isolated_from_later_changes(kernel, agent):
    read = agent.group_by_name("read")
    conn = agent.find_by_cid(1)
    snap = snapshot_alloc(read, conn).capture()
    kernel.set_counters(1, pkts_out=10, bytes_out=5000)

    assert snap.value("PktsOut") == 7
    assert snap.value("DataBytesOut") == 1000
    assert snap.values()["LocalPort"] == 443
    assert snap.value("LocalAddress") == bytes([10, 0, 0, 5])


def test_delta_between_snapshots(kernel, agent):
    read = agent.group_by_name("read")
    conn = agent.find_by_cid(1)
    pkts = _var(agent, "PktsOut")
    before = snapshot_alloc(read, conn).capture()
    kernel.set_counters(1, pkts_out=10, bytes_out=1500)
    after = snapshot_alloc(read, conn).capture()

    assert delta_value(pkts, after, before) == 3
    assert delta(pkts, after, before) == (3).to_bytes(4, sys.byteorder)
    assert delta_value(_var(agent, "DataBytesOut"), after, before) == 500


def test_delta_wraps_modulo_width(kernel, agent):
    read = agent.group_by_name("read")
    conn = agent.find_by_cid(1)
    pkts = _var(agent, "PktsOut")
    kernel.set_counters(1, pkts_out=5, bytes_out=0)
    before = snapshot_alloc(read, conn).capture()
    kernel.set_counters(1, pkts_out=2, bytes_out=0)
    after = snapshot_alloc(read, conn).capture()

    assert delta_value(pkts, after, before) == 4294967293


def test_delta_rejects_mixed_groups(agent):
    conn = agent.find_by_cid(1)
    read = snapshot_alloc(agent.group_by_name("read"), conn).capture()
    tune = snapshot_alloc(agent.group_by_name("tune"), conn).capture()
    with pytest.raises(InvalidArgumentError):
        delta_value(_var(agent, "PktsOut"), read, tune)


def test_read_from_snapshot_requires_same_group(agent):
    conn = agent.find_by_cid(1)
    tune = snapshot_alloc(agent.group_by_name("tune"), conn).capture()
    with pytest.raises(InvalidArgumentError):
        read_from_snapshot(_var(agent, "PktsOut"), tune)
    with pytest.raises(InvalidArgumentError):
        tune.value("PktsOut")


def test_copy_snapshot_data(agent):
    read = agent.group_by_name("read")
    conn = agent.find_by_cid(1)
    src = snapshot_alloc(read, conn).capture()
    dest = snapshot_alloc(read, conn)
    copy_snapshot_data(dest, src)
    assert dest.data == src.data
    assert dest.data is not src.data


def test_copy_rejects_other_connection(agent):
    read = agent.group_by_name("read")
    src = snapshot_alloc(read, agent.find_by_cid(1)).capture()
    dest = snapshot_alloc(read, agent.find_by_cid(2))
    with pytest.raises(InvalidArgumentError):
        copy_snapshot_data(dest, src)


def test_alloc_rejects_foreign_agent(kernel, agent):
    other = attach(kernel.config)
    with pytest.raises(InvalidArgumentError):
        snapshot_alloc(other.group_by_name("read"), agent.find_by_cid(1))
    with pytest.raises(InvalidArgumentError):
        read_variable(other.require_variable("PktsOut")[1], agent.find_by_cid(1))


def test_capture_after_connection_closed(kernel, agent):
    conn = agent.find_by_cid(2)
    snap = snapshot_alloc(agent.group_by_name("read"), conn)
    kernel.remove_connection(2)
    with pytest.raises(NoSuchConnectionError):
        snap.capture()
    with pytest.raises(NoSuchConnectionError):
        read_variable(_var(agent, "PktsOut"), conn)


def test_truncated_group_file(kernel, agent):
    conn = agent.find_by_cid(1)
    (kernel.root / "1" / "read").write_bytes(b"\x00" * 12)
    with pytest.raises(NoSuchConnectionError, match="short read"):
        snapshot_alloc(agent.group_by_name("read"), conn).capture()
    with pytest.raises(SystemIOError):
        read_variable(_var(agent, "DataBytesOut"), conn)


def test_write_variable_in_place(kernel, agent):
    conn = agent.find_by_cid(1)
    lim = _var(agent, "LimCwnd")
    write_variable(lim, conn, (1460).to_bytes(4, sys.byteorder))
    assert read_variable(lim, conn) == (1460).to_bytes(4, sys.byteorder)

    pkts = _var(agent, "PktsOut")
    write_variable(pkts, conn, pkts.encode(99))
    assert len((kernel.root / "1" / "read").read_bytes()) == 22
    assert read_variable(_var(agent, "DataBytesOut"), conn) == (1000).to_bytes(8, sys.byteorder)


def test_write_variable_length_checked(agent):
    with pytest.raises(InvalidArgumentError):
        write_variable(_var(agent, "LimCwnd"), agent.find_by_cid(1), b"\x01")


def test_snapshot_free(agent):
    snap = snapshot_alloc(agent.group_by_name("read"), agent.find_by_cid(1))
    assert len(snap) == 22
    snapshot_free(snap)
    assert len(snap) == 0


def test_independent_snapshots_do_not_share_buffers(agent):
    read = agent.group_by_name("read")
    conn = agent.find_by_cid(1)
    a = snapshot_alloc(read, conn).capture()
    b = snapshot_alloc(read, conn).capture()
    before = bytes(b.data)

    a.data[10:14] = b"\xff\xff\xff\xff"
    assert bytes(b.data) == before
    assert b.value("PktsOut") == 7
    assert a.value("PktsOut") == 0xFFFFFFFF
