import errno
import ipaddress
import socket

import pytest

from rawnet.intf import InterfaceTable
from rawnet.intfinfo import InterfaceEntry, InterfaceFlag, InterfaceType


@pytest.fixture
def table():
    with InterfaceTable() as t:
        yield t


def test_get_loopback(table):
    entry = table.get("lo")
    assert entry.name == "lo"
    assert entry.type is InterfaceType.LOOPBACK
    assert InterfaceFlag.LOOPBACK in entry.flags
    assert entry.addr == ipaddress.IPv4Interface("127.0.0.1/8")


def test_get_loopback_index_matches_kernel(table):
    entry = table.get("lo")
    assert entry.index == socket.if_nametoindex("lo")
    assert entry.mtu > 0


def test_get_index_resolves_name(table):
    entry = table.get_index(socket.if_nametoindex("lo"))
    assert entry.name == "lo"
    assert entry.type is InterfaceType.LOOPBACK


def test_get_missing_interface_raises(table):
    with pytest.raises(OSError):
        table.get("nosuchif0")


def test_loop_lists_loopback_once(table):
    names = [entry.name for entry in table.loop()]
    assert "lo" in names
    assert len(names) == len(set(names))


def test_loop_indices_match_kernel(table):
    for entry in table.loop():
        assert entry.index == socket.if_nametoindex(entry.name)


def test_get_src_finds_loopback(table):
    assert table.get_src("127.0.0.1").name == "lo"


def test_get_src_unknown_address(table):
    with pytest.raises(OSError) as info:
        table.get_src("192.0.2.123")
    assert info.value.errno == errno.ENXIO


def test_get_src_ipv6_never_matches(table):
    with pytest.raises(OSError) as info:
        table.get_src("::1")
    assert info.value.errno == errno.ENXIO


def test_get_dst_rejects_ipv6(table):
    with pytest.raises(ValueError):
        table.get_dst("::1")


def test_get_dst_loopback(table):
    assert table.get_dst("127.0.0.1").name == "lo"


def test_set_missing_interface_raises(table):
    with pytest.raises(OSError):
        table.set(InterfaceEntry(name="nosuchif0"))


def test_closed_table_refuses_queries():
    t = InterfaceTable()
    t.close()
    t.close()
    with pytest.raises(ValueError):
        t.get("lo")


def test_context_manager_closes():
    with InterfaceTable() as t:
        assert t.get("lo").name == "lo"
    with pytest.raises(ValueError):
        t.get_dst("127.0.0.1")