import ipaddress

from rawnet.intfinfo import (
    InterfaceEntry,
    InterfaceFlag,
    InterfaceType,
    classify,
    flags_from_iff,
    flags_to_iff,
    parse_if_inet6,
    parse_proc_dev,
)

PROC_DEV = """Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:  123456     100    0    0    0     0          0         0   123456     100    0    0    0     0       0          0
  eth0: 9876543    5000    0    0    0     0          0        10  1234567    4000    0    0    0     0       0          0
"""

IF_INET6 = """00000000000000000000000000000001 01 80 10 80       lo
fe800000000000000000000000000001 02 40 20 80     eth0
20010db8000000000000000000000005 02 40 00 80     eth0
"""


def test_settable_flags_round_trip():
    flags = InterfaceFlag.UP | InterfaceFlag.NOARP
    assert flags_from_iff(flags_to_iff(flags, 0)) == flags


def test_flags_to_iff_clears_up():
    iff = flags_to_iff(InterfaceFlag.UP, 0)
    assert flags_from_iff(iff) == InterfaceFlag.UP
    cleared = flags_to_iff(InterfaceFlag(0), iff)
    assert flags_from_iff(cleared) == InterfaceFlag(0)


def test_flags_to_iff_keeps_unrelated_bits():
    assert flags_to_iff(InterfaceFlag.UP, 0x40000) & 0x40000 == 0x40000


def test_flags_from_zero():
    assert flags_from_iff(0) == InterfaceFlag(0)


def test_classify_loopback_wins():
    flags = InterfaceFlag.LOOPBACK | InterfaceFlag.BROADCAST | InterfaceFlag.UP
    assert classify(flags) is InterfaceType.LOOPBACK


def test_classify_broadcast_is_ethernet():
    flags = InterfaceFlag.BROADCAST | InterfaceFlag.POINTOPOINT
    assert classify(flags) is InterfaceType.ETH


def test_classify_pointopoint_is_tunnel():
    assert classify(InterfaceFlag.POINTOPOINT | InterfaceFlag.UP) is InterfaceType.TUN


def test_classify_other():
    assert classify(InterfaceFlag.UP | InterfaceFlag.MULTICAST) is InterfaceType.OTHER


def test_parse_proc_dev():
    assert parse_proc_dev(PROC_DEV) == ["lo", "eth0"]


def test_parse_if_inet6_for_interface():
    addrs = parse_if_inet6(IF_INET6, "eth0")
    assert addrs == [
        ipaddress.IPv6Interface("fe80::1/64"),
        ipaddress.IPv6Interface("2001:db8::5/64"),
    ]


def test_parse_if_inet6_unknown_interface():
    assert parse_if_inet6(IF_INET6, "wlan0") == []


def test_parse_if_inet6_skips_malformed():
    text = "zzzz 01 80 10 80 lo\n" + IF_INET6
    assert parse_if_inet6(text, "lo") == [ipaddress.IPv6Interface("::1/128")]


def test_entry_aliases_are_independent():
    first = InterfaceEntry("eth0")
    second = InterfaceEntry("eth1")
    first.aliases.append(ipaddress.ip_interface("192.0.2.9/24"))
    assert second.aliases == []
    assert first.type is InterfaceType.OTHER