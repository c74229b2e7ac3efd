"""Network interface records, flag conversion and kernel table parsing."""

from __future__ import annotations

import enum
import ipaddress
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Union

_IFF_UP = 0x1
_IFF_BROADCAST = 0x2
_IFF_LOOPBACK = 0x8
_IFF_POINTOPOINT = 0x10
_IFF_NOARP = 0x80
_IFF_MULTICAST = 0x1000 if sys.platform.startswith("linux") else 0x8000


class InterfaceFlag(enum.IntFlag):
    """Portable interface flags."""

    UP = enum.auto()
    LOOPBACK = enum.auto()
    POINTOPOINT = enum.auto()
    NOARP = enum.auto()
    BROADCAST = enum.auto()
    MULTICAST = enum.auto()


class InterfaceType(enum.Enum):
    """Interface kinds guessed from the flags."""

    OTHER = "other"
    ETH = "eth"
    LOOPBACK = "loopback"
    TUN = "tun"


IpInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class InterfaceEntry:
    """One network interface and its addresses."""

    name: str
    index: int = 0
    type: InterfaceType = InterfaceType.OTHER
    flags: InterfaceFlag = InterfaceFlag(0)
    mtu: int = 0
    addr: Optional[IpInterface] = None
    dst_addr: Optional[IpAddress] = None
    link_addr: Optional[bytes] = None
    aliases: List[IpInterface] = field(default_factory=list)


_IFF_MAP = (
    (_IFF_UP, InterfaceFlag.UP),
    (_IFF_LOOPBACK, InterfaceFlag.LOOPBACK),
    (_IFF_POINTOPOINT, InterfaceFlag.POINTOPOINT),
    (_IFF_NOARP, InterfaceFlag.NOARP),
    (_IFF_BROADCAST, InterfaceFlag.BROADCAST),
    (_IFF_MULTICAST, InterfaceFlag.MULTICAST),
)


def flags_from_iff(iff: int) -> InterfaceFlag:
    """Convert kernel IFF_* bits into interface flags."""
    flags = InterfaceFlag(0)
    for bit, flag in _IFF_MAP:
        if iff & bit:
            flags |= flag
    return flags


def flags_to_iff(flags: InterfaceFlag, iff: int) -> int:
    """Apply the settable flags (UP, NOARP) onto existing kernel IFF_* bits."""
    iff = iff | _IFF_UP if flags & InterfaceFlag.UP else iff & ~_IFF_UP
    iff = iff | _IFF_NOARP if flags & InterfaceFlag.NOARP else iff & ~_IFF_NOARP
    return iff


def classify(flags: InterfaceFlag) -> InterfaceType:
    """Guess the interface type from its flags."""
    if flags & InterfaceFlag.LOOPBACK:
        return InterfaceType.LOOPBACK
    if flags & InterfaceFlag.BROADCAST:
        return InterfaceType.ETH
    if flags & InterfaceFlag.POINTOPOINT:
        return InterfaceType.TUN
    return InterfaceType.OTHER


def parse_proc_dev(text: str) -> List[str]:
    """Return the interface names listed in a /proc/net/dev style table."""
    names = []
    for line in text.splitlines():
        head, sep, _ = line.partition(":")
        if sep:
            names.append(head.lstrip(" "))
    return names


def parse_if_inet6(text: str, name: str) -> List[ipaddress.IPv6Interface]:
    """Return the IPv6 addresses of name from a /proc/net/if_inet6 style table."""
    found = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 6 or fields[5] != name:
            continue
        hexaddr = fields[0]
        try:
            bits = int(fields[2], 16)
            groups = ":".join(hexaddr[i:i + 4] for i in range(0, 32, 4))
            found.append(ipaddress.IPv6Interface(f"{groups}/{bits}"))
        except ValueError:
            continue
    return found