"""Querying and configuring network interfaces through the kernel."""

from __future__ import annotations

import errno
import ipaddress
import socket
import struct
import sys
from typing import Dict, Iterator, List, Optional, Tuple

from .intfinfo import (
    InterfaceEntry,
    InterfaceType,
    IpAddress,
    IpInterface,
    classify,
    flags_from_iff,
    flags_to_iff,
    parse_if_inet6,
    parse_proc_dev,
)

try:
    import fcntl
except ImportError:  # pragma: no cover - platforms without ioctl
    fcntl = None  # type: ignore[assignment]

_PROC_DEV_FILE = "/proc/net/dev"
_PROC_INET6_FILE = "/proc/net/if_inet6"

_SIOCGIFCONF = 0x8912
_SIOCGIFFLAGS = 0x8913
_SIOCSIFFLAGS = 0x8914
_SIOCGIFADDR = 0x8915
_SIOCSIFADDR = 0x8916
_SIOCGIFDSTADDR = 0x8917
_SIOCSIFDSTADDR = 0x8918
_SIOCSIFBRDADDR = 0x891A
_SIOCGIFNETMASK = 0x891B
_SIOCSIFNETMASK = 0x891C
_SIOCGIFMTU = 0x8921
_SIOCSIFMTU = 0x8922
_SIOCSIFHWADDR = 0x8924
_SIOCGIFHWADDR = 0x8927
_SIOCDIFADDR = 0x8936

_ARPHRD_ETHER = 1
_ETH_ADDR_LEN = 6

_IFNAMSIZ = 16
_SOCKADDR_LEN = 16
# struct ifreq: the name followed by a union whose largest member is struct ifmap.
_IFREQ_SIZE = _IFNAMSIZ + max(_SOCKADDR_LEN, struct.calcsize("LLHBBB0L"))
_IFCONF_BUF_SIZE = 4192

_PROBE_PORT = 666


def _ifname(name: str) -> bytes:
    return name.encode()[: _IFNAMSIZ - 1]


def _ifreq(name: str, payload: bytes = b"") -> bytearray:
    buf = bytearray(_IFREQ_SIZE)
    raw = _ifname(name)
    buf[: len(raw)] = raw
    buf[_IFNAMSIZ:_IFNAMSIZ + len(payload)] = payload
    return buf


def _sockaddr_in(addr: ipaddress.IPv4Address, port: int = 0) -> bytes:
    return (
        struct.pack("=H", socket.AF_INET)
        + struct.pack("!H", port)
        + addr.packed
        + bytes(8)
    )


def _decode_ipv4(buf: bytes, offset: int = _IFNAMSIZ) -> ipaddress.IPv4Address:
    (family,) = struct.unpack_from("=H", buf, offset)
    if family != socket.AF_INET:
        raise OSError(errno.EINVAL, f"unsupported address family {family}")
    return ipaddress.IPv4Address(bytes(buf[offset + 4:offset + 8]))


def _mask_bits(mask: ipaddress.IPv4Address) -> int:
    bits = format(int(mask), "032b")
    return len(bits) - len(bits.lstrip("1"))


class InterfaceTable:
    """A handle for looking up and changing network interface settings."""

    def __init__(self):
        if fcntl is None or not sys.platform.startswith("linux"):
            raise OSError(errno.ENOSYS, "interface access is not supported here")
        self._sock: Optional[socket.socket] = socket.socket(
            socket.AF_INET, socket.SOCK_DGRAM
        )
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError:
            pass

    # -- plumbing -------------------------------------------------------

    def _fd(self) -> int:
        if self._sock is None:
            raise ValueError("interface table is closed")
        return self._sock.fileno()

    def _ioctl(self, request: int, name: str, payload: bytes = b"") -> bytearray:
        buf = _ifreq(name, payload)
        fcntl.ioctl(self._fd(), request, buf, True)
        return buf

    def _ifconf(self) -> List[Tuple[str, bytes]]:
        """Return (name, ifreq) pairs for every configured IPv4 address."""
        import array

        space = array.array("B", bytes(_IFCONF_BUF_SIZE))
        address, _ = space.buffer_info()
        req = bytearray(struct.pack("iP", _IFCONF_BUF_SIZE, address))
        fcntl.ioctl(self._fd(), _SIOCGIFCONF, req, True)
        (length,) = struct.unpack_from("i", req)
        data = space.tobytes()[:length]
        records = []
        for start in range(0, length - _IFREQ_SIZE + 1, _IFREQ_SIZE):
            rec = data[start:start + _IFREQ_SIZE]
            name = rec[:_IFNAMSIZ].split(b"\0", 1)[0].decode(errors="replace")
            records.append((name, rec))
        return records

    # -- reading --------------------------------------------------------

    def _get_noalias(self, name: str) -> InterfaceEntry:
        entry = InterfaceEntry(name=name)
        entry.index = socket.if_nametoindex(name)

        buf = self._ioctl(_SIOCGIFFLAGS, name)
        (iff,) = struct.unpack_from("=H", buf, _IFNAMSIZ)
        entry.flags = flags_from_iff(iff)
        entry.type = classify(entry.flags)

        buf = self._ioctl(_SIOCGIFMTU, name)
        (entry.mtu,) = struct.unpack_from("=i", buf, _IFNAMSIZ)

        try:
            buf = self._ioctl(_SIOCGIFADDR, name)
        except OSError:
            buf = None
        if buf is not None:
            try:
                primary = _decode_ipv4(buf)
            except OSError:
                primary = None
            mask = self._ioctl(_SIOCGIFNETMASK, name)
            if primary is not None:
                bits = _mask_bits(_decode_ipv4(mask))
                entry.addr = ipaddress.IPv4Interface((primary, bits))

        if entry.type is InterfaceType.TUN:
            try:
                buf = self._ioctl(_SIOCGIFDSTADDR, name)
            except OSError:
                buf = None
            if buf is not None:
                entry.dst_addr = _decode_ipv4(buf)
        elif entry.type is InterfaceType.ETH:
            buf = self._ioctl(_SIOCGIFHWADDR, name)
            (family,) = struct.unpack_from("=H", buf, _IFNAMSIZ)
            if family == _ARPHRD_ETHER:
                entry.link_addr = bytes(buf[_IFNAMSIZ + 2:_IFNAMSIZ + 2 + _ETH_ADDR_LEN])
        return entry

    def _get_aliases(self, entry: InterfaceEntry,
                     records: List[Tuple[str, bytes]],
                     inet6: Optional[str]) -> List[IpInterface]:
        aliases: List[IpInterface] = []
        primary = entry.addr.ip if entry.addr is not None else None
        for full_name, rec in records:
            if full_name.split(":", 1)[0] != entry.name:
                continue
            try:
                addr = _decode_ipv4(rec)
            except OSError:
                continue
            if addr == primary or addr == entry.dst_addr:
                continue
            bits = 0
            try:
                mask = self._ioctl(_SIOCGIFNETMASK, full_name)
                bits = _mask_bits(_decode_ipv4(mask))
            except OSError:
                pass
            aliases.append(ipaddress.IPv4Interface((addr, bits)))
        if inet6 is not None:
            aliases.extend(parse_if_inet6(inet6, entry.name))
        return aliases

    @staticmethod
    def _read_inet6() -> Optional[str]:
        try:
            with open(_PROC_INET6_FILE, encoding="ascii", errors="replace") as fh:
                return fh.read()
        except OSError:
            return None

    def get(self, name: str) -> InterfaceEntry:
        """Return the configuration of the named interface."""
        entry = self._get_noalias(name)
        entry.aliases = self._get_aliases(entry, self._ifconf(), self._read_inet6())
        return entry

    def get_index(self, index: int) -> InterfaceEntry:
        """Return the configuration of the interface with the given index."""
        return self.get(socket.if_indextoname(index))

    def loop(self) -> Iterator[InterfaceEntry]:
        """Yield the configuration of every interface in turn."""
        with open(_PROC_DEV_FILE, encoding="ascii", errors="replace") as fh:
            names = parse_proc_dev(fh.read())
        records = self._ifconf()
        inet6 = self._read_inet6()
        for name in names:
            entry = self._get_noalias(name)
            entry.aliases = self._get_aliases(entry, records, inet6)
            yield entry

    def _match_src(self, addr: IpAddress) -> InterfaceEntry:
        if isinstance(addr, ipaddress.IPv4Address):
            for entry in self.loop():
                if entry.addr is not None and entry.addr.ip == addr:
                    return entry
                if any(isinstance(a, ipaddress.IPv4Interface) and a.ip == addr
                       for a in entry.aliases):
                    return entry
        raise OSError(errno.ENXIO, f"no interface has address {addr}")

    def get_src(self, addr) -> InterfaceEntry:
        """Return the interface that owns the given IPv4 address."""
        return self._match_src(ipaddress.ip_address(addr))

    def get_dst(self, addr) -> InterfaceEntry:
        """Return the interface the kernel would use to reach addr."""
        dst = ipaddress.ip_address(addr)
        if not isinstance(dst, ipaddress.IPv4Address):
            raise ValueError(f"destination must be an IPv4 address, not {dst}")
        self._fd()
        self._sock.connect((str(dst), _PROBE_PORT))
        local, _ = self._sock.getsockname()
        return self._match_src(ipaddress.IPv4Address(local))

    # -- writing --------------------------------------------------------

    def _try_ioctl(self, request: int, name: str, payload: bytes = b"",
                   allowed: Tuple[int, ...] = ()) -> bool:
        try:
            self._ioctl(request, name, payload)
        except OSError as exc:
            if exc.errno in allowed:
                return True
            return False
        return True

    def _delete_aliases(self, orig: InterfaceEntry) -> None:
        for number in range(1, len(orig.aliases) + 1):
            self._try_ioctl(_SIOCSIFFLAGS, f"{orig.name}:{number}", struct.pack("=H", 0))

    def _delete_addrs(self, orig: InterfaceEntry) -> None:
        for addr in (orig.addr.ip if orig.addr is not None else None, orig.dst_addr):
            if isinstance(addr, ipaddress.IPv4Address):
                self._try_ioctl(_SIOCDIFADDR, orig.name, _sockaddr_in(addr))

    def _add_aliases(self, entry: InterfaceEntry) -> None:
        number = 1
        for alias in entry.aliases:
            if not isinstance(alias, ipaddress.IPv4Interface):
                continue
            self._ioctl(_SIOCSIFADDR, f"{entry.name}:{number}", _sockaddr_in(alias.ip))
            number += 1

    def set(self, entry: InterfaceEntry) -> None:
        """Apply an interface configuration, replacing its addresses."""
        name = entry.name
        orig = self.get(name)
        self._delete_aliases(orig)
        self._delete_addrs(orig)

        if entry.mtu:
            self._ioctl(_SIOCSIFMTU, name, struct.pack("=i", entry.mtu))

        if isinstance(entry.addr, ipaddress.IPv4Interface):
            if not self._try_ioctl(_SIOCSIFADDR, name, _sockaddr_in(entry.addr.ip),
                                   (errno.EEXIST,)):
                self._ioctl(_SIOCSIFADDR, name, _sockaddr_in(entry.addr.ip))
            if int(entry.addr.ip) != 0:
                self._ioctl(_SIOCSIFNETMASK, name, _sockaddr_in(entry.addr.netmask))
            self._try_ioctl(_SIOCSIFBRDADDR, name,
                            _sockaddr_in(entry.addr.network.broadcast_address))

        if entry.link_addr is not None and entry.link_addr != orig.link_addr:
            if len(entry.link_addr) != _ETH_ADDR_LEN:
                raise ValueError("link address must be 6 bytes")
            self._ioctl(_SIOCSIFHWADDR, name,
                        struct.pack("=H", _ARPHRD_ETHER) + bytes(entry.link_addr))

        if isinstance(entry.dst_addr, ipaddress.IPv4Address):
            if not self._try_ioctl(_SIOCSIFDSTADDR, name, _sockaddr_in(entry.dst_addr),
                                   (errno.EEXIST,)):
                self._ioctl(_SIOCSIFDSTADDR, name, _sockaddr_in(entry.dst_addr))

        self._add_aliases(entry)

        buf = self._ioctl(_SIOCGIFFLAGS, name)
        (iff,) = struct.unpack_from("=H", buf, _IFNAMSIZ)
        iff = flags_to_iff(entry.flags, iff) & 0xFFFF
        self._ioctl(_SIOCSIFFLAGS, name, struct.pack("=H", iff))

    # -- lifetime -------------------------------------------------------

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "InterfaceTable":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _by_name(entries: Iterator[InterfaceEntry]) -> Dict[str, InterfaceEntry]:
    return {entry.name: entry for entry in entries}