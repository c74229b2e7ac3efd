"""Internet checksums, CRC-32C and IP/TCP option insertion."""

from __future__ import annotations

import struct
from typing import Optional

from .ip import (
    IP_HDR_LEN,
    IP_HDR_LEN_MAX,
    IP_LEN_MAX,
    IP_MF,
    IP_OFFMASK,
    IP_OPT_NOP,
    IP_PROTO_DSTOPTS,
    IP_PROTO_FRAGMENT,
    IP_PROTO_HOPOPTS,
    IP_PROTO_ICMP,
    IP_PROTO_ICMPV6,
    IP_PROTO_IGMP,
    IP_PROTO_IP,
    IP_PROTO_ROUTING,
    IP_PROTO_SCTP,
    IP_PROTO_TCP,
    IP_PROTO_UDP,
    opt_typeonly,
)

IP6_HDR_LEN = 40
TCP_HDR_LEN = 20
UDP_HDR_LEN = 8
ICMP_HDR_LEN = 4
SCTP_HDR_LEN = 12

_TCP_SUM_OFF = 16
_UDP_SUM_OFF = 6
_ICMP_SUM_OFF = 2
_SCTP_SUM_OFF = 8

_IP6_EXT = frozenset({IP_PROTO_HOPOPTS, IP_PROTO_DSTOPTS, IP_PROTO_ROUTING, IP_PROTO_FRAGMENT})

_CRC32C_POLY = 0x82F63B78


def _crc32c_table() -> tuple:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _CRC32C_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_CRC32C_TABLE = _crc32c_table()


def crc32c(data) -> int:
    """Return the CRC-32C (Castagnoli) of data."""
    crc = 0xFFFFFFFF
    for byte in bytes(data):
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def cksum_add(buf, cksum: int = 0) -> int:
    """Add the 16-bit big-endian words of buf to a running checksum."""
    data = bytes(buf)
    words = len(data) // 2
    if words:
        cksum += sum(struct.unpack_from(f"!{words}H", data))
    if len(data) & 1:
        cksum += data[-1] << 8
    return cksum


def cksum_carry(value: int) -> int:
    """Fold carries of a running sum and return its one's complement."""
    folded = (value >> 16) + (value & 0xFFFF)
    return ~(folded + (folded >> 16)) & 0xFFFF


def _segment_sum(buf: bytearray, start: int, length: int, field: int,
                 proto: int, pseudo: Optional[bytes]) -> int:
    buf[start + field:start + field + 2] = b"\x00\x00"
    total = cksum_add(buf[start:start + length])
    if pseudo is not None:
        total += (proto + length) & 0xFFFF
        total = cksum_add(pseudo, total)
    return cksum_carry(total)


def _store16(buf: bytearray, offset: int, value: int) -> None:
    struct.pack_into("!H", buf, offset, value)


def ip_checksum(packet) -> bytes:
    """Return packet with its IPv4 header and transport checksums filled in.

    Transport checksums are skipped for fragments; packets shorter than an
    IP header come back unchanged.
    """
    buf = bytearray(packet)
    if len(buf) < IP_HDR_LEN:
        return bytes(buf)
    hl = (buf[0] & 0x0F) << 2
    if hl < IP_HDR_LEN:
        raise ValueError(f"header length {hl} is shorter than {IP_HDR_LEN}")
    buf[10:12] = b"\x00\x00"
    _store16(buf, 10, cksum_carry(cksum_add(buf[:hl])))

    off = int.from_bytes(buf[6:8], "big")
    if off & IP_OFFMASK or off & IP_MF:
        return bytes(buf)

    length = len(buf) - hl
    proto = buf[9]
    pseudo = bytes(buf[12:20])

    if proto == IP_PROTO_TCP:
        if length >= TCP_HDR_LEN:
            _store16(buf, hl + _TCP_SUM_OFF,
                     _segment_sum(buf, hl, length, _TCP_SUM_OFF, proto, pseudo))
    elif proto == IP_PROTO_UDP:
        if length >= UDP_HDR_LEN:
            value = _segment_sum(buf, hl, length, _UDP_SUM_OFF, proto, pseudo)
            _store16(buf, hl + _UDP_SUM_OFF, value or 0xFFFF)  # RFC 768
    elif proto == IP_PROTO_SCTP:
        if length >= SCTP_HDR_LEN:
            field = hl + _SCTP_SUM_OFF
            buf[field:field + 4] = b"\x00\x00\x00\x00"
            buf[field:field + 4] = crc32c(buf[hl:hl + length]).to_bytes(4, "little")
    elif proto in (IP_PROTO_ICMP, IP_PROTO_IGMP):
        if length >= ICMP_HDR_LEN:
            _store16(buf, hl + _ICMP_SUM_OFF,
                     _segment_sum(buf, hl, length, _ICMP_SUM_OFF, proto, None))
    return bytes(buf)


def ip6_checksum(packet) -> bytes:
    """Return packet with the transport checksum after its IPv6 headers filled in."""
    buf = bytearray(packet)
    if len(buf) < IP6_HDR_LEN:
        return bytes(buf)
    nxt = buf[6]
    pos = IP6_HDR_LEN
    while nxt in _IP6_EXT:
        if pos + 2 > len(buf):
            return bytes(buf)
        nxt = buf[pos]
        pos += (buf[pos + 1] + 1) << 3
    if pos > len(buf):
        return bytes(buf)

    length = len(buf) - pos
    pseudo = bytes(buf[8:40])

    if nxt == IP_PROTO_TCP:
        if length >= TCP_HDR_LEN:
            _store16(buf, pos + _TCP_SUM_OFF,
                     _segment_sum(buf, pos, length, _TCP_SUM_OFF, nxt, pseudo))
    elif nxt == IP_PROTO_UDP:
        if length >= UDP_HDR_LEN:
            value = _segment_sum(buf, pos, length, _UDP_SUM_OFF, nxt, pseudo)
            _store16(buf, pos + _UDP_SUM_OFF, value or 0xFFFF)
    elif nxt == IP_PROTO_ICMPV6:
        if length >= ICMP_HDR_LEN:
            _store16(buf, pos + _ICMP_SUM_OFF,
                     _segment_sum(buf, pos, length, _ICMP_SUM_OFF, nxt, pseudo))
    elif nxt in (IP_PROTO_ICMP, IP_PROTO_IGMP):
        if length >= ICMP_HDR_LEN:
            _store16(buf, pos + _ICMP_SUM_OFF,
                     _segment_sum(buf, pos, length, _ICMP_SUM_OFF, nxt, None))
    return bytes(buf)


def add_option(packet, proto: int, option, capacity: int = IP_LEN_MAX) -> bytes:
    """Insert an IP or TCP option after the existing header options.

    The option is padded to a word boundary with leading NOPs; the header
    length and the IP total length are updated, checksums are not.
    capacity bounds the resulting IP total length.
    """
    if proto not in (IP_PROTO_IP, IP_PROTO_TCP):
        raise ValueError(f"options can only be added to IP or TCP, not {proto}")
    option = bytes(option)
    if not option:
        raise ValueError("option is empty")
    buf = bytes(packet)
    if len(buf) < IP_HDR_LEN:
        raise ValueError(f"packet shorter than {IP_HDR_LEN} bytes")

    hl = (buf[0] & 0x0F) << 2
    pos = hl
    tcp_start = hl
    if proto == IP_PROTO_TCP:
        if len(buf) < tcp_start + TCP_HDR_LEN:
            raise ValueError("packet too short for a TCP header")
        hl = (buf[tcp_start + 12] >> 4) << 2
        pos = tcp_start + hl

    ip_len = int.from_bytes(buf[2:4], "big")
    if ip_len < pos or ip_len > len(buf):
        raise ValueError("IP total length does not match the packet")

    optlen = len(option)
    padlen = -optlen % 4
    if hl + optlen + padlen > IP_HDR_LEN_MAX or ip_len + optlen + padlen > capacity:
        raise ValueError("option does not fit")
    if opt_typeonly(option[0]):
        option = option[:1]
        optlen = 1

    out = bytearray(buf[:pos])
    out += bytes([IP_OPT_NOP]) * padlen
    out += option
    end = len(out)
    out += buf[pos:]

    if proto == IP_PROTO_IP:
        out[0] = (out[0] & 0xF0) | ((end >> 2) & 0x0F)
    else:
        th_off = ((end - tcp_start) >> 2) & 0x0F
        out[tcp_start + 12] = (th_off << 4) | (out[tcp_start + 12] & 0x0F)

    _store16(out, 2, (ip_len + optlen + padlen) & 0xFFFF)
    return bytes(out)