import pytest

from rawnet.checksum import (
    add_option,
    cksum_add,
    cksum_carry,
    crc32c,
    ip6_checksum,
    ip_checksum,
)
from rawnet.ip import IP_MF, IpHeader, pack_hdr

SRC = "192.0.2.1"
DST = "198.51.100.2"


def _tcp_segment(payload=b""):
    return bytes([0x30, 0x39, 0x00, 0x50]) + bytes(8) + bytes([0x50, 0x02]) + bytes(6) + payload


def _verify_pseudo(segment, proto, pseudo):
    total = cksum_add(segment) + ((proto + len(segment)) & 0xFFFF)
    return cksum_carry(cksum_add(pseudo, total))


def test_cksum_add_odd_trailing_byte():
    assert cksum_add(b"\x01", 0) == 0x0100


def test_cksum_carry_of_zero():
    assert cksum_carry(0) == 0xFFFF


def test_crc32c_check_value():
    assert crc32c(b"123456789") == 0xE3069283


def test_header_checksum_worked_example():
    header = bytes.fromhex("450000730000400040110000c0a80001c0a800c7")
    out = ip_checksum(header)
    assert out[10:12] == bytes.fromhex("b861")


def test_short_packet_unchanged():
    data = b"\x45\x00\x00"
    assert ip_checksum(data) == data


def test_tcp_checksum_verifies():
    seg = _tcp_segment(b"hello")
    packet = pack_hdr(0, 20 + len(seg), 1, 0, 64, 6, SRC, DST) + seg
    out = ip_checksum(packet)
    assert cksum_carry(cksum_add(out[:20])) == 0
    assert _verify_pseudo(out[20:], 6, out[12:20]) == 0


def test_udp_zero_checksum_becomes_ffff():
    def build(word):
        udp = bytes([0x04, 0xD2, 0x00, 0x35, 0x00, 0x0A, 0x00, 0x00]) + word.to_bytes(2, "big")
        return pack_hdr(0, 30, 7, 0, 64, 17, SRC, DST) + udp

    first = ip_checksum(build(0))
    c0 = int.from_bytes(first[26:28], "big")
    second = ip_checksum(build(c0))
    assert second[26:28] == b"\xff\xff"


def test_icmp_checksum_has_no_pseudo_header():
    icmp = bytes([8, 0, 0, 0, 0, 1, 0, 1]) + b"ping"
    packet = pack_hdr(0, 20 + len(icmp), 3, 0, 64, 1, SRC, DST) + icmp
    out = ip_checksum(packet)
    assert cksum_carry(cksum_add(out[20:])) == 0


def test_sctp_uses_crc32c_little_endian():
    sctp = bytes(range(1, 13)) + b"data"
    packet = pack_hdr(0, 20 + len(sctp), 4, 0, 64, 132, SRC, DST) + sctp
    out = ip_checksum(packet)
    zeroed = out[20:28] + bytes(4) + out[32:]
    assert out[28:32] == crc32c(zeroed).to_bytes(4, "little")


def test_fragment_leaves_transport_untouched():
    seg = _tcp_segment(b"abc")
    packet = pack_hdr(0, 20 + len(seg), 5, IP_MF, 64, 6, SRC, DST) + seg
    out = ip_checksum(packet)
    assert out[20:] == seg
    assert cksum_carry(cksum_add(out[:20])) == 0


def test_bad_header_length_rejected():
    packet = bytearray(pack_hdr(0, 20, 0, 0, 64, 6, SRC, DST))
    packet[0] = 0x42
    with pytest.raises(ValueError):
        ip_checksum(bytes(packet))


def _ip6_header(nxt, payload_len):
    src = bytes.fromhex("20010db8000000000000000000000001")
    dst = bytes.fromhex("20010db8000000000000000000000002")
    return bytes([0x60, 0, 0, 0]) + payload_len.to_bytes(2, "big") + bytes([nxt, 64]) + src + dst


def test_ip6_udp_checksum_verifies():
    udp = bytes([0x04, 0xD2, 0x00, 0x35, 0x00, 0x0C, 0x00, 0x00]) + b"abcd"
    packet = _ip6_header(17, len(udp)) + udp
    out = ip6_checksum(packet)
    assert _verify_pseudo(out[40:], 17, out[8:40]) == 0


def test_ip6_skips_extension_header():
    icmp = bytes([128, 0, 0, 0, 0, 1, 0, 1])
    hop = bytes([58, 0]) + bytes(6)
    packet = _ip6_header(0, len(hop) + len(icmp)) + hop + icmp
    out = ip6_checksum(packet)
    assert out[40:48] == hop
    assert _verify_pseudo(out[48:], 58, out[8:40]) == 0


def test_ip6_truncated_extension_unchanged():
    packet = _ip6_header(0, 0) + b"\x11"
    assert ip6_checksum(packet) == packet


def test_add_ip_option_word_aligned():
    payload = b"12345678"
    packet = pack_hdr(0, 28, 1, 0, 64, 17, SRC, DST) + payload
    option = b"\x94\x04\x00\x00"
    out = add_option(packet, 0, option)
    hdr = IpHeader.unpack(out)
    assert hdr.hl == 6
    assert hdr.length == 32
    assert out[20:24] == option
    assert out[24:32] == payload


def test_add_ip_option_pads_with_nop():
    packet = pack_hdr(0, 20, 1, 0, 64, 17, SRC, DST)
    out = add_option(packet, 0, b"\x07\x03\x04")
    assert out[20:24] == b"\x01\x07\x03\x04"
    assert IpHeader.unpack(out).hl == 6


def test_add_tcp_option_updates_data_offset():
    seg = _tcp_segment(b"xy")
    packet = pack_hdr(0, 20 + len(seg), 1, 0, 64, 6, SRC, DST) + seg
    option = b"\x02\x04\x05\xb4"
    out = add_option(packet, 6, option)
    assert out[32] >> 4 == 6
    assert out[40:44] == option
    assert out[44:] == b"xy"
    assert IpHeader.unpack(out).length == len(packet) + 4


def test_add_option_rejects_other_protocols():
    packet = pack_hdr(0, 20, 1, 0, 64, 17, SRC, DST)
    with pytest.raises(ValueError):
        add_option(packet, 17, b"\x94\x04\x00\x00")


def test_add_option_respects_capacity():
    packet = pack_hdr(0, 20, 1, 0, 64, 17, SRC, DST)
    with pytest.raises(ValueError):
        add_option(packet, 0, b"\x94\x04\x00\x00", capacity=22)


def test_add_option_respects_header_maximum():
    packet = pack_hdr(0, 20, 1, 0, 64, 17, SRC, DST)
    with pytest.raises(ValueError):
        add_option(packet, 0, bytes([0x44, 44]) + bytes(42))