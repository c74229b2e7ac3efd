"""IPv4 header layout, protocol numbers, option types and address classes."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, field
from typing import Union

AddressLike = Union[int, str, bytes, bytearray, ipaddress.IPv4Address]

IP_ADDR_LEN = 4
IP_ADDR_BITS = 32

IP_HDR_LEN = 20
IP_OPT_LEN = 2
IP_OPT_LEN_MAX = 40
IP_HDR_LEN_MAX = IP_HDR_LEN + IP_OPT_LEN_MAX

IP_LEN_MAX = 65535
IP_LEN_MIN = IP_HDR_LEN

# Type of service (RFC 1349)
IP_TOS_DEFAULT = 0x00
IP_TOS_LOWDELAY = 0x10
IP_TOS_THROUGHPUT = 0x08
IP_TOS_RELIABILITY = 0x04
IP_TOS_LOWCOST = 0x02
IP_TOS_ECT = 0x02
IP_TOS_CE = 0x01

# Precedence (high 3 bits of the TOS byte)
IP_TOS_PREC_ROUTINE = 0x00
IP_TOS_PREC_PRIORITY = 0x20
IP_TOS_PREC_IMMEDIATE = 0x40
IP_TOS_PREC_FLASH = 0x60
IP_TOS_PREC_FLASHOVERRIDE = 0x80
IP_TOS_PREC_CRITIC_ECP = 0xA0
IP_TOS_PREC_INTERNETCONTROL = 0xC0
IP_TOS_PREC_NETCONTROL = 0xE0

# Fragmentation flags
IP_RF = 0x8000
IP_DF = 0x4000
IP_MF = 0x2000
IP_OFFMASK = 0x1FFF

IP_TTL_DEFAULT = 64
IP_TTL_MAX = 255

# Protocol numbers
IP_PROTO_IP = 0
IP_PROTO_HOPOPTS = IP_PROTO_IP
IP_PROTO_ICMP = 1
IP_PROTO_IGMP = 2
IP_PROTO_GGP = 3
IP_PROTO_IPIP = 4
IP_PROTO_ST = 5
IP_PROTO_TCP = 6
IP_PROTO_CBT = 7
IP_PROTO_EGP = 8
IP_PROTO_IGP = 9
IP_PROTO_BBNRCC = 10
IP_PROTO_NVP = 11
IP_PROTO_PUP = 12
IP_PROTO_ARGUS = 13
IP_PROTO_EMCON = 14
IP_PROTO_XNET = 15
IP_PROTO_CHAOS = 16
IP_PROTO_UDP = 17
IP_PROTO_MUX = 18
IP_PROTO_DCNMEAS = 19
IP_PROTO_HMP = 20
IP_PROTO_PRM = 21
IP_PROTO_IDP = 22
IP_PROTO_TRUNK1 = 23
IP_PROTO_TRUNK2 = 24
IP_PROTO_LEAF1 = 25
IP_PROTO_LEAF2 = 26
IP_PROTO_RDP = 27
IP_PROTO_IRTP = 28
IP_PROTO_TP = 29
IP_PROTO_NETBLT = 30
IP_PROTO_MFPNSP = 31
IP_PROTO_MERITINP = 32
IP_PROTO_SEP = 33
IP_PROTO_3PC = 34
IP_PROTO_IDPR = 35
IP_PROTO_XTP = 36
IP_PROTO_DDP = 37
IP_PROTO_CMTP = 38
IP_PROTO_TPPP = 39
IP_PROTO_IL = 40
IP_PROTO_IPV6 = 41
IP_PROTO_SDRP = 42
IP_PROTO_ROUTING = 43
IP_PROTO_FRAGMENT = 44
IP_PROTO_RSVP = 46
IP_PROTO_GRE = 47
IP_PROTO_MHRP = 48
IP_PROTO_ENA = 49
IP_PROTO_ESP = 50
IP_PROTO_AH = 51
IP_PROTO_INLSP = 52
IP_PROTO_SWIPE = 53
IP_PROTO_NARP = 54
IP_PROTO_MOBILE = 55
IP_PROTO_TLSP = 56
IP_PROTO_SKIP = 57
IP_PROTO_ICMPV6 = 58
IP_PROTO_NONE = 59
IP_PROTO_DSTOPTS = 60
IP_PROTO_ANYHOST = 61
IP_PROTO_CFTP = 62
IP_PROTO_ANYNET = 63
IP_PROTO_EXPAK = 64
IP_PROTO_KRYPTOLAN = 65
IP_PROTO_RVD = 66
IP_PROTO_IPPC = 67
IP_PROTO_DISTFS = 68
IP_PROTO_SATMON = 69
IP_PROTO_VISA = 70
IP_PROTO_IPCV = 71
IP_PROTO_CPNX = 72
IP_PROTO_CPHB = 73
IP_PROTO_WSN = 74
IP_PROTO_PVP = 75
IP_PROTO_BRSATMON = 76
IP_PROTO_SUNND = 77
IP_PROTO_WBMON = 78
IP_PROTO_WBEXPAK = 79
IP_PROTO_EON = 80
IP_PROTO_VMTP = 81
IP_PROTO_SVMTP = 82
IP_PROTO_VINES = 83
IP_PROTO_TTP = 84
IP_PROTO_NSFIGP = 85
IP_PROTO_DGP = 86
IP_PROTO_TCF = 87
IP_PROTO_EIGRP = 88
IP_PROTO_OSPF = 89
IP_PROTO_SPRITERPC = 90
IP_PROTO_LARP = 91
IP_PROTO_MTP = 92
IP_PROTO_AX25 = 93
IP_PROTO_IPIPENCAP = 94
IP_PROTO_MICP = 95
IP_PROTO_SCCSP = 96
IP_PROTO_ETHERIP = 97
IP_PROTO_ENCAP = 98
IP_PROTO_ANYENC = 99
IP_PROTO_GMTP = 100
IP_PROTO_IFMP = 101
IP_PROTO_PNNI = 102
IP_PROTO_PIM = 103
IP_PROTO_ARIS = 104
IP_PROTO_SCPS = 105
IP_PROTO_QNX = 106
IP_PROTO_AN = 107
IP_PROTO_IPCOMP = 108
IP_PROTO_SNP = 109
IP_PROTO_COMPAQPEER = 110
IP_PROTO_IPXIP = 111
IP_PROTO_VRRP = 112
IP_PROTO_PGM = 113
IP_PROTO_ANY0HOP = 114
IP_PROTO_L2TP = 115
IP_PROTO_DDX = 116
IP_PROTO_IATP = 117
IP_PROTO_STP = 118
IP_PROTO_SRP = 119
IP_PROTO_UTI = 120
IP_PROTO_SMP = 121
IP_PROTO_SM = 122
IP_PROTO_PTP = 123
IP_PROTO_ISIS = 124
IP_PROTO_FIRE = 125
IP_PROTO_CRTP = 126
IP_PROTO_CRUDP = 127
IP_PROTO_SSCOPMCE = 128
IP_PROTO_IPLT = 129
IP_PROTO_SPS = 130
IP_PROTO_PIPE = 131
IP_PROTO_SCTP = 132
IP_PROTO_FC = 133
IP_PROTO_RSVPIGN = 134
IP_PROTO_RAW = 255
IP_PROTO_RESERVED = IP_PROTO_RAW
IP_PROTO_MAX = 255

# Option classes and types
IP_OPT_CONTROL = 0x00
IP_OPT_DEBMEAS = 0x40
IP_OPT_COPY = 0x80
IP_OPT_RESERVED1 = 0x20
IP_OPT_RESERVED2 = 0x60

IP_OPT_EOL = 0
IP_OPT_NOP = 1
IP_OPT_SEC = 2 | IP_OPT_COPY
IP_OPT_LSRR = 3 | IP_OPT_COPY
IP_OPT_TS = 4 | IP_OPT_DEBMEAS
IP_OPT_ESEC = 5 | IP_OPT_COPY
IP_OPT_CIPSO = 6 | IP_OPT_COPY
IP_OPT_RR = 7
IP_OPT_SATID = 8 | IP_OPT_COPY
IP_OPT_SSRR = 9 | IP_OPT_COPY
IP_OPT_ZSU = 10
IP_OPT_MTUP = 11
IP_OPT_MTUR = 12
IP_OPT_FINN = 13 | IP_OPT_COPY | IP_OPT_DEBMEAS
IP_OPT_VISA = 14 | IP_OPT_COPY
IP_OPT_ENCODE = 15
IP_OPT_IMITD = 16 | IP_OPT_COPY
IP_OPT_EIP = 17 | IP_OPT_COPY
IP_OPT_TR = 18 | IP_OPT_DEBMEAS
IP_OPT_ADDEXT = 19 | IP_OPT_COPY
IP_OPT_RTRALT = 20 | IP_OPT_COPY
IP_OPT_SDB = 21 | IP_OPT_COPY
IP_OPT_NSAPA = 22 | IP_OPT_COPY
IP_OPT_DPS = 23 | IP_OPT_COPY
IP_OPT_UMP = 24 | IP_OPT_COPY
IP_OPT_MAX = 25

# Security option values (RFC 791)
IP_OPT_SEC_UNCLASS = 0x0000
IP_OPT_SEC_CONFID = 0xF135
IP_OPT_SEC_EFTO = 0x789A
IP_OPT_SEC_MMMM = 0xBC4D
IP_OPT_SEC_PROG = 0x5E26
IP_OPT_SEC_RESTR = 0xAF13
IP_OPT_SEC_SECRET = 0xD788
IP_OPT_SEC_TOPSECRET = 0x6BC5

# Timestamp option flags
IP_OPT_TS_TSONLY = 0
IP_OPT_TS_TSADDR = 1
IP_OPT_TS_PRESPEC = 3

# Classful addressing (values in host order)
IP_CLASSA_NET = 0xFF000000
IP_CLASSA_NSHIFT = 24
IP_CLASSA_HOST = 0x00FFFFFF
IP_CLASSA_MAX = 128

IP_CLASSB_NET = 0xFFFF0000
IP_CLASSB_NSHIFT = 16
IP_CLASSB_HOST = 0x0000FFFF
IP_CLASSB_MAX = 65536

IP_CLASSC_NET = 0xFFFFFF00
IP_CLASSC_NSHIFT = 8
IP_CLASSC_HOST = 0x000000FF

IP_CLASSD_NET = 0xF0000000
IP_CLASSD_NSHIFT = 28
IP_CLASSD_HOST = 0x0FFFFFFF

# Reserved addresses (host order)
IP_ADDR_ANY = 0x00000000
IP_ADDR_BROADCAST = 0xFFFFFFFF
IP_ADDR_LOOPBACK = 0x7F000001
IP_ADDR_MCAST_ALL = 0xE0000001
IP_ADDR_MCAST_LOCAL = 0xE00000FF

_HDR = struct.Struct("!BBHHHBBH4s4s")


def _addr_int(addr: AddressLike) -> int:
    """Return an IPv4 address as a 32-bit integer in host order."""
    if isinstance(addr, bool):
        raise TypeError("address must not be a bool")
    if isinstance(addr, int):
        if not 0 <= addr <= 0xFFFFFFFF:
            raise ValueError(f"address out of range: {addr}")
        return addr
    if isinstance(addr, ipaddress.IPv4Address):
        return int(addr)
    if isinstance(addr, str):
        return int(ipaddress.IPv4Address(addr))
    if isinstance(addr, (bytes, bytearray)):
        if len(addr) != IP_ADDR_LEN:
            raise ValueError(f"address must be {IP_ADDR_LEN} bytes, got {len(addr)}")
        return int.from_bytes(addr, "big")
    raise TypeError(f"unsupported address type: {type(addr).__name__}")


def _to_address(addr: AddressLike) -> ipaddress.IPv4Address:
    return ipaddress.IPv4Address(_addr_int(addr))


@dataclass
class IpHeader:
    """An IPv4 header without options."""

    tos: int = IP_TOS_DEFAULT
    length: int = IP_HDR_LEN
    ident: int = 0
    off: int = 0
    ttl: int = IP_TTL_DEFAULT
    proto: int = IP_PROTO_IP
    src: ipaddress.IPv4Address = field(default=ipaddress.IPv4Address(0))
    dst: ipaddress.IPv4Address = field(default=ipaddress.IPv4Address(0))
    sum: int = 0
    version: int = 4
    hl: int = 5

    def __post_init__(self) -> None:
        self.src = _to_address(self.src)
        self.dst = _to_address(self.dst)

    @property
    def header_len(self) -> int:
        """Header length in bytes, options included."""
        return self.hl << 2

    def pack(self) -> bytes:
        """Encode the header into its 20-byte wire form."""
        if not 0 <= self.version <= 0xF or not 0 <= self.hl <= 0xF:
            raise ValueError("version and header length must fit in 4 bits")
        try:
            return _HDR.pack(
                (self.version << 4) | self.hl,
                self.tos,
                self.length,
                self.ident,
                self.off,
                self.ttl,
                self.proto,
                self.sum,
                self.src.packed,
                self.dst.packed,
            )
        except struct.error as exc:
            raise ValueError(f"header field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "IpHeader":
        """Decode the first 20 bytes of data into a header."""
        if len(data) < IP_HDR_LEN:
            raise ValueError(f"need at least {IP_HDR_LEN} bytes, got {len(data)}")
        (vhl, tos, length, ident, off, ttl, proto, cksum, src, dst) = _HDR.unpack_from(data)
        return cls(
            tos=tos,
            length=length,
            ident=ident,
            off=off,
            ttl=ttl,
            proto=proto,
            src=ipaddress.IPv4Address(src),
            dst=ipaddress.IPv4Address(dst),
            sum=cksum,
            version=vhl >> 4,
            hl=vhl & 0x0F,
        )


def pack_hdr(tos, length, ident, off, ttl, proto, src, dst) -> bytes:
    """Build a version 4, 20-byte IP header with a zero checksum."""
    return IpHeader(
        tos=tos,
        length=length,
        ident=ident,
        off=off,
        ttl=ttl,
        proto=proto,
        src=src,
        dst=dst,
    ).pack()


def is_class_a(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0x80000000) == 0x00000000


def is_class_b(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0xC0000000) == 0x80000000


def is_class_c(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0xE0000000) == 0xC0000000


def is_class_d(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0xF0000000) == 0xE0000000


def is_multicast(addr: AddressLike) -> bool:
    return is_class_d(addr)


def is_experimental(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0xF0000000) == 0xF0000000


def is_local_group(addr: AddressLike) -> bool:
    return (_addr_int(addr) & 0xFFFFFF00) == 0xE0000000


def opt_copied(opt_type: int) -> bool:
    """Whether the option is copied into every fragment."""
    return bool(opt_type & 0x80)


def opt_class(opt_type: int) -> int:
    return opt_type & 0x60


def opt_number(opt_type: int) -> int:
    return opt_type & 0x1F


def opt_typeonly(opt_type: int) -> bool:
    """Whether the option is a single type byte with no length."""
    return opt_type in (IP_OPT_EOL, IP_OPT_NOP)