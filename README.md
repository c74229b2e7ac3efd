# rawnet

Low-level IP networking helpers: packing and unpacking IPv4 headers,
computing Internet checksums and CRC-32C, inserting IP and TCP options into
packets, sending raw IPv4 datagrams and inspecting or configuring the host's
network interfaces on Linux.

The package has no runtime dependencies beyond the standard library.

## Installation

```
pip install .
```

Sending raw datagrams and changing interface settings need administrator
privileges. Interface access uses Linux ioctls and the `/proc` filesystem;
on other systems `InterfaceTable()` raises `OSError` with `errno.ENOSYS`.

## IPv4 headers (`rawnet.ip`)

`IpHeader` is a dataclass for the 20-byte IPv4 header. Addresses may be
given as strings, integers in host order, 4-byte strings or
`ipaddress.IPv4Address`; they are stored as `IPv4Address`. `pack()` encodes
the header, `IpHeader.unpack(data)` decodes the first 20 bytes, and
`header_len` gives the header length in bytes. `pack_hdr(...)` builds a
version 4 header with a zero checksum in one call.

```python
from rawnet.ip import IpHeader, pack_hdr, is_multicast, opt_typeonly

header = pack_hdr(0, 28, 1, 0, 64, 17, "192.0.2.1", "192.0.2.2")
parsed = IpHeader.unpack(header)
print(parsed.ttl, parsed.length, parsed.src)   # 64 28 192.0.2.1

print(is_multicast("224.0.0.1"))   # True
print(opt_typeonly(1))             # True: NOP carries no length byte
```

Also available: `is_class_a`, `is_class_b`, `is_class_c`, `is_class_d`,
`is_experimental`, `is_local_group`, the option helpers `opt_copied`,
`opt_class` and `opt_number`, and constants for protocol numbers
(`IP_PROTO_*`), option types (`IP_OPT_*`), TOS values, fragmentation flags
and reserved addresses (host order).

## Checksums and options (`rawnet.checksum`)

The checksum functions take a packet and return a new `bytes` object with the
checksums filled in; the input is not modified.

- `ip_checksum(packet)` sets the IPv4 header checksum and, unless the packet
  is a fragment, the TCP, UDP, SCTP (CRC-32C), ICMP or IGMP checksum.
  Packets shorter than 20 bytes are returned unchanged.
- `ip6_checksum(packet)` walks IPv6 hop-by-hop, destination-options, routing
  and fragment headers and sets the TCP, UDP, ICMPv6, ICMP or IGMP checksum.
- `cksum_add(buf, cksum=0)`, `cksum_carry(value)` and `crc32c(data)` expose
  the underlying sums.

`add_option(packet, proto, option, capacity=65535)` inserts an option after
the existing IP header options (`proto` 0) or TCP header options (`proto` 6),
padding it to a word boundary with leading NOPs and updating the header
length and IP total length. Checksums are not recomputed. A `ValueError` is
raised if the option would not fit in the header or in `capacity`.

```python
from rawnet.checksum import ip_checksum, add_option

packet = ip_checksum(header + bytes(8))

# Insert a record-route option into the IP header.
with_option = add_option(packet, 0, bytes([7, 7, 4, 0, 0, 0, 0]), capacity=128)
with_option = ip_checksum(with_option)
```

## Sending raw datagrams (`rawnet.rawsock`)

`RawIpSocket` opens a raw IPv4 socket with the header-included option,
grows its send buffer and enables broadcast. `send(packet)` sends a complete
datagram to the destination address in its header and returns the number of
bytes sent.

```python
from rawnet.rawsock import RawIpSocket

with RawIpSocket() as sock:
    sent = sock.send(with_option)
```

## Network interfaces (`rawnet.intf`, `rawnet.intfinfo`)

`InterfaceTable` returns `InterfaceEntry` records holding the name, index,
`InterfaceType`, `InterfaceFlag` flags, MTU, primary address, point-to-point
destination, Ethernet hardware address and alias addresses (IPv4 aliases and
IPv6 addresses from `/proc/net/if_inet6`).

```python
from rawnet.intf import InterfaceTable

with InterfaceTable() as table:
    for entry in table.loop():
        print(entry.name, entry.type, entry.mtu, entry.addr)
    lo = table.get("lo")
    by_index = table.get_index(lo.index)
    owner = table.get_src("127.0.0.1")
    route_out = table.get_dst("192.0.2.1")
```

- `get(name)` and `get_index(index)` look up one interface.
- `loop()` yields every interface listed in `/proc/net/dev`.
- `get_src(addr)` finds the interface owning an IPv4 address and
  `get_dst(addr)` the one the kernel would use to reach it; both raise
  `OSError` with `errno.ENXIO` when none matches.
- `set(entry)` replaces the interface's addresses and applies its MTU,
  primary address and netmask, broadcast address, hardware address,
  destination address, aliases and the UP and NOARP flags.

`rawnet.intfinfo` holds the pieces that work on plain data: `flags_from_iff`,
`flags_to_iff`, `classify`, `parse_proc_dev` and `parse_if_inet6`.

Errors are reported by raising `OSError` (with the matching `errno`) or
`ValueError` for malformed input.

## What this package does not do

It does not read or change ARP caches or routing tables, send Ethernet
frames, manage firewall rules or tunnel devices, or fragment datagrams
itself. Interface inspection and configuration work on Linux only.