"""Sending complete IPv4 datagrams through a raw socket."""

from __future__ import annotations

import errno
import socket
from typing import Optional

from .ip import IP_HDR_LEN

_SNDBUF_STEP = 128
_SNDBUF_LIMIT = 1048576


class RawIpSocket:
    """A raw IPv4 socket that sends packets with caller-built headers."""

    def __init__(self):
        self._sock: Optional[socket.socket] = socket.socket(
            socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_RAW
        )
        try:
            self._configure()
        except BaseException:
            self.close()
            raise

    def _configure(self) -> None:
        sock = self._sock
        if hasattr(socket, "IP_HDRINCL"):
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_HDRINCL, 1)
        if hasattr(socket, "SO_SNDBUF"):
            size = sock.getsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF) + _SNDBUF_STEP
            while size < _SNDBUF_LIMIT:
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, size)
                except OSError as exc:
                    if exc.errno == errno.ENOBUFS:
                        break
                    raise
                size += _SNDBUF_STEP
        if hasattr(socket, "SO_BROADCAST"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

    def send(self, packet) -> int:
        """Send a full IP datagram to the destination in its header."""
        if self._sock is None:
            raise ValueError("socket is closed")
        data = bytes(packet)
        if len(data) < IP_HDR_LEN:
            raise ValueError(f"packet shorter than {IP_HDR_LEN} bytes")
        dst = socket.inet_ntoa(data[16:20])
        return self._sock.sendto(data, (dst, 0))

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "RawIpSocket":
        return self

    def __exit__(self, *args) -> None:
        self.close()