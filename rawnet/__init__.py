"""IPv4 headers, Internet checksums and options, raw IPv4 sending and Linux interface inspection."""

__version__ = "0.1.0"
__all__ = ["checksum", "intf", "intfinfo", "ip", "rawsock"]