"""
Type tags used by the header schema and their on-disk widths.
"""

from __future__ import annotations

import sys
from enum import IntEnum

from ..exceptions import HeaderError

# Values live on disk exactly as the kernel wrote them.
NATIVE = sys.byteorder


class VarType(IntEnum):
    INTEGER = 0
    INTEGER32 = 1
    IP_ADDRESS = 2
    COUNTER32 = 3
    GAUGE32 = 4
    UNSIGNED32 = 5
    TIME_TICKS = 6
    COUNTER64 = 7
    UNSIGNED16 = 8
    INET_ADDRESS_IPV6 = 10

    @classmethod
    def from_tag(cls, tag: int) -> "VarType":
        try:
            return cls(tag)
        except ValueError as exc:
            raise HeaderError(f"unknown type tag {tag}") from exc

    @property
    def width(self) -> int:
        return _WIDTHS[self]

    @property
    def is_counter(self) -> bool:
        return self in (VarType.COUNTER32, VarType.COUNTER64)

    @property
    def is_address(self) -> bool:
        return self in (VarType.IP_ADDRESS, VarType.INET_ADDRESS_IPV6)


_WIDTHS = {
    VarType.INTEGER: 4,
    VarType.INTEGER32: 4,
    VarType.IP_ADDRESS: 4,
    VarType.COUNTER32: 4,
    VarType.GAUGE32: 4,
    VarType.UNSIGNED32: 4,
    VarType.TIME_TICKS: 4,
    VarType.COUNTER64: 8,
    VarType.UNSIGNED16: 2,
    VarType.INET_ADDRESS_IPV6: 16,
}


class AddressFamily(IntEnum):
    """InetAddressType numbering as reported by ``LocalAddressType``."""

    UNKNOWN = 0
    IPV4 = 1
    IPV6 = 2

    @classmethod
    def from_raw(cls, value: int) -> "AddressFamily":
        if value == cls.IPV6:
            return cls.IPV6
        return cls.IPV4


def type_width(tag: int) -> int:
    """Width in bytes of a raw type tag; unknown tags raise ``HeaderError``."""
    return VarType.from_tag(tag).width


def unsigned(raw: bytes) -> int:
    """Zero-extend raw native-order bytes to an unsigned integer."""
    return int.from_bytes(raw, NATIVE, signed=False)


__all__ = ["VarType", "AddressFamily", "NATIVE", "type_width", "unsigned"]
