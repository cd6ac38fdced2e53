from __future__ import annotations

import ipaddress
from typing import Union

from .types import VarType, unsigned


def value_to_text(vartype: Union[VarType, int], raw: bytes) -> str:
    """Short display string for a raw value; never raises."""
    try:
        vartype = VarType(vartype)
    except ValueError:
        return "unknown type"

    try:
        raw = bytes(raw)
    except (TypeError, ValueError):
        return "unknown type"
    if len(raw) < vartype.width:
        return "unknown type"
    raw = raw[:vartype.width]

    if vartype is VarType.IP_ADDRESS:
        return ".".join(str(octet) for octet in raw)
    if vartype is VarType.INET_ADDRESS_IPV6:
        return str(ipaddress.IPv6Address(raw))
    return str(unsigned(raw))


__all__ = ["value_to_text"]
