import pytest

from tcp_instrumentation.core.render import value_to_text
from tcp_instrumentation.core.types import NATIVE, AddressFamily, VarType, type_width, unsigned
from tcp_instrumentation.exceptions import HeaderError


@pytest.mark.parametrize(
    "tag, width",
    [(0, 4), (1, 4), (2, 4), (3, 4), (4, 4), (5, 4), (6, 4), (7, 8), (8, 2), (10, 16)],
)
def test_type_widths(tag, width):
    """Every known tag maps to its fixed on-disk width."""
    assert type_width(tag) == width


@pytest.mark.parametrize("tag", [9, 11, -1, 99])
def test_unknown_tag_is_a_header_error(tag):
    with pytest.raises(HeaderError):
        type_width(tag)


def test_counter_and_address_flags():
    assert VarType.COUNTER32.is_counter
    assert VarType.COUNTER64.is_counter
    assert not VarType.GAUGE32.is_counter
    assert VarType.IP_ADDRESS.is_address
    assert VarType.INET_ADDRESS_IPV6.is_address
    assert not VarType.UNSIGNED16.is_address


def test_address_family_from_raw():
    """Only the IPv6 code selects IPv6; anything else is treated as IPv4."""
    assert AddressFamily.from_raw(2) is AddressFamily.IPV6
    assert AddressFamily.from_raw(1) is AddressFamily.IPV4
    assert AddressFamily.from_raw(0) is AddressFamily.IPV4
    assert AddressFamily.from_raw(7) is AddressFamily.IPV4


def test_unsigned_uses_native_order():
    assert unsigned((258).to_bytes(2, NATIVE)) == 258
    assert unsigned(b"\xff\xff\xff\xff") == 0xFFFFFFFF


def test_value_to_text_integers():
    assert value_to_text(VarType.COUNTER32, (42).to_bytes(4, NATIVE)) == "42"
    assert value_to_text(VarType.COUNTER64, (2**40).to_bytes(8, NATIVE)) == str(2**40)
    assert value_to_text(VarType.UNSIGNED16, (443).to_bytes(2, NATIVE)) == "443"


def test_value_to_text_addresses():
    assert value_to_text(VarType.IP_ADDRESS, bytes([192, 168, 1, 20])) == "192.168.1.20"
    raw = bytes(15) + b"\x01"
    assert value_to_text(VarType.INET_ADDRESS_IPV6, raw) == "::1"


def test_value_to_text_never_raises():
    """Unknown tags and short buffers render a placeholder instead of failing."""
    assert value_to_text(9, b"\x00" * 8) == "unknown type"
    assert value_to_text(VarType.COUNTER64, b"\x00" * 4) == "unknown type"


def test_value_to_text_rejects_non_bytes():
    assert value_to_text(VarType.IP_ADDRESS, None) == "unknown type"
    assert value_to_text(VarType.COUNTER32, 3.5) == "unknown type"
