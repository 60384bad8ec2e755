import os

import pytest
from qb_script_utility.common import FormatError
from qb_script_utility.lzss import (
    compress,
    decompress,
    lzss_pack,
    lzss_unpack,
)


@pytest.mark.parametrize("level", [3, 8, 12, 18])
def test_lzss_level_compression(level):
    """Test LZSS compression with different levels."""
    data = b"Hello, World! " * 1000
    compressed = lzss_pack(data, level=level)

    assert len(compressed) > 0
    assert len(compressed) < len(data)
    assert lzss_unpack(compressed) == data


def test_lzss_level_impact():
    """A short match cap should never beat the full 18 byte cap on long repeats."""
    data = b"Hello, World! " * 5000 + b"x" * 5000
    c_low = lzss_pack(data, level=3)
    c_high = lzss_pack(data, level=18)
    assert len(c_low) >= len(c_high)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"a",
        b"abc",
        b"\x01\x24",
        bytes(range(256)) * 3,
        b"\x00" * 10000,
        b"    leading spaces hit the prefilled ring",
    ],
)
def test_roundtrip(data):
    assert decompress(compress(data), len(data)) == data


def test_roundtrip_random():
    data = os.urandom(6000) + b"qb" * 3000 + os.urandom(100)
    assert decompress(compress(data), len(data)) == data


def test_literals_only():
    # three literals: flag bits 0..2 set
    assert compress(b"abc") == b"\x07abc"
    assert decompress(b"\x07abc", 3) == b"abc"


def test_ring_starts_as_spaces():
    # a reference to slot 0 before anything was written reads the space fill
    assert lzss_unpack(b"\x00\x00\x00") == b"   "


def test_long_run_compresses():
    data = b"\x00" * 4096
    assert len(compress(data)) < 600


def test_decompress_length_mismatch():
    packed = compress(b"endscript" * 20)
    with pytest.raises(FormatError):
        decompress(packed, 179)
    with pytest.raises(FormatError):
        decompress(packed, 181)
