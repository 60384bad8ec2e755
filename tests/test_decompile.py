import random
import struct

import pytest
from qb_script_utility.common import DecodeError
from qb_script_utility.decompile import decode_struct, decompile

NAMES = {1: "test", 2: "wait", 3: "speed", 4: "list"}


def _key(k):
    return b"\x16" + struct.pack("<I", k)


def test_minimal_program():
    assert decompile(b"\x01\x24") == "0000 endscript"


def test_empty_payload():
    assert decompile(b"") == ""


def test_unknown_opcode_continues():
    out = decompile(b"\x01\x63\x24")
    assert out == "0000 {[UNKNOWN OPCODE 63]} endscript"


def test_truncated_operand_stops():
    assert decompile(b"\x01\x17\x01") == "0000 {[TRUNCATED OPCODE 17]}"
    assert decompile(b"\x01\x1b\x10\x00\x00\x00ab") == "0000 {[TRUNCATED OPCODE 1B]}"


def test_checksum_lookup_order():
    data = b"\x01" + _key(3) + b"\x24"
    assert decompile(data) == "0000 $00000003 endscript"
    assert decompile(data, global_names={3: "global"}) == "0000 global endscript"
    assert decompile(data, {3: "speed"}, {3: "global"}) == "0000 speed endscript"


@pytest.mark.parametrize(
    "operand, text",
    [
        (b"\x17" + struct.pack("<i", -5), "-5"),
        (b"\x18" + struct.pack("<I", 255), "0xFF"),
        (b"\x1a" + struct.pack("<f", 1.5), "1.50"),
        (b"\x1b" + struct.pack("<i", 6) + b"hello\x00", "'hello'"),
        (b"\x4c" + struct.pack("<i", 4) + "hi".encode("utf-16-be"), '"hi"'),
        (b"\x1f" + struct.pack("<2f", 1, 2), "(1.00, 2.00)"),
        (b"\x1e" + struct.pack("<3f", 1, 2, 3), "(1.00, 2.00, 3.00)"),
    ],
)
def test_operands(operand, text):
    assert decompile(b"\x01" + operand + b"\x24") == f"0000 {text} endscript"


def test_expression_fragments():
    data = b"\x01\x0e" + _key(3) + b"\x0b\x17" + struct.pack("<i", 2) + b"\x0f"
    assert decompile(data, NAMES) == "0000 ( speed  +  2 )"


def test_script_block_indentation():
    data = b"\x01\x23" + _key(1) + b"\x01" + _key(2) + b"\x01\x24"
    assert decompile(data, NAMES) == "0000 script test \n0007     wait \n000D endscript"


def test_if_else_strip_indent():
    data = b"\x01\x47\x00\x00" + _key(3) + b"\x01\x48\x00\x00\x01\x28"
    assert decompile(data, NAMES) == "0000 if  speed \n0009 else \n000D endif"


def test_goto_target():
    data = b"\x01\x2e" + struct.pack("<I", 10) + b"\x24"
    assert decompile(data) == "0000 goto 0010 endscript"


def test_random_table():
    data = b"\x01\x2f" + struct.pack("<I", 2) + struct.pack("<HH", 1, 3)
    data += struct.pack("<II", 0, 0) + b"\x24"
    assert decompile(data) == "0000 random (000E#1, 0012#3) endscript"


def test_big_endian_operands():
    data = b"\x01\x17" + struct.pack(">i", 7) + b"\x24"
    assert decompile(data, endian=">") == "0000 7 endscript"


def _struct_payload():
    body = struct.pack(">I", 8) + struct.pack(">4I", 0x00810000, 3, 42, 0)
    data = b"\x01\x4a" + struct.pack("<h", 24) + b"\x00\x00\x01\x00" + body
    return data + b"\x24"


def test_struct_block():
    out = decompile(_struct_payload(), NAMES)
    assert out == "0000 (QbStruct) {\n    int speed = 42;\n} endscript"


def test_decode_struct_direct():
    assert decode_struct(_struct_payload(), 4, NAMES) == "(QbStruct) {\n    int speed = 42;\n}"


def test_bad_struct_sentinel():
    data = b"\x01\x4a" + struct.pack("<h", 8) + b"\x00\x00\x02\x00" + b"\x24"
    with pytest.raises(DecodeError):
        decompile(data)


def test_struct_sentinel_past_end():
    with pytest.raises(DecodeError):
        decompile(b"\x01\x4a\x08\x00\x00\x00")


def _array_struct(tag, count, *tail):
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x008C0000, 4, 24, 0)
    data += struct.pack(">2I", tag, count)
    for v in tail:
        data += struct.pack(">I", v)
    return data


@pytest.mark.parametrize(
    "data, text",
    [
        (_array_struct(0x00010100, 0), "[]"),
        (_array_struct(0x00010100, 1, 7), "[7]"),
        (_array_struct(0x00010100, 2, 36, 7, 9), "[7, 9]"),
        (_array_struct(0x00010D00, 1, 2), "[wait]"),
        (_array_struct(0x00010C00, 1, 0), "[{unknown element type}]"),
    ],
)
def test_struct_arrays(data, text):
    assert decode_struct(data, 0, NAMES) == "(QbStruct) {\n    array list = %s;\n}" % text


def test_struct_string_values():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x00830000, 1, 40, 24)
    data += struct.pack(">4I", 0x00840000, 2, 44, 0)
    data += b"abc\x00" + "xy".encode("utf-16-be") + b"\x00\x00"
    out = decode_struct(data, 0, NAMES)
    assert out == "(QbStruct) {\n    string test = 'abc';\n    wstring wait = \"xy\";\n}"


def test_nested_struct():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x008A0000, 1, 24, 0)
    data += b"\x00\x00\x01\x00" + struct.pack(">I", 32)
    data += struct.pack(">4I", 0x00810000, 3, 5, 0)
    out = decode_struct(data, 0, NAMES)
    assert out == (
        "(QbStruct) {\n"
        "    struct test = (QbStruct) {\n"
        "        int speed = 5;\n"
        "    };\n"
        "}"
    )


def test_struct_cycle():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x00810000, 1, 5, 8)
    out = decode_struct(data, 0)
    assert out == "(QbStruct) {\n    int $00000001 = 5;\n    {cycle at 00000008}\n}"


def test_struct_truncated():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8) + struct.pack(">2I", 0x00810000, 1)
    out = decode_struct(data, 0)
    assert out == "(QbStruct) {\n    {truncated}\n}"


def _self_referencing_block():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x008A0000, 1, 0, 24)
    data += struct.pack(">4I", 0x008A0000, 2, 0, 0)
    return data


SELF_REF = (
    "(QbStruct) {\n"
    "    struct $00000001 = {cycle at 00000000};\n"
    "    struct $00000002 = {cycle at 00000000};\n"
    "}"
)


def test_struct_value_points_at_enclosing_block():
    assert decode_struct(_self_referencing_block(), 0) == SELF_REF


def test_struct_block_cycle_in_script():
    block = _self_referencing_block()
    data = b"\x01\x4a" + struct.pack("<h", len(block)) + block + b"\x24"
    assert decompile(data) == "0000 " + SELF_REF + " endscript"


def test_array_element_points_at_enclosing_block():
    data = b"\x00\x00\x01\x00" + struct.pack(">I", 8)
    data += struct.pack(">4I", 0x008C0000, 4, 24, 0)
    data += struct.pack(">3I", 0x00010A00, 1, 0)
    assert decode_struct(data, 0, NAMES) == (
        "(QbStruct) {\n    array list = [{cycle at 00000000}];\n}"
    )


def test_shared_struct_chain_is_bounded():
    # every level holds two entries that point at the same next level
    levels = 24
    data = b""
    for i in range(levels):
        base = 40 * i
        data += b"\x00\x00\x01\x00" + struct.pack(">I", base + 8)
        if i < levels - 1:
            data += struct.pack(">4I", 0x008A0000, 1, base + 40, base + 24)
            data += struct.pack(">4I", 0x008A0000, 2, base + 40, 0)
        else:
            data += struct.pack(">4I", 0x00810000, 1, 5, base + 24)
            data += struct.pack(">4I", 0x00810000, 2, 6, 0)
    out = decode_struct(data, 0)
    assert "{truncated}" in out
    assert out.count("\n") < 1000


@pytest.mark.parametrize(
    "data, text",
    [
        (
            b"\x01\x3c" + _key(1) + b"\x01\x3e\x17" + struct.pack("<i", 1)
            + b"\x01" + _key(2) + b"\x01\x3f\x01" + _key(2) + b"\x01\x3d",
            "0000 switch  test \n"
            "0007     case  1 \n"
            "000E         wait \n"
            "0014     default: \n"
            "0016         wait \n"
            "001C     endswitch",
        ),
        (
            b"\x01\x03\x01" + _key(1) + b"\x01\x04",
            "0000 (map) {  \n0002     test \n0008      }",
        ),
        (
            b"\x01\x03" + _key(1) + b"\x04",
            "0000 (map) {  test  }",
        ),
        (
            b"\x01\x20\x01" + _key(2) + b"\x01\x21",
            "0000 begin \n0002     wait \n0008 repeat",
        ),
        (
            b"\x01\x47\x00\x00" + _key(3) + b"\x01\x27\xaa\xbb\xcc\xdd" + _key(2) + b"\x01\x28",
            "0000 if  speed \n0009 elseif wait \n0014 endif",
        ),
    ],
    ids=["switch", "map-lines", "map-inline", "begin-repeat", "elseif"],
)
def test_block_layout(data, text):
    assert decompile(data, NAMES) == text


def test_random_bytes_always_finish():
    rng = random.Random(0x5EED)
    for _ in range(500):
        n = rng.randrange(0, 96)
        data = bytes(rng.randrange(0x50) if rng.random() < 0.7 else rng.randrange(256) for _ in range(n))
        try:
            out = decompile(b"\x01" + data)
        except DecodeError:
            continue
        assert isinstance(out, str)


def test_random_struct_data_always_finish():
    rng = random.Random(1234)
    for _ in range(300):
        body = bytes(rng.choice((0, 0, 8, 24, 0x8A, 0x8C, 0x81, 0x01, 0x0A)) for _ in range(rng.randrange(4, 120)))
        out = decode_struct(b"\x00\x00\x01\x00" + body, 0)
        assert out.startswith("(QbStruct) {")
