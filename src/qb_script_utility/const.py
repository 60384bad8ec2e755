from enum import IntEnum

DEFAULT_SCRIPT = bytes([0x01, 0x24])

ALLOWED_STRING_CHARS = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ01234567890"
    "\\/?!\"£$%^&*()-+{}[]'#@~?><,. =®©_"
)

INDENT = "    "

# opcodes
OP_NEWLINE = 0x01
OP_MAP_BEGIN = 0x03
OP_MAP_END = 0x04
OP_CHECKSUM = 0x16
OP_INTEGER = 0x17
OP_HEX = 0x18
OP_FLOAT = 0x1A
OP_STRING = 0x1B
OP_VECTOR3 = 0x1E
OP_VECTOR2 = 0x1F
OP_BEGIN = 0x20
OP_REPEAT = 0x21
OP_SCRIPT = 0x23
OP_ENDSCRIPT = 0x24
OP_ELSEIF = 0x27
OP_ENDIF = 0x28
OP_GOTO = 0x2E
OP_RANDOM = 0x2F
OP_SWITCH = 0x3C
OP_ENDSWITCH = 0x3D
OP_CASE = 0x3E
OP_DEFAULT = 0x3F
OP_IF = 0x47
OP_ELSE = 0x48
OP_SHORT_JUMP = 0x49
OP_STRUCT = 0x4A
OP_WIDE_STRING = 0x4C

# opcode -> (text, depth change, strips one indent unit)
OP_KEYWORDS = {
    OP_MAP_BEGIN: ("(map) { ", 1, False),
    OP_MAP_END: (" }", -1, False),
    0x05: ("[", 0, False),
    0x06: ("]", 0, False),
    0x07: (" = ", 0, False),
    0x08: (".", 0, False),
    0x09: (", ", 0, False),
    0x0A: (" - ", 0, False),
    0x0B: (" + ", 0, False),
    0x0C: (" / ", 0, False),
    0x0D: (" * ", 0, False),
    0x0E: ("(", 0, False),
    0x0F: (")", 0, False),
    0x12: (" < ", 0, False),
    0x13: (" <= ", 0, False),
    0x14: (" > ", 0, False),
    0x15: (" >= ", 0, False),
    OP_BEGIN: ("begin", 1, False),
    OP_REPEAT: ("repeat", -1, True),
    0x22: ("break", 0, False),
    OP_SCRIPT: ("script", 1, False),
    OP_ENDSCRIPT: ("endscript", -1, True),
    OP_ENDIF: ("endif", -1, True),
    0x29: ("return ", 0, False),
    0x2C: ("<...>", 0, False),
    0x2D: ("local ", 0, False),
    0x30: ("randomrange ", 0, False),
    0x31: ("@", 0, False),
    0x32: (" || ", 0, False),
    0x33: (" && ", 0, False),
    0x34: (" ^ ", 0, False),
    0x37: ("random2 ", 0, False),
    0x38: ("randomrange2 ", 0, False),
    0x39: ("!", 0, False),
    OP_SWITCH: ("switch ", 2, False),
    OP_ENDSWITCH: ("endswitch", -2, True),
    OP_CASE: ("case ", 0, True),
    OP_DEFAULT: ("default:", 0, True),
    0x40: ("randomnorepeat ", 0, False),
    0x41: ("randompermute ", 0, False),
    0x42: (":", 0, False),
    0x45: ("useheap ", 0, False),
    0x4B: ("*", 0, False),
    0x4D: (" != ", 0, False),
}

# opcodes that carry a fixed operand which is skipped: opcode -> (size, text, depth, strip)
OP_SKIPPED_OPERAND = {
    OP_ELSEIF: (4, "elseif", 0, True),
    OP_IF: (2, "if ", 1, False),
    OP_ELSE: (2, "else", 0, True),
    OP_SHORT_JUMP: (2, "", 0, False),
}

STRUCT_HEADER = b"\x00\x00\x01\x00"


class StructType(IntEnum):
    INTEGER = 0x00810000
    FLOAT = 0x00820000
    STRING = 0x00830000
    WSTRING = 0x00840000
    VECTOR2 = 0x00850000
    VECTOR3 = 0x00860000
    STRUCT = 0x008A0000
    ARRAY = 0x008C0000
    KEY = 0x008D0000
    KEYREF = 0x009A0000
    STRPTR = 0x009B0000
    STRQS = 0x009C0000


class ArrayType(IntEnum):
    INTEGER = 0x00010100
    FLOAT = 0x00010200
    STRING = 0x00010300
    WSTRING = 0x00010400
    VECTOR2 = 0x00010500
    VECTOR3 = 0x00010600
    STRUCT = 0x00010A00
    ARRAY = 0x00010C00
    KEY = 0x00010D00
    KEYREF = 0x00011A00
    STRPTR = 0x00011B00
    STRQS = 0x00011C00


ARRAY_TO_STRUCT_TYPE = {
    ArrayType.INTEGER: StructType.INTEGER,
    ArrayType.FLOAT: StructType.FLOAT,
    ArrayType.STRING: StructType.STRING,
    ArrayType.WSTRING: StructType.WSTRING,
    ArrayType.VECTOR2: StructType.VECTOR2,
    ArrayType.VECTOR3: StructType.VECTOR3,
    ArrayType.STRUCT: StructType.STRUCT,
    ArrayType.KEY: StructType.KEY,
    ArrayType.KEYREF: StructType.KEYREF,
    ArrayType.STRPTR: StructType.STRPTR,
    ArrayType.STRQS: StructType.STRQS,
}

STRUCT_TYPE_NAMES = {
    StructType.INTEGER: "int",
    StructType.FLOAT: "float",
    StructType.STRING: "string",
    StructType.WSTRING: "wstring",
    StructType.VECTOR2: "vector2",
    StructType.VECTOR3: "vector3",
    StructType.STRUCT: "struct",
    StructType.ARRAY: "array",
    StructType.KEY: "qbkey",
    StructType.KEYREF: "qbkeyref",
    StructType.STRPTR: "strptr",
    StructType.STRQS: "strqs",
}

KEY_TYPES = (StructType.KEY, StructType.KEYREF, StructType.STRPTR, StructType.STRQS)


def array_to_struct_type(tag):
    """Map an array element tag onto the value type enumeration, or None."""
    try:
        return ARRAY_TO_STRUCT_TYPE.get(ArrayType(int(tag)))
    except ValueError:
        return None


def struct_type_of(tag):
    try:
        return StructType(int(tag))
    except ValueError:
        return None
