import io
import os
import struct
import sys

from .common import (
    DecodeError,
    eprint,
    hint_help as _hint_help,
    split_opts,
    write_text,
)
from .const import (
    INDENT,
    KEY_TYPES,
    OP_CHECKSUM,
    OP_FLOAT,
    OP_GOTO,
    OP_HEX,
    OP_INTEGER,
    OP_KEYWORDS,
    OP_NEWLINE,
    OP_RANDOM,
    OP_SKIPPED_OPERAND,
    OP_STRING,
    OP_STRUCT,
    OP_VECTOR2,
    OP_VECTOR3,
    OP_WIDE_STRING,
    STRUCT_HEADER,
    STRUCT_TYPE_NAMES,
    StructType,
    array_to_struct_type,
    struct_type_of,
)
from .qbkey import key_string

_MAX_NESTING = 32
_MIN_BUDGET = 64

_BE_U32 = struct.Struct(">I")
_BE_I32 = struct.Struct(">i")
_BE_F32 = struct.Struct(">f")


class _Truncated(Exception):
    pass


class _Line:
    """One output line: offset prefix, indent units and the accumulated text."""

    __slots__ = ("offset", "indent", "parts")

    def __init__(self, offset=None, indent: int = 0):
        self.offset = offset
        self.indent = max(0, int(indent))
        self.parts = []

    def append(self, s: str) -> None:
        self.parts.append(s)

    def strip_indent(self) -> None:
        # closing keywords sit one level out from the block body
        if self.indent > 0:
            self.indent -= 1

    def render(self) -> str:
        body = "".join(self.parts)
        if self.offset is None:
            return body
        return f"{self.offset:04X}" + INDENT * self.indent + body


class _StructDecoder:
    __slots__ = ("data", "base", "debug_names", "global_names", "budget")

    def __init__(self, data: bytes, base: int, debug_names=None, global_names=None):
        self.data = data
        self.base = base
        self.debug_names = debug_names
        self.global_names = global_names
        # entries plus array elements one block may render
        self.budget = max(len(data) // 4, _MIN_BUDGET)

    def _unpack(self, st: struct.Struct, off: int):
        if off < 0 or off + st.size > len(self.data):
            raise _Truncated()
        return st.unpack_from(self.data, off)[0]

    def _spend(self) -> None:
        if self.budget <= 0:
            raise _Truncated()
        self.budget -= 1

    def u32(self, off: int) -> int:
        return self._unpack(_BE_U32, off)

    def f32(self, off: int) -> str:
        return f"{self._unpack(_BE_F32, off):.2f}"

    def key(self, off: int) -> str:
        return key_string(self.u32(off), self.debug_names, self.global_names)

    def target(self, off: int) -> int:
        return self.base + self.u32(off)

    def struct(self, off: int, indent: int, nesting: int = 0, path=frozenset()) -> str:
        pad = INDENT * indent
        lines = ["(QbStruct) {"]
        path = path | {off - 4}
        seen = set()
        try:
            nxt = self.u32(off)
            while nxt:
                if nxt in seen:
                    lines.append(f"{pad}{INDENT}{{cycle at {nxt:08x}}}")
                    break
                seen.add(nxt)
                self._spend()
                entry = self.base + nxt
                tag = self.u32(entry)
                st = struct_type_of(tag)
                tname = STRUCT_TYPE_NAMES[st] if st is not None else f"{{unk type {tag:08x}}}"
                k = self.key(entry + 4)
                v = self.value(entry + 8, st, indent + 1, nesting, path)
                lines.append(f"{pad}{INDENT}{tname} {k} = {v};")
                nxt = self.u32(entry + 12)
        except _Truncated:
            lines.append(f"{pad}{INDENT}{{truncated}}")
        lines.append(pad + "}")
        return "\n".join(lines)

    def _cstr(self, p: int) -> str:
        e = self.data.find(b"\x00", p) if p >= 0 else -1
        if e < 0:
            raise _Truncated()
        return self.data[p:e].decode("ascii", "replace")

    def _wstr(self, p: int) -> str:
        e = p
        while True:
            if e < 0 or e + 2 > len(self.data):
                raise _Truncated()
            if self.data[e] == 0 and self.data[e + 1] == 0:
                break
            e += 2
        return self.data[p:e].decode("utf-16-be", "replace")

    def value(self, off: int, st, indent: int, nesting: int, path=frozenset()) -> str:
        if st is None:
            return f"{{unknown value: {self.u32(off):08x}}}"
        if st == StructType.INTEGER:
            return str(self._unpack(_BE_I32, off))
        if st == StructType.FLOAT:
            return self.f32(off)
        if st in KEY_TYPES:
            return self.key(off)
        if st == StructType.STRING:
            return "'%s'" % self._cstr(self.target(off))
        if st == StructType.WSTRING:
            return '"%s"' % self._wstr(self.target(off))
        if st == StructType.VECTOR2:
            p = self.target(off) + 4
            return f"({self.f32(p)}, {self.f32(p + 4)})"
        if st == StructType.VECTOR3:
            p = self.target(off) + 4
            return f"({self.f32(p)}, {self.f32(p + 4)}, {self.f32(p + 8)})"
        if nesting >= _MAX_NESTING:
            return "{nesting too deep}"
        p = self.target(off)
        # a container already open further up would expand forever
        if p in path:
            return f"{{cycle at {p - self.base:08x}}}"
        if st == StructType.STRUCT:
            warn = "" if self.data[p : p + 4] == STRUCT_HEADER else "{warning: struct header not found}"
            return warn + self.struct(p + 4, indent, nesting + 1, path)
        return self.array(p, indent, nesting + 1, path | {p})

    def array(self, p: int, indent: int, nesting: int, path=frozenset()) -> str:
        et = array_to_struct_type(self.u32(p))
        if et is None:
            return "[{unknown element type}]"
        cnt = self.u32(p + 4)
        if cnt == 0:
            return "[]"
        elem = p + 8
        if cnt > 1:
            elem = self.target(elem)
        if elem < 0 or elem + cnt * 4 > len(self.data):
            raise _Truncated()
        items = []
        for i in range(cnt):
            self._spend()
            items.append(self.value(elem + 4 * i, et, indent, nesting, path))
        return "[" + ", ".join(items) + "]"


def decode_struct(data, block_start: int, debug_names=None, global_names=None, indent: int = 0) -> str:
    """Render the struct block whose header starts at ``block_start``."""
    d = _StructDecoder(bytes(data), int(block_start), debug_names, global_names)
    return d.struct(int(block_start) + 4, indent).strip(" \r\n")


def decompile(payload, debug_names=None, global_names=None, endian: str = "<") -> str:
    data = bytes(payload or b"")
    n = len(data)
    le = endian
    u16 = struct.Struct(le + "H")
    i16 = struct.Struct(le + "h")
    u32 = struct.Struct(le + "I")
    i32 = struct.Struct(le + "i")
    f32 = struct.Struct(le + "f")
    lines = []
    line = _Line()
    depth = 0

    with io.BytesIO(data) as f:

        def rd(nb):
            if nb < 0:
                raise _Truncated()
            b = f.read(nb)
            if len(b) != nb:
                raise _Truncated()
            return b

        def get(st):
            return st.unpack(rd(st.size))[0]

        def fl():
            return f"{get(f32):.2f}"

        def choice_table():
            cnt = get(u32)
            if cnt * 6 > n - f.tell():
                raise _Truncated()
            weights = [get(u16) for _ in range(cnt)]
            targets = []
            for _ in range(cnt):
                rel = get(u32)
                targets.append(rel + f.tell())
            return "(" + ", ".join("%04X#%d" % (t, w) for t, w in zip(targets, weights)) + ")"

        def struct_block(op_pos, indent):
            ln = get(i16)
            try:
                b = rd(1)[0]
                while b == 0:
                    b = rd(1)[0]
                ok = b == 1 and rd(1)[0] == 0
            except _Truncated:
                ok = False
            if not ok:
                raise DecodeError(
                    "Location 0x%04X: invalid qb struct; cannot continue decompilation"
                    % op_pos
                )
            after = f.tell()
            block = after - 4
            d = _StructDecoder(data, block, debug_names, global_names)
            text = d.struct(after, indent).strip(" \r\n")
            f.seek(max(block + ln, after))
            return text

        while f.tell() < n:
            pos = f.tell()
            op = rd(1)[0]
            try:
                if op == OP_NEWLINE:
                    lines.append(line.render())
                    line = _Line(pos, depth)
                elif op in OP_KEYWORDS:
                    text, dd, strip = OP_KEYWORDS[op]
                    depth += dd
                    if strip:
                        line.strip_indent()
                    line.append(text)
                elif op in OP_SKIPPED_OPERAND:
                    size, text, dd, strip = OP_SKIPPED_OPERAND[op]
                    rd(size)
                    depth += dd
                    if strip:
                        line.strip_indent()
                    line.append(text)
                elif op == OP_CHECKSUM:
                    line.append(key_string(get(u32), debug_names, global_names))
                elif op == OP_INTEGER:
                    line.append(str(get(i32)))
                elif op == OP_HEX:
                    line.append(f"0x{get(u32):X}")
                elif op == OP_FLOAT:
                    line.append(fl())
                elif op == OP_STRING:
                    s = rd(get(i32)).decode("ascii", "replace").rstrip("\x00")
                    line.append(f"'{s}'")
                elif op == OP_WIDE_STRING:
                    s = rd(get(i32)).decode("utf-16-be", "replace").rstrip("\x00")
                    line.append(f'"{s}"')
                elif op == OP_VECTOR3:
                    line.append(f"({fl()}, {fl()}, {fl()})")
                elif op == OP_VECTOR2:
                    line.append(f"({fl()}, {fl()})")
                elif op == OP_GOTO:
                    line.append("goto %04X" % (pos + get(u32) + 5))
                elif op == OP_RANDOM:
                    line.append("random ")
                    line.append(choice_table())
                elif op == OP_STRUCT:
                    line.append(struct_block(pos, max(depth, 0)))
                else:
                    line.append(f"{{[UNKNOWN OPCODE {op:X}]}}")
            except _Truncated:
                line.append(f"{{[TRUNCATED OPCODE {op:X}]}}")
                break
            line.append(" ")
        lines.append(line.render())

    return "\n".join(lines).strip(" \r\n")


def main(argv=None):
    from ._names_manager import load_debug_names, names_exist
    from .script_item import load_item_from_cli

    if argv is None:
        argv = sys.argv[1:]
    if not argv or argv[0] in ("-h", "--help", "help"):
        _hint_help(sys.stdout)
        return 0
    try:
        seen, vals, args = split_opts(
            argv,
            {"--record": "record"},
            {"--platform": "platform", "--names": "names", "--out": "out"},
        )
    except ValueError as e:
        eprint(f"decompile: {e}")
        return 2
    if len(args) != 1:
        eprint("decompile: expected exactly 1 path argument")
        _hint_help()
        return 2
    path = args[0]
    if not os.path.isfile(path):
        eprint(f"decompile: file not found: {path}")
        return 1
    try:
        debug_names = load_debug_names(vals["names"]) if vals.get("names") else None
        global_names = load_debug_names() if names_exist() else None
        item = load_item_from_cli(path, "record" in seen, vals)
        text = item.decompile(debug_names, global_names)
    except (ValueError, EOFError, OSError) as e:
        eprint(f"decompile: {os.path.basename(path)}: {e}")
        return 1
    if vals.get("out"):
        write_text(vals["out"], text + "\n")
        print(vals["out"])
        return 0
    print(text)
    return 0
