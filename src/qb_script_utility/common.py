import os
import struct
import sys


class FormatError(ValueError):
    pass


class DecodeError(ValueError):
    pass


class ValidationError(ValueError):
    pass


_U32 = {"<": struct.Struct("<I"), ">": struct.Struct(">I")}


def _read_exact(f, n: int, what: str) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise EOFError(f"Unexpected EOF while reading {what}")
    return b


def read_u32(f, endian: str = "<") -> int:
    return _U32[endian].unpack(_read_exact(f, 4, "u32"))[0]


def write_u32(out: bytearray, v, endian: str = "<") -> None:
    out.extend(_U32[endian].pack(int(v) & 0xFFFFFFFF))


def align4(n: int) -> int:
    return (int(n) + 3) & ~3


def read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def write_bytes(path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def write_text(path: str, text: str, enc: str = "utf-8") -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding=enc, newline="\r\n") as f:
        f.write(text)


def eprint(msg: str, errors: str = "backslashreplace") -> None:
    try:
        sys.stderr.write(msg + "\n")
        sys.stderr.flush()
    except Exception:
        try:
            sys.stderr.buffer.write((msg + "\n").encode("utf-8", errors=errors))
            sys.stderr.flush()
        except Exception:
            pass


def hx(x):
    try:
        v = int(x)
    except Exception:
        return "-"
    if v < 0:
        return "-"
    if v <= 0xFFFFFFFF:
        return f"0x{v:08X}"
    return f"0x{v:X}"


def hint_help(out=None) -> None:
    p = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "qb-ssu"
    msg = f"hint: run '{p} --help' for command help"
    if out is None:
        eprint(msg)
        return
    try:
        out.write(msg + "\n")
    except Exception:
        eprint(msg)


def split_opts(argv, flags, valued):
    """Split argv into (flags set, valued options dict, positional args)."""
    seen = set()
    vals = {}
    args = []
    it = iter(argv or [])
    for a in it:
        if a in flags:
            seen.add(flags[a])
        elif a in valued:
            try:
                vals[valued[a]] = next(it)
            except StopIteration:
                raise ValueError(f"{a} requires a value") from None
        else:
            args.append(a)
    return seen, vals, args


def iter_files_by_ext(root: str, extensions):
    ext_set = {ext.lower() for ext in extensions}
    if os.path.isfile(root):
        return [root] if os.path.splitext(root)[1].lower() in ext_set else []
    out = []
    for dirpath, _dirs, filenames in os.walk(root):
        for name in filenames:
            if os.path.splitext(name)[1].lower() in ext_set:
                out.append(os.path.join(dirpath, name))
    return sorted(out)
