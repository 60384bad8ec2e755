import os
import sys
import unicodedata

from .common import eprint, hint_help as _hint_help, hx, split_opts

COLUMNS = 16


def _printable(b: int) -> str:
    c = chr(b)
    if unicodedata.category(c) == "Cc":
        return "."
    return c


def hex_ascii(data, cols: int = COLUMNS) -> str:
    b = bytes(data or b"")
    cols = max(1, int(cols))
    lines = []
    for i in range(0, len(b), cols):
        row = b[i : i + cols]
        cells = " ".join(f"{x:02X}" for x in row)
        pad = "   " * (cols - len(row))
        txt = "".join(_printable(x) for x in row)
        lines.append(f"{cells} {pad}: {txt}")
    return "\n".join(lines)


def export_name(container_name: str, item_key, ext: str = "qbs") -> str:
    base = str(container_name or "").replace("\\", "#").replace("/", "#").replace(".", "#")
    return f"{base}_{int(item_key) & 0xFFFFFFFF:08X}.{ext}"


def main(argv=None):
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
            {"--platform": "platform", "--cols": "cols"},
        )
        cols = int(vals.get("cols") or COLUMNS)
    except ValueError as e:
        eprint(f"hexdump: {e}")
        return 2
    if len(args) != 1:
        eprint("hexdump: expected exactly 1 path argument")
        _hint_help()
        return 2
    path = args[0]
    if not os.path.isfile(path):
        eprint(f"hexdump: file not found: {path}")
        return 1
    try:
        item = load_item_from_cli(path, "record" in seen, vals)
    except (ValueError, EOFError) as e:
        eprint(f"hexdump: {os.path.basename(path)}: {e}")
        return 1
    if "record" in seen:
        print(f"key: {item.item_key.hex}  unknown: {hx(item.unknown)}")
        print(f"export: {export_name(os.path.basename(path), item.item_key)}")
    text = hex_ascii(item.payload, cols)
    if text:
        print(text)
    return 0
