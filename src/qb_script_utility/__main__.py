import os
import sys


def _prog():
    p = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "qb-ssu"
    return p or "qb-ssu"


def _get_version() -> str:
    try:
        from importlib.metadata import version as _pkg_version

        return _pkg_version("qb-script-utility")
    except Exception:
        try:
            from . import __version__ as _v

            return str(_v)
        except Exception:
            return "unknown"


def _print_version(out=None) -> None:
    if out is None:
        out = sys.stdout
    out.write(f"{_prog()} {_get_version()}\n")


def _usage(out=None):
    if out is None:
        out = sys.stderr
    p = _prog()
    out.write(f"{p} {_get_version()}\n")
    out.write(f"usage: {p} [-h] [-V|--version] (names|-d|-t|-m|-x|-p|-u) [args]\n")
    out.write("\n")
    out.write("Options:\n")
    out.write("  -V, --version   Show version and exit\n")
    out.write("\n")
    out.write("Modes:\n")
    out.write("  names           Show or extend the user checksum name table\n")
    out.write("  -d, --decompile Decompile script bytecode to text\n")
    out.write("  -t, --strings   List editable strings in a script\n")
    out.write("  -m, --textmap   Export/apply string mapping CSV\n")
    out.write("  -x, --hexdump   Hex/ASCII dump of a script payload\n")
    out.write("  -p, --pack      Pack a raw payload into a script record\n")
    out.write("  -u, --unpack    Unpack a script record into its raw payload\n")
    out.write("\n")
    out.write("Common options:\n")
    out.write("    --record       Input is a script record, not a raw payload\n")
    out.write("    --platform P   Container platform: pc, wpc, xbox, xbx, ps2, wii (default: pc)\n")
    out.write("    --chars S      Override the editable character whitelist\n")
    out.write("\n")
    out.write("Names mode:\n")
    out.write(f"  {p} names [--add NAME ...]\n")
    out.write("    --add          Append a name (its checksum is computed)\n")
    out.write("\n")
    out.write("Decompile mode:\n")
    out.write(f"  {p} -d [--record] [--names FILE] [--out FILE] <input>\n")
    out.write("    --names        Extra checksum name table for this run\n")
    out.write("    --out          Write the text to FILE instead of stdout\n")
    out.write("\n")
    out.write("Strings mode:\n")
    out.write(f"  {p} -t [--record] <input>\n")
    out.write("\n")
    out.write("Textmap mode:\n")
    out.write(f"  {p} -m [--apply] [--record] [--ext EXT] <input|input_dir>\n")
    out.write("    --apply        Apply <input>.csv back to <input>\n")
    out.write("    --ext          File extension scanned in a directory (default: .qbs/.qbr)\n")
    out.write("\n")
    out.write("Hexdump mode:\n")
    out.write(f"  {p} -x [--record] [--cols N] <input>\n")
    out.write("\n")
    out.write("Pack/unpack mode:\n")
    out.write(f"  {p} -p [--key KEY] [--unknown N] <payload> <record>\n")
    out.write(f"  {p} -u <record> <payload>\n")
    out.write("    --key          Item key as hex checksum or name\n")
    out.write("    --unknown      Value of the opaque header word\n")


def _usage_short(out=None):
    if out is None:
        out = sys.stderr
    p = _prog()
    out.write(f"{p} {_get_version()}\n")
    out.write(f"usage: {p} [-h] [-V|--version] (names|-d|-t|-m|-x|-p|-u) [args]\n")
    out.write(f"Try '{p} --help' for more information.\n")


def _names(argv):
    from ._names_manager import _names_path, add_debug_name, load_debug_names, names_exist

    added = []
    it = iter(argv)
    for a in it:
        if a == "--add":
            try:
                added.append(next(it))
            except StopIteration:
                sys.stderr.write(f"{_prog()}: --add requires a value\n")
                return 2
        elif a in ("-h", "--help", "help"):
            sys.stdout.write(f"usage: {_prog()} names [--add NAME ...]\n")
            return 0
        else:
            sys.stderr.write(f"{_prog()}: unknown names option: {a}\n")
            return 2
    try:
        for name in added:
            add_debug_name(name)
        count = len(load_debug_names()) if names_exist() else 0
    except OSError as e:
        sys.stderr.write(f"{_prog()}: names failed: {e}\n")
        return 1
    sys.stdout.write(f"name table: {_names_path()} ({count} names)\n")
    return 0


def _modes():
    from . import decompile, hexdump, script_item, strings, textmap

    return {
        ("-d", "--decompile"): (decompile.main, []),
        ("-t", "--strings"): (strings.main, []),
        ("-m", "--textmap"): (textmap.main, []),
        ("-x", "--hexdump"): (hexdump.main, []),
        ("-p", "--pack"): (script_item.main, ["--pack"]),
        ("-u", "--unpack"): (script_item.main, ["--unpack"]),
    }


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] in ("-V", "--version", "version"):
        _print_version()
        return 0
    if not argv:
        _usage_short()
        return 0
    if argv[0] in ("-h", "--help", "help"):
        _usage()
        return 0
    if len(argv) > 1 and argv[1] in ("-h", "--help", "help"):
        _usage()
        return 0
    mode = argv[0]

    if mode in ("names", "--names"):
        return _names(argv[1:])

    for aliases, (fn, prefix) in _modes().items():
        if mode in aliases:
            rc = fn(prefix + argv[1:])
            if rc == 2:
                _usage_short()
            return rc

    sys.stderr.write(f"{_prog()}: unknown mode: {mode}\n")
    _usage_short()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
