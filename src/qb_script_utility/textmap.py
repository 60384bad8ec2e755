import csv
import os
import sys

from .common import (
    ValidationError,
    eprint,
    hint_help as _hint_help,
    iter_files_by_ext,
    split_opts,
    write_bytes,
)

FIELDS = ["index", "pos", "length", "unicode", "original", "replacement"]


def _write_map(csv_path: str, strings):
    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
    with open(csv_path, "w", encoding="utf-8-sig", newline="") as f:
        w = csv.writer(f)
        w.writerow(FIELDS)
        for i, ss in enumerate(strings or []):
            w.writerow([i, "0x%X" % ss.pos, ss.length, int(ss.is_unicode), ss.text, ss.text])


def _read_map(csv_path: str):
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f))


def _apply_map(strings, rows, filename: str = ""):
    """Copy replacements onto the matching strings; returns the number touched."""
    changes = 0
    for row in rows or []:
        try:
            idx = int(row.get("index", ""))
        except (TypeError, ValueError):
            continue
        if idx < 0 or idx >= len(strings):
            eprint(f"textmap: {filename}: index {idx} out of range", errors="replace")
            continue
        ss = strings[idx]
        pos = row.get("pos")
        try:
            moved = bool(pos) and int(pos, 0) != ss.pos
        except ValueError:
            moved = True
        if moved:
            eprint(
                "textmap: %s: skip index %d (offset mismatch: 0x%X vs %s)"
                % (filename, idx, ss.pos, pos),
                errors="replace",
            )
            continue
        original = row.get("original", ss.text)
        replacement = row.get("replacement")
        if replacement is None:
            replacement = original
        if replacement == original:
            continue
        if ss.text != original:
            eprint(
                "textmap: %s: skip index %d (text mismatch: '%s' vs '%s')"
                % (filename, idx, ss.text, original),
                errors="replace",
            )
            continue
        ss.text = replacement
        changes += 1
    return changes


def _process(path: str, apply_mode: bool, record: bool, vals: dict) -> int:
    from .script_item import load_item_from_cli

    fname = os.path.basename(path)
    try:
        item = load_item_from_cli(path, record, vals)
    except (ValueError, EOFError) as e:
        eprint(f"textmap: {fname}: {e}", errors="replace")
        return 1
    csv_path = path + ".csv"
    if not apply_mode:
        _write_map(csv_path, item.strings)
        print(csv_path)
        return 0
    if not os.path.exists(csv_path):
        eprint(f"textmap: map file not found: {csv_path}", errors="replace")
        return 1
    rows = _read_map(csv_path)
    count = _apply_map(item.strings, rows, filename=fname)
    if count == 0:
        eprint(f"textmap: {fname}: no changes to apply", errors="replace")
        return 0
    try:
        item.update_strings()
    except ValidationError as e:
        eprint(f"textmap: {fname}: {e}", errors="replace")
        return 1
    out = item.to_bytes() if record else bytes(item.payload)
    try:
        write_bytes(path, out)
    except OSError:
        eprint(f"textmap: {fname}: write failed", errors="replace")
        return 1
    print(f"textmap: applied {count} changes")
    return 0


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if not argv or argv[0] in ("-h", "--help", "help"):
        _hint_help(sys.stdout)
        return 0
    try:
        seen, vals, args = split_opts(
            argv,
            {"--apply": "apply", "-a": "apply", "--record": "record"},
            {"--platform": "platform", "--chars": "chars", "--ext": "ext"},
        )
    except ValueError as e:
        eprint(f"textmap: {e}", errors="replace")
        return 2
    if len(args) != 1:
        eprint("textmap: expected exactly 1 path argument", errors="replace")
        _hint_help()
        return 2
    path = args[0]
    apply_mode = "apply" in seen
    record = "record" in seen
    if os.path.isdir(path):
        ext = vals.get("ext") or (".qbr" if record else ".qbs")
        files = iter_files_by_ext(path, [ext if ext.startswith(".") else "." + ext])
        if not files:
            eprint(f"textmap: no {ext} files found in: {path}", errors="replace")
            return 1
        errors = 0
        for file_path in files:
            if _process(file_path, apply_mode, record, vals) != 0:
                errors += 1
        return 1 if errors else 0
    if not os.path.exists(path):
        eprint(f"textmap: file not found: {path}", errors="replace")
        return 1
    return _process(path, apply_mode, record, vals)
