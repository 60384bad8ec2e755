import os
import sys
from dataclasses import dataclass, field

from .common import ValidationError, eprint, hint_help as _hint_help, split_opts
from .pak_format import PakFormat

NARROW_CODEC = "latin-1"
_MIN_NARROW = 4
_MIN_WIDE = 8


@dataclass
class ScriptString:
    text: str
    pos: int
    length: int
    is_unicode: bool
    original: str = field(default=None, repr=False)

    def __post_init__(self):
        if self.original is None:
            self.original = self.text

    @property
    def byte_length(self) -> int:
        return self.length * 2 if self.is_unicode else self.length

    @property
    def edited(self) -> bool:
        return self.text != self.original


def _decode(b: bytes, is_unicode: bool, pak_format: PakFormat) -> str:
    if not is_unicode:
        return b.decode(NARROW_CODEC)
    return b.decode(pak_format.wide_codec, "replace")


def _encode(s: str, is_unicode: bool, pak_format: PakFormat) -> bytes:
    if not is_unicode:
        return s.encode(NARROW_CODEC)
    return s.encode(pak_format.wide_codec)


def _add(out, data, start: int, end: int, is_unicode: bool, pak_format: PakFormat):
    if is_unicode and (end - start) % 2:
        end -= 1
    s = _decode(bytes(data[start:end]), is_unicode, pak_format)
    out.append(ScriptString(s, start, len(s), is_unicode))


def scan_strings(data, pak_format: PakFormat = None):
    fmt = pak_format or PakFormat()
    allowed = fmt.allowed_chars
    au = fmt.allows_wide
    ub = au and fmt.big_endian
    n = len(data)
    out = []
    s = -1
    u = False
    end = False
    i = 0
    while i < n:
        c = chr(data[i])
        # zero high byte followed by another two bytes on: big endian wide text
        if ub and s == -1 and c == "\0" and i + 2 < n and data[i + 2] == 0:
            s = i
            u = True
            i += 1
            c = chr(data[i])
        if s != -1:
            if c not in allowed:
                end = True
        elif c in allowed:
            s = i
            if au and not ub and i + 2 < n and data[i + 1] == 0:
                u = True
        if u and not end:
            if i + 1 < n and data[i + 1] == 0:
                i += 1
            else:
                end = True
        if end or (s != -1 and i == n - 1):
            if (not u and i - s > _MIN_NARROW) or (u and i - s > _MIN_WIDE):
                if u and (i - s) % 2:
                    i -= 1
                if i == n - 1 and c != "$":
                    i += 1
                _add(out, data, s, i, u, fmt)
            u = False
            s = -1
            end = False
        i += 1
    return out


def _prepare(ss: ScriptString, pak_format: PakFormat):
    if not isinstance(ss.text, str):
        raise ValidationError(f"string at 0x{ss.pos:X}: text must be str")
    text = ss.text.ljust(ss.length, " ")[: ss.length]
    bad = sorted({ch for ch in ss.text[: ss.length] if ch not in pak_format.allowed_chars})
    if bad:
        raise ValidationError(
            f"string at 0x{ss.pos:X}: characters not allowed: {''.join(bad)!r}"
        )
    try:
        b = _encode(text, ss.is_unicode, pak_format)
    except UnicodeEncodeError as e:
        raise ValidationError(f"string at 0x{ss.pos:X}: {e}") from e
    if len(b) != ss.byte_length:
        raise ValidationError(
            f"string at 0x{ss.pos:X}: encodes to {len(b)} bytes, slot is {ss.byte_length}"
        )
    return text, b


def update_strings(payload: bytearray, strings, pak_format: PakFormat = None) -> int:
    fmt = pak_format or PakFormat()
    n = len(payload)
    staged = []
    for ss in strings or []:
        # untouched runs keep their bytes even where decoding was lossy
        if not ss.edited:
            continue
        text, b = _prepare(ss, fmt)
        if ss.pos < 0 or ss.pos + len(b) > n:
            raise ValidationError(f"string at 0x{ss.pos:X}: outside payload")
        staged.append((ss, text, b))
    changes = 0
    for ss, text, b in staged:
        if payload[ss.pos : ss.pos + len(b)] != b:
            changes += 1
        payload[ss.pos : ss.pos + len(b)] = b
        ss.text = text
        ss.original = text
    return changes


def _escape_preview(s: str) -> str:
    return (
        str(s or "")
        .replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )


def format_strings(strings) -> str:
    lines = []
    for i, ss in enumerate(strings or []):
        kind = "W" if ss.is_unicode else "A"
        lines.append(
            "[%04d] 0x%08X %s %4d  %s"
            % (i, ss.pos, kind, ss.length, _escape_preview(ss.text))
        )
    return "\n".join(lines)


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
            {"--platform": "platform", "--chars": "chars"},
        )
    except ValueError as e:
        eprint(f"strings: {e}")
        return 2
    if len(args) != 1:
        eprint("strings: expected exactly 1 path argument")
        _hint_help()
        return 2
    path = args[0]
    if not os.path.isfile(path):
        eprint(f"strings: file not found: {path}")
        return 1
    try:
        item = load_item_from_cli(path, "record" in seen, vals)
    except (ValueError, EOFError) as e:
        eprint(f"strings: {os.path.basename(path)}: {e}")
        return 1
    text = format_strings(item.strings)
    if text:
        print(text)
    print(f"strings: {len(item.strings)} found")
    return 0
