import io
import os
import sys

from . import lzss
from .common import (
    FormatError,
    ValidationError,
    align4,
    eprint,
    hint_help as _hint_help,
    hx,
    read_bytes,
    read_u32,
    split_opts,
    write_bytes,
    write_u32,
)
from .const import DEFAULT_SCRIPT
from .pak_format import PakFormat, pak_format_for
from .qb_item import ItemHeader, QbItemType, item_type_of, read_header, write_header
from .qbkey import QbKey
from .strings import scan_strings, update_strings


class ScriptItem:
    """A script section: opaque header fields plus an LZSS packed bytecode payload.

    ``payload`` is the only authoritative data; ``strings`` is derived from it on
    demand and dropped whenever the payload is replaced or strings are committed.
    """

    def __init__(self, pak_format: PakFormat = None):
        self.pak_format = pak_format or PakFormat()
        self.header = ItemHeader()
        self.unknown = 0
        self._payload = bytearray(DEFAULT_SCRIPT)
        self._strings = []
        self._strings_dirty = True

    @classmethod
    def create(cls, item_type=QbItemType.SECTION_SCRIPT, pak_format: PakFormat = None):
        if item_type_of(item_type) != QbItemType.SECTION_SCRIPT:
            raise FormatError(f"type '{item_type!r}' is not a script item type")
        return cls(pak_format)

    @classmethod
    def construct(cls, f, pak_format: PakFormat = None):
        item = cls(pak_format)
        item.read(f)
        return item

    @classmethod
    def from_bytes(cls, blob: bytes, pak_format: PakFormat = None):
        with io.BytesIO(bytes(blob)) as f:
            return cls.construct(f, pak_format)

    @property
    def item_key(self) -> QbKey:
        return self.header.item_key

    @item_key.setter
    def item_key(self, key):
        self.header.item_key = key if isinstance(key, QbKey) else QbKey(key)

    @property
    def payload(self) -> bytearray:
        return self._payload

    @payload.setter
    def payload(self, data):
        self._payload = bytearray(data)
        self._strings_dirty = True

    def read(self, f) -> None:
        endian = self.pak_format.endian
        header = read_header(f, endian)
        if item_type_of(header.item_type) != QbItemType.SECTION_SCRIPT:
            raise FormatError(
                "Location 0x%08X: type 0x%08X is not a script item type"
                % (f.tell() - header.length, header.item_type & 0xFFFFFFFF)
            )
        unknown = read_u32(f, endian)
        decompressed_size = read_u32(f, endian)
        compressed_size = read_u32(f, endian)
        data = f.read(compressed_size)
        if len(data) != compressed_size:
            raise FormatError(
                "Location 0x%08X: script truncated, %d of %d bytes"
                % (f.tell() - len(data), len(data), compressed_size)
            )
        if compressed_size < decompressed_size:
            try:
                data = lzss.decompress(data, decompressed_size)
            except FormatError as e:
                raise FormatError(
                    "Location 0x%08X: %s" % (f.tell() - compressed_size, e)
                ) from e
        if len(data) != decompressed_size:
            raise FormatError(
                "Location 0x%08X: Script decompressed to %d bytes not %d"
                % (f.tell() - compressed_size, len(data), decompressed_size)
            )
        pos = f.tell()
        if pos % 4:
            f.seek(4 - pos % 4, io.SEEK_CUR)
        self.header = header
        self.unknown = unknown
        self.payload = data

    def _packed(self) -> bytes:
        comp = lzss.compress(self._payload)
        if len(comp) >= len(self._payload):
            return bytes(self._payload)
        return comp

    @property
    def length(self) -> int:
        comp = len(lzss.compress(self._payload))
        return align4(self.header.length + 12 + min(comp, len(self._payload)))

    def write(self, out: bytearray) -> None:
        endian = self.pak_format.endian
        start = len(out)
        comp = self._packed()
        expected = align4(self.header.length + 12 + len(comp))
        write_header(out, self.header, endian)
        write_u32(out, self.unknown, endian)
        write_u32(out, len(self._payload), endian)
        write_u32(out, len(comp), endian)
        out.extend(comp)
        pad = (len(out) - start) % 4
        if pad:
            out.extend(b"\x00" * (4 - pad))
        written = len(out) - start
        if written != expected:
            raise FormatError(
                f"script item length check failed: wrote {written} bytes, predicted {expected}"
            )

    def to_bytes(self) -> bytes:
        out = bytearray()
        self.write(out)
        return bytes(out)

    @property
    def strings(self):
        if self._strings_dirty:
            self._strings = scan_strings(self._payload, self.pak_format)
            self._strings_dirty = False
        return self._strings

    def update_strings(self) -> int:
        if self._strings_dirty:
            if any(ss.edited for ss in self._strings):
                raise ValidationError(
                    "strings were invalidated by a payload change, re-scan before committing"
                )
            return 0
        changes = update_strings(self._payload, self._strings, self.pak_format)
        self._strings_dirty = True
        return changes

    def decompile(self, debug_names=None, global_names=None) -> str:
        from .decompile import decompile

        return decompile(self._payload, debug_names, global_names)

    def clone(self) -> "ScriptItem":
        sc = ScriptItem(self.pak_format)
        sc.header = self.header.clone()
        sc.unknown = self.unknown
        sc.payload = bytes(self._payload)
        return sc


def load_payload(item: ScriptItem, path: str) -> None:
    item.payload = read_bytes(path)


def save_payload(item: ScriptItem, path: str) -> None:
    write_bytes(path, bytes(item.payload))


def load_item_from_cli(path: str, record: bool, vals: dict) -> ScriptItem:
    fmt = pak_format_for(vals.get("platform") or "pc", vals.get("chars") or "")
    blob = read_bytes(path)
    if record:
        return ScriptItem.from_bytes(blob, fmt)
    item = ScriptItem(fmt)
    item.payload = blob
    return item


def _pack(args, vals) -> int:
    src, dst = args
    fmt = pak_format_for(vals.get("platform") or "pc")
    item = ScriptItem(fmt)
    load_payload(item, src)
    if vals.get("key"):
        item.item_key = QbKey.parse(vals["key"])
    if vals.get("unknown"):
        item.unknown = int(vals["unknown"], 0)
    blob = item.to_bytes()
    write_bytes(dst, blob)
    print(f"pack: {len(item.payload)} -> {len(blob)} bytes")
    return 0


def _unpack(args, vals) -> int:
    src, dst = args
    item = load_item_from_cli(src, True, vals)
    save_payload(item, dst)
    print(f"unpack: key={item.item_key.hex} unknown={hx(item.unknown)} size={len(item.payload)}")
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
            {"--pack": "pack", "--unpack": "unpack"},
            {"--platform": "platform", "--key": "key", "--unknown": "unknown"},
        )
    except ValueError as e:
        eprint(f"script: {e}")
        return 2
    if len(seen) != 1 or len(args) != 2:
        eprint("script: expected one of --pack/--unpack and 2 path arguments")
        _hint_help()
        return 2
    if not os.path.isfile(args[0]):
        eprint(f"script: file not found: {args[0]}")
        return 1
    try:
        if "pack" in seen:
            return _pack(args, vals)
        return _unpack(args, vals)
    except (ValueError, EOFError) as e:
        eprint(f"script: {os.path.basename(args[0])}: {e}")
        return 1
