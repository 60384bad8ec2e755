from dataclasses import dataclass, field
from enum import IntEnum

from .common import FormatError, read_u32, write_u32
from .qbkey import QbKey

HEADER_LENGTH = 20


class QbItemType(IntEnum):
    SECTION_INTEGER = 0x00200100
    SECTION_FLOAT = 0x00200200
    SECTION_STRING = 0x00200300
    SECTION_WSTRING = 0x00200400
    SECTION_VECTOR2 = 0x00200500
    SECTION_VECTOR3 = 0x00200600
    SECTION_SCRIPT = 0x00200700
    SECTION_STRUCT = 0x00200A00
    SECTION_ARRAY = 0x00200C00
    SECTION_QBKEY = 0x00200D00


def item_type_of(tag):
    try:
        return QbItemType(int(tag))
    except ValueError:
        return None


@dataclass
class ItemHeader:
    item_type: int = QbItemType.SECTION_SCRIPT
    item_key: QbKey = field(default_factory=lambda: QbKey(0))
    file_id: int = 0
    data_pointer: int = 0
    next_pointer: int = 0

    @property
    def length(self) -> int:
        return HEADER_LENGTH

    def clone(self) -> "ItemHeader":
        return ItemHeader(
            int(self.item_type),
            self.item_key.clone(),
            self.file_id,
            self.data_pointer,
            self.next_pointer,
        )


def read_header(f, endian: str) -> ItemHeader:
    item_type = read_u32(f, endian)
    key = read_u32(f, endian)
    file_id = read_u32(f, endian)
    data_pointer = read_u32(f, endian)
    next_pointer = read_u32(f, endian)
    return ItemHeader(item_type, QbKey(key), file_id, data_pointer, next_pointer)


def write_header(out: bytearray, header: ItemHeader, endian: str) -> None:
    write_u32(out, header.item_type, endian)
    write_u32(out, header.item_key.crc, endian)
    write_u32(out, header.file_id, endian)
    write_u32(out, header.data_pointer, endian)
    write_u32(out, header.next_pointer, endian)


def _handlers():
    from .script_item import ScriptItem

    return {QbItemType.SECTION_SCRIPT: ScriptItem}


def handler_for(tag):
    t = item_type_of(tag)
    cls = _handlers().get(t) if t is not None else None
    if cls is None:
        raise FormatError(f"type 0x{int(tag) & 0xFFFFFFFF:08X} is not a supported item type")
    return cls


def create_item(item_type, pak_format=None):
    return handler_for(item_type).create(item_type, pak_format)


def construct_item(f, pak_format):
    pos = f.tell()
    tag = read_u32(f, pak_format.endian)
    f.seek(pos)
    return handler_for(tag).construct(f, pak_format)
