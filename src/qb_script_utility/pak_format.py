from dataclasses import dataclass
from enum import IntEnum

from .const import ALLOWED_STRING_CHARS


class PakFormatType(IntEnum):
    WII = 0
    PC = 1
    XBOX = 2
    XBOX_XBX = 3
    PS2 = 4
    PC_WPC = 5


_PLATFORM_ENDIAN = {
    PakFormatType.WII: ">",
    PakFormatType.PC: "<",
    PakFormatType.XBOX: ">",
    PakFormatType.XBOX_XBX: "<",
    PakFormatType.PS2: "<",
    PakFormatType.PC_WPC: "<",
}

_PLATFORM_ALIASES = {
    "wii": PakFormatType.WII,
    "pc": PakFormatType.PC,
    "xbox": PakFormatType.XBOX,
    "xbox360": PakFormatType.XBOX,
    "x360": PakFormatType.XBOX,
    "xbx": PakFormatType.XBOX_XBX,
    "xbox_xbx": PakFormatType.XBOX_XBX,
    "ps2": PakFormatType.PS2,
    "wpc": PakFormatType.PC_WPC,
    "pc_wpc": PakFormatType.PC_WPC,
}


@dataclass(frozen=True)
class PakFormat:
    platform: PakFormatType = PakFormatType.PC
    endian: str = ""
    allowed_chars: str = ""

    def __post_init__(self):
        object.__setattr__(self, "platform", PakFormatType(int(self.platform)))
        if self.endian not in ("<", ">"):
            object.__setattr__(self, "endian", _PLATFORM_ENDIAN[self.platform])
        if not self.allowed_chars:
            object.__setattr__(self, "allowed_chars", ALLOWED_STRING_CHARS)

    @property
    def big_endian(self) -> bool:
        return self.endian == ">"

    @property
    def allows_wide(self) -> bool:
        return self.platform in (PakFormatType.PC, PakFormatType.XBOX)

    @property
    def wide_codec(self) -> str:
        return "utf-16-be" if self.big_endian else "utf-16-le"


def parse_platform(name) -> PakFormatType:
    if isinstance(name, PakFormatType):
        return name
    s = str(name or "").strip().lower().replace("-", "_")
    if s in _PLATFORM_ALIASES:
        return _PLATFORM_ALIASES[s]
    try:
        return PakFormatType[s.upper()]
    except KeyError:
        raise ValueError(f"unknown platform: {name}") from None


def pak_format_for(platform="pc", allowed_chars: str = "") -> PakFormat:
    return PakFormat(parse_platform(platform), allowed_chars=allowed_chars or "")
