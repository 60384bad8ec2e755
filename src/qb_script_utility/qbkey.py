import zlib


class QbKey:
    __slots__ = ("crc", "text")

    def __init__(self, crc, text: str = None):
        self.crc = int(crc) & 0xFFFFFFFF
        self.text = text

    @classmethod
    def from_text(cls, text: str) -> "QbKey":
        # Neversoft keys are a CRC32 without the final inversion.
        s = str(text or "").lower().replace("/", "\\")
        crc = zlib.crc32(s.encode("latin-1", "replace")) ^ 0xFFFFFFFF
        return cls(crc, text)

    @classmethod
    def parse(cls, s: str) -> "QbKey":
        t = str(s or "").strip()
        prefixed = False
        if t.startswith("$"):
            t = t[1:]
            prefixed = True
        elif t.lower().startswith("0x"):
            t = t[2:]
            prefixed = True
        if t and (len(t) == 8 or (prefixed and len(t) < 8)):
            try:
                return cls(int(t, 16))
            except ValueError:
                pass
        return cls.from_text(s)

    @property
    def hex(self) -> str:
        return f"{self.crc:08X}"

    def clone(self) -> "QbKey":
        return QbKey(self.crc, self.text)

    def __int__(self):
        return self.crc

    def __eq__(self, other):
        if isinstance(other, QbKey):
            return self.crc == other.crc
        if isinstance(other, int):
            return self.crc == (other & 0xFFFFFFFF)
        return NotImplemented

    def __hash__(self):
        return hash(self.crc)

    def __str__(self):
        return self.text if self.text else self.hex

    def __repr__(self):
        if self.text:
            return f"QbKey(0x{self.hex}, {self.text!r})"
        return f"QbKey(0x{self.hex})"


def key_string(checksum, debug_names=None, global_names=None) -> str:
    c = int(checksum) & 0xFFFFFFFF
    if debug_names and c in debug_names:
        return debug_names[c]
    if global_names and c in global_names:
        return global_names[c]
    return "$" + QbKey(c).hex
