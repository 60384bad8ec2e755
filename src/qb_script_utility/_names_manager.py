import os
from pathlib import Path

from .qbkey import QbKey

NAMES_FILE = "debug_names.txt"


def _names_path() -> Path:
    if os.name == "nt":
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / "qb-ssu" / NAMES_FILE
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "qb-ssu" / NAMES_FILE


def names_exist() -> bool:
    return _names_path().is_file()


def parse_debug_names(text: str) -> dict:
    """Parse ``checksum name`` or bare ``name`` lines into a checksum -> name table."""
    out = {}
    for raw in str(text or "").splitlines():
        s = raw.strip()
        if not s or s.startswith(("#", ";", "//")):
            continue
        parts = s.split(None, 1)
        if len(parts) == 2:
            h = parts[0]
            if h.startswith("$"):
                h = h[1:]
            elif h.lower().startswith("0x"):
                h = h[2:]
            try:
                out[int(h, 16) & 0xFFFFFFFF] = parts[1].strip()
                continue
            except ValueError:
                pass
        k = QbKey.from_text(s)
        out[k.crc] = s
    return out


def load_debug_names(path=None) -> dict:
    p = Path(path) if path else _names_path()
    if not p.is_file():
        raise FileNotFoundError(f"Missing debug name table. Expected at: {p}")
    return parse_debug_names(p.read_text(encoding="utf-8", errors="replace"))


def add_debug_name(name: str, path=None) -> Path:
    """Append ``name`` to the user table unless its checksum is already known."""
    p = Path(path) if path else _names_path()
    k = QbKey.from_text(name)
    if p.is_file() and k.crc in load_debug_names(p):
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8", newline="\n") as f:
        f.write(f"0x{k.hex} {name}\n")
    return p
