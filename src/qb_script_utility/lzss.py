from .common import FormatError

RING_SIZE = 0x1000
RING_MASK = RING_SIZE - 1
MAX_MATCH = 18
MIN_MATCH = 3
RING_START = RING_SIZE - MAX_MATCH
WINDOW = RING_SIZE - MAX_MATCH
_CHAIN = 64


def lzss_unpack(data: bytes) -> bytes:
    src = bytes(data or b"")
    n = len(src)
    ring = bytearray(b" " * RING_SIZE)
    r = RING_START
    out = bytearray()
    ap = out.append
    p = 0
    flags = 0
    while True:
        flags >>= 1
        if not flags & 0x100:
            if p >= n:
                break
            flags = src[p] | 0xFF00
            p += 1
        if flags & 1:
            if p >= n:
                break
            c = src[p]
            p += 1
            ap(c)
            ring[r] = c
            r = (r + 1) & RING_MASK
            continue
        if p + 1 >= n:
            break
        i = src[p] | ((src[p + 1] & 0xF0) << 4)
        ln = (src[p + 1] & 0x0F) + MIN_MATCH
        p += 2
        for k in range(ln):
            c = ring[(i + k) & RING_MASK]
            ap(c)
            ring[r] = c
            r = (r + 1) & RING_MASK
    return bytes(out)


def lzss_pack(data: bytes, level: int = MAX_MATCH) -> bytes:
    src = bytes(data or b"")
    n = len(src)
    max_len = max(MIN_MATCH, min(int(level), MAX_MATCH))
    out = bytearray()
    heads = {}
    flag_pos = -1
    bit = 8
    i = 0
    while i < n:
        if bit == 8:
            flag_pos = len(out)
            out.append(0)
            bit = 0
        best_len = 0
        best_pos = 0
        lim = min(max_len, n - i)
        if lim >= MIN_MATCH:
            cands = heads.get(src[i : i + MIN_MATCH])
            if cands:
                for p in reversed(cands):
                    if i - p > WINDOW:
                        break
                    ln = MIN_MATCH
                    while ln < lim and src[p + ln] == src[i + ln]:
                        ln += 1
                    if ln > best_len:
                        best_len = ln
                        best_pos = p
                        if ln == lim:
                            break
        if best_len >= MIN_MATCH:
            slot = (RING_START + best_pos) & RING_MASK
            out.append(slot & 0xFF)
            out.append(((slot >> 4) & 0xF0) | (best_len - MIN_MATCH))
            step = best_len
        else:
            out[flag_pos] |= 1 << bit
            out.append(src[i])
            step = 1
        bit += 1
        for j in range(i, min(i + step, n - MIN_MATCH + 1)):
            lst = heads.setdefault(src[j : j + MIN_MATCH], [])
            lst.append(j)
            if len(lst) > _CHAIN * 2:
                del lst[:-_CHAIN]
        i += step
    return bytes(out)


def compress(data: bytes) -> bytes:
    return lzss_pack(data)


def decompress(data: bytes, expected_length: int) -> bytes:
    out = lzss_unpack(data)
    if len(out) != int(expected_length):
        raise FormatError(
            f"lzss: decompressed to {len(out)} bytes not {int(expected_length)}"
        )
    return out
