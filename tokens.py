"""Random tokens: UUID v4, hex, URL-safe base64 alphabet, or digits.

Tokens come from ``secrets`` unless a seed is given, in which case a small
deterministic 32-bit generator is used and equal seeds give equal tokens.
Seeded tokens are for fixtures and demos, not for secrets.
"""
import secrets

from errors import InvalidTokenType
from md5 import MASK32, to_hex

HEX_ALPHABET = '0123456789abcdef'
BASE64_URL_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_'
NUM_ALPHABET = '0123456789'

_ALPHABETS = {
    'hex': HEX_ALPHABET,
    'base64': BASE64_URL_ALPHABET,
    'numeric': NUM_ALPHABET,
}
TOKEN_TYPES = ('uuid',) + tuple(_ALPHABETS)


def _imul(a, b):
    return (a * b) & MASK32


def seeded_rng(seed):
    """Deterministic generator of 32-bit values; FNV-1a seeds a mulberry32 step."""
    h = 2166136261
    # hash UTF-16 code units so characters outside the BMP count as two
    data = str(seed).encode('utf-16-le', 'surrogatepass')
    for i in range(0, len(data), 2):
        h = _imul(h ^ int.from_bytes(data[i:i + 2], 'little'), 16777619)

    def next_value():
        nonlocal h
        h = (h + 0x6d2b79f5) & MASK32
        t = _imul(h ^ (h >> 15), 1 | h)
        t ^= (t + _imul(t ^ (t >> 7), 61 | t)) & MASK32
        return t ^ (t >> 14)

    return next_value


def crypto_rng():
    return lambda: secrets.randbits(32)


def random_chars(alphabet, length, rng):
    n = len(alphabet)
    return ''.join(alphabet[rng() % n] for _ in range(length))


def uuid4(rng):
    """RFC 4122 version 4 UUID string drawn from rng."""
    raw = bytearray(rng() & 0xff for _ in range(16))
    raw[6] = (raw[6] & 0x0f) | 0x40
    raw[8] = (raw[8] & 0x3f) | 0x80
    h = to_hex(raw)
    return f'{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:]}'


def generate_token(kind='uuid', length=32, seed=None):
    """Return a token of the given kind; length is ignored for uuid."""
    if kind not in TOKEN_TYPES:
        raise InvalidTokenType("Invalid token type. Use 'uuid', 'hex', 'base64', or 'numeric'.")
    rng = seeded_rng(seed) if seed else crypto_rng()
    if kind == 'uuid':
        return uuid4(rng)
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    return random_chars(_ALPHABETS[kind], length, rng)
