"""MD5 message digest, computed from scratch.

The engine pads a complete in-memory message, splits it into 64-byte
blocks and folds each block into a four-word state (a, b, c, d) with the
64-step compression function of RFC 1321. The compression function can
also run a reduced number of rounds (1–4 rounds = 16 steps each), which is
what the CNF model in ``collider`` is checked against.

Only the low 32 bits of the message bit-length are written into the
padding. Messages of 2**29 bytes or more therefore get a wrapped length
field and a digest that differs from RFC 1321, matching
digests produced by earlier releases.
"""
import logging
import math

logger = logging.getLogger(__name__)

MASK32 = 0xffffffff
BLOCK_SIZE = 64
MAX_EXACT_LENGTH = 1 << 29


def to_hex(data):
    """Encode bytes as lowercase hex, two characters per byte."""
    return bytes(data).hex()


class MD5:

    # Initial state (IV), low-order bytes first: 01 23 45 67, 89 ab cd ef, ...
    IV = (0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476)

    # Per-step left-rotation amounts (RFC 1321), four groups of four repeated
    S = tuple(s for group in ((7, 12, 17, 22),
                              (5, 9, 14, 20),
                              (4, 11, 16, 23),
                              (6, 10, 15, 21)) for s in group * 4)

    # Sine-derived constants: floor(2^32 · |sin(i+1)|)
    K = tuple(int(4294967296 * abs(math.sin(i + 1))) & MASK32 for i in range(64))

    def __init__(self):
        """Initialize to the MD5 initial vector (IV)."""
        self.a, self.b, self.c, self.d = MD5.IV

    @staticmethod
    def F(b, c, d, i):
        """MD5 non-linear boolean function selected by step index i.

        Round 0 (i < 16): (b & c) | (~b & d)
        Round 1 (i < 32): (d & b) | (~d & c)
        Round 2 (i < 48): b ^ c ^ d
        Round 3 (i < 64): c ^ (b | ~d)
        """
        if i < 16:
            return ((b & c) | (~b & d)) & MASK32
        elif i < 32:
            return ((d & b) | (~d & c)) & MASK32
        elif i < 48:
            return b ^ c ^ d
        elif i < 64:
            return (c ^ (b | ~d)) & MASK32
        else:
            raise ValueError("Invalid loop index")

    @staticmethod
    def message_index(i):
        """Return which of the block's 16 words step i consumes."""
        if i < 16:
            return i
        elif i < 32:
            return (5*i + 1) % 16
        elif i < 48:
            return (3*i + 5) % 16
        return (7*i) % 16

    @staticmethod
    def ROT(x, n):
        """Rotate x left by n bits, modulo 2^32."""
        x = x & MASK32
        return ((x << n) | (x >> (32 - n))) & MASK32

    @staticmethod
    def md5_iteration(a, b, c, d, x, i):
        """Perform one MD5 step i on state (a,b,c,d) with message word x."""
        temp = (a + MD5.F(b, c, d, i) + MD5.K[i] + x) & MASK32
        b_new = (b + MD5.ROT(temp, MD5.S[i])) & MASK32
        return d, b_new, b, c

    @staticmethod
    def padded_length(length):
        """Smallest multiple of 64 that holds the message, 0x80 and the length field."""
        return (length + 9 + BLOCK_SIZE - 1) // BLOCK_SIZE * BLOCK_SIZE

    @staticmethod
    def length_field(length):
        """Eight-byte length suffix: (length·8) mod 2^32 little-endian, then four zero bytes."""
        return ((length * 8) & MASK32).to_bytes(4, 'little') + bytes(4)

    @staticmethod
    def md5_padded(input_bytes):
        """Return input_bytes padded to a multiple of 64 bytes.

        Padding: 0x80 byte, zero bytes, then (len·8) mod 2^32 as four
        little-endian bytes followed by four zero bytes.
        """
        length = len(input_bytes)
        if length >= MAX_EXACT_LENGTH:
            logger.warning("message of %d bytes exceeds the 32-bit length field; "
                           "digest will not match RFC 1321", length)
        total = MD5.padded_length(length)
        out = bytearray(total)
        out[:length] = input_bytes
        out[length] = 0x80
        out[total - 8:] = MD5.length_field(length)
        return bytes(out)

    @staticmethod
    def words(block):
        """Split a 64-byte block into 16 little-endian 32-bit words."""
        return [int.from_bytes(block[k:k + 4], 'little') for k in range(0, BLOCK_SIZE, 4)]

    def md5_chunk(self, input_bytes, num_rounds=4):
        """Process one 64-byte chunk and update internal state."""
        assert num_rounds in [1, 2, 3, 4]
        assert len(input_bytes) == BLOCK_SIZE
        x = MD5.words(input_bytes)
        a, b, c, d = self.a, self.b, self.c, self.d

        for i in range(num_rounds * 16):
            a, b, c, d = MD5.md5_iteration(a, b, c, d, x[MD5.message_index(i)], i)

        # feed-forward: add this block's result to the state it started from
        self.a = (self.a + a) & MASK32
        self.b = (self.b + b) & MASK32
        self.c = (self.c + c) & MASK32
        self.d = (self.d + d) & MASK32

    def compress(self, padded_bytes, num_rounds=4):
        """Fold already padded bytes into the state, block by block."""
        assert len(padded_bytes) % BLOCK_SIZE == 0
        for i in range(0, len(padded_bytes), BLOCK_SIZE):
            self.md5_chunk(padded_bytes[i:i + BLOCK_SIZE], num_rounds)
        return self

    def digest(self):
        """Serialize the state as 16 bytes, each register little-endian."""
        return b"".join(r.to_bytes(4, 'little') for r in (self.a, self.b, self.c, self.d))

    def md5_digest(self, input_bytes, num_rounds=4):
        """Compute the MD5 digest of input_bytes as a 128-bit integer.

        The return value packs a,b,c,d (little-endian words) into a big-endian
        integer, so ``format(value, '032x')`` is the usual hex digest.
        """
        self.compress(MD5.md5_padded(input_bytes), num_rounds)
        return int.from_bytes(self.digest(), 'big')

    def hexdigest(self, input_bytes):
        """Pad and hash input_bytes; return 32 lowercase hex characters."""
        self.compress(MD5.md5_padded(input_bytes))
        return to_hex(self.digest())
