"""CNF encoding of the MD5 compression core using PySAT.

The encoding mirrors ``md5.MD5`` step for step (same sine constants, shift
table and message schedule) over one or more 64-byte blocks. Words are
lists of literals, least significant bit first, so negation is a sign flip
and rotation is only a re-ordering of literals. It supports:
  - fixing some or all input bytes (optionally flipping chosen bits),
  - optionally constraining the final digest,
  - running a reduced number of rounds,
then asks a SAT solver for a satisfying assignment. With every input bit
fixed the solution digest must equal the engine's digest, which makes the
model a bit-level cross-check of the 32-bit arithmetic.
"""
import logging
from threading import Timer

from pysat.solvers import Solver

from md5 import BLOCK_SIZE, MD5

logger = logging.getLogger(__name__)


class MD5Collider:
    """Builder that encodes MD5 as CNF and solves it with a SAT solver.

    Parameters
    - input_bytes: padded message bytes (a multiple of 64) or None for a
                   single unconstrained block.
    - exclude_input_bits: bit positions, counted from the most significant
                   bit of the first byte. Those bits are forced to differ
                   from input_bytes instead of being equal to it.
    - target_digest: optional 128-bit integer in the form returned by
                   ``MD5.md5_digest``; the final state is constrained to it.
    """

    def __init__(self, input_bytes, exclude_input_bits=(), target_digest=None, solver_name='g4'):
        assert input_bytes is None or len(input_bytes) % BLOCK_SIZE == 0
        num_blocks = len(input_bytes) // BLOCK_SIZE if input_bytes is not None else 1
        self.solver = Solver(name=solver_name)
        self.top = 0
        self.true = self.new_var()
        self.solver.add_clause([self.true])
        self.target_digest = target_digest
        self.message = [self.new_word(8) for _ in range(num_blocks * BLOCK_SIZE)]
        self.state = [self.constant(word) for word in MD5.IV]

        if input_bytes is not None:
            flipped = {}
            for bit in exclude_input_bits:
                flipped.setdefault(bit // 8, set()).add(7 - bit % 8)
            for pos, value in enumerate(input_bytes):
                self.fix(self.message[pos], value, flipped.get(pos, ()))

    def new_var(self):
        self.top += 1
        return self.top

    def new_word(self, width=32):
        return [self.new_var() for _ in range(width)]

    def constant(self, value, width=32):
        """A word of constant literals built from the always-true variable."""
        return [self.true if (value >> i) & 1 else -self.true for i in range(width)]

    def fix(self, word, value, flipped=()):
        """Constrain word to value; bits in flipped are constrained to the opposite."""
        for i, lit in enumerate(word):
            bit = (value >> i) & 1
            if i in flipped:
                bit ^= 1
            self.solver.add_clause([lit if bit else -lit])

    # Single-bit gates. Each returns its output literal.

    def and_bit(self, a, b, c=None):
        c = c or self.new_var()
        self.solver.add_clause([-a, -b, c])
        self.solver.add_clause([a, -c])
        self.solver.add_clause([b, -c])
        return c

    def or_bit(self, a, b, c=None):
        c = c or self.new_var()
        self.solver.add_clause([a, b, -c])
        self.solver.add_clause([-a, c])
        self.solver.add_clause([-b, c])
        return c

    def xor_bit(self, a, b, c=None):
        c = c or self.new_var()
        self.solver.add_clause([-a, -b, -c])
        self.solver.add_clause([a, b, -c])
        self.solver.add_clause([a, -b, c])
        self.solver.add_clause([-a, b, c])
        return c

    # Word operations.

    def and_(self, a, b):
        return [self.and_bit(x, y) for x, y in zip(a, b)]

    def or_(self, a, b):
        return [self.or_bit(x, y) for x, y in zip(a, b)]

    def xor(self, a, b):
        return [self.xor_bit(x, y) for x, y in zip(a, b)]

    @staticmethod
    def not_(a):
        return [-x for x in a]

    @staticmethod
    def rotl(a, n):
        """Rotate left by n bits; bit i of the input lands on bit (i+n) mod width."""
        n %= len(a)
        return a[-n:] + a[:-n] if n else list(a)

    def add(self, a, b):
        """Ripple-carry sum of two words modulo 2^width."""
        assert len(a) == len(b)
        out = []
        carry = None
        for i, (x, y) in enumerate(zip(a, b)):
            half = self.xor_bit(x, y)
            if carry is None:
                out.append(half)
                carry = self.and_bit(x, y)
                continue
            out.append(self.xor_bit(half, carry))
            if i < len(a) - 1:
                carry = self.or_bit(self.and_bit(x, y), self.and_bit(half, carry))
        return out

    def add_F(self, b, c, d, i):
        """CNF version of MD5's round-dependent boolean function."""
        if i < 16:
            return self.or_(self.and_(b, c), self.and_(self.not_(b), d))
        elif i < 32:
            return self.or_(self.and_(d, b), self.and_(self.not_(d), c))
        elif i < 48:
            return self.xor(self.xor(b, c), d)
        elif i < 64:
            return self.xor(c, self.or_(b, self.not_(d)))
        else:
            raise ValueError("Invalid loop index")

    def message_word(self, block, g):
        """Little-endian word g of block: byte 4g supplies the low bits."""
        start = block * BLOCK_SIZE + 4 * g
        return [lit for byte in self.message[start:start + 4] for lit in byte]

    def solve_md5_chunk(self, block, num_rounds=4):
        """Encode all steps for one block and chain the state forward."""
        assert num_rounds in [1, 2, 3, 4]
        x = [self.message_word(block, g) for g in range(16)]
        a, b, c, d = self.state

        for i in range(num_rounds * 16):
            f = self.add_F(b, c, d, i)
            temp = self.add(self.add(a, f), self.add(self.constant(MD5.K[i]), x[MD5.message_index(i)]))
            a, b, c, d = d, self.add(b, self.rotl(temp, MD5.S[i])), b, c

        self.state = [self.add(s, r) for s, r in zip(self.state, (a, b, c, d))]

    def solve_md5(self, num_rounds=4, timeout=None):
        """Finalize the encoding for all blocks, add the digest constraint and solve.

        With a timeout (seconds) the solver is interrupted once it expires.
        Returns (False, None) when unsatisfiable or interrupted, otherwise
        (True, (message_bytes, digest_int)).
        """
        for block in range(len(self.message) // BLOCK_SIZE):
            self.solve_md5_chunk(block, num_rounds)

        if self.target_digest is not None:
            raw = self.target_digest.to_bytes(16, 'big')
            for r, word in enumerate(self.state):
                self.fix(word, int.from_bytes(raw[4*r:4*r + 4], 'little'))

        logger.debug("solving MD5 CNF: %d variables, %d rounds", self.top, num_rounds)
        if timeout is None:
            sat = self.solver.solve()
        else:
            timer = Timer(timeout, self.solver.interrupt)
            timer.start()
            try:
                sat = self.solver.solve_limited(expect_interrupt=True)
            finally:
                timer.cancel()
            if sat is None:
                logger.info("MD5 CNF solve interrupted after %ss", timeout)
        if not sat:
            return False, None
        return True, self.process_solution(self.solver.get_model())

    @staticmethod
    def word_value(model, word):
        """Read the integer value of a word of literals from a model."""
        value = 0
        for i, lit in enumerate(word):
            var = abs(lit)
            assigned = var <= len(model) and model[var - 1] > 0
            if assigned == (lit > 0):
                value |= 1 << i
        return value

    def process_solution(self, model):
        """Extract (message_bytes, digest_int) from a satisfying assignment."""
        x = bytes(self.word_value(model, byte) for byte in self.message)
        raw = b"".join(self.word_value(model, w).to_bytes(4, 'little') for w in self.state)
        return x, int.from_bytes(raw, 'big')

    def close(self):
        self.solver.delete()
