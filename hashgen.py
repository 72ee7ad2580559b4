"""Hash generator: MD5 (computed by ``md5.MD5``) or SHA-256 (from hashlib).

    >>> generate_hash("abc", "md5")
    '900150983cd24fb0d6963f7d28e17f72'
"""
import asyncio
import enum
import hashlib
import logging

from errors import InvalidAlgorithm, InvalidInputType
from md5 import MD5, to_hex

logger = logging.getLogger(__name__)


class Algorithm(enum.Enum):
    MD5 = "md5"
    SHA256 = "sha-256"

    @classmethod
    def parse(cls, name):
        """Resolve an algorithm name, ignoring case."""
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            try:
                return cls(name.lower())
            except ValueError:
                pass
        raise InvalidAlgorithm(f"algorithm must be 'md5' or 'sha-256', got {name!r}")


def sha256_digest(data):
    """32-byte SHA-256 digest of data, delegated to hashlib."""
    return hashlib.sha256(data).digest()


def md5_digest(data):
    """16-byte MD5 digest of data."""
    return MD5().compress(MD5.md5_padded(data)).digest()


_DIGESTS = {
    Algorithm.MD5: md5_digest,
    Algorithm.SHA256: sha256_digest,
}


def generate_hash(text, algorithm="sha-256"):
    """Hash the UTF-8 encoding of text and return lowercase hex.

    MD5 yields 32 characters, SHA-256 yields 64. Raises InvalidInputType when
    text is not a str and InvalidAlgorithm for any other algorithm name.
    """
    if not isinstance(text, str):
        raise InvalidInputType(f"input must be a string, got {type(text).__name__}")
    algo = Algorithm.parse(algorithm)
    data = text.encode("utf-8")
    logger.debug("hashing %d bytes with %s", len(data), algo.value)
    return to_hex(_DIGESTS[algo](data))


async def generate_hash_async(text, algorithm="sha-256"):
    """Awaitable form of generate_hash."""
    await asyncio.sleep(0)
    return generate_hash(text, algorithm)
