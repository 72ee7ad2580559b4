"""Exceptions raised by the hash and token generators."""


class HashGenError(Exception):
    """Base class for rejected calls."""


class InvalidInputType(HashGenError, TypeError):
    """The value to hash is not text."""


class InvalidAlgorithm(HashGenError, ValueError):
    """The algorithm name is neither 'md5' nor 'sha-256'."""


class InvalidTokenType(HashGenError, ValueError):
    """The token kind is not one of uuid, hex, base64 or numeric."""
