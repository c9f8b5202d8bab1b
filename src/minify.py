"""Deterministic short keys for long source strings."""
import hashlib
from dataclasses import dataclass

DEFAULT_MINIFY_KEY = False
DEFAULT_MINIFY_KEY_LEN = 24
DEFAULT_MINIFY_KEY_PREFIX = ""
DEFAULT_MINIFY_KEY_THRESH = 127
MAX_MINIFY_KEY_LEN = 24

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_DIGEST_SIZE = 24
# 62**33 > 2**192, so every digest fits in 33 base62 digits
_ENCODED_WIDTH = 33


def _base62(number: int, width: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 62)
        digits.append(BASE62_ALPHABET[rem])
    return ''.join(reversed(digits)).rjust(width, BASE62_ALPHABET[0])


def hash_text(text: str) -> str:
    """Return the fixed-width base62 BLAKE2b digest of ``text``."""
    digest = hashlib.blake2b(text.encode('utf-8'), digest_size=_DIGEST_SIZE).digest()
    return _base62(int.from_bytes(digest, 'big'), _ENCODED_WIDTH)


def minify_key(text: str, length: int, prefix: str = DEFAULT_MINIFY_KEY_PREFIX,
               thresh: int = DEFAULT_MINIFY_KEY_THRESH) -> str:
    """
    Shorten ``text`` into a stable translation key.

    Texts no longer than ``thresh`` characters, or any text when ``length`` is 0,
    are returned unchanged so short keys stay readable. Otherwise the result is
    ``prefix`` followed by exactly ``length`` base62 characters of the text's hash.

    Two different texts can map to the same key once the hash is truncated.
    Callers that need to know about it must compare the source texts themselves.

    Args:
        text: The source text.
        length: Number of hash characters to keep (0..24).
        prefix: String prepended to the hash.
        thresh: Texts at or below this many characters are kept verbatim.

    Returns:
        str: The translation key.
    """
    if not 0 <= length <= MAX_MINIFY_KEY_LEN:
        raise ValueError(f"minify key length must be between 0 and {MAX_MINIFY_KEY_LEN}, got {length}")
    if length == 0 or len(text) <= thresh:
        return text
    return f"{prefix}{hash_text(text)[:length]}"


@dataclass(frozen=True)
class MinifyOptions:
    """Minification settings shared by extraction and runtime lookups."""
    enabled: bool = DEFAULT_MINIFY_KEY
    length: int = DEFAULT_MINIFY_KEY_LEN
    prefix: str = DEFAULT_MINIFY_KEY_PREFIX
    thresh: int = DEFAULT_MINIFY_KEY_THRESH

    @classmethod
    def from_config(cls, config) -> "MinifyOptions":
        return cls(
            enabled=config.minify_key,
            length=config.minify_key_len,
            prefix=config.minify_key_prefix,
            thresh=config.minify_key_thresh,
        )

    def key_for(self, text: str) -> str:
        if not self.enabled:
            return text
        return minify_key(text, self.length, self.prefix, self.thresh)

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "length": self.length,
            "prefix": self.prefix,
            "thresh": self.thresh,
        }
