"""Redis key schema.

Key format: {prefix}:{variant}:{key_b64}

Where:
- prefix: namespace shared by every entry of one deployment
- variant: "e" (encoded payload) or "s" (sliding window sidecar)
- key_b64: Base64URL encoded caller key, without padding

Encoding the caller key keeps entries and sidecars in disjoint key
spaces whatever characters the caller uses.
"""

from __future__ import annotations

import base64
import binascii
from typing import Literal

from distcache.config import settings

Variant = Literal["e", "s"]

ENTRY: Variant = "e"
SLIDING: Variant = "s"


def encode_key(key: str) -> str:
    """Encode a caller key to Base64URL without padding."""
    return base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii").rstrip("=")


def decode_key(value: str) -> str:
    """Decode a Base64URL key segment without padding.

    Raises:
        ValueError: not valid Base64URL or not UTF-8
    """
    padded = value + "=" * ((4 - len(value) % 4) % 4)
    try:
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeError) as exc:
        raise ValueError(f"invalid key segment: {value!r}") from exc


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    def __init__(self, prefix: str | None = None) -> None:
        self.prefix = prefix if prefix is not None else settings.key_prefix

    def entry(self, key: str) -> str:
        """Key holding the encoded payload."""
        return f"{self.prefix}:{ENTRY}:{encode_key(key)}"

    def sliding(self, key: str) -> str:
        """Key holding the sliding window (milliseconds) of an entry."""
        return f"{self.prefix}:{SLIDING}:{encode_key(key)}"

    def parse_key(self, namespaced: str) -> dict[str, str] | None:
        """Split a namespaced key into prefix, caller key and variant.

        Returns None if the key doesn't belong to this namespace.
        """
        head = f"{self.prefix}:"
        if not namespaced.startswith(head):
            return None

        variant, sep, encoded = namespaced[len(head) :].partition(":")
        if not sep or variant not in (ENTRY, SLIDING) or not encoded:
            return None

        try:
            key = decode_key(encoded)
        except ValueError:
            return None

        return {
            "prefix": self.prefix,
            "key": key,
            "variant": "entry" if variant == ENTRY else "sliding",
        }
