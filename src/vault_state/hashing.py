"""Content hashing for change detection.

Hashes are SHA-1 hex digests. They are change-detection fingerprints, not a
security boundary, and SHA-1 keeps existing snapshot files comparable.
"""

import hashlib
import unicodedata

from .core import HashPolicy


def normalize_content(data: bytes) -> bytes:
    """Normalize text so cosmetic platform differences hash identically.

    CRLF becomes LF, every BOM character is dropped, the text is put in
    Unicode NFC form and trailing whitespace is stripped.
    """
    text = data.decode("utf-8", errors="replace")
    text = text.replace("\r\n", "\n").replace("\ufeff", "")
    text = unicodedata.normalize("NFC", text).rstrip()
    return text.encode("utf-8")


def compute_content_hash(data: bytes, policy: HashPolicy = HashPolicy.RAW) -> str:
    """Compute the SHA-1 hex digest of file content.

    Args:
        data: Raw file bytes
        policy: RAW hashes the bytes as read; NORMALIZED hashes
            ``normalize_content(data)``

    Returns:
        40-character lowercase hex digest
    """
    if policy == HashPolicy.NORMALIZED:
        data = normalize_content(data)
    return hashlib.sha1(data).hexdigest()


__all__ = [
    "compute_content_hash",
    "normalize_content",
]
