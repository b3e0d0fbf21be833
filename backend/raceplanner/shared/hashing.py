"""Content fingerprints for stored GPX blobs."""

import hashlib


def content_sha256(data: bytes | str) -> str:
    """
    Calculate SHA-256 hash of file content.

    Strings are hashed as their UTF-8 encoding, so a document hashes the same
    whether it was read as text or bytes.

    Returns:
        Lowercase hex digest
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()
