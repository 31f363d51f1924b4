# services/hash_service.py
"""
SHA-256 helpers for verification metadata and uploaded files.

`sha256_of_data` serializes in insertion order with compact separators so
its output matches a browser `JSON.stringify` of the same object. Callers
that need reproducible hashes must build their dicts in a fixed order; see
`metadata_service.VERIFICATION_FIELDS`.
"""
import hashlib
import json
from typing import Any, Optional

HASH_LENGTH = 64


def canonical_json(data: Any) -> str:
    return json.dumps(data, separators=(',', ':'), ensure_ascii=False)


def sha256_of_data(data: Any) -> str:
    """
    Computes the lowercase hex SHA-256 of the JSON serialization of `data`.
    """
    return hashlib.sha256(canonical_json(data).encode('utf-8')).hexdigest()


def sha256_of_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_of_file(path: str) -> Optional[str]:
    """
    Computes the SHA-256 hex digest of a file, reading it in chunks.
    Returns None when the file can't be read.
    """
    try:
        h = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                h.update(chunk)
        return h.hexdigest()
    except OSError:
        return None
