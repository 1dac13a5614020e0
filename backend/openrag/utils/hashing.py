"""
Deterministic chunk identity and content fingerprints.
"""

import hashlib
from typing import Optional

# Length of the readable hex prefix used for chunk ids
CHUNK_ID_LENGTH = 16
SOURCE_ID_LENGTH = 12


def generate_chunk_id(source_url: str, path: str, blob_id: Optional[str] = None) -> str:
    """Generate deterministic chunk ID from the source URL, path and optional blob id."""
    combined = f"{source_url}:{path}"
    if blob_id:
        combined = f"{combined}:{blob_id}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()[:CHUNK_ID_LENGTH]


def sub_chunk_id(base_id: str, *parts: int) -> str:
    """Suffix a base id with a split index or a line range."""
    if not parts:
        return base_id
    return base_id + "".join(f"_{part}" for part in parts)


def generate_content_hash(content: str) -> str:
    """
    Fingerprint chunk content for change detection.

    Not collision resistant; only spots accidental duplicates.
    """
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def generate_source_id(source_url: str) -> str:
    """Short stable identifier for an indexed source."""
    return hashlib.md5(source_url.encode("utf-8")).hexdigest()[:SOURCE_ID_LENGTH]
