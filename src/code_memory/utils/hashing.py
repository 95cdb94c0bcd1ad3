"""Hashing utilities."""

import hashlib


def compute_content_hash(content: str) -> str:
    """Compute a SHA-256 hash of content.

    Used for detecting chunk changes and incremental re-indexing.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def make_record_id(owner_id: str, content_hash: str) -> str:
    """Derive the content-addressed key of an embedding record.

    The same content for the same owner always maps to the same id whichever
    backend embedded it, so re-ingestion upserts instead of duplicating.
    """
    key = "\x1f".join((owner_id, content_hash))
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
