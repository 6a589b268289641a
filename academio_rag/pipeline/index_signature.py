"""Index signature utilities for rebuild detection."""

import hashlib
import json

SIGNATURE_KEY = "index_signature"


def compute_signature(embedding_model: str, chunk_size: int, chunk_overlap: int) -> str:
    """Compute a stable signature for index compatibility.

    Chunk IDs depend on the chunking parameters, so a collection built with a
    different signature keeps stale chunks until it is cleared.
    """
    payload = {
        "embedding_model": embedding_model,
        "chunking": {
            "chunk_size": chunk_size,
            "chunk_overlap": chunk_overlap,
        },
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def signature_mismatch(collection_metadata: dict | None, signature: str) -> bool:
    """True when the collection records a different signature."""
    stored = (collection_metadata or {}).get(SIGNATURE_KEY)
    return bool(stored) and stored != signature
