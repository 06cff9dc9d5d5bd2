"""Cryptographic primitives — commitment digests and commit contexts."""

from foresight.crypto.commitment_codec import (
    compute_digest,
    generate_context,
    verify_digest,
)

__all__ = ["compute_digest", "generate_context", "verify_digest"]
