"""Commitment codec — computes and verifies prediction digests.

Definition:
    digest = "sha256:" + SHA-256(canonical_json({
        domain, choice, principal, submitted_at, salt
    }))

- `domain` is a fixed tag separating prediction commitments from every
  other hash the system produces.
- `principal` binds the digest to the committer, so a digest copied from
  another principal never verifies.
- `salt` is a random secret held by the committer until reveal. Without
  it a yes/no choice hashed with public data is recoverable in two
  guesses.

The codec is deterministic: the same inputs always give the same digest,
which is what lets the reveal engine recompute it.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import re
import secrets
from datetime import datetime, timezone

from foresight.config import DEFAULT_SALT_BYTES, MIN_SALT_BYTES
from foresight.errors import ValidationError
from foresight.models.commitment import CommitContext


DOMAIN_TAG = "foresight/prediction-commitment/v1"
DIGEST_PREFIX = "sha256:"

_DIGEST_RE = re.compile(r"^sha256:[0-9a-f]{64}$")
_HEX_RE = re.compile(r"^[0-9a-f]+$")


def compute_digest(choice: bool, principal: str, context: CommitContext) -> str:
    """Compute the commitment digest for a choice."""
    if not isinstance(choice, bool):
        raise ValidationError(f"choice must be a bool, got {type(choice).__name__}")
    if not principal:
        raise ValidationError("principal must be non-empty")
    validate_context(context)

    canonical = json.dumps(
        {
            "domain": DOMAIN_TAG,
            "choice": choice,
            "principal": principal,
            "submitted_at": context.submitted_at,
            "salt": context.salt,
        },
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")
    return DIGEST_PREFIX + hashlib.sha256(canonical).hexdigest()


def verify_digest(
    choice: bool,
    principal: str,
    context: CommitContext,
    digest: str,
) -> bool:
    """Check that (choice, principal, context) reproduces `digest`."""
    expected = compute_digest(choice, principal, context)
    return hmac.compare_digest(expected, digest)


def generate_context(
    now: datetime,
    salt_bytes: int = DEFAULT_SALT_BYTES,
) -> CommitContext:
    """Create a fresh commit context with a random salt."""
    if salt_bytes < MIN_SALT_BYTES:
        raise ValidationError(f"salt_bytes must be >= {MIN_SALT_BYTES}")
    return CommitContext(
        submitted_at=format_timestamp(now),
        salt=secrets.token_hex(salt_bytes),
    )


def format_timestamp(ts: datetime) -> str:
    """Canonical UTC timestamp with microsecond precision."""
    if ts.tzinfo is None:
        raise ValidationError("timestamps must be timezone-aware")
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def is_well_formed_digest(digest: object) -> bool:
    return isinstance(digest, str) and _DIGEST_RE.match(digest) is not None


def validate_context(context: CommitContext) -> None:
    """Reject contexts that could not provide hiding."""
    if not isinstance(context, CommitContext):
        raise ValidationError("context must be a CommitContext")
    if not context.submitted_at:
        raise ValidationError("context.submitted_at must be non-empty")
    salt = context.salt
    if not salt or len(salt) % 2 != 0 or not _HEX_RE.match(salt):
        raise ValidationError("context.salt must be lowercase hex")
    if len(salt) // 2 < MIN_SALT_BYTES:
        raise ValidationError(
            f"context.salt must carry at least {MIN_SALT_BYTES} bytes of entropy"
        )
